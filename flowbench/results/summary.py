"""
Cross-testcase summary.

Each ``Metric`` counts testcases at two levels:

- normal:   the raw count was non-zero (at least one variant agreed)
- absolute: the raw count covered every variant
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .counter import EvalCounter


@dataclass
class Metric:
    normal: int = 0
    absolute: int = 0

    def count(self, raw: int, total: int) -> None:
        if raw != 0:
            self.normal += 1
            if raw == total:
                self.absolute += 1

    def __str__(self) -> str:
        return f"{self.normal} ({self.absolute})"


_COLUMNS = [
    ("Tool", "tool"),
    ("Cases", "case_num"),
    ("TP", "true_positive"),
    ("FN", "false_negative"),
    ("EP", "positive_error"),
    ("TN", "true_negative"),
    ("FP", "false_positive"),
    ("EN", "negative_error"),
    ("RD", "robust_detection"),
]


@dataclass
class EvalSummary:
    tool: str
    case_num: int = 0
    true_positive: Metric = field(default_factory=Metric)
    false_negative: Metric = field(default_factory=Metric)
    positive_error: Metric = field(default_factory=Metric)
    true_negative: Metric = field(default_factory=Metric)
    false_positive: Metric = field(default_factory=Metric)
    negative_error: Metric = field(default_factory=Metric)
    robust_detection: Metric = field(default_factory=Metric)

    @classmethod
    def summary(cls, tool: str, counters: Iterable[EvalCounter]) -> "EvalSummary":
        summary = cls(tool)
        for c in counters:
            summary.case_num += 1
            summary.robust_detection.count(c.robust_count, c.variant_count)
            summary.true_positive.count(c.tp_count, c.variant_count)
            summary.false_negative.count(c.fn_count, c.variant_count)
            summary.positive_error.count(c.pos_err_count, c.variant_count)
            summary.false_positive.count(c.fp_count, c.variant_count)
            # TN is only counted for recalled positives, so misses leave the base.
            summary.true_negative.count(c.tn_count, c.variant_count - c.fn_count)
            summary.negative_error.count(c.neg_err_count, c.variant_count)
        return summary

    def table(self) -> str:
        """Fixed-width, single-row table of every metric."""
        headers = [h for h, _ in _COLUMNS]
        values = [str(getattr(self, attr)) for _, attr in _COLUMNS]
        widths = [max(len(h), len(v)) for h, v in zip(headers, values)]
        rule = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

        def _row(cells: list[str]) -> str:
            return "|" + "|".join(f" {c:<{w}} " for c, w in zip(cells, widths)) + "|"

        return "\n".join([rule, _row(headers), rule, _row(values), rule])

    def report(self) -> str:
        """Narrative of the baseline-level and variant-level results."""
        tp, fn, ep = self.true_positive, self.false_negative, self.positive_error
        tn, fp, en = self.true_negative, self.false_positive, self.negative_error
        rd = self.robust_detection
        return (
            f"Of the {self.case_num} baseline testcases, {fn.absolute} positives were "
            f"missed and {ep.absolute} positives errored, while among the negatives of "
            f"the remaining {tp.normal} testcases {fp.absolute} were false alarms and "
            f"{en.absolute} errored. In total {rd.normal} testcases had their positive "
            f"detected and their negative filtered (relative robust detection) and went "
            f"on to variant testing.\n"
            f"Across the variants of those {rd.normal} testcases, {tp.absolute - fp.absolute} "
            f"positive groups were detected absolutely, {fn.normal - fn.absolute} contained "
            f"misses and {ep.normal - ep.absolute} contained errors; {tn.absolute} negative "
            f"groups were filtered absolutely, {fp.normal - fp.absolute} contained false "
            f"alarms and {en.normal - en.absolute} contained errors. Hence only "
            f"{rd.absolute} testcases had every variant detected and filtered "
            f"(absolute robust detection).\n"
        )
