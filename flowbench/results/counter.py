"""Per-testcase outcome tallies."""

from __future__ import annotations

from dataclasses import dataclass

from .outcome import EvalResult, EvalResults

CSV_HEADER = ["index", "variants", "TP", "FN", "EP", "TN", "FP", "EN", "RD"]


@dataclass
class EvalCounter:
    idx: int
    variant_count: int = 0
    tp_count: int = 0
    fn_count: int = 0
    pos_err_count: int = 0
    tn_count: int = 0
    fp_count: int = 0
    neg_err_count: int = 0
    robust_count: int = 0

    def count(self, res: EvalResults) -> None:
        res.validate()
        self.variant_count += 1

        if res.pos is EvalResult.ERR:
            self.pos_err_count += 1
        elif res.pos is EvalResult.TP:
            self.tp_count += 1
        else:
            self.fn_count += 1

        # The negative arm only means something once the positive was recalled.
        if res.neg is EvalResult.ERR:
            self.neg_err_count += 1
        elif res.pos is EvalResult.TP:
            if res.neg is EvalResult.FP:
                self.fp_count += 1
            else:
                self.tn_count += 1

        if res.robust:
            self.robust_count += 1

    @property
    def all_robust(self) -> bool:
        return self.variant_count > 0 and self.robust_count == self.variant_count

    def to_row(self) -> list[str]:
        return [
            f"{self.idx:03}",
            str(self.variant_count),
            str(self.tp_count),
            str(self.fn_count),
            str(self.pos_err_count),
            str(self.tn_count),
            str(self.fp_count),
            str(self.neg_err_count),
            str(self.robust_count),
        ]
