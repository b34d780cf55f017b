"""
Outcome classification.

The tool runner reports one ``Signal`` per program.  ``classify`` turns the
(positive, negative) signal pair into an ``EvalResults`` pair of
``EvalResult`` values:

    positive arm:  ERR | TP | FN
    negative arm:  ERR | FP | TN

Any other combination is a programming error, not a domain outcome.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class Signal(Enum):
    """What the tool runner observed for one program."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    EXECUTION_FAILED = "execution_failed"


class EvalResult(Enum):
    ERR = "Err"  # the tool failed to run or the program failed to build
    TP = "TP"
    FP = "FP"  # false alarm
    FN = "FN"  # missed bug
    TN = "TN"


_POSITIVE = frozenset({EvalResult.ERR, EvalResult.TP, EvalResult.FN})
_NEGATIVE = frozenset({EvalResult.ERR, EvalResult.FP, EvalResult.TN})


class EvalResults(NamedTuple):
    pos: EvalResult
    neg: EvalResult

    def validate(self) -> "EvalResults":
        if self.pos not in _POSITIVE:
            raise ValueError(f"{self.pos} is not a positive-arm outcome")
        if self.neg not in _NEGATIVE:
            raise ValueError(f"{self.neg} is not a negative-arm outcome")
        return self

    @property
    def is_error(self) -> bool:
        return EvalResult.ERR in (self.pos, self.neg)

    @property
    def robust(self) -> bool:
        return self.pos is EvalResult.TP and self.neg is EvalResult.TN

    @property
    def label(self) -> str:
        """Long-form description used in exports."""
        self.validate()
        if self.is_error:
            return "Error"
        return {
            (EvalResult.TP, EvalResult.TN): "True Positive & Negative",
            (EvalResult.TP, EvalResult.FP): "False Positive",
            (EvalResult.FN, EvalResult.FP): "False Positive & Negative",
            (EvalResult.FN, EvalResult.TN): "False Negative",
        }[(self.pos, self.neg)]

    @property
    def short(self) -> str:
        """Short tag for a non-robust result, as recorded in the EvalMap."""
        self.validate()
        if self.is_error:
            return "Error"
        if self.robust:
            raise ValueError("a robust result has no failure tag")
        return {
            (EvalResult.TP, EvalResult.FP): "FP",
            (EvalResult.FN, EvalResult.FP): "FN & FP",
            (EvalResult.FN, EvalResult.TN): "FN",
        }[(self.pos, self.neg)]

    @property
    def color(self) -> str:
        """Graphviz fill colour for the evaluation tree."""
        self.validate()
        if self.is_error:
            return "red"
        return {
            (EvalResult.TP, EvalResult.TN): "green",
            (EvalResult.TP, EvalResult.FP): "blue",
            (EvalResult.FN, EvalResult.FP): "gray",
            (EvalResult.FN, EvalResult.TN): "orange",
        }[(self.pos, self.neg)]


def _require_signal(value: object, arm: str) -> Signal:
    if not isinstance(value, Signal):
        raise ValueError(f"{arm} signal must be a Signal, got {value!r}")
    return value


def classify(pos_signal: Signal, neg_signal: Signal) -> EvalResults:
    """Map the runner's signals for a program pair to an ``EvalResults``."""
    pos_signal = _require_signal(pos_signal, "positive")
    neg_signal = _require_signal(neg_signal, "negative")

    if pos_signal is Signal.EXECUTION_FAILED:
        pos = EvalResult.ERR
    elif pos_signal is Signal.FOUND:
        pos = EvalResult.TP
    else:
        pos = EvalResult.FN

    if neg_signal is Signal.EXECUTION_FAILED:
        neg = EvalResult.ERR
    elif neg_signal is Signal.FOUND:
        neg = EvalResult.FP
    else:
        neg = EvalResult.TN

    return EvalResults(pos, neg)
