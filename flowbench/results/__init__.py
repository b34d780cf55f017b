"""
flowbench.results: outcome classification and the per-testcase records.

Provides:
- Signal / EvalResult / EvalResults and ``classify``
- EvalCounter tallies and the EvalMap of retired flows
- EvalTree provenance graph (DOT / JSON export)
- Metric and EvalSummary aggregation
"""

from .counter import EvalCounter
from .evalmap import BASELINE_KEY, EvalMap
from .outcome import EvalResult, EvalResults, Signal, classify
from .summary import EvalSummary, Metric
from .tree import EvalNode, EvalTree

__all__ = [
    "BASELINE_KEY",
    "EvalCounter",
    "EvalMap",
    "EvalNode",
    "EvalResult",
    "EvalResults",
    "EvalSummary",
    "EvalTree",
    "Metric",
    "Signal",
    "classify",
]
