"""
flowbench: robustness evaluation for bug-finding tools.

For every known vulnerability pattern in a catalog, flowbench nests reusable
code-transformation templates ("flows") around the triggering expression,
runs the tool under test on each positive/negative variant pair, and prunes
the flows that break detection.  The result per pattern is:

1. TP/FN/Error for the positive programs, TN/FP/Error for the negatives
2. an evaluation tree recording the provenance of every variant
3. the flows that were retired, and why
"""

__version__ = "0.1.0"
