"""
Exception types raised by flowbench.

Domain outcomes (TP/FP/FN/TN/Error) are never exceptions; these cover the
conditions that stop a run or a single exploration.
"""


class FlowbenchError(Exception):
    """Base class for flowbench failures."""


class CatalogError(FlowbenchError):
    """A testcase or flow catalog could not be read or failed validation."""


class TargetIndexError(FlowbenchError, IndexError):
    """A requested testcase index is outside the catalog."""


class ToolNotFoundError(FlowbenchError):
    """The tool under test is missing or not executable."""


class EvalTreeError(FlowbenchError, LookupError):
    """A node was attached to a parent the evaluation tree does not hold."""
