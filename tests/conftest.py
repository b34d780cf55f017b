"""
Shared fixtures: an in-process stand-in for the tool under test and small
hand-built catalogs.
"""

from pathlib import Path
from typing import Callable

import pytest

from flowbench.catalog import Case, Flow, Flows, Tags, Testcase
from flowbench.results.outcome import Signal

FIXTURES = Path(__file__).parent / "fixtures"
CATALOG_DIR = FIXTURES / "catalog"


class FakeRunner:
    """
    Decides each program's signal with ``decide(idx, program)``.

    Records every program it was asked to run, in order.
    """

    name = "fake-tool"

    def __init__(self, decide: Callable[[int, str], Signal]):
        self.decide = decide
        self.calls: list[tuple[int, str]] = []
        self.harnesses: list[int] = []

    def generate_harness(self, idx: int) -> Path:
        self.harnesses.append(idx)
        return Path(f"harness-{idx}")

    def run(self, idx: int, program: str) -> Signal:
        self.calls.append((idx, program))
        return self.decide(idx, program)


def detects_positives(idx: int, program: str) -> Signal:
    """A perfect tool for ``simple_testcase`` programs."""
    return Signal.FOUND if program.startswith("pos") else Signal.NOT_FOUND


def simple_testcase(ty: str = "UAF") -> Testcase:
    return Testcase(
        desc="toy testcase",
        tags=Tags(sp="high", ub="memory", ty=ty),
        features=(),
        ty="T",
        val="v",
        pos=Case(src="bad()", code="pos SOURCE!()"),
        neg=Case(src="good()", code="neg SOURCE!()"),
    )


def flows(**templates: str) -> Flows:
    return Flows([Flow(name, code) for name, code in templates.items()])


@pytest.fixture
def testcase():
    return simple_testcase()


@pytest.fixture
def perfect_runner():
    return FakeRunner(detects_positives)
