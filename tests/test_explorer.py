"""
Tests for single-testcase exploration: baseline short-circuit, bounded
breadth-first growth and testcase-wide flow retirement.
"""

import random

import pytest

from flowbench.engine import Explorer
from flowbench.errors import EvalTreeError
from flowbench.results.evalmap import BASELINE_KEY
from flowbench.results.outcome import Signal
from flowbench.results.tree import EvalTree

from conftest import FakeRunner, detects_positives, flows, simple_testcase


def _explore(runner, catalog, length=2, seed=0, testcase=None):
    explorer = Explorer(
        0, testcase or simple_testcase(), catalog, runner, length, random.Random(seed)
    )
    return explorer.explore()


def _false_alarm_on(marker):
    """Perfect tool, except it also flags negatives containing ``marker``."""

    def decide(idx, program):
        if program.startswith("neg") and marker in program:
            return Signal.FOUND
        return detects_positives(idx, program)

    return decide


# ── Scenario from the design notes ───────────────────────────────────────────

def test_flow_failing_once_is_retired_for_the_testcase():
    """root -> A(len 1) -> A(len 2); B fails on the root and is never retried."""
    runner = FakeRunner(_false_alarm_on("b("))
    result = _explore(runner, flows(A="a(SOURCE!())", B="b(SOURCE!())"), length=2)

    tree = result.tree
    assert tree.root == "000-0-0"
    assert tree.get_node("000-0-0").children == ["001-1-0", "002-1-0"]
    assert tree.get_node("001-1-0").flow == "A"
    assert tree.get_node("002-1-0").flow == "B"
    assert tree.get_node("001-1-0").children == ["003-2-0"]
    assert tree.get_node("003-2-0").children == []
    assert tree.get_node("002-1-0").children == []

    assert dict(result.evalmap.items()) == {"B": "002-1-0 FP"}
    assert result.retired == ["B"]

    # baseline + A + B + A(A)
    assert result.counter.variant_count == 4
    assert result.counter.robust_count == 3
    assert result.counter.fp_count == 1
    assert result.counter.variant_count == tree.count_nodes()


def test_missed_positive_is_tagged_fn():
    def decide(idx, program):
        if program.startswith("pos") and "hide(" in program:
            return Signal.NOT_FOUND
        return detects_positives(idx, program)

    result = _explore(FakeRunner(decide), flows(Hide="hide(SOURCE!())"), length=3)
    assert dict(result.evalmap.items()) == {"Hide": "001-1-0 FN"}
    assert result.counter.fn_count == 1
    assert result.counter.tn_count == 1  # the baseline only


# ── Baseline handling ────────────────────────────────────────────────────────

@pytest.mark.parametrize("decide, tag", [
    (lambda idx, program: Signal.NOT_FOUND, "UAF FN"),
    (lambda idx, program: Signal.FOUND, "UAF FP"),
    (lambda idx, program: Signal.EXECUTION_FAILED, "UAF Error"),
])
def test_failed_baseline_stops_exploration(decide, tag):
    runner = FakeRunner(decide)
    result = _explore(runner, flows(A="a(SOURCE!())", B="b(SOURCE!())"))

    assert result.tree.count_nodes() == 1
    assert result.counter.variant_count == 1
    assert dict(result.evalmap.items()) == {BASELINE_KEY: tag}
    assert len(runner.calls) == 2


def test_zero_length_runs_only_the_baseline(perfect_runner):
    result = _explore(perfect_runner, flows(A="a(SOURCE!())"), length=0)
    assert result.tree.count_nodes() == 1
    assert len(result.evalmap) == 0
    assert len(perfect_runner.calls) == 2


def test_each_step_runs_positive_then_negative(perfect_runner):
    _explore(perfect_runner, flows(A="a(SOURCE!())"), length=1)
    programs = [program for _, program in perfect_runner.calls]
    assert programs == [
        "pos {\nbad()\n}",
        "neg {\ngood()\n}",
        "pos {\na({\nbad()\n})\n}",
        "neg {\na({\ngood()\n})\n}",
    ]


# ── Bounded growth ───────────────────────────────────────────────────────────

def test_full_tree_when_everything_is_robust(perfect_runner):
    """Two flows, length 2: 1 + 2 + 4 nodes."""
    result = _explore(perfect_runner, flows(A="a(SOURCE!())", B="b(SOURCE!())"), length=2)
    assert result.tree.count_nodes() == 7
    assert result.counter.all_robust
    assert max(n.name.split("-")[1] for n in result.tree.nodes.values()) == "2"


@pytest.mark.parametrize("length", [1, 2, 3])
def test_no_fragment_exceeds_the_length_cap(perfect_runner, length):
    catalog = flows(A="a(SOURCE!())", Call="c(EXPRE!(p), SOURCE!())")
    result = _explore(perfect_runner, catalog, length=length)
    lengths = [int(name.split("-")[1]) for name in result.tree.nodes]
    assert max(lengths) == length
    # only fragments below the cap get children
    for node in result.tree.nodes.values():
        if node.children:
            assert int(node.name.split("-")[1]) < length


def test_ids_use_monotonic_sequence_numbers(perfect_runner):
    result = _explore(perfect_runner, flows(A="a(SOURCE!())", B="b(SOURCE!())"), length=2)
    seqs = sorted(int(name.split("-")[0]) for name in result.tree.nodes)
    assert seqs == list(range(7))


def test_expre_samples_only_accepted_fragments():
    """Fragments of retired flows never enter the sampling pool."""
    runner = FakeRunner(_false_alarm_on("bad_flow"))
    catalog = flows(Bad="bad_flow(SOURCE!())", Call="call(EXPRE!(p), SOURCE!())")
    result = _explore(runner, catalog, length=3, seed=3)

    assert result.retired == ["Bad"]
    later = [program for _, program in runner.calls[4:]]
    assert all("bad_flow" not in program for program in later)


# ── Properties over random tools ─────────────────────────────────────────────

def _flaky(seed, failure_rate=0.3):
    rng = random.Random(seed)

    def decide(idx, program):
        # the baseline is always robust so that expansion happens
        if program == "pos {\nbad()\n}":
            return Signal.FOUND
        if program == "neg {\ngood()\n}":
            return Signal.NOT_FOUND
        if program.startswith("neg"):
            return Signal.FOUND if rng.random() < failure_rate / 2 else Signal.NOT_FOUND
        roll = rng.random()
        if roll < failure_rate / 4:
            return Signal.EXECUTION_FAILED
        return Signal.NOT_FOUND if roll < failure_rate / 2 else Signal.FOUND

    return decide


@pytest.mark.parametrize("seed", range(8))
def test_invariants_hold_for_random_outcomes(seed):
    catalog = flows(
        A="a(SOURCE!())",
        B="b(SOURCE!(), EXPRE!(x))",
        C="if COND!() { SOURCE!() }",
        D="d(EXPRE!(y), EXPRE!(z), SOURCE!())",
    )
    runner = FakeRunner(_flaky(seed))
    result = _explore(runner, catalog, length=3, seed=seed)
    tree, counter = result.tree, result.counter

    # tree/counter consistency
    assert counter.variant_count == tree.count_nodes()

    # recall gating
    assert counter.tn_count + counter.fp_count <= counter.tp_count

    # retirement is monotonic: a retired flow produces no later node
    for name in result.retired:
        failed_at = int(result.evalmap.get(name).split()[0].split("-")[0])
        later = [
            n for n in tree.nodes.values()
            if n.flow == name and int(n.name.split("-")[0]) > failed_at
        ]
        assert later == []
    assert len(result.retired) == len(set(result.retired))
    assert set(result.retired) == set(result.evalmap)

    # expansion only happens after a robust baseline
    assert BASELINE_KEY not in result.evalmap

    # length bound
    assert all(int(n.split("-")[1]) <= 3 for n in tree.nodes)


def test_exploration_is_reproducible_under_a_seed():
    catalog = flows(A="a(SOURCE!())", Call="c(EXPRE!(p), EXPRE!(q), SOURCE!())")
    first = FakeRunner(detects_positives)
    second = FakeRunner(detects_positives)
    _explore(first, catalog, length=3, seed=42)
    _explore(second, catalog, length=3, seed=42)
    assert first.calls == second.calls


def test_tree_errors_abort_the_exploration(monkeypatch, perfect_runner):
    def broken_add_child(self, parent_name, child_name, child_res, flow=None):
        raise EvalTreeError(f"Parent node '{parent_name}' not found")

    monkeypatch.setattr(EvalTree, "add_child", broken_add_child)
    with pytest.raises(EvalTreeError):
        _explore(perfect_runner, flows(A="a(SOURCE!())"), length=1)
