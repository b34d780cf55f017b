"""
Variant exploration and the evaluation driver.

``Explorer`` handles one testcase:

1. Baseline: run the testcase's own positive/negative programs.  If the tool
   does not detect the positive and clear the negative, stop and record the
   failure under the "-" key.
2. Breadth-first expansion: nest every flow still in the working set around
   each frontier fragment.  Robust variants shorter than the length cap go
   back onto the frontier and into the sampling pool; a flow whose variant is
   not robust is retired for the rest of this testcase.

``Evaluator`` selects targets, runs one ``Explorer`` per testcase (optionally
on a bounded thread pool) and writes the reports.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Protocol

from .catalog import Catalog, Flows, Testcase
from .config import FlowbenchConfig
from .errors import TargetIndexError
from .ir import Expr, Sampler, synthesize
from .report import (
    COUNTER_CSV,
    MAP_CSV,
    graphviz_available,
    write_counters_csv,
    write_map_csv,
    write_tree,
)
from .results.counter import EvalCounter
from .results.evalmap import BASELINE_KEY, EvalMap
from .results.outcome import EvalResults, Signal, classify
from .results.summary import EvalSummary
from .results.tree import EvalTree
from .runner import ProgramWriter, testcase_dir

logger = logging.getLogger(__name__)


class Runner(Protocol):
    """The tool-under-test collaborator."""

    @property
    def name(self) -> str: ...

    def generate_harness(self, idx: int) -> Path: ...

    def run(self, idx: int, program: str) -> Signal: ...


@dataclass
class Exploration:
    """Everything one testcase's exploration produced."""
    idx: int
    counter: EvalCounter
    tree: EvalTree
    evalmap: EvalMap
    retired: list[str] = field(default_factory=list)  # flow names, in retirement order


class Explorer:
    def __init__(
        self,
        idx: int,
        testcase: Testcase,
        flows: Flows,
        runner: Runner,
        length: int,
        sampler: Sampler,
        writer: Optional[ProgramWriter] = None,
    ):
        self.idx = idx
        self.testcase = testcase
        self.flows = flows
        self.runner = runner
        self.length = length
        self.sampler = sampler
        self.writer = writer

    def _process(self, expr: Expr) -> EvalResults:
        pos, neg = self.testcase.into_programs(expr.code)
        if self.writer is not None:
            logger.info(
                "Write testcase-%03d with expression-%s into file system", self.idx, expr.num
            )
            self.writer.write(self.idx, expr.num, pos, neg)
        res = classify(self.runner.run(self.idx, pos), self.runner.run(self.idx, neg))
        logger.debug("testcase-%03d %s: %s", self.idx, expr.num, res.label)
        return res

    def explore(self) -> Exploration:
        result = Exploration(self.idx, EvalCounter(self.idx), EvalTree(), EvalMap())
        counter, tree, evalmap = result.counter, result.tree, result.evalmap

        root = Expr.source()
        res = self._process(root)
        counter.count(res)
        tree.set_root(root.num, res)

        if not res.robust:
            evalmap.insert(BASELINE_KEY, self.testcase.tags.ty, res)
            logger.info("testcase-%03d baseline failed: %s", self.idx, res.label)
            return result
        if self.length == 0:
            return result

        pool: list[Expr] = [root]
        frontier: deque[Expr] = deque([root])
        working_set = list(self.flows)

        while frontier:
            src = frontier.popleft()
            for flow in list(working_set):
                expr = synthesize(flow, src, pool, self.testcase, tree.count_nodes(), self.sampler)
                res = self._process(expr)
                counter.count(res)
                tree.add_child(src.num, expr.num, res, flow=flow.name)

                if res.robust:
                    if expr.length < self.length:
                        frontier.append(expr)
                        pool.append(expr)
                else:
                    working_set.remove(flow)
                    result.retired.append(flow.name)
                    evalmap.insert(flow.name, expr.num, res)
                    logger.info(
                        "testcase-%03d retired flow '%s' at %s (%s)",
                        self.idx, flow.name, expr.num, res.short,
                    )

        return result


@dataclass
class EvalRun:
    """Outcome of a whole evaluation run."""
    tool: str
    targets: list[int]
    explorations: list[Exploration]
    summary: EvalSummary

    @property
    def counters(self) -> list[EvalCounter]:
        return [e.counter for e in self.explorations]

    @property
    def all_robust(self) -> bool:
        return bool(self.explorations) and all(c.all_robust for c in self.counters)


def seeded_sampler_factory(seed: Optional[int]) -> Callable[[int], Sampler]:
    """One independent ``random.Random`` per testcase, reproducible under a seed."""

    def _factory(idx: int) -> Sampler:
        if seed is None:
            return random.Random()
        return random.Random(seed * 1_000_003 + idx)

    return _factory


class Evaluator:
    def __init__(
        self,
        runner: Runner,
        catalog: Catalog,
        output: Path,
        config: Optional[FlowbenchConfig] = None,
        targets: Optional[list[int]] = None,
        sampler_factory: Optional[Callable[[int], Sampler]] = None,
    ):
        self.runner = runner
        self.catalog = catalog
        self.output = Path(output)
        self.config = config or FlowbenchConfig()
        self.targets = list(targets) if targets else None
        self.sampler_factory = sampler_factory or seeded_sampler_factory(
            self.config.exploration.seed
        )
        self.writer = ProgramWriter(self.output, self.config.runner.source_suffix)

    def set_target_by_ty(self, ty: str) -> None:
        self.targets = self.catalog.testcases.filter_by_ty(ty)
        if not self.targets:
            logger.warning("No testcase is tagged %s", ty)

    def resolve_targets(self) -> list[int]:
        """The indices to evaluate, without repeats; every index must exist in the catalog."""
        total = len(self.catalog.testcases)
        targets = list(range(total)) if self.targets is None else list(dict.fromkeys(self.targets))
        for idx in targets:
            if not 0 <= idx < total:
                raise TargetIndexError(
                    f"Index {idx} is out of bounds. Valid range is 0-{total - 1}"
                    if total else f"Index {idx} is out of bounds. The catalog is empty"
                )
        return targets

    def evaluate_one(self, idx: int, render_images: Optional[bool] = None) -> Exploration:
        self.runner.generate_harness(idx)
        explorer = Explorer(
            idx,
            self.catalog.testcases[idx],
            self.catalog.flows,
            self.runner,
            self.config.exploration.length,
            self.sampler_factory(idx),
            self.writer,
        )
        exploration = explorer.explore()

        report = self.config.report
        write_tree(
            exploration.tree,
            testcase_dir(self.output, idx),
            render_image=report.render_images if render_images is None else render_images,
            dot_command=report.dot_command,
        )
        logger.info(
            "testcase-%03d done: %d variants, %d robust",
            idx, exploration.counter.variant_count, exploration.counter.robust_count,
        )
        return exploration

    def main(self, parallel: Optional[bool] = None) -> EvalRun:
        targets = self.resolve_targets()
        if parallel is None:
            parallel = self.config.exploration.parallel

        report = self.config.report
        render_images = report.render_images
        if render_images and not graphviz_available(report.dot_command):
            logger.warning("Graphviz '%s' not found; skipping tree images", report.dot_command)
            render_images = False

        self.output.mkdir(parents=True, exist_ok=True)

        if parallel:
            workers = self.config.exploration.workers
            logger.info("Evaluating %d testcases on %d workers", len(targets), workers)
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(self.evaluate_one, idx, render_images) for idx in targets]
                explorations = [future.result() for future in futures]
        else:
            logger.info("Evaluating %d testcases", len(targets))
            explorations = [self.evaluate_one(idx, render_images) for idx in targets]

        counters = [e.counter for e in explorations]
        write_counters_csv(counters, self.output / COUNTER_CSV)
        write_map_csv([e.evalmap for e in explorations], self.catalog.flows, self.output / MAP_CSV)

        return EvalRun(
            tool=self.runner.name,
            targets=targets,
            explorations=explorations,
            summary=EvalSummary.summary(self.runner.name, counters),
        )
