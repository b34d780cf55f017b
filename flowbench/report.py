"""
Writers for the evaluation artifacts.

- ``EvalCounter.csv``: one tally row per testcase
- ``EvalMap.csv``:     one row per testcase, one column per flow
- ``testcase-NNN/evalTree.{dot,json,png}``: the provenance tree
"""

from __future__ import annotations

import csv
import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, Sequence

from .catalog import Flows
from .results.counter import CSV_HEADER, EvalCounter
from .results.evalmap import EvalMap
from .results.tree import EvalTree

logger = logging.getLogger(__name__)

COUNTER_CSV = "EvalCounter.csv"
MAP_CSV = "EvalMap.csv"
TREE_STEM = "evalTree"


def write_counters_csv(counters: Iterable[EvalCounter], path: Path) -> Path:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for counter in counters:
            writer.writerow(counter.to_row())
    return path


def write_map_csv(maps: Sequence[EvalMap], flows: Flows, path: Path) -> Path:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["baseline", *flows.names])
        for evalmap in maps:
            writer.writerow(evalmap.to_row(flows))
    return path


def graphviz_available(dot_command: str = "dot") -> bool:
    return shutil.which(dot_command) is not None


def render_dot(dot_path: Path, image_path: Path, dot_command: str = "dot") -> Path:
    """Render a DOT file to PNG with Graphviz."""
    result = subprocess.run(
        [dot_command, "-Tpng", "-o", str(image_path), str(dot_path)],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise RuntimeError(f"Error generating image {image_path}: {result.stderr.strip()}")
    return image_path


def write_tree(
    tree: EvalTree,
    directory: Path,
    render_image: bool = False,
    dot_command: str = "dot",
) -> Path:
    """Export one testcase's tree; returns the DOT file's path."""
    directory.mkdir(parents=True, exist_ok=True)
    dot_path = directory / f"{TREE_STEM}.dot"
    dot_path.write_text(tree.to_dot(), encoding="utf-8")

    with open(directory / f"{TREE_STEM}.json", "w", encoding="utf-8") as f:
        json.dump(tree.to_dict(), f, indent=2)

    if render_image:
        image_path = render_dot(dot_path, directory / f"{TREE_STEM}.png", dot_command)
        logger.debug("EvalTree image generated: %s", image_path)
    return dot_path
