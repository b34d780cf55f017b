"""
Running the tool under test.

Each testcase gets its own harness project under ``<output>/harness``; every
program is written into the harness entry file and the tool is invoked as

    <tool> <harness dir>

The exit code is the only thing interpreted here, via the configured policy.
Generated programs are also kept under ``<output>/testcase-NNN/<expr id>/``
for inspection.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path

from .config import RunnerConfig
from .ir import Program
from .errors import ToolNotFoundError
from .results.outcome import Signal

logger = logging.getLogger(__name__)


def resolve_tool(tool: Path | str) -> Path:
    """Return the tool's path, or raise if it cannot be executed."""
    tool = Path(tool)
    if tool.is_file():
        if not os.access(tool, os.X_OK):
            raise ToolNotFoundError(f"Tool is not executable: {tool}")
        return tool
    found = shutil.which(str(tool))
    if found is None:
        raise ToolNotFoundError(f"Tool not found: {tool}")
    return Path(found)


def testcase_dir(output: Path, idx: int) -> Path:
    return output / f"testcase-{idx:03}"


class ToolRunner:
    """Materializes programs into per-testcase harnesses and runs the tool."""

    def __init__(self, tool: Path | str, harness_root: Path, config: RunnerConfig | None = None):
        self.tool = resolve_tool(tool)
        self.harness_root = Path(harness_root)
        self.config = config or RunnerConfig()

    @property
    def name(self) -> str:
        return self.tool.stem

    def harness(self, idx: int) -> Path:
        return self.harness_root / f"harness-{idx}"

    def generate_harness(self, idx: int) -> Path:
        """Create (or reset) the harness project for testcase ``idx``."""
        harness = self.harness(idx)
        entry = harness / self.config.harness_entry
        entry.parent.mkdir(parents=True, exist_ok=True)
        if self.config.manifest_name and self.config.harness_manifest:
            manifest = self.config.harness_manifest.replace("{name}", f"harness-{idx}")
            (harness / self.config.manifest_name).write_text(manifest, encoding="utf-8")
        return harness

    def signal_for(self, returncode: int) -> Signal:
        if returncode in self.config.found_exit_codes:
            return Signal.FOUND
        if returncode in self.config.not_found_exit_codes:
            return Signal.NOT_FOUND
        return Signal.EXECUTION_FAILED

    def run(self, idx: int, program: Program) -> Signal:
        harness = self.harness(idx)
        (harness / self.config.harness_entry).write_text(program, encoding="utf-8")
        try:
            result = subprocess.run(
                [str(self.tool), str(harness)],
                capture_output=True,
                text=True,
                errors="replace",
            )
        except OSError as e:
            logger.warning("Failed to launch %s on %s: %s", self.tool, harness, e)
            return Signal.EXECUTION_FAILED

        signal = self.signal_for(result.returncode)
        if signal is Signal.EXECUTION_FAILED:
            logger.debug(
                "%s exited with %d on %s: %s",
                self.name, result.returncode, harness, result.stderr.strip()[:500],
            )
        return signal


class ProgramWriter:
    """Keeps a copy of every generated program pair."""

    def __init__(self, output: Path, suffix: str = ".rs"):
        self.output = Path(output)
        self.suffix = suffix

    def write(self, idx: int, expr_num: str, pos: str, neg: str) -> Path:
        target = testcase_dir(self.output, idx) / expr_num
        target.mkdir(parents=True, exist_ok=True)
        (target / f"POS{self.suffix}").write_text(pos, encoding="utf-8")
        (target / f"NEG{self.suffix}").write_text(neg, encoding="utf-8")
        return target
