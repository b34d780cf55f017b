"""
Configuration file loader for ``flowbench.yml``.

The file lives next to ``testcases.yaml`` and ``expressions.yaml`` in the
catalog directory.  Every setting has a default, so a catalog works without
one; command-line flags override whatever the file says.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import CatalogError

CONFIG_NAMES = ("flowbench.yml", "flowbench.yaml")

DEFAULT_MANIFEST = """\
[package]
name = "{name}"
version = "0.1.0"
edition = "2021"

[dependencies]
"""


@dataclass
class ExplorationConfig:
    length: int = 2        # maximum number of nested flows per variant
    parallel: bool = False
    workers: int = 5       # concurrent testcase explorations in parallel mode
    seed: Optional[int] = None


@dataclass
class RunnerConfig:
    found_exit_codes: list[int] = field(default_factory=lambda: [1])
    not_found_exit_codes: list[int] = field(default_factory=lambda: [0])
    harness_entry: str = "src/main.rs"
    manifest_name: str = "Cargo.toml"
    harness_manifest: str = DEFAULT_MANIFEST

    @property
    def source_suffix(self) -> str:
        return Path(self.harness_entry).suffix


@dataclass
class ReportConfig:
    render_images: bool = True
    dot_command: str = "dot"


def _get(raw: dict[str, Any], key: str, default: Any) -> Any:
    """Look up ``key`` in kebab-case first, then snake_case."""
    kebab = key.replace("_", "-")
    if kebab in raw:
        return raw[kebab]
    return raw.get(key, default)


def _int(raw: dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    value = _get(raw, key, default)
    if value is None and default is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise CatalogError(f"flowbench config: '{key}' must be an integer, got {value!r}") from e


def _int_list(raw: dict[str, Any], key: str, default: list[int]) -> list[int]:
    value = _get(raw, key, default)
    if not isinstance(value, list):
        raise CatalogError(f"flowbench config: '{key}' must be a list of integers, got {value!r}")
    try:
        return [int(c) for c in value]
    except (TypeError, ValueError) as e:
        raise CatalogError(f"flowbench config: '{key}' must be a list of integers, got {value!r}") from e


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise CatalogError(f"flowbench config: section '{name}' must be a mapping")
    return section


@dataclass
class FlowbenchConfig:
    """Top-level configuration for flowbench."""
    exploration: ExplorationConfig = field(default_factory=ExplorationConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    @classmethod
    def load(cls, config_dir: Path) -> "FlowbenchConfig":
        """Load config from flowbench.yml, falling back to defaults."""
        for name in CONFIG_NAMES:
            config_path = config_dir / name
            if config_path.exists():
                break
        else:
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CatalogError(f"Malformed YAML in {config_path}: {e}") from e

        if not isinstance(raw, dict):
            raise CatalogError(f"{config_path}: expected a mapping at the top level")
        return cls._from_dict(raw)

    @classmethod
    def _from_dict(cls, raw: dict[str, Any]) -> "FlowbenchConfig":
        exploration_raw = _section(raw, "exploration")
        runner_raw = _section(raw, "runner")
        report_raw = _section(raw, "report")

        exploration = ExplorationConfig(
            length=_int(exploration_raw, "length", 2),
            parallel=bool(_get(exploration_raw, "parallel", False)),
            workers=_int(exploration_raw, "workers", 5),
            seed=_int(exploration_raw, "seed", None),
        )

        runner = RunnerConfig(
            found_exit_codes=_int_list(runner_raw, "found_exit_codes", [1]),
            not_found_exit_codes=_int_list(runner_raw, "not_found_exit_codes", [0]),
            harness_entry=str(_get(runner_raw, "harness_entry", "src/main.rs")),
            manifest_name=str(_get(runner_raw, "manifest_name", "Cargo.toml")),
            harness_manifest=str(_get(runner_raw, "harness_manifest", DEFAULT_MANIFEST)),
        )

        report = ReportConfig(
            render_images=bool(_get(report_raw, "render_images", True)),
            dot_command=str(_get(report_raw, "dot_command", "dot")),
        )

        config = cls(exploration=exploration, runner=runner, report=report)
        config.validate()
        return config

    def validate(self) -> None:
        if self.exploration.length < 0:
            raise CatalogError("flowbench config: length must be >= 0")
        if self.exploration.workers < 1:
            raise CatalogError("flowbench config: workers must be >= 1")
        overlap = set(self.runner.found_exit_codes) & set(self.runner.not_found_exit_codes)
        if overlap:
            raise CatalogError(
                f"flowbench config: exit codes {sorted(overlap)} are both 'found' and 'not found'"
            )
