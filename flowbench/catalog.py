"""
Testcase and flow catalogs.

Two YAML files make up a catalog directory:

- ``testcases.yaml``: one entry per known vulnerability pattern, each with a
  positive (buggy) and negative (fixed) program skeleton.
- ``expressions.yaml``: the flow templates nested around the
  vulnerability-triggering expression.

Both are loaded once, validated, and treated as read-only afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import yaml

from .errors import CatalogError
from .ir import SOURCE_MARKER, Program

logger = logging.getLogger(__name__)

TESTCASES_FILE = "testcases.yaml"
FLOWS_FILE = "expressions.yaml"


# ── YAML helpers ─────────────────────────────────────────────────────────────

def _read_yaml_list(path: Path, what: str) -> list[Any]:
    logger.info("%s from file: %s", what, path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise CatalogError(f"Cannot read {what.lower()} file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise CatalogError(f"Malformed YAML in {path}: {e}") from e

    if raw is None:
        return []
    if not isinstance(raw, list):
        raise CatalogError(f"{path}: expected a list of entries, got {type(raw).__name__}")
    return raw


def _require(entry: dict[str, Any], key: str, where: str) -> Any:
    if key not in entry:
        raise CatalogError(f"{where}: missing required field '{key}'")
    return entry[key]


def _require_str(entry: dict[str, Any], key: str, where: str) -> str:
    value = _require(entry, key, where)
    if not isinstance(value, str):
        raise CatalogError(f"{where}: field '{key}' must be a string")
    return value


def _require_map(entry: Any, where: str) -> dict[str, Any]:
    if not isinstance(entry, dict):
        raise CatalogError(f"{where}: expected a mapping, got {type(entry).__name__}")
    return entry


# ── Testcases ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Tags:
    """Classification tags of a testcase."""
    sp: str  # severity
    ub: str  # undefined-behavior class
    ty: str  # vulnerability type: UAF, DF, BO, Uninit, NPD, Other


@dataclass(frozen=True)
class Case:
    """One arm (positive or negative) of a testcase."""
    src: str
    code: str

    def nest(self, expr: str) -> str:
        """
        Nest ``expr`` into this case's source, then the source into the code.

        The fragment's ``SOURCE!()`` markers receive the triggering
        expression; the result is wrapped as a block and injected at the
        skeleton's own marker.
        """
        source = "{\n" + expr.replace(SOURCE_MARKER, self.src) + "\n}"
        return self.code.replace(SOURCE_MARKER, source.strip())


@dataclass(frozen=True)
class Testcase:
    desc: str
    tags: Tags
    features: tuple[str, ...]
    ty: str
    val: str
    pos: Case
    neg: Case

    def into_programs(self, expr: str) -> tuple[Program, Program]:
        """Build the (positive, negative) program texts around a fragment."""
        return self.pos.nest(expr), self.neg.nest(expr)

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "Testcase":
        entry = _require_map(raw, where)
        tags_raw = _require_map(_require(entry, "tags", where), f"{where}.tags")
        features = entry.get("features") or []
        if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
            raise CatalogError(f"{where}: field 'features' must be a list of strings")

        cases = {}
        for arm in ("POS", "NEG"):
            arm_where = f"{where}.{arm}"
            arm_raw = _require_map(_require(entry, arm, where), arm_where)
            code = _require_str(arm_raw, "code", arm_where)
            if SOURCE_MARKER not in code:
                raise CatalogError(f"{arm_where}: code has no {SOURCE_MARKER} marker")
            cases[arm] = Case(src=_require_str(arm_raw, "source", arm_where), code=code)

        return cls(
            desc=_require_str(entry, "description", where),
            tags=Tags(
                sp=_require_str(tags_raw, "SP", f"{where}.tags"),
                ub=_require_str(tags_raw, "UB", f"{where}.tags"),
                ty=_require_str(tags_raw, "TY", f"{where}.tags"),
            ),
            features=tuple(features),
            ty=_require_str(entry, "type", where),
            val=str(_require(entry, "value", where)),
            pos=cases["POS"],
            neg=cases["NEG"],
        )


class Testcases:
    """Ordered, read-only testcase catalog."""

    def __init__(self, testcases: list[Testcase]):
        self._testcases = list(testcases)

    @classmethod
    def from_file(cls, path: Path | str) -> "Testcases":
        path = Path(path)
        raw = _read_yaml_list(path, "Testcases")
        return cls([
            Testcase.from_dict(entry, f"{path.name}[{i}]")
            for i, entry in enumerate(raw)
        ])

    def filter_by_ty(self, ty: str) -> list[int]:
        """Indices of the testcases tagged with vulnerability type ``ty``."""
        return [i for i, tc in enumerate(self._testcases) if tc.tags.ty == ty]

    def __len__(self) -> int:
        return len(self._testcases)

    def __getitem__(self, idx: int) -> Testcase:
        return self._testcases[idx]

    def __iter__(self) -> Iterator[Testcase]:
        return iter(self._testcases)


# ── Flows ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Flow:
    """A reusable code-transformation template."""
    name: str
    code: str

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "Flow":
        entry = _require_map(raw, where)
        return cls(
            name=_require_str(entry, "name", where),
            code=_require_str(entry, "code", where),
        )


class Flows:
    """Ordered, read-only flow catalog."""

    def __init__(self, flows: list[Flow]):
        names = [f.name for f in flows]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise CatalogError(f"Duplicate flow names: {', '.join(duplicates)}")
        self._flows = list(flows)

    @classmethod
    def from_file(cls, path: Path | str) -> "Flows":
        path = Path(path)
        raw = _read_yaml_list(path, "Flows")
        return cls([Flow.from_dict(entry, f"{path.name}[{i}]") for i, entry in enumerate(raw)])

    @property
    def names(self) -> list[str]:
        return [f.name for f in self._flows]

    def __len__(self) -> int:
        return len(self._flows)

    def __getitem__(self, idx: int) -> Flow:
        return self._flows[idx]

    def __iter__(self) -> Iterator[Flow]:
        return iter(self._flows)


@dataclass(frozen=True)
class Catalog:
    testcases: Testcases
    flows: Flows

    @classmethod
    def load(cls, config_dir: Path | str) -> "Catalog":
        """Load ``testcases.yaml`` and ``expressions.yaml`` from a directory."""
        config_dir = Path(config_dir)
        return cls(
            testcases=Testcases.from_file(config_dir / TESTCASES_FILE),
            flows=Flows.from_file(config_dir / FLOWS_FILE),
        )
