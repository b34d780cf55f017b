"""Why each retired flow was retired, per testcase."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from .outcome import EvalResults

if TYPE_CHECKING:
    from ..catalog import Flows

# Key used when the zero-transformation baseline itself failed.
BASELINE_KEY = "-"
EMPTY_CELL = "-"


class EvalMap:
    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def insert(self, key: str, tag: str, res: EvalResults) -> None:
        """Record ``"<tag> <short outcome>"`` under a flow name or ``BASELINE_KEY``."""
        self._entries[key] = f"{tag} {res.short}"

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def to_row(self, flows: "Flows") -> list[str]:
        """
        One CSV row: cell 0 is the baseline, cell ``i + 1`` is flow ``i``.

        A failed baseline means no flow was tried, so only cell 0 is filled.
        """
        row = [EMPTY_CELL] * (len(flows) + 1)
        if BASELINE_KEY in self._entries:
            row[0] = self._entries[BASELINE_KEY]
            return row
        for i, flow in enumerate(flows):
            if flow.name in self._entries:
                row[i + 1] = self._entries[flow.name]
        return row

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def items(self):
        return self._entries.items()
