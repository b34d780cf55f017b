"""
Code fragments and flow-template synthesis.

A fragment (``Expr``) is the text produced by nesting flows around the
vulnerability-triggering expression.  Flow templates carry five marker kinds:

    SOURCE!()       where the previous fragment goes (first occurrence only)
    TYPE!()         the testcase's data type under test
    VALUE!()        the testcase's literal value under test
    COND!()         a condition, always resolved to ``true``
    EXPRE!(param)   a previously accepted fragment with ``param`` bound as
                    its single free variable

Substitution is purely textual; nothing here understands the target language.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Sequence, TypeVar

if TYPE_CHECKING:
    from .catalog import Flow, Testcase

SOURCE_MARKER = "SOURCE!()"
TYPE_MARKER = "TYPE!()"
VALUE_MARKER = "VALUE!()"
COND_MARKER = "COND!()"
COND_LITERAL = "true"
EXPRE_PATTERN = re.compile(r"EXPRE!\((.*?)\)")

# Full source text of one generated program arm.
Program = str

T = TypeVar("T")


class Sampler(Protocol):
    """Anything with ``random.Random.choice`` semantics."""

    def choice(self, seq: Sequence[T]) -> T: ...


def block(code: str) -> str:
    return "{\n" + code + "\n}"


@dataclass(frozen=True)
class Expr:
    """One synthesized code fragment."""
    num: str
    code: str
    length: int
    depth: int
    metadata: str = ""

    @classmethod
    def new(cls, seq: int, code: str, length: int, depth: int, metadata: str = "") -> "Expr":
        return cls(
            num=f"{seq:03}-{length}-{depth}",
            code=code,
            length=length,
            depth=depth,
            metadata=metadata,
        )

    @classmethod
    def source(cls) -> "Expr":
        """The root fragment: no transformation applied yet."""
        return cls.new(0, SOURCE_MARKER, 0, 0)

    def fill_source(self, src: str) -> str:
        return self.code.replace(SOURCE_MARKER, src)


def synthesize(
    flow: "Flow",
    source: Expr,
    pool: Sequence[Expr],
    testcase: "Testcase",
    seq: int,
    sampler: Sampler,
) -> Expr:
    """
    Apply ``flow`` to ``source`` and return the new fragment.

    Every ``EXPRE!(param)`` marker draws its own sample from ``pool``, so one
    flow application may reuse the same earlier fragment several times or mix
    different ones.  The new fragment's depth is the deepest such sample plus
    one, or the source's depth when the flow has no ``EXPRE!`` markers.
    """
    code = flow.code.replace(SOURCE_MARKER, block(source.code), 1)
    code = code.replace(TYPE_MARKER, testcase.ty)
    code = code.replace(VALUE_MARKER, block(testcase.val))
    code = code.replace(COND_MARKER, COND_LITERAL)

    depth = source.depth

    def _substitute(match: re.Match) -> str:
        nonlocal depth
        if not pool:
            raise ValueError(f"flow '{flow.name}' needs a fragment but the pool is empty")
        sampled = sampler.choice(pool)
        depth = max(depth, sampled.depth + 1)
        return block(sampled.fill_source(match.group(1)))

    code = EXPRE_PATTERN.sub(_substitute, code)

    return Expr.new(seq, code, source.length + 1, depth, source.metadata)
