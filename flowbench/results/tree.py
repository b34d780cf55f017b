"""
Evaluation tree: provenance of every attempted fragment for one testcase.

Nodes live in an arena keyed by fragment id; parents refer to children by id.
The root is the zero-transformation baseline.  The tree is only ever
exported (DOT for Graphviz, JSON for tooling), never read back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import EvalTreeError
from .outcome import EvalResults


@dataclass
class EvalNode:
    name: str
    res: EvalResults
    flow: Optional[str] = None  # flow that produced this node; None for the root
    children: list[str] = field(default_factory=list)


class EvalTree:
    def __init__(self) -> None:
        self.root: Optional[str] = None
        self.nodes: dict[str, EvalNode] = {}

    def count_nodes(self) -> int:
        return len(self.nodes)

    def set_root(self, name: str, res: EvalResults) -> EvalNode:
        node = EvalNode(name, res)
        self.nodes[name] = node
        self.root = name
        return node

    def get_node(self, name: str) -> Optional[EvalNode]:
        return self.nodes.get(name)

    def add_child(
        self,
        parent_name: str,
        child_name: str,
        child_res: EvalResults,
        flow: Optional[str] = None,
    ) -> EvalNode:
        parent = self.nodes.get(parent_name)
        if parent is None:
            raise EvalTreeError(f"Parent node '{parent_name}' not found")
        if child_name in self.nodes:
            raise EvalTreeError(f"Node '{child_name}' already exists")
        child = EvalNode(child_name, child_res, flow)
        parent.children.append(child_name)
        self.nodes[child_name] = child
        return child

    def _preorder(self):
        """Yield ``(position, node, parent_position)`` in preorder, counting from 0."""
        if self.root is None:
            return
        position = 0
        stack: list[tuple[str, Optional[int]]] = [(self.root, None)]
        while stack:
            name, parent_pos = stack.pop()
            node = self.nodes[name]
            yield position, node, parent_pos
            for child in reversed(node.children):
                stack.append((child, position))
            position += 1

    def to_dot(self) -> str:
        lines = ["digraph EvalTree {", "node [shape=ellipse];"]
        for position, node, parent_pos in self._preorder():
            lines.append(
                f'node{position} [label="{node.name}" style=filled fillcolor={node.res.color}];'
            )
            if parent_pos is not None:
                lines.append(f"node{parent_pos} -> node{position};")
        return "\n".join(lines) + "\n}"

    def to_dict(self) -> Optional[dict[str, Any]]:
        if self.root is None:
            return None

        def _node(name: str) -> dict[str, Any]:
            node = self.nodes[name]
            return {
                "index": node.name,
                "result": node.res.label,
                "flow": node.flow,
                "variants": [_node(child) for child in node.children],
            }

        return _node(self.root)
