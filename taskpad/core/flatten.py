"""Visible-order linearisation of a task tree.

The flattened sequence is the single source of truth for "what the user sees,
in order": keyboard navigation, range selection and drag projection all index
into it. It must be recomputed from the current tree after every change.
"""

from __future__ import annotations

from typing import List, NamedTuple, Optional

from taskpad.core.models import TaskNode, Tree

__all__ = ["FlatItem", "flatten", "visible_ids", "index_of"]


class FlatItem(NamedTuple):
    node: TaskNode
    depth: int
    parent_id: Optional[str]

    @property
    def id(self) -> str:
        return self.node.id


def flatten(tree: Tree) -> List[FlatItem]:
    """Return the depth-first, collapse-aware visible sequence of ``tree``."""
    flat: List[FlatItem] = []

    def walk(nodes: Tree, depth: int, parent_id: Optional[str]) -> None:
        for node in nodes:
            flat.append(FlatItem(node, depth, parent_id))
            if not node.is_collapsed and node.children:
                walk(node.children, depth + 1, node.id)

    walk(tree, 0, None)
    return flat


def visible_ids(flat: List[FlatItem]) -> List[str]:
    return [item.node.id for item in flat]


def index_of(flat: List[FlatItem], node_id: Optional[str]) -> int:
    """Return the position of ``node_id`` in ``flat``, or -1."""
    if node_id is None:
        return -1
    for index, item in enumerate(flat):
        if item.node.id == node_id:
            return index
    return -1
