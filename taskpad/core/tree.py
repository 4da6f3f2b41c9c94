from __future__ import annotations

"""Pure traversal and lookup helpers for task trees.

These helpers are side-effect-free and contain no GUI or disk I/O; they are
shared by the mutators, the flattener, the drag planner and the sync adapter.
"""

from dataclasses import dataclass, replace
from typing import Collection, Iterator, List, Optional, Set, Tuple
import uuid

from taskpad.core.models import TaskNode, Tree

__all__ = [
    "NodeLocation",
    "new_task_id",
    "iter_nodes",
    "iter_with_parents",
    "find_node",
    "find_location",
    "count_nodes",
    "collect_ids",
    "subtree_ids",
    "top_level_ids",
    "text_edit_target",
    "forest_problems",
]


@dataclass(frozen=True)
class NodeLocation:
    """Where a node lives: the node itself, its parent id and its sibling index."""

    node: TaskNode
    parent_id: Optional[str]
    index: int


def new_task_id() -> str:
    """Return a fresh opaque task identifier."""
    return uuid.uuid4().hex


def iter_nodes(tree: Tree) -> Iterator[TaskNode]:
    """Yield every node in depth-first pre-order, ignoring collapse state."""
    for node in tree:
        yield node
        yield from iter_nodes(node.children)


def iter_with_parents(tree: Tree, parent_id: Optional[str] = None) -> Iterator[Tuple[TaskNode, Optional[str], int]]:
    """Yield ``(node, parent_id, index)`` triples in pre-order."""
    for index, node in enumerate(tree):
        yield node, parent_id, index
        yield from iter_with_parents(node.children, node.id)


def find_location(tree: Tree, node_id: str) -> Optional[NodeLocation]:
    """Return the location of ``node_id``, or None when it is not in the tree."""
    for node, parent_id, index in iter_with_parents(tree):
        if node.id == node_id:
            return NodeLocation(node, parent_id, index)
    return None


def find_node(tree: Tree, node_id: str) -> Optional[TaskNode]:
    location = find_location(tree, node_id)
    return location.node if location is not None else None


def count_nodes(tree: Tree) -> int:
    return sum(1 for _ in iter_nodes(tree))


def collect_ids(tree: Tree) -> List[str]:
    """Return all ids in pre-order."""
    return [node.id for node in iter_nodes(tree)]


def subtree_ids(tree: Tree, root_ids: Collection[str]) -> Set[str]:
    """Return the ids of the given nodes plus all of their descendants."""
    wanted = set(root_ids)
    result: Set[str] = set()

    def walk(nodes: Tree, inside: bool) -> None:
        for node in nodes:
            hit = inside or node.id in wanted
            if hit:
                result.add(node.id)
            walk(node.children, hit)

    walk(tree, False)
    return result


def top_level_ids(tree: Tree, ids: Collection[str]) -> List[str]:
    """Return the selected ids whose ancestors are not selected, in pre-order."""
    wanted = set(ids)
    result: List[str] = []

    def walk(nodes: Tree) -> None:
        for node in nodes:
            if node.id in wanted:
                result.append(node.id)
                continue
            walk(node.children)

    walk(tree)
    return result


def text_edit_target(before: Tree, after: Tree) -> Optional[str]:
    """Return the id of the one node whose text differs, or None.

    Structural or flag differences also yield None, as do text changes on
    more than one node.
    """
    edited: List[str] = []

    def same_shape(old: Tree, new: Tree) -> bool:
        if len(old) != len(new):
            return False
        for a, b in zip(old, new):
            if a is b:
                continue
            if replace(a, text="", children=()) != replace(b, text="", children=()):
                return False
            if a.text != b.text:
                edited.append(a.id)
            if not same_shape(a.children, b.children):
                return False
        return True

    if not same_shape(before, after) or len(edited) != 1:
        return None
    return edited[0]


def forest_problems(tree: Tree) -> List[str]:
    """Return human-readable forest invariant violations (empty when valid).

    Immutable nodes cannot form cycles through construction, but an object can
    still be placed twice (shared between two parents) or ids can collide when
    trees are assembled from external data; both are reported.
    """
    problems: List[str] = []
    seen_ids: Set[str] = set()
    seen_objects: Set[int] = set()

    def walk(nodes: Tree, path: Tuple[int, ...]) -> None:
        for node in nodes:
            oid = id(node)
            if oid in path:
                problems.append(f"node '{node.id}' is its own ancestor")
                continue
            if oid in seen_objects:
                problems.append(f"node '{node.id}' has more than one parent")
            seen_objects.add(oid)
            if node.id in seen_ids:
                problems.append(f"duplicate id '{node.id}'")
            seen_ids.add(node.id)
            walk(node.children, path + (oid,))

    walk(tree, ())
    return problems
