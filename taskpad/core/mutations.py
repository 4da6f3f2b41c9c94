from __future__ import annotations

"""Pure structural operations on task trees.

Every function takes the current tree and returns a new tree value; inputs are
never mutated. Only the path from the root to the edited node is rebuilt, so
unaffected subtrees are shared between the old and the new tree.

Referencing an id that is not in the tree is not an error: the function
returns the input tree object unchanged. Moves that would place a node inside
its own subtree are rejected the same way.
"""

from dataclasses import replace
import time
from typing import Callable, Iterable, List, Optional, Tuple

from taskpad.core.models import TaskNode, Tree
from taskpad.core.tree import find_location, new_task_id, subtree_ids, top_level_ids

__all__ = [
    "UPDATABLE_FIELDS",
    "insert_task",
    "update_task",
    "delete_task",
    "delete_tasks",
    "indent_task",
    "unindent_task",
    "move_task",
    "move_tasks",
    "toggle_completed",
    "toggle_collapsed",
    "clear_untitled",
    "replace_tree",
]

UPDATABLE_FIELDS = frozenset({"text", "completed", "is_collapsed", "carried_over"})

# Receives the sibling tuple holding the target and the target's index in it;
# returns the replacement sibling tuple.
_SiblingEdit = Callable[[Tree, int], Tree]


def _edit_siblings(nodes: Tree, node_id: str, edit: _SiblingEdit) -> Optional[Tree]:
    """Apply ``edit`` to the sibling list containing ``node_id``.

    Returns the rebuilt list, or None when the id was not found below ``nodes``.
    """
    for index, node in enumerate(nodes):
        if node.id == node_id:
            return edit(nodes, index)
        new_children = _edit_siblings(node.children, node_id, edit)
        if new_children is not None:
            return nodes[:index] + (replace(node, children=new_children),) + nodes[index + 1:]
    return None


def _splice(nodes: Tree, index: int, items: Tuple[TaskNode, ...]) -> Tree:
    index = min(max(0, index), len(nodes))
    return nodes[:index] + items + nodes[index:]


# ---------------------------------------------------------------------------
# Insert / update / delete
# ---------------------------------------------------------------------------

def insert_task(
    tree: Tree,
    text: str,
    parent_id: Optional[str] = None,
    after_id: Optional[str] = None,
    *,
    new_id: Optional[str] = None,
    now: Optional[float] = None,
) -> Tuple[Tree, Optional[str]]:
    """Insert a new task and return ``(new_tree, new_id)``.

    With no parent the task becomes a sibling placed right after ``after_id``
    wherever that node lives, or the last root when ``after_id`` is absent or
    unknown. With a parent the task goes among its children: after
    ``after_id``, first when ``after_id == parent_id``, last otherwise.

    An unknown ``parent_id`` leaves the tree untouched and yields ``None`` as id.
    """
    node = TaskNode(
        id=new_id or new_task_id(),
        text=text,
        created_at=time.time() if now is None else now,
    )

    if parent_id is None:
        if after_id is not None:
            placed = _edit_siblings(tree, after_id, lambda s, i: _splice(s, i + 1, (node,)))
            if placed is not None:
                return placed, node.id
        return tree + (node,), node.id

    def add_child(siblings: Tree, index: int) -> Tree:
        parent = siblings[index]
        children = parent.children
        if after_id == parent_id:
            children = (node,) + children
        else:
            position = next((i for i, c in enumerate(children) if c.id == after_id), None)
            if position is None:
                children = children + (node,)
            else:
                children = _splice(children, position + 1, (node,))
        return siblings[:index] + (replace(parent, children=children, is_collapsed=False),) + siblings[index + 1:]

    result = _edit_siblings(tree, parent_id, add_child)
    if result is None:
        return tree, None
    return result, node.id


def update_task(tree: Tree, node_id: str, **fields) -> Tree:
    """Shallow-merge ``fields`` onto one node; children are left as they are."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise TypeError(f"update_task() got unsupported fields: {sorted(unknown)}")

    location = find_location(tree, node_id)
    if location is None:
        return tree
    updated = replace(location.node, **fields)
    if updated == location.node:
        return tree

    result = _edit_siblings(tree, node_id, lambda s, i: s[:i] + (updated,) + s[i + 1:])
    return result if result is not None else tree


def delete_task(tree: Tree, node_id: str) -> Tree:
    """Remove the node and its whole subtree."""
    result = _edit_siblings(tree, node_id, lambda s, i: s[:i] + s[i + 1:])
    return result if result is not None else tree


def delete_tasks(tree: Tree, node_ids: Iterable[str]) -> Tree:
    """Delete each id in turn; ids already removed with an ancestor are skipped."""
    for node_id in node_ids:
        tree = delete_task(tree, node_id)
    return tree


def toggle_completed(tree: Tree, node_id: str) -> Tree:
    location = find_location(tree, node_id)
    if location is None:
        return tree
    return update_task(tree, node_id, completed=not location.node.completed)


def toggle_collapsed(tree: Tree, node_id: str) -> Tree:
    location = find_location(tree, node_id)
    if location is None:
        return tree
    return update_task(tree, node_id, is_collapsed=not location.node.is_collapsed)


def clear_untitled(tree: Tree) -> Tree:
    """Drop every node whose text is blank, together with its subtree."""

    def prune(nodes: Tree) -> Tree:
        kept: List[TaskNode] = []
        changed = False
        for node in nodes:
            if not node.text.strip():
                changed = True
                continue
            children = prune(node.children)
            if children is not node.children:
                node = replace(node, children=children)
                changed = True
            kept.append(node)
        return tuple(kept) if changed else nodes

    return prune(tree)


def replace_tree(tree: Tree, new_tree: Tree) -> Tree:
    """Return ``new_tree`` unless it equals ``tree``, in which case keep ``tree``."""
    new_tree = tuple(new_tree)
    return tree if new_tree == tree else new_tree


# ---------------------------------------------------------------------------
# Reparenting
# ---------------------------------------------------------------------------

def indent_task(tree: Tree, node_id: str) -> Tree:
    """Make the node the last child of its preceding sibling."""

    def indent(siblings: Tree, index: int) -> Tree:
        if index == 0:
            return siblings
        node = siblings[index]
        previous = siblings[index - 1]
        new_previous = replace(previous, children=previous.children + (node,), is_collapsed=False)
        return siblings[:index - 1] + (new_previous,) + siblings[index + 1:]

    result = _edit_siblings(tree, node_id, indent)
    if result is None or result == tree:
        return tree
    return result


def unindent_task(tree: Tree, node_id: str) -> Tree:
    """Move the node out of its parent, right after that parent."""
    location = find_location(tree, node_id)
    if location is None or location.parent_id is None:
        return tree

    def unindent(siblings: Tree, index: int) -> Tree:
        parent = siblings[index]
        children = parent.children
        child = children[location.index]
        new_parent = replace(parent, children=children[:location.index] + children[location.index + 1:])
        return siblings[:index] + (new_parent, child) + siblings[index + 1:]

    result = _edit_siblings(tree, location.parent_id, unindent)
    return result if result is not None else tree


def _detach(nodes: Tree, ids: frozenset, moved: List[TaskNode]) -> Tree:
    """Remove nodes whose id is in ``ids``, collecting them in pre-order."""
    kept: List[TaskNode] = []
    changed = False
    for node in nodes:
        if node.id in ids:
            moved.append(node)
            changed = True
            continue
        children = _detach(node.children, ids, moved)
        if children is not node.children:
            node = replace(node, children=children)
            changed = True
        kept.append(node)
    return tuple(kept) if changed else nodes


def move_tasks(tree: Tree, node_ids: Iterable[str], parent_id: Optional[str], index: int) -> Tree:
    """Move nodes under ``parent_id`` (root when None) starting at ``index``.

    The moved nodes keep the relative order they had in the tree before the
    move. Descendants of a moved node travel with it. If the destination parent
    is missing, or lies inside one of the moved subtrees, nothing happens.
    """
    roots = top_level_ids(tree, list(node_ids))
    if not roots:
        return tree
    if parent_id is not None and parent_id in subtree_ids(tree, roots):
        return tree

    moved: List[TaskNode] = []
    remaining = _detach(tree, frozenset(roots), moved)
    items = tuple(moved)

    if parent_id is None:
        return _splice(remaining, index, items)

    def insert_under(siblings: Tree, position: int) -> Tree:
        parent = siblings[position]
        new_parent = replace(parent, children=_splice(parent.children, index, items), is_collapsed=False)
        return siblings[:position] + (new_parent,) + siblings[position + 1:]

    result = _edit_siblings(remaining, parent_id, insert_under)
    if result is None:
        return tree
    return result


def move_task(tree: Tree, node_id: str, parent_id: Optional[str], index: int) -> Tree:
    return move_tasks(tree, [node_id], parent_id, index)
