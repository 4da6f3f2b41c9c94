from __future__ import annotations

"""Service layer for structural edits on the in-memory task tree.

This module provides a UI-agnostic, testable service around the pure tree
operations in :mod:`taskpad.core.mutations`. It adds the conventions callers
rely on: every call is logged, and the outcome is reported as an
:class:`OperationResult` carrying the resulting tree.

Scope and guarantees:
- Operates purely in-memory, no file I/O nor UI imports.
- Never raises for stale ids or rejected moves; ``success`` is False and the
  returned tree is the input tree object.
- ``success`` means "the tree changed", which is what history recording and
  outbound sync key off.

Examples
--------
Basic usage:

    service = StructureEditingService()
    result = service.indent(tree, "b")
    if result.success:
        tree = result.tree

"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, List, Optional

from taskpad.core import mutations
from taskpad.core.models import Tree
from taskpad.core.tree import count_nodes

__all__ = ["OperationResult", "StructureEditingService"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Result of a structural editing operation.

    Attributes
    ----------
    success
        Whether the operation changed the tree.
    message
        Human-readable summary suitable for logs or UI display.
    tree
        The resulting tree (the input tree when nothing changed).
    details
        Optional structured details for diagnostics or caller logic.
    """
    success: bool
    message: str
    tree: Tree
    details: Optional[Dict[str, Any]] = None


class StructureEditingService:
    """Encapsulates structural edit operations on a task tree.

    Design principles:
    - No UI dependencies, no disk I/O.
    - No exceptions for expected invalid actions; return OperationResult.
    - Stateless: the caller owns the tree and swaps in ``result.tree``.
    """

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _finish(op: str, before: Tree, after: Tree, ok_msg: str, noop_msg: str,
                details: Optional[Dict[str, Any]] = None) -> OperationResult:
        if after is before:
            logger.info("Edit noop: %s %s", op, details or {})
            return OperationResult(False, noop_msg, before, details)
        logger.info("Edit OK: %s %s", op, details or {})
        return OperationResult(True, ok_msg, after, details)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def insert(self, tree: Tree, text: str = "", parent_id: Optional[str] = None,
               after_id: Optional[str] = None, *, now: Optional[float] = None) -> OperationResult:
        """Insert a new task; ``details['new_id']`` carries the generated id."""
        logger.info("Edit: insert parent=%s after=%s", parent_id, after_id)
        new_tree, new_id = mutations.insert_task(tree, text, parent_id, after_id, now=now)
        return self._finish(
            "insert", tree, new_tree,
            "Inserted task.", f"Parent '{parent_id}' not found.",
            {"new_id": new_id, "parent_id": parent_id, "after_id": after_id},
        )

    def update(self, tree: Tree, task_id: str, **fields: Any) -> OperationResult:
        """Shallow-merge fields onto a task (text, completed, is_collapsed, carried_over)."""
        logger.debug("Edit: update task=%s fields=%s", task_id, sorted(fields))
        new_tree = mutations.update_task(tree, task_id, **fields)
        return self._finish(
            "update", tree, new_tree,
            "Updated task.", "Task not found or unchanged.",
            {"task_id": task_id, "fields": sorted(fields)},
        )

    def toggle_completed(self, tree: Tree, task_id: str) -> OperationResult:
        logger.info("Edit: toggle_completed task=%s", task_id)
        return self._finish(
            "toggle_completed", tree, mutations.toggle_completed(tree, task_id),
            "Toggled completion.", "Task not found.", {"task_id": task_id},
        )

    def toggle_collapsed(self, tree: Tree, task_id: str) -> OperationResult:
        logger.info("Edit: toggle_collapsed task=%s", task_id)
        return self._finish(
            "toggle_collapsed", tree, mutations.toggle_collapsed(tree, task_id),
            "Toggled collapse.", "Task not found.", {"task_id": task_id},
        )

    def delete(self, tree: Tree, task_id: str) -> OperationResult:
        return self.delete_many(tree, [task_id])

    def delete_many(self, tree: Tree, task_ids: Iterable[str]) -> OperationResult:
        """Delete tasks and their subtrees; stale ids are skipped."""
        requested: List[str] = list(task_ids)
        logger.info("Edit: delete count=%d", len(requested))
        new_tree = mutations.delete_tasks(tree, requested)
        removed = count_nodes(tree) - count_nodes(new_tree) if new_tree is not tree else 0
        return self._finish(
            "delete", tree, new_tree,
            "Deleted tasks.", "No tasks deleted.",
            {"requested": requested, "removed_nodes": removed},
        )

    def indent(self, tree: Tree, task_id: str) -> OperationResult:
        logger.info("Edit: indent task=%s", task_id)
        return self._finish(
            "indent", tree, mutations.indent_task(tree, task_id),
            "Indented task.", "Cannot indent (no preceding sibling).", {"task_id": task_id},
        )

    def unindent(self, tree: Tree, task_id: str) -> OperationResult:
        logger.info("Edit: unindent task=%s", task_id)
        return self._finish(
            "unindent", tree, mutations.unindent_task(tree, task_id),
            "Unindented task.", "Cannot unindent (already at root).", {"task_id": task_id},
        )

    def move(self, tree: Tree, task_id: str, parent_id: Optional[str], index: int) -> OperationResult:
        return self.move_many(tree, [task_id], parent_id, index)

    def move_many(self, tree: Tree, task_ids: Iterable[str], parent_id: Optional[str],
                  index: int) -> OperationResult:
        """Move tasks under ``parent_id`` at ``index``, preserving their relative order."""
        ids = list(task_ids)
        logger.info("Edit: move count=%d parent=%s index=%d", len(ids), parent_id, index)
        new_tree = mutations.move_tasks(tree, ids, parent_id, index)
        if new_tree is not tree and new_tree == tree:
            # Dropped back where it was
            new_tree = tree
        return self._finish(
            "move", tree, new_tree,
            f"Moved {len(ids)} task(s).", "Move rejected or had no effect.",
            {"task_ids": ids, "parent_id": parent_id, "index": index},
        )

    def clear_untitled(self, tree: Tree) -> OperationResult:
        logger.info("Edit: clear_untitled")
        return self._finish(
            "clear_untitled", tree, mutations.clear_untitled(tree),
            "Removed untitled tasks.", "No untitled tasks.",
        )

    def replace(self, tree: Tree, new_tree: Tree) -> OperationResult:
        """Swap in an externally derived tree (block editor sync path)."""
        logger.debug("Edit: replace")
        return self._finish(
            "replace", tree, mutations.replace_tree(tree, new_tree),
            "Replaced tree.", "Tree unchanged.",
        )
