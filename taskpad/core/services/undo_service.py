from __future__ import annotations

"""Undo/redo snapshot management for the task tree.

This service is UI-agnostic and performs pure in-memory history tracking.
Because task trees are immutable values, a snapshot is simply a reference to
the tree as it was before an operation; nothing needs to be serialized or
copied.

Design principles
-----------------
- No UI imports and no I/O (filesystem/console).
- The undo stack holds pre-operation trees; undo swaps the current tree for
  the top snapshot and parks the current tree on the redo stack.
- Redo stack is cleared on every new record (standard undo/redo behavior).
- Bursts of text edits on one node share a single entry (coalescing).
- No depth limit unless the caller passes ``max_history``.
"""

from dataclasses import dataclass
import time
from typing import Callable, List, Optional

from taskpad.core.models import Tree

__all__ = ["HistoryEntry", "UndoService", "TEXT_EDIT"]

TEXT_EDIT = "text"


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable history snapshot.

    Attributes
    ----------
    tree :
        The tree to restore.
    tag :
        Coarse operation tag (``"text"``, ``"indent"``, ``"move"``, ...).
    target_id :
        Node the operation was aimed at, when there was a single one.
    timestamp :
        Clock reading when the entry was recorded.
    """

    tree: Tree
    tag: str
    target_id: Optional[str]
    timestamp: float


class UndoService:
    """Manage undo/redo stacks of task-tree snapshots.

    Parameters
    ----------
    coalesce_window : float, default=1.0
        Seconds within which consecutive text edits on the same node are
        merged into one entry. Each merged edit restarts the window.
    max_history : int, optional
        Cap on the undo stack; oldest entries are discarded beyond it.
        None (default) keeps everything.
    clock : callable, optional
        Monotonic time source, injectable for tests.

    Examples
    --------
    >>> svc = UndoService()
    >>> svc.record(tree_before, "indent", "b")
    >>> restored = svc.undo(current_tree)   # -> tree_before
    >>> again = svc.redo(restored)          # -> current_tree
    """

    def __init__(self, coalesce_window: float = 1.0, max_history: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self._coalesce_window = max(0.0, float(coalesce_window))
        self._max_history = None if max_history is None else max(1, int(max_history))
        self._clock = clock
        self._undo_stack: List[HistoryEntry] = []
        self._redo_stack: List[HistoryEntry] = []
        self._last_text_edit: Optional[float] = None
        self._coalescing_broken = True

    # --------------------------------------------------------------------- API

    def record(self, previous_tree: Tree, tag: str, target_id: Optional[str] = None) -> bool:
        """Record the tree as it was before an operation.

        Returns False when the record was merged into the current text-edit
        burst instead of opening a new entry. The redo stack is cleared in
        both cases, since the document moved on.
        """
        now = self._clock()
        self._redo_stack.clear()

        if tag == TEXT_EDIT and self._extends_burst(target_id, now):
            self._last_text_edit = now
            return False

        self._undo_stack.append(HistoryEntry(previous_tree, tag, target_id, now))
        if tag == TEXT_EDIT:
            self._last_text_edit = now
            self._coalescing_broken = False
        else:
            self._last_text_edit = None
        self._trim(self._undo_stack)
        return True

    def break_coalescing(self) -> None:
        """Force the next text edit to open a new entry (e.g. focus moved)."""
        self._coalescing_broken = True

    def undo(self, current_tree: Tree) -> Optional[Tree]:
        """Return the previous tree, or None when there is nothing to undo."""
        if not self._undo_stack:
            return None
        entry = self._undo_stack.pop()
        self._redo_stack.append(HistoryEntry(current_tree, entry.tag, entry.target_id, self._clock()))
        self._coalescing_broken = True
        return entry.tree

    def redo(self, current_tree: Tree) -> Optional[Tree]:
        """Return the next tree, or None when there is nothing to redo."""
        if not self._redo_stack:
            return None
        entry = self._redo_stack.pop()
        self._undo_stack.append(HistoryEntry(current_tree, entry.tag, entry.target_id, self._clock()))
        self._trim(self._undo_stack)
        self._coalescing_broken = True
        return entry.tree

    def can_undo(self) -> bool:
        """Return True if an undo operation is currently possible."""
        return len(self._undo_stack) > 0

    def can_redo(self) -> bool:
        """Return True if a redo operation is currently possible."""
        return len(self._redo_stack) > 0

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    def clear(self) -> None:
        """Clear both undo and redo histories."""
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._last_text_edit = None
        self._coalescing_broken = True

    # --------------------------------------------------------------- Internals

    def _extends_burst(self, target_id: Optional[str], now: float) -> bool:
        if self._coalescing_broken or not self._undo_stack or self._last_text_edit is None:
            return False
        top = self._undo_stack[-1]
        if top.tag != TEXT_EDIT or top.target_id != target_id:
            return False
        return (now - self._last_text_edit) <= self._coalesce_window

    def _trim(self, stack: List[HistoryEntry]) -> None:
        if self._max_history is None:
            return
        overflow = len(stack) - self._max_history
        if overflow > 0:
            del stack[0:overflow]
