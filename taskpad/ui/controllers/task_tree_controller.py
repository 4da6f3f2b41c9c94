from __future__ import annotations

"""Per-context owner of the task tree and everything that edits it.

One :class:`TaskTreeController` exists per open editing context (a project's
list for one day). It holds the authoritative tree and the transient
selection, routes input events to the selection, marquee and drag helpers,
records history, and pushes every committed tree outwards: to the block
editor through :class:`~taskpad.core.services.sync_service.BlockSyncAdapter`
and to persistence through a debounced :class:`PersistenceSink`.

The controller holds no toolkit code; views translate their native events
into :class:`~taskpad.core.models.input_events.KeyEvent` and
:class:`~taskpad.core.models.input_events.PointerEvent` values.
"""

from dataclasses import dataclass
import logging
import time
from typing import (Any, Callable, Iterable, List, Mapping, Optional, Protocol,
                    Sequence, Tuple, Union)

from taskpad.core.carry_over import merge_carry_over, select_carry_over
from taskpad.core.flatten import FlatItem, flatten, index_of, visible_ids
from taskpad.core.models import TaskNode, Tree, tree_from_dicts
from taskpad.core.models.input_events import Direction, KeyEvent, PointerEvent, RowExtent
from taskpad.core.models.settings import EngineSettings, load_engine_settings
from taskpad.core.scheduling import Debouncer, ManualScheduler, Scheduler
from taskpad.core.services import selection_service as selection
from taskpad.core.services.drag_planner import DragSession
from taskpad.core.services.selection_service import AutoScroller, MarqueeSelector, SelectionState
from taskpad.core.services.structure_editing_service import OperationResult, StructureEditingService
from taskpad.core.services.sync_service import BlockEditor, BlockSyncAdapter
from taskpad.core.services.undo_service import TEXT_EDIT, UndoService
from taskpad.core.tree import find_location, find_node, new_task_id, text_edit_target, top_level_ids

__all__ = ["PersistenceSink", "TreeState", "TaskActions", "TaskTreeController"]

logger = logging.getLogger(__name__)

TreeInput = Union[Tree, Iterable[Mapping[str, Any]], None]


class PersistenceSink(Protocol):
    """Where committed trees go. Writes may repeat and must be idempotent."""

    def save(self, project_id: str, tree: Tree) -> None:
        ...

    def carry_over(self, project_key: str, tree: Tree) -> None:
        ...


@dataclass(frozen=True)
class TreeState:
    """Snapshot handed to change listeners."""

    project_id: str
    tree: Tree
    selection: SelectionState
    can_undo: bool
    can_redo: bool


def _coerce_tree(tree: TreeInput) -> Tree:
    if not tree:
        return ()
    items = tuple(tree)
    if all(isinstance(item, TaskNode) for item in items):
        return items
    return tree_from_dicts(items)


class TaskActions:
    """Structural operations bound to one project key.

    Handed to row views instead of the controller itself. Calls made after
    the controller switched to another project are ignored, so a late event
    from a torn-down view cannot edit the wrong list.
    """

    def __init__(self, controller: "TaskTreeController", project_id: str) -> None:
        self._controller = controller
        self.project_id = project_id

    def _run(self, tag: str, target_id: Optional[str],
             op: Callable[[Tree], OperationResult]) -> OperationResult:
        return self._controller._apply(self.project_id, tag, target_id, op)

    def insert(self, text: str = "", parent_id: Optional[str] = None,
               after_id: Optional[str] = None) -> OperationResult:
        svc = self._controller.service
        return self._run("insert", parent_id,
                         lambda t: svc.insert(t, text, parent_id, after_id))

    def update(self, task_id: str, **fields: Any) -> OperationResult:
        svc = self._controller.service
        tag = TEXT_EDIT if set(fields) == {"text"} else "update"
        return self._run(tag, task_id, lambda t: svc.update(t, task_id, **fields))

    def toggle_completed(self, task_id: str) -> OperationResult:
        svc = self._controller.service
        return self._run("toggle", task_id, lambda t: svc.toggle_completed(t, task_id))

    def toggle_collapsed(self, task_id: str) -> OperationResult:
        svc = self._controller.service
        return self._run("collapse", task_id, lambda t: svc.toggle_collapsed(t, task_id))

    def delete(self, task_id: str) -> OperationResult:
        svc = self._controller.service
        return self._run("delete", task_id, lambda t: svc.delete(t, task_id))

    def delete_many(self, task_ids: Sequence[str]) -> OperationResult:
        svc = self._controller.service
        ids = list(task_ids)
        return self._run("delete", None, lambda t: svc.delete_many(t, ids))

    def indent(self, task_id: str) -> OperationResult:
        svc = self._controller.service
        return self._run("indent", task_id, lambda t: svc.indent(t, task_id))

    def unindent(self, task_id: str) -> OperationResult:
        svc = self._controller.service
        return self._run("unindent", task_id, lambda t: svc.unindent(t, task_id))

    def move(self, task_id: str, parent_id: Optional[str], index: int) -> OperationResult:
        svc = self._controller.service
        return self._run("move", task_id, lambda t: svc.move(t, task_id, parent_id, index))

    def move_many(self, task_ids: Sequence[str], parent_id: Optional[str],
                  index: int) -> OperationResult:
        svc = self._controller.service
        ids = list(task_ids)
        return self._run("move", None, lambda t: svc.move_many(t, ids, parent_id, index))

    def clear_untitled(self) -> OperationResult:
        svc = self._controller.service
        return self._run("clear_untitled", None, svc.clear_untitled)


class TaskTreeController:
    """Coordinates editing of one task tree.

    Parameters
    ----------
    project_id : str
        Key of the list being edited.
    tree : Tree or list of dict, optional
        Initial tree; persisted node dicts are accepted as well.
    sink : PersistenceSink, optional
        Receives debounced snapshots and carry-over requests.
    editor : BlockEditor, optional
        Block editor to keep in sync. Without one no sync adapter is created.
    scheduler : Scheduler, optional
        Timer source. Defaults to a :class:`ManualScheduler`, in which case
        pending saves are only written by :meth:`flush` or :meth:`dispose`.
    settings : EngineSettings, optional
        Defaults to the values from the process configuration.
    service, undo : optional
        Injected collaborators, mainly for tests.

    Notes
    -----
    Every mutation follows the same path: compute an :class:`OperationResult`
    from the current tree, and on success record the previous tree, swap in
    the new one, prune the selection, push outward and notify listeners.
    """

    def __init__(
        self,
        project_id: str,
        tree: TreeInput = None,
        *,
        sink: Optional[PersistenceSink] = None,
        editor: Optional[BlockEditor] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[EngineSettings] = None,
        service: Optional[StructureEditingService] = None,
        undo: Optional[UndoService] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings: EngineSettings = settings or load_engine_settings()
        self.service: StructureEditingService = service or StructureEditingService()
        self.undo_service: UndoService = undo or UndoService(
            self.settings.coalesce_window, self.settings.max_history)
        self.scheduler: Scheduler = scheduler or ManualScheduler()
        self._sink = sink
        self._clock = clock

        self._sync: Optional[BlockSyncAdapter] = None
        if editor is not None:
            self._sync = BlockSyncAdapter(editor, self._on_sync_commit, self.scheduler,
                                          self.settings.sync_settle_delay)
        self._save = Debouncer(self.scheduler, self.settings.persist_debounce, self._persist)

        self._marquee = MarqueeSelector(self.settings.marquee_threshold)
        self._autoscroll: Optional[AutoScroller] = None
        self._drag = DragSession(self.settings.indent_width)
        self._listeners: List[Callable[[TreeState], None]] = []
        self._disposed = False

        self._project_id = project_id
        self._tree: Tree = self._with_placeholder(_coerce_tree(tree))
        self._selection = SelectionState()
        self._flat_cache: Tuple[Optional[Tree], List[FlatItem]] = (None, [])
        self.actions = TaskActions(self, project_id)

        if self._sync is not None:
            self._sync.switch_context(self._tree)

    # ---------------------------------------------------------------------------------
    # State access
    # ---------------------------------------------------------------------------------

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def tree(self) -> Tree:
        return self._tree

    @property
    def selection(self) -> SelectionState:
        return self._selection

    @property
    def focused_id(self) -> Optional[str]:
        return self._selection.focused_id

    @property
    def flat(self) -> List[FlatItem]:
        """Visible sequence of the current tree, recomputed when the tree changes."""
        cached_tree, flat = self._flat_cache
        if cached_tree is not self._tree:
            flat = flatten(self._tree)
            self._flat_cache = (self._tree, flat)
        return flat

    @property
    def state(self) -> TreeState:
        return TreeState(self._project_id, self._tree, self._selection,
                         self.undo_service.can_undo(), self.undo_service.can_redo())

    @property
    def sync(self) -> Optional[BlockSyncAdapter]:
        return self._sync

    @property
    def drag(self) -> DragSession:
        return self._drag

    @property
    def marquee(self) -> MarqueeSelector:
        return self._marquee

    def subscribe(self, listener: Callable[[TreeState], None]) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------------

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.error("Change listener %r failed", listener, exc_info=True)

    def _with_placeholder(self, tree: Tree) -> Tree:
        if tree or not self.settings.keep_placeholder:
            return tree
        return (TaskNode(id=new_task_id(), created_at=self._clock()),)

    def _set_selection(self, state: SelectionState) -> None:
        if state != self._selection:
            self._selection = state
            self._notify()

    def _set_tree(self, tree: Tree, push: bool = True) -> None:
        filled = self._with_placeholder(tree)
        if filled is not tree:
            # The editor never saw the placeholder
            push = True
        self._tree = filled
        self._selection = selection.prune(self._selection, self.flat)
        if push and self._sync is not None:
            self._sync.push_local(filled)
        self._save.call(self._project_id, filled)
        self._notify()

    def _commit(self, result: OperationResult, tag: str, target_id: Optional[str] = None,
                push: bool = True) -> bool:
        if not result.success:
            return False
        self.undo_service.record(self._tree, tag, target_id)
        self._set_tree(result.tree, push=push)
        return True

    def _apply(self, project_id: str, tag: str, target_id: Optional[str],
               op: Callable[[Tree], OperationResult]) -> OperationResult:
        if project_id != self._project_id or self._disposed:
            logger.warning("Ignoring '%s' bound to inactive project %s", tag, project_id)
            return OperationResult(False, "Project is no longer active.", self._tree)
        if tag != TEXT_EDIT:
            self.undo_service.break_coalescing()
        result = op(self._tree)
        self._commit(result, tag, target_id)
        return result

    def _persist(self, project_id: str, tree: Tree) -> None:
        if self._sink is not None:
            self._sink.save(project_id, tree)

    def _selected_or_focused(self, task_id: Optional[str] = None) -> List[str]:
        """Ids an action applies to, in visible order.

        The selection wins when ``task_id`` is part of it (or not given);
        otherwise the action targets ``task_id`` or the focused row alone.
        """
        target = task_id or self._selection.focused_id
        if self._selection.selected and (task_id is None or task_id in self._selection.selected):
            return selection.selected_in_order(self._selection, self.flat)
        return [target] if target else []

    # ---------------------------------------------------------------------------------
    # Context lifecycle
    # ---------------------------------------------------------------------------------

    def load(self, project_id: str, tree: TreeInput) -> None:
        """Replace the tree wholesale for a new project or day.

        Pending writes for the previous context are flushed first; history and
        selection start fresh, and the editor is overwritten unconditionally.
        """
        self._save.flush()
        self._drag.cancel()
        self._stop_marquee()
        logger.info("Loading project %s (was %s)", project_id, self._project_id)
        self._project_id = project_id
        self._tree = self._with_placeholder(_coerce_tree(tree))
        self._selection = SelectionState()
        self.undo_service.clear()
        self.actions = TaskActions(self, project_id)
        if self._sync is not None:
            self._sync.switch_context(self._tree)
        self._notify()

    def switch_context(self, project_id: str, tree: TreeInput) -> None:
        self.load(project_id, tree)

    def flush(self) -> None:
        """Write any pending snapshot now."""
        self._save.flush()

    def dispose(self) -> None:
        """Tear down timers and listeners; the last snapshot is written first."""
        if self._disposed:
            return
        self._save.flush()
        self._stop_marquee()
        self._drag.cancel()
        if self._sync is not None:
            self._sync.dispose()
        self._listeners.clear()
        self._disposed = True
        logger.debug("Controller for %s disposed", self._project_id)

    # ---------------------------------------------------------------------------------
    # Editing
    # ---------------------------------------------------------------------------------

    def insert_after(self, task_id: Optional[str] = None, text: str = "") -> Optional[str]:
        """Add a sibling after ``task_id`` (or the focused row) and focus it."""
        after = task_id or self._selection.focused_id
        result = self.actions.insert(text, None, after)
        if not result.success:
            return None
        new_id = (result.details or {}).get("new_id")
        self._set_selection(SelectionState(frozenset(), new_id))
        return new_id

    def add_child(self, parent_id: str, text: str = "") -> Optional[str]:
        """Add a first child under ``parent_id`` and focus it."""
        result = self.actions.insert(text, parent_id, parent_id)
        if not result.success:
            return None
        new_id = (result.details or {}).get("new_id")
        self._set_selection(SelectionState(frozenset(), new_id))
        return new_id

    def update_text(self, task_id: str, text: str) -> bool:
        return self.actions.update(task_id, text=text).success

    def toggle_completed(self, task_id: str) -> bool:
        return self.actions.toggle_completed(task_id).success

    def toggle_collapsed(self, task_id: str) -> bool:
        return self.actions.toggle_collapsed(task_id).success

    def clear_untitled(self) -> bool:
        return self.actions.clear_untitled().success

    def delete_selection(self, task_id: Optional[str] = None) -> bool:
        """Delete the selected rows (or ``task_id``/the focused row).

        Focus falls back to the nearest surviving row above the first deleted
        one, or below it when nothing above survives. Deleting the only
        visible row clears its text instead when placeholders are kept.
        """
        ids = self._selected_or_focused(task_id)
        if not ids:
            return False
        flat = self.flat
        if self.settings.keep_placeholder and len(flat) == 1 and flat[0].id in ids:
            only = flat[0].id
            changed = self.actions.update(only, text="").success
            self._set_selection(SelectionState(frozenset(), only))
            return changed

        first = min((index_of(flat, i) for i in ids if index_of(flat, i) != -1), default=-1)
        result = self.actions.delete_many(ids)
        if not result.success:
            return False

        survivors = {item.id for item in self.flat}
        fallback: Optional[str] = None
        if first != -1:
            before = [item.id for item in flat[:first] if item.id in survivors]
            after = [item.id for item in flat[first:] if item.id in survivors]
            fallback = before[-1] if before else (after[0] if after else None)
        if fallback is None and self.flat:
            fallback = self.flat[0].id
        self._set_selection(SelectionState(frozenset(), fallback))
        return True

    def indent_selection(self, task_id: Optional[str] = None) -> bool:
        """Indent the selection under the previous sibling of its top-most row."""
        ids = self._selected_or_focused(task_id)
        if not ids:
            return False
        if len(ids) == 1:
            return self.actions.indent(ids[0]).success

        leader = ids[0]
        loc = find_location(self._tree, leader)
        if loc is None or loc.index == 0:
            return False
        siblings = self._tree if loc.parent_id is None else find_node(self._tree, loc.parent_id).children
        new_parent = siblings[loc.index - 1]
        roots = top_level_ids(self._tree, ids)
        return self.actions.move_many(roots, new_parent.id, len(new_parent.children)).success

    def unindent_selection(self, task_id: Optional[str] = None) -> bool:
        """Move the selection out to just after its top-most row's parent."""
        ids = self._selected_or_focused(task_id)
        if not ids:
            return False
        if len(ids) == 1:
            return self.actions.unindent(ids[0]).success

        loc = find_location(self._tree, ids[0])
        if loc is None or loc.parent_id is None:
            return False
        parent_loc = find_location(self._tree, loc.parent_id)
        if parent_loc is None:
            return False
        roots = top_level_ids(self._tree, ids)
        return self.actions.move_many(roots, parent_loc.parent_id, parent_loc.index + 1).success

    # ---------------------------------------------------------------------------------
    # History
    # ---------------------------------------------------------------------------------

    def undo(self) -> bool:
        previous = self.undo_service.undo(self._tree)
        if previous is None:
            return False
        logger.info("Undo (%d left)", self.undo_service.undo_depth)
        self._set_tree(previous)
        return True

    def redo(self) -> bool:
        following = self.undo_service.redo(self._tree)
        if following is None:
            return False
        logger.info("Redo (%d left)", self.undo_service.redo_depth)
        self._set_tree(following)
        return True

    # ---------------------------------------------------------------------------------
    # Selection and keyboard
    # ---------------------------------------------------------------------------------

    def focus(self, task_id: Optional[str]) -> None:
        self.undo_service.break_coalescing()
        self._set_selection(SelectionState(self._selection.selected, task_id))

    def click(self, task_id: str, extend: bool = False) -> None:
        self.undo_service.break_coalescing()
        self._set_selection(selection.click(self._selection, self.flat, task_id, extend))

    def select_all(self) -> None:
        self._set_selection(selection.select_all(self._selection, self.flat))

    def clear_selection(self) -> None:
        self._set_selection(SelectionState(frozenset(), self._selection.focused_id))

    def navigate(self, direction: Direction, extend: bool = False) -> bool:
        flat = self.flat
        if not flat:
            return False
        current = self._selection.focused_id
        if index_of(flat, current) == -1:
            target = flat[0].id if direction == "down" else flat[-1].id
            self.focus(target)
            return True
        self.undo_service.break_coalescing()
        new_state = selection.navigate(self._selection, flat, current, direction, extend)
        self._set_selection(new_state)
        return new_state.focused_id != current

    def handle_key(self, event: KeyEvent) -> bool:
        """Apply a key binding; returns True when the key was consumed."""
        key = event.key
        lowered = key.lower()

        if event.command and lowered == "z":
            return self.redo() if event.shift else self.undo()
        if event.command and lowered == "y":
            return self.redo()
        if event.command and lowered == "a" and not event.in_text_input:
            self.select_all()
            return True

        if key in ("Backspace", "BackSpace", "Delete"):
            count = len(self._selection.selected)
            if count == 0:
                return False
            if event.in_text_input and count <= 1:
                # Plain text editing inside the row
                return False
            return self.delete_selection()

        if key in ("Tab", "ISO_Left_Tab"):
            if event.shift or key == "ISO_Left_Tab":
                self.unindent_selection()
            else:
                self.indent_selection()
            return True

        if key in ("Up", "ArrowUp"):
            self.navigate("up", extend=event.shift)
            return True
        if key in ("Down", "ArrowDown"):
            self.navigate("down", extend=event.shift)
            return True

        if key in ("Return", "Enter") and not event.shift:
            return self.insert_after() is not None
        if key == "Escape":
            self.clear_selection()
            return True
        return False

    # ---------------------------------------------------------------------------------
    # Pointer: marquee and auto-scroll
    # ---------------------------------------------------------------------------------

    def attach_viewport(self, scroll_by: Callable[[float], None],
                        viewport: Callable[[], Tuple[float, float]]) -> None:
        """Connect the scrollable container used for marquee auto-scroll."""
        if self._autoscroll is not None:
            self._autoscroll.stop()
        self._autoscroll = AutoScroller(
            self.scheduler, scroll_by, viewport,
            margin=self.settings.autoscroll_margin,
            step=self.settings.autoscroll_step,
            frame_interval=self.settings.frame_interval,
        )

    def pointer_press(self, event: PointerEvent) -> bool:
        if event.button != 1:
            return False
        return self._marquee.press(event.x, event.y, event.on_interactive)

    def pointer_move(self, event: PointerEvent, rows: Iterable[RowExtent]) -> Optional[frozenset]:
        """Track the marquee; returns the ids under it once it has engaged."""
        was_engaged = self._marquee.engaged
        hits = self._marquee.move(event.x, event.y, rows)
        if hits is None:
            return None
        # Row extents come from the view and may lag behind the tree
        hits = hits & frozenset(visible_ids(self.flat))
        if not was_engaged:
            self.undo_service.break_coalescing()
            if self._autoscroll is not None:
                self._autoscroll.start()
        if self._autoscroll is not None:
            self._autoscroll.update_pointer(event.y)
        self._set_selection(SelectionState(hits, None))
        return hits

    def pointer_release(self, event: Optional[PointerEvent] = None) -> bool:
        return self._stop_marquee()

    def _stop_marquee(self) -> bool:
        if self._autoscroll is not None:
            self._autoscroll.stop()
        return self._marquee.release()

    # ---------------------------------------------------------------------------------
    # Drag and drop
    # ---------------------------------------------------------------------------------

    def drag_start(self, task_id: str) -> None:
        self.undo_service.break_coalescing()
        self._drag.start(task_id)

    def drag_move(self, delta_x: float) -> Optional[int]:
        """Update the horizontal offset; returns the projected indicator depth."""
        self._drag.move(delta_x)
        return self._drag.indicator_depth(self.flat)

    def drag_end(self, over_id: Optional[str]) -> bool:
        plan = self._drag.end(self.flat, over_id, self._selection.selected)
        if plan is None:
            return False
        return self.actions.move_many(plan.ids, plan.parent_id, plan.index).success

    def drag_cancel(self) -> None:
        self._drag.cancel()

    # ---------------------------------------------------------------------------------
    # External editor and carry-over
    # ---------------------------------------------------------------------------------

    def on_editor_change(self, blocks: Sequence[Any], seq: Optional[int] = None) -> bool:
        """Feed a block editor change event; returns True when it was committed."""
        if self._sync is None or self._disposed:
            return False
        return self._sync.handle_editor_change(blocks, seq) is not None

    def _on_sync_commit(self, tree: Tree) -> None:
        result = self.service.replace(self._tree, tree)
        # Whole documents arrive; only a one-node text change may join a typing burst
        edited = text_edit_target(self._tree, tree)
        if edited is None:
            self.undo_service.break_coalescing()
            self._commit(result, "replace", None, push=False)
        else:
            self._commit(result, TEXT_EDIT, edited, push=False)

    def carry_over(self, project_key: Optional[str] = None) -> Tree:
        """Send unfinished tasks to the sink's carry-over slot; returns what was sent."""
        carried = select_carry_over(self._tree)
        key = project_key or self._project_id
        if not carried:
            logger.info("Carry-over: nothing to carry for %s", key)
            return carried
        if self._sink is not None:
            try:
                self._sink.carry_over(key, carried)
            except Exception:
                logger.error("Carry-over to %s failed", key, exc_info=True)
        return carried

    def receive_carry_over(self, carried: TreeInput) -> bool:
        """Merge tasks carried from another day into this tree."""
        merged = merge_carry_over(self._tree, _coerce_tree(carried))
        self.undo_service.break_coalescing()
        return self._commit(self.service.replace(self._tree, merged), "carry_over")
