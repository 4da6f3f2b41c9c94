from __future__ import annotations

"""Focus, multi-selection and marquee logic over the flattened sequence.

Selection ranges are defined in flattened visible order, not sibling order:
a range click can span depths. All functions take and return immutable
:class:`SelectionState` values; the marquee and auto-scroll helpers keep the
small amount of gesture state a pointer drag needs.
"""

from dataclasses import dataclass, field, replace
import logging
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from taskpad.core.flatten import FlatItem, index_of, visible_ids
from taskpad.core.models.input_events import Direction, RowExtent
from taskpad.core.scheduling import Scheduler

__all__ = [
    "SelectionState",
    "navigate",
    "click",
    "select_all",
    "prune",
    "selected_in_order",
    "MarqueeSelector",
    "AutoScroller",
    "rows_from_heights",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionState:
    """Selected ids plus the keyboard/anchor cursor. Never persisted."""

    selected: FrozenSet[str] = field(default_factory=frozenset)
    focused_id: Optional[str] = None

    def is_selected(self, node_id: str) -> bool:
        return node_id in self.selected


def navigate(state: SelectionState, flat: List[FlatItem], current_id: str,
             direction: Direction, extend: bool = False) -> SelectionState:
    """Move focus to the previous/next visible entry.

    With ``extend`` the old and new focus are added to the selection;
    otherwise the selection is cleared and only focus moves.
    """
    idx = index_of(flat, current_id)
    if idx == -1:
        return state
    target = idx - 1 if direction == "up" else idx + 1
    if target < 0 or target >= len(flat):
        return state
    target_id = flat[target].node.id
    if extend:
        return SelectionState(state.selected | {current_id, target_id}, target_id)
    return SelectionState(frozenset(), target_id)


def click(state: SelectionState, flat: List[FlatItem], node_id: str,
          extend: bool = False) -> SelectionState:
    """Plain click selects one row; an extended click selects a visible range."""
    end = index_of(flat, node_id)
    if end == -1:
        return state
    if extend and state.focused_id is not None:
        start = index_of(flat, state.focused_id)
        if start != -1:
            lo, hi = min(start, end), max(start, end)
            return SelectionState(frozenset(visible_ids(flat[lo:hi + 1])), node_id)
    return SelectionState(frozenset({node_id}), node_id)


def select_all(state: SelectionState, flat: List[FlatItem]) -> SelectionState:
    return replace(state, selected=frozenset(visible_ids(flat)))


def prune(state: SelectionState, flat: List[FlatItem]) -> SelectionState:
    """Drop selected/focused ids that are no longer visible."""
    visible = set(visible_ids(flat))
    selected = state.selected & visible
    focused = state.focused_id if state.focused_id in visible else None
    if selected == state.selected and focused == state.focused_id:
        return state
    return SelectionState(frozenset(selected), focused)


def selected_in_order(state: SelectionState, flat: List[FlatItem]) -> List[str]:
    """Return the selected ids in flattened visible order."""
    return [item.node.id for item in flat if item.node.id in state.selected]


class MarqueeSelector:
    """Pointer-drawn rectangle selection.

    A press outside interactive controls arms the marquee; it engages only
    once the pointer has travelled more than ``threshold`` pixels on either
    axis, so a plain click is never read as a zero-size drag. Row hits use a
    vertical-overlap test only: rows span the full width of the list.
    """

    def __init__(self, threshold: float = 5.0) -> None:
        self._threshold = threshold
        self._origin: Optional[Tuple[float, float]] = None
        self._current: Optional[Tuple[float, float]] = None
        self._engaged = False

    @property
    def armed(self) -> bool:
        return self._origin is not None

    @property
    def engaged(self) -> bool:
        return self._engaged

    @property
    def rect(self) -> Optional[Tuple[float, float, float, float]]:
        """Current rectangle as ``(left, top, width, height)`` while engaged."""
        if not self._engaged or self._origin is None or self._current is None:
            return None
        (x0, y0), (x1, y1) = self._origin, self._current
        return min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0)

    def press(self, x: float, y: float, on_interactive: bool = False) -> bool:
        """Arm the marquee; returns False when the press landed on a control."""
        self.release()
        if on_interactive:
            return False
        self._origin = (x, y)
        self._current = (x, y)
        return True

    def move(self, x: float, y: float, rows: Iterable[RowExtent]) -> Optional[FrozenSet[str]]:
        """Track the pointer; returns the hit ids once engaged, else None."""
        if self._origin is None:
            return None
        self._current = (x, y)
        if not self._engaged:
            dx = abs(x - self._origin[0])
            dy = abs(y - self._origin[1])
            if dx <= self._threshold and dy <= self._threshold:
                return None
            self._engaged = True
            logger.debug("Marquee engaged at (%.1f, %.1f)", x, y)
        return self.hits(rows)

    def hits(self, rows: Iterable[RowExtent]) -> FrozenSet[str]:
        rect = self.rect
        if rect is None:
            return frozenset()
        top = rect[1]
        bottom = rect[1] + rect[3]
        return frozenset(row.id for row in rows if row.top < bottom and row.bottom > top)

    def release(self) -> bool:
        """End the gesture; returns True when a marquee had been engaged."""
        was_engaged = self._engaged
        self._origin = None
        self._current = None
        self._engaged = False
        return was_engaged


class AutoScroller:
    """Frame-driven edge scrolling while a marquee is active.

    The loop runs on the scheduler at a fixed frame interval, independent of
    pointer events, so scrolling continues while the pointer rests near an
    edge. ``viewport`` returns the scrollable ancestor's ``(top, bottom)``.
    """

    def __init__(self, scheduler: Scheduler, scroll_by: Callable[[float], None],
                 viewport: Callable[[], Tuple[float, float]], margin: float = 50.0,
                 step: float = 15.0, frame_interval: float = 1.0 / 60.0) -> None:
        self._scheduler = scheduler
        self._scroll_by = scroll_by
        self._viewport = viewport
        self._margin = margin
        self._step = step
        self._frame_interval = frame_interval
        self._pointer_y: Optional[float] = None
        self._handle = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def update_pointer(self, y: float) -> None:
        self._pointer_y = y

    def start(self) -> None:
        if self._handle is None:
            self._handle = self._scheduler.call_later(self._frame_interval, self._tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None

    def _tick(self) -> None:
        self._handle = None
        if self._pointer_y is not None:
            top, bottom = self._viewport()
            if self._pointer_y < top + self._margin:
                self._scroll_by(-self._step)
            elif self._pointer_y > bottom - self._margin:
                self._scroll_by(self._step)
        self._handle = self._scheduler.call_later(self._frame_interval, self._tick)


def rows_from_heights(ids: Sequence[str], row_height: float, offset: float = 0.0) -> List[RowExtent]:
    """Build uniform row extents; handy for views with fixed-height rows."""
    return [RowExtent(node_id, offset + i * row_height, offset + (i + 1) * row_height)
            for i, node_id in enumerate(ids)]
