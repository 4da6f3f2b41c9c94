from __future__ import annotations

"""Projection of a 2D drag gesture onto a new parent and sibling index.

A row is dragged vertically onto another row ("over"), while horizontal
travel decides nesting: every ``indent_width`` pixels to the right deepens the
drop by one level, to the left flattens it. The planner works purely on the
flattened visible sequence and returns the arguments of a single
``move_many`` call, or None when the gesture is a no-op.

Algorithm
---------
1. ``projected_depth = max(0, depth(active) + round(delta_x / indent_width))``.
2. Moving down inserts after ``over``; moving up inserts before it.
3. Walking backwards from the anchor (``over`` when moving down, the row
   above ``over`` when moving up), the nearest row shallower than the
   projected depth becomes the parent; none found means root.
4. The index counts rows at the parent's child depth between the parent and
   the drop boundary, ignoring rows that are being moved.
5. A parent inside the moved subtrees rejects the plan.
"""

from dataclasses import dataclass
import logging
from typing import Collection, List, Optional, Tuple

from taskpad.core.flatten import FlatItem, index_of

__all__ = ["DragGesture", "DropPlan", "plan_drop", "projected_depth", "DragSession"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DragGesture:
    """A drag in progress or just released.

    ``over_id`` is None when the pointer is not above any row.
    """
    active_id: str
    over_id: Optional[str]
    delta_x: float = 0.0


@dataclass(frozen=True)
class DropPlan:
    """Arguments for the resulting ``move_many`` call."""
    ids: Tuple[str, ...]
    parent_id: Optional[str]
    index: int
    projected_depth: int


def projected_depth(depth: int, delta_x: float, indent_width: int) -> int:
    return max(0, depth + int(round(delta_x / indent_width)))


def _moving_ids(flat: List[FlatItem], active_id: str, selected_ids: Collection[str]) -> Tuple[str, ...]:
    selected = set(selected_ids)
    if active_id in selected and len(selected) > 1:
        return tuple(item.node.id for item in flat if item.node.id in selected)
    return (active_id,)


def _moved_subtree_ids(flat: List[FlatItem], moving: Collection[str]) -> set:
    """Visible ids covered by the moved rows, descendants included."""
    result = set()
    inside_depth: Optional[int] = None
    for item in flat:
        if inside_depth is not None and item.depth > inside_depth:
            result.add(item.node.id)
            continue
        inside_depth = None
        if item.node.id in moving:
            result.add(item.node.id)
            inside_depth = item.depth
    return result


def plan_drop(flat: List[FlatItem], gesture: DragGesture,
              selected_ids: Collection[str] = (), indent_width: int = 24) -> Optional[DropPlan]:
    """Compute where a released drag should land, or None for a no-op."""
    if gesture.over_id is None or gesture.over_id == gesture.active_id:
        return None

    active_index = index_of(flat, gesture.active_id)
    over_index = index_of(flat, gesture.over_id)
    if active_index == -1 or over_index == -1:
        logger.debug("Drop ignored: stale ids active=%s over=%s", gesture.active_id, gesture.over_id)
        return None

    depth = projected_depth(flat[active_index].depth, gesture.delta_x, indent_width)
    moving_down = active_index < over_index
    anchor = over_index if moving_down else over_index - 1

    parent_id: Optional[str] = None
    for i in range(anchor, -1, -1):
        item = flat[i]
        if item.node.id == gesture.active_id:
            continue
        if item.depth < depth:
            parent_id = item.node.id
            break

    moving = _moving_ids(flat, gesture.active_id, selected_ids)
    covered = _moved_subtree_ids(flat, moving)
    if parent_id is not None and parent_id in covered:
        logger.debug("Drop rejected: parent %s is inside the dragged subtree", parent_id)
        return None

    parent_index = index_of(flat, parent_id)
    target_depth = flat[parent_index].depth + 1 if parent_id is not None else 0

    index = 0
    for i in range(parent_index + 1, anchor + 1):
        item = flat[i]
        if item.depth < target_depth:
            break
        if item.node.id in covered:
            continue
        if item.depth == target_depth:
            index += 1

    plan = DropPlan(moving, parent_id, index, depth)
    logger.debug("Drop plan: %s (active=%s over=%s dx=%.1f)", plan, gesture.active_id,
                 gesture.over_id, gesture.delta_x)
    return plan


class DragSession:
    """Tracks one live drag for indicator rendering and the final plan.

    Views call :meth:`start` on drag start, :meth:`move` on every pointer
    move with the accumulated horizontal offset, and :meth:`end` on release.
    """

    def __init__(self, indent_width: int = 24) -> None:
        self._indent_width = indent_width
        self.active_id: Optional[str] = None
        self.delta_x: float = 0.0

    @property
    def active(self) -> bool:
        return self.active_id is not None

    def start(self, active_id: str) -> None:
        self.active_id = active_id
        self.delta_x = 0.0

    def move(self, delta_x: float) -> None:
        self.delta_x = delta_x

    def indicator_depth(self, flat: List[FlatItem]) -> Optional[int]:
        """Depth at which the drop indicator should be drawn, if dragging."""
        idx = index_of(flat, self.active_id)
        if idx == -1:
            return None
        return projected_depth(flat[idx].depth, self.delta_x, self._indent_width)

    def end(self, flat: List[FlatItem], over_id: Optional[str],
            selected_ids: Collection[str] = ()) -> Optional[DropPlan]:
        if self.active_id is None:
            return None
        gesture = DragGesture(self.active_id, over_id, self.delta_x)
        self.cancel()
        return plan_drop(flat, gesture, selected_ids, self._indent_width)

    def cancel(self) -> None:
        self.active_id = None
        self.delta_x = 0.0
