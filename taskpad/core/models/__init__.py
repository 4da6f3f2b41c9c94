from __future__ import annotations

"""Shared data structures used across the taskpad core.

This package exposes the immutable task node and the conversion helpers used
at the persistence boundary. It is intentionally free of UI / I/O code so that
the contained objects can be reused in any context (unit-tests, CLI, GUI, etc.).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

__all__ = ["TaskNode", "Tree", "tree_from_dicts", "tree_to_dicts"]


@dataclass(frozen=True)
class TaskNode:
    """A single task entry with text, completion flag and ordered children.

    Nodes are immutable values. Every structural edit produces new nodes along
    the path from the root to the edited node and reuses everything else, so a
    tree handed out to a caller can never change underneath it.

    Attributes
    ----------
    id
        Opaque identifier, unique across the whole tree.
    text
        Task label as typed by the user.
    completed
        Checkbox state.
    children
        Ordered child nodes.
    is_collapsed
        When True, the flattener hides this node's descendants.
    created_at
        Creation time as epoch seconds, or None for legacy entries.
    carried_over
        Marks a node re-surfaced from a prior day.
    """

    id: str
    text: str = ""
    completed: bool = False
    children: Tuple["TaskNode", ...] = field(default_factory=tuple)
    is_collapsed: bool = False
    created_at: Optional[float] = None
    carried_over: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Return the persistence payload for this node and its subtree."""
        data: Dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "children": [child.to_dict() for child in self.children],
            "isCollapsed": self.is_collapsed,
            "carriedOver": self.carried_over,
        }
        if self.created_at is not None:
            data["createdAt"] = int(round(self.created_at * 1000))
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskNode":
        """Build a node from a persistence payload.

        Optional keys may be missing and ``children`` may be null, as older
        daily logs were written that way.
        """
        created_ms = data.get("createdAt")
        return cls(
            id=str(data["id"]),
            text=str(data.get("text") or ""),
            completed=bool(data.get("completed", False)),
            children=tuple(cls.from_dict(c) for c in (data.get("children") or [])),
            is_collapsed=bool(data.get("isCollapsed", False)),
            created_at=(float(created_ms) / 1000.0) if created_ms is not None else None,
            carried_over=bool(data.get("carriedOver", False)),
        )


# An ordered sequence of root-level nodes.
Tree = Tuple[TaskNode, ...]


def tree_from_dicts(items: Optional[Iterable[Mapping[str, Any]]]) -> Tree:
    """Convert a persisted node list into a tree value."""
    return tuple(TaskNode.from_dict(item) for item in (items or []))


def tree_to_dicts(tree: Tree) -> List[Dict[str, Any]]:
    """Convert a tree value into a persistable node list."""
    return [node.to_dict() for node in tree]
