"""Moving unfinished tasks from one day's list to the next.

The sending side picks the subset worth carrying (:func:`select_carry_over`);
the receiving side appends it to its own tree (:func:`merge_carry_over`).
Both are pure functions on tree values.
"""

from __future__ import annotations

from dataclasses import replace
import logging

from taskpad.core.export import clean_placeholders
from taskpad.core.models import TaskNode, Tree

__all__ = ["select_carry_over", "merge_carry_over", "is_empty_placeholder"]

logger = logging.getLogger(__name__)


def _mark(nodes: Tree) -> Tree:
    return tuple(replace(n, carried_over=True, children=_mark(n.children)) for n in nodes)


def _incomplete(nodes: Tree) -> Tree:
    return tuple(replace(n, children=_incomplete(n.children)) for n in nodes if not n.completed)


def select_carry_over(tree: Tree) -> Tree:
    """Return unfinished tasks, placeholders removed, flagged ``carried_over``.

    A completed task is dropped together with its subtree.
    """
    return _mark(clean_placeholders(_incomplete(tree)))


def is_empty_placeholder(node: TaskNode) -> bool:
    """True for a blank root row with no children (the editor's starter row)."""
    return not node.text.strip() and not node.children


def merge_carry_over(target: Tree, carried: Tree) -> Tree:
    """Append carried roots to ``target``.

    Empty placeholder roots in ``target`` are dropped first, and carried roots
    whose id is already present are skipped. Returns ``target`` itself when
    nothing would change.
    """
    kept = tuple(n for n in target if not is_empty_placeholder(n))
    existing = {n.id for n in kept}
    additions = tuple(n for n in carried if n.id not in existing)
    if not additions and len(kept) == len(target):
        return target
    logger.info("Carry-over: appending %d task(s), dropped %d placeholder(s)",
                len(additions), len(target) - len(kept))
    return kept + additions
