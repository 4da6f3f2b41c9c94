from __future__ import annotations

"""Conversion between task trees and the block editor's document.

The rich-text editor stores its document as nested JSON-like blocks. Tasks
map to ``checkListItem`` blocks::

    {
        "id": "...",
        "type": "checkListItem",
        "props": {"checked": False},
        "content": [{"type": "text", "text": "...", "styles": {}}],
        "children": [...],
    }

Only id, text, completion and nesting survive the trip through the editor.
Collapse state, creation time and the carry-over flag are restored from a
reference tree on the way back, keyed by id.
"""

import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from taskpad.core.exceptions import BlockFormatError
from taskpad.core.models import TaskNode, Tree
from taskpad.core.tree import iter_nodes

__all__ = ["CHECK_LIST_ITEM", "to_blocks", "from_blocks", "block_text"]

CHECK_LIST_ITEM = "checkListItem"

Block = Dict[str, Any]


def to_blocks(tree: Tree) -> List[Block]:
    """Render a tree as editor blocks. Output is a fresh structure every call."""
    return [
        {
            "id": node.id,
            "type": CHECK_LIST_ITEM,
            "props": {"checked": node.completed},
            "content": [{"type": "text", "text": node.text, "styles": {}}] if node.text else [],
            "children": to_blocks(node.children),
        }
        for node in tree
    ]


def block_text(content: Any) -> str:
    """Flatten inline content (a string or a list of runs) to plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, (list, tuple)):
        parts = []
        for run in content:
            if isinstance(run, Mapping) and run.get("type") == "text":
                parts.append(str(run.get("text") or ""))
            elif isinstance(run, str):
                parts.append(run)
        return "".join(parts)
    # Tables and other non-inline content carry no task text
    return ""


def from_blocks(blocks: Sequence[Any], reference: Optional[Tree] = None,
                now: Optional[float] = None) -> Tree:
    """Parse editor blocks back into a tree.

    Raises
    ------
    BlockFormatError
        If a block is not a mapping, has no id, repeats an id, or has
        children that are not a list or props that are not a mapping.
    """
    if not isinstance(blocks, (list, tuple)):
        raise BlockFormatError(f"Document must be a list of blocks, got {type(blocks).__name__}")

    known: Dict[str, TaskNode] = {n.id: n for n in iter_nodes(reference)} if reference else {}
    stamp = time.time() if now is None else now
    seen: Set[str] = set()

    def convert(items: Sequence[Any]) -> Tree:
        nodes = []
        for block in items:
            if not isinstance(block, Mapping):
                raise BlockFormatError(f"Block must be a mapping, got {type(block).__name__}")
            block_id = block.get("id")
            if not block_id or not isinstance(block_id, str):
                raise BlockFormatError("Block has no id")
            if block_id in seen:
                raise BlockFormatError("Duplicate block id", block_id=block_id)
            seen.add(block_id)

            children = block.get("children") or []
            if not isinstance(children, (list, tuple)):
                raise BlockFormatError("Block children must be a list", block_id=block_id)

            props = block.get("props") or {}
            if not isinstance(props, Mapping):
                raise BlockFormatError("Block props must be a mapping", block_id=block_id)
            checked = block.get("type") == CHECK_LIST_ITEM and props.get("checked") is True
            previous = known.get(block_id)
            nodes.append(TaskNode(
                id=block_id,
                text=block_text(block.get("content")),
                completed=checked,
                children=convert(children),
                is_collapsed=previous.is_collapsed if previous else False,
                created_at=previous.created_at if previous else stamp,
                carried_over=previous.carried_over if previous else False,
            ))
        return tuple(nodes)

    return convert(blocks)
