"""Archival serialisation of task trees.

Two formats are produced: an indented markdown-style outline used in the
daily log, and an OPML 2.0 document for interchange with outliners.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import logging
from typing import List, Optional

from lxml import etree as ET

from taskpad.core.models import TaskNode, Tree

__all__ = ["PLACEHOLDER_TEXTS", "is_placeholder", "clean_placeholders",
           "serialize_to_outline", "serialize_to_opml"]

logger = logging.getLogger(__name__)

# Labels the editors insert for fresh rows; never worth archiving
PLACEHOLDER_TEXTS = frozenset({"Untitled", "New task..."})

_INDENT = "    "


def is_placeholder(node: TaskNode) -> bool:
    text = node.text.strip()
    return not text or node.text in PLACEHOLDER_TEXTS


def clean_placeholders(tree: Tree) -> Tree:
    """Drop blank and placeholder entries (with their subtrees) recursively."""
    cleaned = []
    for node in tree:
        if is_placeholder(node):
            continue
        children = clean_placeholders(node.children)
        if children != node.children:
            node = replace(node, children=children)
        cleaned.append(node)
    return tuple(cleaned)


def serialize_to_outline(tree: Tree, depth: int = 0) -> str:
    """Render ``- [x] text`` lines, four spaces per level, newline-joined."""
    lines: List[str] = []
    for node in tree:
        status = "[x]" if node.completed else "[ ]"
        lines.append(f"{_INDENT * depth}- {status} {node.text}")
        if node.children:
            lines.append(serialize_to_outline(node.children, depth + 1))
    return "\n".join(lines)


def _outline_element(parent: ET._Element, node: TaskNode) -> None:
    el = ET.SubElement(parent, "outline")
    el.set("text", node.text)
    el.set("_status", "checked" if node.completed else "unchecked")
    if node.created_at is not None:
        stamp = datetime.fromtimestamp(node.created_at, tz=timezone.utc)
        el.set("_created", stamp.strftime("%a, %d %b %Y %H:%M:%S GMT"))
    if node.is_collapsed:
        el.set("_collapsed", "true")
    for child in node.children:
        _outline_element(el, child)


def serialize_to_opml(tree: Tree, title: str = "Tasks",
                      created: Optional[datetime] = None) -> bytes:
    """Return an OPML 2.0 document (UTF-8 bytes) for ``tree``."""
    root = ET.Element("opml", version="2.0")
    head = ET.SubElement(root, "head")
    ET.SubElement(head, "title").text = title
    stamp = created or datetime.now(tz=timezone.utc)
    ET.SubElement(head, "dateCreated").text = stamp.strftime("%a, %d %b %Y %H:%M:%S GMT")
    body = ET.SubElement(root, "body")
    for node in tree:
        _outline_element(body, node)
    data = ET.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)
    logger.debug("Serialized %d root task(s) to OPML (%d bytes)", len(tree), len(data))
    return data
