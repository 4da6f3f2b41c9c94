"""Shared fixtures for the taskpad test-suite.

Trees are built with :func:`node` from nested tuples so that expected shapes
read like the outline they describe. Every test runs against an isolated
configuration directory, so nothing is written to the real user profile.
"""

import logging
import os
import sys
from typing import List

import pytest

# Add project root to path
_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from taskpad.config import ConfigManager
from taskpad.core.models import TaskNode
from taskpad.core.models.settings import EngineSettings

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def node(node_id: str, *children: TaskNode, text: str = None, completed: bool = False,
         collapsed: bool = False) -> TaskNode:
    """Build a node whose text defaults to its upper-cased id."""
    return TaskNode(
        id=node_id,
        text=node_id.upper() if text is None else text,
        completed=completed,
        children=tuple(children),
        is_collapsed=collapsed,
        created_at=1_700_000_000.0,
    )


def shape(tree) -> List:
    """Reduce a tree to nested ``[id, [children...]]`` lists for assertions."""
    return [[n.id, shape(n.children)] if n.children else n.id for n in tree]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config manager at an empty per-test directory."""
    monkeypatch.setenv("TASKPAD_CONFIG_DIR", str(tmp_path / "config"))
    ConfigManager.reset()
    yield tmp_path / "config"
    ConfigManager.reset()


@pytest.fixture
def sample_tree():
    """
    a
      a1
      a2
        a2x
    b
    c   (collapsed)
      c1
    """
    return (
        node("a", node("a1"), node("a2", node("a2x"))),
        node("b"),
        node("c", node("c1"), collapsed=True),
    )


@pytest.fixture
def settings():
    return EngineSettings()
