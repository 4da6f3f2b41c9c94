"""Top-level package for the taskpad task-tree editing engine.

This package hosts the GUI-agnostic implementation of the outline editor used
by the daily task panel. Front-ends (Tk views, block editors, tests) should
only depend on the public API exposed here rather than importing internal
modules directly.
"""

from .core.models import TaskNode  # re-export for convenience

__all__: list[str] = [
    "TaskNode",
]
