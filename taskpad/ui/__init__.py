"""Taskpad UI package.

Toolkit-facing glue: the per-context controller and the Tk scheduler.
"""

from .controllers.task_tree_controller import TaskTreeController  # noqa: F401
from .tk_scheduler import TkScheduler  # noqa: F401

__all__: list[str] = [
    "TaskTreeController",
    "TkScheduler",
]
