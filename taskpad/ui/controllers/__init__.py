"""UI controllers package for Taskpad.

Controllers mediate between views and the core services. They hold no
toolkit code.
"""

from .task_tree_controller import PersistenceSink, TaskActions, TaskTreeController, TreeState  # noqa: F401

__all__: list[str] = [
    "PersistenceSink",
    "TaskActions",
    "TaskTreeController",
    "TreeState",
]
