from __future__ import annotations

"""Services operating on task trees (editing, history, selection, drag, sync).

Services are instantiated directly by the controller; none of them holds a
reference to the current tree.
"""

from .structure_editing_service import OperationResult, StructureEditingService  # noqa: F401
from .undo_service import UndoService  # noqa: F401
from .sync_service import BlockSyncAdapter  # noqa: F401

__all__: list[str] = [
    "OperationResult",
    "StructureEditingService",
    "UndoService",
    "BlockSyncAdapter",
]
