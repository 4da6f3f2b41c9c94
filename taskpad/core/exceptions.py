from __future__ import annotations

"""Exception classes for the task-tree engine.

Structural edits never raise for stale ids or rejected moves; those degrade to
no-ops. The classes here cover the remaining failure modes: malformed external
documents and unusable configuration. Callers at the engine boundary catch
them and keep the last valid state.
"""

from typing import Optional


class TaskpadError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause


class BlockFormatError(TaskpadError):
    """Raised when an external block document cannot be turned into a tree.

    ``block_id`` names the offending block when one could be identified.
    """

    def __init__(self, message: str, block_id: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause)
        self.block_id = block_id

    def __str__(self) -> str:
        if self.block_id:
            return f"[Block: {self.block_id}] {super().__str__()}"
        return super().__str__()


class ConfigError(TaskpadError):
    """Raised when a configuration section has an unusable value."""

    def __init__(self, message: str, key: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause)
        self.key = key
