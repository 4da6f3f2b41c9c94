# -*- coding: utf-8 -*-
"""
Scheduler backed by the Tk event loop.
Maps the engine's timer interface onto ``widget.after``/``after_cancel``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:  # pragma: no cover
    import tkinter as tk

__all__ = ["TkScheduler"]

logger = logging.getLogger(__name__)


class TkScheduler:
    """Run engine timers on a Tk widget's event loop.

    Use as:

        scheduler = TkScheduler(root)
        controller = TaskTreeController(..., scheduler=scheduler)

    Delays are given in seconds and rounded to whole milliseconds.
    """

    def __init__(self, widget: "tk.Misc") -> None:
        self.widget = widget

    def call_later(self, delay: float, callback: Callable[[], None]) -> Optional[str]:
        ms = max(0, int(round(delay * 1000)))
        try:
            return self.widget.after(ms, callback)
        except Exception:
            # Widget already destroyed; nothing left to drive timers
            logger.debug("TkScheduler: after() failed, callback dropped", exc_info=True)
            return None

    def cancel(self, handle: Any) -> None:
        if handle is None:
            return
        try:
            self.widget.after_cancel(handle)
        except Exception:
            logger.debug("TkScheduler: after_cancel(%r) failed", handle, exc_info=True)
