from __future__ import annotations

"""Two-way synchronisation between the task tree and a block editor.

Two representations of one document must converge: the engine's tree and the
editor's internal block document. Pushing a tree into the editor makes the
editor emit a "changed" event; if that event were re-derived and committed,
the result would be pushed again, indefinitely. The adapter breaks the loop
in two ways:

- Every outbound push carries a sequence number. Editor events report the
  sequence of the last push they had applied; events older than the latest
  push describe a document the engine has already replaced and are dropped.
- An inbound document whose derived tree equals the last tree pushed is an
  echo and is dropped.

Editors that cannot echo sequence numbers get a settle guard instead: after a
push, unsequenced events are ignored for ``settle_delay`` seconds.
"""

import logging
from typing import Any, Callable, List, Optional, Protocol, Sequence

from taskpad.core.blocks import from_blocks, to_blocks
from taskpad.core.exceptions import BlockFormatError
from taskpad.core.models import Tree
from taskpad.core.scheduling import Scheduler

__all__ = ["BlockEditor", "BlockSyncAdapter"]

logger = logging.getLogger(__name__)


class BlockEditor(Protocol):
    """The rich-text editor collaborator."""

    def replace_document(self, blocks: List[dict], seq: int) -> None:
        """Overwrite the editor content with ``blocks`` (push number ``seq``)."""
        ...


class BlockSyncAdapter:
    """Loop-safe converter between a tree and an external block document.

    Parameters
    ----------
    editor : BlockEditor
        Receives outbound documents.
    on_commit : callable
        Called with a tree derived from an external edit; the owner swaps it
        in through its replace path.
    scheduler : Scheduler, optional
        Drives the settle guard for unsequenced editors. Without one the guard
        stays down and only the equality check applies.
    settle_delay : float
        Seconds the settle guard stays up after a push.
    """

    def __init__(self, editor: BlockEditor, on_commit: Callable[[Tree], None],
                 scheduler: Optional[Scheduler] = None, settle_delay: float = 0.15) -> None:
        self._editor = editor
        self._on_commit = on_commit
        self._scheduler = scheduler
        self._settle_delay = settle_delay
        self._seq = 0
        self._last_pushed: Optional[Tree] = None
        self._settle_handle: Any = None
        self._local_update = False

    # --------------------------------------------------------------------- API

    @property
    def seq(self) -> int:
        """Sequence number of the latest outbound push."""
        return self._seq

    @property
    def last_pushed(self) -> Optional[Tree]:
        return self._last_pushed

    @property
    def local_update_pending(self) -> bool:
        return self._local_update

    def switch_context(self, tree: Tree) -> None:
        """Unconditionally overwrite the editor with ``tree`` (project/day switch)."""
        logger.info("Sync: context switch, pushing %d root block(s)", len(tree))
        self._push(tree)

    def push_local(self, tree: Tree) -> None:
        """Push an engine-originated change (indent, drag, undo, ...)."""
        if self._last_pushed is not None and tree == self._last_pushed:
            return
        self._push(tree)
        self._raise_guard()

    def handle_editor_change(self, blocks: Sequence[Any], seq: Optional[int] = None) -> Optional[Tree]:
        """Consume an editor change event; returns the committed tree, if any."""
        if seq is not None and seq < self._seq:
            logger.debug("Sync: dropping stale event seq=%s (latest push %s)", seq, self._seq)
            return None
        if seq is None and self._local_update:
            logger.debug("Sync: dropping event during local update")
            return None

        try:
            derived = from_blocks(blocks, reference=self._last_pushed)
        except BlockFormatError as exc:
            logger.warning("Sync: malformed editor document (%s); restoring last good tree", exc)
            if self._last_pushed is not None:
                self._push(self._last_pushed)
            return None

        if self._last_pushed is not None and derived == self._last_pushed:
            return None

        self._last_pushed = derived
        self._on_commit(derived)
        return derived

    def dispose(self) -> None:
        """Cancel the settle timer; call when the editing context is torn down."""
        self._lower_guard()

    # --------------------------------------------------------------- Internals

    def _push(self, tree: Tree) -> None:
        self._seq += 1
        self._last_pushed = tree
        try:
            self._editor.replace_document(to_blocks(tree), self._seq)
        except Exception:
            logger.error("Sync: editor rejected push seq=%d", self._seq, exc_info=True)

    def _raise_guard(self) -> None:
        if self._scheduler is None:
            return
        self._lower_guard()
        self._local_update = True
        self._settle_handle = self._scheduler.call_later(self._settle_delay, self._settled)

    def _lower_guard(self) -> None:
        if self._settle_handle is not None and self._scheduler is not None:
            self._scheduler.cancel(self._settle_handle)
        self._settle_handle = None
        self._local_update = False

    def _settled(self) -> None:
        self._settle_handle = None
        self._local_update = False
