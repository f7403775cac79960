"""Conversation turn management - one active reconciliation task at a time.

Starting a new turn cancels the previous one first (last writer wins at
turn granularity). Records are applied synchronously, so task cancellation
can only land between records: the in-flight record always finishes and
nothing after it is consumed.
"""
import asyncio
import contextlib
from typing import AsyncIterable, Iterable, Optional, Union

import structlog

from flowmap.models.graph import Graph
from flowmap.stream.reconciler import (
    CancellationToken,
    Chunk,
    GraphReconciler,
    ReconcileResult,
    UpdateListener,
)

logger = structlog.get_logger()


class Turn:
    """A running reconciliation task and its cancellation handle."""

    def __init__(
        self,
        number: int,
        reconciler: GraphReconciler,
        task: "asyncio.Task[ReconcileResult]",
    ):
        self.number = number
        self.reconciler = reconciler
        self.task = task

    @property
    def token(self) -> CancellationToken:
        return self.reconciler.token

    @property
    def snapshot(self) -> Graph:
        return self.reconciler.snapshot

    async def wait(self) -> ReconcileResult:
        """Wait for the turn to end; a cancelled turn still returns its result."""
        try:
            await asyncio.shield(self.task)
        except asyncio.CancelledError:
            if not self.task.cancelled():
                raise
        return self.reconciler.result()

    async def cancel(self, reason: str = "cancelled") -> ReconcileResult:
        """Stop the turn and wait until its task has unwound."""
        if not self.task.done():
            self.token.cancel(reason)
            self.task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.task
        # A task cancelled before its first step never saw the token
        self.reconciler.mark_cancelled()
        return self.reconciler.result()


class ConversationTurns:
    """Owns the single active reconciliation turn of a conversation."""

    def __init__(self):
        self._active: Optional[Turn] = None
        self._count = 0
        self._lock = asyncio.Lock()

    @property
    def active(self) -> Optional[Turn]:
        return self._active

    async def start(
        self,
        chunks: Union[AsyncIterable[Chunk], Iterable[Chunk]],
        existing: Graph,
        on_update: Optional[UpdateListener] = None,
    ) -> Turn:
        """Cancel any running turn, then start reconciling ``chunks``."""
        async with self._lock:
            previous = self._active
            if previous is not None and not previous.task.done():
                await previous.cancel("superseded")
                logger.info("turn_superseded", turn=previous.number)

            self._count += 1
            reconciler = GraphReconciler(existing, token=CancellationToken(), on_update=on_update)
            task = asyncio.create_task(reconciler.consume(chunks))
            self._active = Turn(self._count, reconciler, task)

            logger.info("turn_started", turn=self._count)
            return self._active

    async def cancel_active(self) -> Optional[ReconcileResult]:
        """Cancel the running turn, if any."""
        turn = self._active
        if turn is None:
            return None
        return await turn.cancel()
