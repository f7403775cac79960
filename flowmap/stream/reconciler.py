"""Graph reconciliation engine.

Consumes an ordered stream of graph-mutation events and keeps a
renderable graph materialized after every event:

- ``create`` mode: the streamed nodes and edges replace the graph
- ``update`` mode: streamed nodes are merged into the existing graph by id,
  removals are applied, and an empty edge list never wipes existing edges

State lives in an immutable ``ReconciliationState``; each event type has a
pure transition function and ``materialize`` derives the graph snapshot,
so the policy can be exercised without any transport. ``GraphReconciler``
drives those functions from framed records or raw chunks and owns the
terminal status (completed, error, cancelled).
"""
import asyncio
import contextlib
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import AsyncIterable, Callable, Iterable, Literal, Optional, Union

import structlog

from flowmap.models.graph import Edge, Graph, Node
from flowmap.stream.events import (
    CompleteEvent,
    EdgesEvent,
    ErrorEvent,
    ModeEvent,
    NodeEvent,
    RemoveNodeEvent,
    StreamEvent,
    classify,
)
from flowmap.stream.framing import RecordFramer
from flowmap.stream.merge import merge_nodes

logger = structlog.get_logger()

Mode = Literal["create", "update"]
Chunk = Union[bytes, str]
UpdateListener = Callable[[Graph], None]


class StreamStatus(str, Enum):
    """Lifecycle of one reconciliation stream."""
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"


# =============================================================================
# State and transitions
# =============================================================================


@dataclass(frozen=True)
class ReconciliationState:
    """Working state of one stream.

    ``nodes`` is keyed by id in first-arrival order. ``edges`` is None until
    an edge set has been accepted.
    """

    base: Graph
    mode: Optional[Mode] = None
    nodes: dict[str, Node] = field(default_factory=dict)
    removed_ids: frozenset[str] = frozenset()
    edges: Optional[tuple[Edge, ...]] = None

    @property
    def effective_mode(self) -> Mode:
        # Records arriving before a mode record are treated as a rebuild
        return self.mode or "create"


def on_mode(state: ReconciliationState, mode: Mode) -> ReconciliationState:
    return replace(state, mode=mode, nodes={}, removed_ids=frozenset(), edges=None)


def on_node(state: ReconciliationState, node: Node) -> ReconciliationState:
    nodes = dict(state.nodes)
    nodes[node.id] = node
    return replace(state, nodes=nodes)


def on_remove_node(state: ReconciliationState, node_id: str) -> ReconciliationState:
    return replace(state, removed_ids=state.removed_ids | {node_id})


def on_edges(state: ReconciliationState, edges: list[Edge]) -> ReconciliationState:
    if state.effective_mode == "update" and not edges:
        # An empty edge set in update mode means "edges unchanged"
        return state
    return replace(state, edges=tuple(edges))


def apply_event(state: ReconciliationState, event: StreamEvent) -> ReconciliationState:
    """Transition for one structural event; terminal events leave state as is."""
    if isinstance(event, ModeEvent):
        return on_mode(state, event.data)
    if isinstance(event, NodeEvent):
        return on_node(state, event.data)
    if isinstance(event, RemoveNodeEvent):
        return on_remove_node(state, event.data)
    if isinstance(event, EdgesEvent):
        return on_edges(state, event.data)
    return state


def materialize(state: ReconciliationState) -> Graph:
    """Current best complete graph for display."""
    if state.effective_mode == "create":
        nodes = list(state.nodes.values())
        edges = list(state.edges) if state.edges is not None else []
    else:
        nodes = merge_nodes(state.base.nodes, state.nodes.values(), state.removed_ids)
        edges = list(state.edges) if state.edges is not None else list(state.base.edges)
    return Graph(nodes=nodes, edges=edges)


# =============================================================================
# Driver
# =============================================================================


class CancellationToken:
    """Explicit handle used to stop a reconciliation stream."""

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason


@dataclass
class ReconcileResult:
    """Outcome of a stream."""

    status: StreamStatus
    graph: Graph
    mode: Optional[Mode] = None
    error: Optional[str] = None
    events_applied: int = 0
    records_skipped: int = 0

    @property
    def completed(self) -> bool:
        return self.status == StreamStatus.COMPLETED


class GraphReconciler:
    """Applies a stream of events to an existing graph.

    ``snapshot`` always holds the last materialized graph; listeners are
    called synchronously with it after every applied event, in arrival
    order.
    """

    def __init__(
        self,
        existing: Optional[Graph] = None,
        token: Optional[CancellationToken] = None,
        on_update: Optional[UpdateListener] = None,
    ):
        self.state = ReconciliationState(base=existing or Graph())
        self.snapshot: Graph = self.state.base
        self.token = token or CancellationToken()
        self.listeners: list[UpdateListener] = [on_update] if on_update else []

        self.status = StreamStatus.STREAMING
        self.error: Optional[str] = None
        self.events_applied = 0
        self.records_skipped = 0
        self.framer = RecordFramer()

    @property
    def finished(self) -> bool:
        return self.status != StreamStatus.STREAMING

    def _check_cancelled(self) -> bool:
        if self.token.cancelled and not self.finished:
            self.mark_cancelled()
        return self.status == StreamStatus.CANCELLED

    def mark_cancelled(self) -> None:
        """Stop consuming; the last snapshot stands."""
        if self.finished:
            return
        self.status = StreamStatus.CANCELLED
        logger.info(
            "reconcile_cancelled",
            reason=self.token.reason,
            events_applied=self.events_applied,
        )

    def apply(self, event: StreamEvent) -> Graph:
        """Apply one typed event and return the resulting snapshot."""
        if self.finished:
            return self.snapshot

        if isinstance(event, CompleteEvent):
            self.status = StreamStatus.COMPLETED
            logger.info(
                "reconcile_complete",
                mode=self.state.effective_mode,
                nodes=len(self.snapshot.nodes),
                edges=len(self.snapshot.edges),
            )
            return self.snapshot

        if isinstance(event, ErrorEvent):
            self.status = StreamStatus.ERROR
            self.error = event.data
            logger.warning("reconcile_upstream_error", error=event.data)
            return self.snapshot

        self.state = apply_event(self.state, event)
        self.snapshot = materialize(self.state)
        self.events_applied += 1

        for listener in self.listeners:
            listener(self.snapshot)

        return self.snapshot

    def feed_record(self, record: object) -> Graph:
        """Classify and apply one decoded record; malformed records are skipped."""
        if self._check_cancelled() or self.finished:
            return self.snapshot

        event = classify(record)
        if event is None:
            self.records_skipped += 1
            return self.snapshot

        return self.apply(event)

    def feed(self, chunk: Chunk) -> Graph:
        """Frame a raw chunk and apply every record it completes."""
        for record in self.framer.feed(chunk):
            if self._check_cancelled() or self.finished:
                break
            self.feed_record(record)
        return self.snapshot

    def end_of_stream(self) -> None:
        """Handle transport end; a stream without ``complete`` is an error."""
        if self.finished:
            return
        for record in self.framer.close():
            self.feed_record(record)
        if not self.finished:
            self.status = StreamStatus.ERROR
            self.error = "stream ended before completion"
            logger.warning("reconcile_stream_truncated", events_applied=self.events_applied)

    def result(self) -> ReconcileResult:
        return ReconcileResult(
            status=self.status,
            graph=self.snapshot,
            mode=self.state.mode,
            error=self.error,
            events_applied=self.events_applied,
            records_skipped=self.records_skipped + self.framer.dropped,
        )

    async def consume(self, chunks: Union[AsyncIterable[Chunk], Iterable[Chunk]]) -> ReconcileResult:
        """Consume a chunk stream until a terminal state is reached."""
        try:
            async with contextlib.aclosing(_iterate(chunks)) as stream:
                async for chunk in stream:
                    if self._check_cancelled():
                        break
                    self.feed(chunk)
                    if self.finished:
                        break
                else:
                    self.end_of_stream()
        except asyncio.CancelledError:
            self.mark_cancelled()
            raise
        except Exception as e:
            # Transport failure: terminal error, snapshot stays valid
            self.status = StreamStatus.ERROR
            self.error = str(e)
            logger.error(
                "reconcile_transport_error",
                error=str(e),
                error_type=type(e).__name__,
            )

        return self.result()


async def _iterate(chunks: Union[AsyncIterable[Chunk], Iterable[Chunk]]):
    if hasattr(chunks, "__aiter__"):
        source = aiter(chunks)
        try:
            async for chunk in source:
                yield chunk
        finally:
            # Stopping early must release the underlying response too
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()
    else:
        for chunk in chunks:
            yield chunk
            # Yield control so a superseding turn can cancel between chunks
            await asyncio.sleep(0)


async def reconcile(
    chunks: Union[AsyncIterable[Chunk], Iterable[Chunk]],
    existing: Optional[Graph] = None,
    *,
    token: Optional[CancellationToken] = None,
    on_update: Optional[UpdateListener] = None,
) -> ReconcileResult:
    """Reconcile a chunked event stream against ``existing``.

    Args:
        chunks: Raw byte/str chunks of the event stream
        existing: Graph currently displayed (the merge base in update mode)
        token: Cancellation handle; once cancelled no further records are
            consumed
        on_update: Called with every materialized snapshot

    Returns:
        ReconcileResult with terminal status and the last snapshot
    """
    reconciler = GraphReconciler(existing, token=token, on_update=on_update)
    return await reconciler.consume(chunks)
