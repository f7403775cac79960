"""Graph reconciliation engine for streamed graph updates."""
from flowmap.stream.events import classify, encode_event
from flowmap.stream.framing import RecordFramer
from flowmap.stream.merge import merge_nodes
from flowmap.stream.reconciler import (
    CancellationToken,
    GraphReconciler,
    ReconcileResult,
    ReconciliationState,
    StreamStatus,
    materialize,
    reconcile,
)
from flowmap.stream.turns import ConversationTurns, Turn

__all__ = [
    "classify",
    "encode_event",
    "RecordFramer",
    "merge_nodes",
    "CancellationToken",
    "GraphReconciler",
    "ReconcileResult",
    "ReconciliationState",
    "StreamStatus",
    "materialize",
    "reconcile",
    "ConversationTurns",
    "Turn",
]
