"""Event classifier for graph-mutation streams.

Each framed record is one of:

    {"type": "mode", "data": "create" | "update"}
    {"type": "node", "data": <Node>}
    {"type": "remove_node", "data": <node id>}
    {"type": "edges", "data": [<Edge>, ...]}
    {"type": "complete"}
    {"type": "error", "data": <message>}

``classify`` turns a decoded record into a typed event, or None when the
record is malformed so the caller can skip it.
"""
import json
from typing import Annotated, Any, Literal, Optional, Union

import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator, model_validator

from flowmap.models.graph import Edge, Node

logger = structlog.get_logger()


class ModeEvent(BaseModel):
    """Selects the reconciliation policy and resets accumulated state."""

    type: Literal["mode"] = "mode"
    data: Literal["create", "update"]


class NodeEvent(BaseModel):
    """Upserts a node by id."""

    type: Literal["node"] = "node"
    data: Node


class RemoveNodeEvent(BaseModel):
    """Removes a node by id."""

    type: Literal["remove_node"] = "remove_node"
    data: str = Field(..., min_length=1)


class EdgesEvent(BaseModel):
    """Replaces the full edge set."""

    type: Literal["edges"] = "edges"
    data: list[Edge]

    @field_validator("data", mode="before")
    @classmethod
    def normalize_markers(cls, v):
        """Lower-case marker types (``ArrowClosed`` -> ``arrowclosed``)."""
        if not isinstance(v, list):
            return v
        normalized = []
        for edge in v:
            marker = edge.get("markerEnd") if isinstance(edge, dict) else None
            if isinstance(marker, dict) and isinstance(marker.get("type"), str):
                edge = {**edge, "markerEnd": {**marker, "type": marker["type"].lower()}}
            normalized.append(edge)
        return normalized


class CompleteEvent(BaseModel):
    """Normal end of stream."""

    type: Literal["complete"] = "complete"
    data: Any = None


class ErrorEvent(BaseModel):
    """Upstream failure; ends the stream."""

    type: Literal["error"] = "error"
    data: str = "Unknown error"

    @model_validator(mode="before")
    @classmethod
    def accept_message_key(cls, values):
        # Some producers send {"type": "error", "message": ...}
        if isinstance(values, dict) and "data" not in values and "message" in values:
            return {**values, "data": values["message"]}
        return values


StreamEvent = Annotated[
    Union[ModeEvent, NodeEvent, RemoveNodeEvent, EdgesEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(StreamEvent)


def classify(record: Any) -> Optional[StreamEvent]:
    """Map a decoded record to a typed event, or None if it is malformed."""
    if not isinstance(record, dict):
        logger.warning("stream_record_not_object", record_type=type(record).__name__)
        return None

    try:
        return _event_adapter.validate_python(record)
    except ValidationError as e:
        logger.warning(
            "stream_record_invalid",
            event_type=record.get("type"),
            errors=e.error_count(),
        )
        return None


def event_payload(event: StreamEvent) -> dict:
    """Wire form of an event."""
    payload: dict = {"type": event.type}
    if isinstance(event, NodeEvent):
        payload["data"] = event.data.to_wire()
    elif isinstance(event, EdgesEvent):
        payload["data"] = [edge.to_wire() for edge in event.data]
    elif event.data is not None:
        payload["data"] = event.data
    return payload


def encode_event(event: StreamEvent) -> str:
    """Render an event as one server-sent-events ``data:`` frame."""
    return f"data: {json.dumps(event_payload(event))}\n\n"
