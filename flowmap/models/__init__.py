"""Pydantic models for the flowmap service."""
from flowmap.models.graph import (
    Edge,
    Graph,
    GraphUpdate,
    Node,
    NodeData,
    NodeStatus,
    NodeType,
    Position,
    decision_handles,
)

__all__ = [
    "Edge",
    "Graph",
    "GraphUpdate",
    "Node",
    "NodeData",
    "NodeStatus",
    "NodeType",
    "Position",
    "decision_handles",
]
