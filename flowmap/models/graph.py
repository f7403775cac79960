"""Process graph models shared by the layout and reconciliation engines.

The wire format is the node/edge JSON a flow canvas renders directly:
camelCase keys, node ``type`` selecting the shape, presentation fields
under ``data``. Models accept camelCase or snake_case on input and keep
any extra keys so presentation data round-trips unchanged.
"""
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeType(str, Enum):
    """Node shape categories as named on the wire."""
    DEFAULT = "default"  # process step
    OVAL = "oval"  # terminator (start/end)
    DIAMOND = "diamond"  # decision


class NodeStatus(str, Enum):
    """Status tag shown on a node."""
    NORMAL = "normal"
    BOTTLENECK = "bottleneck"
    ISSUE = "issue"
    COMPLETE = "complete"


class GraphModel(BaseModel):
    """Base for wire models: alias-aware, extra keys preserved."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> dict:
        """Serialize with camelCase keys, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Position(BaseModel):
    """Top-left position of a node."""

    x: float = Field(0, description="X coordinate")
    y: float = Field(0, description="Y coordinate")


class NodeData(GraphModel):
    """Presentation data carried by a node."""

    label: str = Field("", description="Display label")
    description: Optional[str] = Field(None, description="Longer description")
    status: Optional[NodeStatus] = Field(None, description="Status tag")
    color: Optional[str] = Field(None, description="Hex color (#RRGGBB)")
    issue_details: Optional[str] = Field(
        None,
        alias="issueDetails",
        description="Details shown for issue/bottleneck nodes",
    )
    output_count: Optional[int] = Field(
        None,
        alias="outputCount",
        description="Number of exits for decision nodes",
    )


class Node(GraphModel):
    """A flow-diagram node."""

    id: str = Field(..., description="Stable caller-assigned identifier")
    type: str = Field(NodeType.DEFAULT.value, description="Shape category")
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)

    @property
    def is_decision(self) -> bool:
        return self.type == NodeType.DIAMOND.value

    @property
    def output_count(self) -> int:
        """Exit count for decision nodes; degrades to 2 when absent or 1."""
        if not self.is_decision:
            return 1
        count = self.data.output_count or 2
        return max(count, 2)


class Edge(GraphModel):
    """A directed connection between two nodes."""

    id: str = Field(..., description="Edge identifier")
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")
    source_handle: Optional[str] = Field(
        None,
        alias="sourceHandle",
        description="Exit point on the source (decision outputs)",
    )
    target_handle: Optional[str] = Field(None, alias="targetHandle")
    type: Optional[str] = Field(None, description="Edge rendering type")
    label: Optional[str] = Field(None, description="Display label")


class Graph(GraphModel):
    """A complete node/edge collection."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class GraphUpdate(GraphModel):
    """Graph change proposed by the generator.

    ``create`` replaces the whole graph; ``update`` patches it by id.
    """

    mode: Literal["create", "update"] = Field(..., description="Apply policy")
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    removed_node_ids: list[str] = Field(
        default_factory=list,
        alias="removedNodeIds",
        description="Node IDs to delete (update mode)",
    )


def decision_handles(output_count: int) -> list[str]:
    """Canonical source handles for a decision with ``output_count`` exits."""
    if output_count <= 2:
        return ["left", "right"]
    return [f"output-{i}" for i in range(output_count)]
