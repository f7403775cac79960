"""Layout engine - centered-spine layout for process maps.

Pipeline per call:
1. Drop loop-back edges from the leveling adjacency
2. Split the remaining graph into islands (union-find)
3. Assign levels inside each island
4. Plan coordinates per island and pack islands left to right

The engine is a pure function of its inputs. It never raises on graph
shape: dangling edges are ignored, rootless islands fall back to their
first node, and an empty graph yields an empty result.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from flowmap.layout.components import find_islands
from flowmap.layout.levels import LevelingStrategy, assign_levels
from flowmap.layout.loopback import LoopBackPolicy, forward_edges
from flowmap.layout.planner import IslandPlan, TraceSink
from flowmap.models.graph import Edge, Node, Position


class LayoutParams(BaseModel):
    """Tunable layout parameters."""

    center_x: float = Field(300, alias="centerX", description="Spine x of the first island")
    vertical_gap: float = Field(
        60,
        alias="verticalGap",
        ge=0,
        description="Clearance between the tallest node of a level and the next level",
    )
    branch_offset: float = Field(
        200,
        alias="branchOffset",
        gt=0,
        description="Distance from the spine to each side of a two-way branch",
    )
    subgraph_gap: float = Field(
        150,
        alias="subgraphGap",
        ge=0,
        description="Horizontal gap between islands",
    )
    loop_back: LoopBackPolicy = Field(
        "positional",
        alias="loopBack",
        description="How backward edges are detected",
    )
    leveling: LevelingStrategy = Field(
        "longest_path",
        description="How node depth is assigned",
    )

    model_config = ConfigDict(populate_by_name=True)


def layout(
    nodes: list[Node],
    edges: list[Edge],
    params: Optional[LayoutParams] = None,
    *,
    trace: Optional[TraceSink] = None,
) -> list[Node]:
    """Assign positions to every node.

    Args:
        nodes: Nodes to place; their current positions are only consulted
            by the positional loop-back policy
        edges: Connections; loop-backs and dangling edges are tolerated
        params: Layout parameters (defaults when omitted)
        trace: Optional sink receiving ``(event, fields)`` diagnostics

    Returns:
        Copies of ``nodes`` in input order with ``position`` replaced. All
        other fields are untouched.
    """
    params = params or LayoutParams()
    if not nodes:
        return []

    node_ids = list(dict.fromkeys(node.id for node in nodes))
    node_types = {node.id: node.type for node in nodes}

    links = [
        (edge.source, edge.target)
        for edge in forward_edges(nodes, edges, params.loop_back)
    ]

    positions: dict[str, Position] = {}
    running_edge: Optional[float] = None

    for island in find_islands(node_ids, links):
        members = set(island)
        island_links = [link for link in links if link[0] in members]
        levels, graph = assign_levels(island, island_links, params.leveling)

        plan = IslandPlan(
            graph,
            levels,
            node_types,
            vertical_gap=params.vertical_gap,
            branch_offset=params.branch_offset,
        )

        if running_edge is None:
            spine = params.center_x
        else:
            spine = running_edge + params.subgraph_gap / 2 + plan.width / 2
        running_edge = spine + plan.width / 2 + params.subgraph_gap / 2

        if trace:
            trace(
                "island_planned",
                {"size": len(island), "spine": spine, "width": plan.width},
            )

        positions.update(plan.place(spine, trace))

    return [node.model_copy(update={"position": positions[node.id]}) for node in nodes]
