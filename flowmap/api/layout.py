"""Layout API endpoint."""
from typing import Optional

import structlog
from fastapi import APIRouter
from pydantic import BaseModel, Field

from flowmap.config import get_settings
from flowmap.layout.engine import LayoutParams, layout
from flowmap.models.graph import Edge, Graph, Node

logger = structlog.get_logger()

router = APIRouter()


class LayoutRequest(BaseModel):
    """Request body for auto-layout."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    params: Optional[LayoutParams] = Field(
        None,
        description="Layout parameters; configured defaults when omitted",
    )


@router.post("/layout")
async def layout_map(request: LayoutRequest) -> dict:
    """Assign positions to every node; edges are returned unchanged."""
    params = request.params or LayoutParams(**get_settings().layout_defaults())

    nodes = layout(request.nodes, request.edges, params)

    logger.info(
        "layout_complete",
        nodes=len(nodes),
        edges=len(request.edges),
        leveling=params.leveling,
        loop_back=params.loop_back,
    )

    return Graph(nodes=nodes, edges=request.edges).to_wire()
