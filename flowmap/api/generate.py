"""Generation API endpoint - streams graph events as server-sent events."""
from typing import AsyncIterator

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from flowmap.generator.map_generator import MapGenerator
from flowmap.models.graph import Graph
from flowmap.stream.events import encode_event

logger = structlog.get_logger()

router = APIRouter()


class GenerateMapRequest(BaseModel):
    """Request body for map generation."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(
        ...,
        description="Natural language description of the process or change",
        min_length=1,
        max_length=5000,
    )
    current_graph: Graph = Field(
        default_factory=Graph,
        alias="currentGraph",
        description="Graph currently on the canvas",
    )
    selected_node_ids: list[str] = Field(
        default_factory=list,
        alias="selectedNodeIds",
        description="Nodes the user has selected",
    )


def get_generator() -> MapGenerator:
    return MapGenerator()


async def event_frames(generator: MapGenerator, request: GenerateMapRequest) -> AsyncIterator[str]:
    async for event in generator.stream_events(
        request.prompt,
        request.current_graph,
        request.selected_node_ids,
    ):
        yield encode_event(event)


@router.post("/generate-map")
async def generate_map(
    request: GenerateMapRequest,
    generator: MapGenerator = Depends(get_generator),
) -> StreamingResponse:
    """
    Generate or modify a process map from natural language.

    Streams one ``data:`` frame per event: ``mode``, each ``node``, each
    ``remove_node``, ``edges``, then ``complete`` (or a single ``error``).
    """
    logger.info(
        "generate_map_request",
        prompt_length=len(request.prompt),
        current_nodes=len(request.current_graph.nodes),
        selected=len(request.selected_node_ids),
    )

    return StreamingResponse(
        event_frames(generator, request),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
