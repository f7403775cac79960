"""Saved map API endpoints."""
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from flowmap.db.maps import MapStore, MapStoreError, SavedMap
from flowmap.models.graph import Edge, Graph, Node

logger = structlog.get_logger()

router = APIRouter()


class SaveMapRequest(BaseModel):
    """Request to save (create or overwrite) a map."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, description="Existing map ID to overwrite")
    name: str = Field("Untitled Map", min_length=1, max_length=200)
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)


def get_map_store() -> MapStore:
    return MapStore()


def _map_payload(saved: SavedMap) -> dict:
    return {
        "id": saved.id,
        "name": saved.name,
        "nodes": [node.to_wire() for node in saved.nodes],
        "edges": [edge.to_wire() for edge in saved.edges],
        "created_at": saved.created_at,
        "updated_at": saved.updated_at,
    }


@router.get("/maps")
async def list_maps(store: MapStore = Depends(get_map_store)) -> dict:
    """List saved maps, most recently updated first."""
    try:
        maps = await store.list_maps()
    except MapStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"maps": [summary.model_dump(by_alias=True) for summary in maps]}


@router.get("/maps/recent")
async def get_recent_map(store: MapStore = Depends(get_map_store)) -> dict:
    """The most recently updated map, or null."""
    try:
        saved = await store.get_most_recent()
    except MapStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"map": _map_payload(saved) if saved else None}


@router.get("/maps/{map_id}")
async def get_map(map_id: str, store: MapStore = Depends(get_map_store)) -> dict:
    try:
        saved = await store.get_map(map_id)
    except MapStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if saved is None:
        raise HTTPException(status_code=404, detail=f"Map not found: {map_id}")
    return {"map": _map_payload(saved)}


@router.post("/maps")
async def save_map(request: SaveMapRequest, store: MapStore = Depends(get_map_store)) -> dict:
    """Save a new map or overwrite an existing one."""
    try:
        saved = await store.save_map(
            Graph(nodes=request.nodes, edges=request.edges),
            name=request.name,
            map_id=request.id,
        )
    except MapStoreError as e:
        logger.error("map_save_failed", map_id=request.id, error=str(e))
        raise HTTPException(status_code=503, detail=str(e))
    return {"map": _map_payload(saved)}


@router.delete("/maps/{map_id}")
async def delete_map(map_id: str, store: MapStore = Depends(get_map_store)) -> dict:
    try:
        deleted = await store.delete_map(map_id)
    except MapStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Map not found: {map_id}")
    return {"success": True}
