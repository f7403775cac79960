"""Persistence of named process maps.

A map row stores the graph as JSON columns:

    id TEXT PRIMARY KEY, name TEXT, nodes JSONB, edges JSONB,
    created_at TIMESTAMPTZ, updated_at TIMESTAMPTZ
"""
import time
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field

from flowmap.config import get_settings
from flowmap.db.supabase import SupabaseClient, get_supabase_client
from flowmap.models.graph import Edge, Graph, Node

logger = structlog.get_logger()


class MapStoreError(Exception):
    """Raised when the map store is unavailable or a write fails."""


class MapSummary(BaseModel):
    """Listing entry for a saved map."""

    id: str
    name: str
    node_count: int = Field(0, serialization_alias="nodeCount")
    created_at: str
    updated_at: str


class SavedMap(BaseModel):
    """A saved map with its full graph."""

    id: str
    name: str
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    created_at: str
    updated_at: str

    @property
    def graph(self) -> Graph:
        return Graph(nodes=self.nodes, edges=self.edges)


def generate_map_id() -> str:
    return f"map_{int(time.time() * 1000)}_{uuid4().hex[:7]}"


class MapStore:
    """CRUD for saved maps on Supabase."""

    def __init__(self, client: Optional[SupabaseClient] = None, table: Optional[str] = None):
        self._client = client
        self.table = table or get_settings().maps_table

    @property
    def client(self) -> SupabaseClient:
        if self._client is None:
            self._client = get_supabase_client()
            if self._client is None:
                raise MapStoreError("Map storage is not configured")
        return self._client

    async def _run(self, operation: str, call):
        """Await a table call, reporting client failures as MapStoreError."""
        try:
            return await call
        except Exception as e:
            raise MapStoreError(f"Map {operation} failed: {e}") from e

    async def list_maps(self) -> list[MapSummary]:
        """All maps, most recently updated first."""
        rows = await self._run(
            "list",
            self.client.select(
                self.table,
                columns="id, name, nodes, created_at, updated_at",
                order_by="updated_at",
                descending=True,
            ),
        )
        return [
            MapSummary(
                id=row["id"],
                name=row["name"],
                node_count=len(row.get("nodes") or []),
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    async def get_map(self, map_id: str) -> Optional[SavedMap]:
        rows = await self._run("lookup", self.client.select(self.table, filters={"id": map_id}, limit=1))
        return SavedMap.model_validate(rows[0]) if rows else None

    async def get_most_recent(self) -> Optional[SavedMap]:
        """The most recently updated map, for auto-load on startup."""
        rows = await self._run(
            "lookup",
            self.client.select(self.table, order_by="updated_at", descending=True, limit=1),
        )
        return SavedMap.model_validate(rows[0]) if rows else None

    async def save_map(self, graph: Graph, name: str, map_id: Optional[str] = None) -> SavedMap:
        """Insert a new map, or update the map with ``map_id`` if it exists."""
        now = datetime.now(timezone.utc).isoformat()
        payload = {
            "name": name,
            "nodes": [node.to_wire() for node in graph.nodes],
            "edges": [edge.to_wire() for edge in graph.edges],
            "updated_at": now,
        }

        existing = await self.get_map(map_id) if map_id else None
        if existing:
            await self._run("update", self.client.update(self.table, payload, filters={"id": map_id}))
            logger.info("map_updated", map_id=map_id, nodes=len(graph.nodes))
        else:
            map_id = map_id or generate_map_id()
            await self._run("insert", self.client.insert(self.table, {**payload, "id": map_id, "created_at": now}))
            logger.info("map_created", map_id=map_id, nodes=len(graph.nodes))

        saved = await self.get_map(map_id)
        if saved is None:
            raise MapStoreError(f"Failed to save map: {map_id}")
        return saved

    async def delete_map(self, map_id: str) -> bool:
        deleted = await self._run("delete", self.client.delete(self.table, filters={"id": map_id}))
        logger.info("map_deleted", map_id=map_id, found=bool(deleted))
        return bool(deleted)
