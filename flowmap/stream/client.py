"""HTTP client for streamed map generation.

Posts a generation request to ``/api/generate-map`` and feeds the
response bytes into a reconciliation turn, so callers see a materialized
graph after every event while bytes are still arriving.
"""
from typing import AsyncIterator, Optional

import httpx
import structlog

from flowmap.config import get_settings
from flowmap.models.graph import Graph
from flowmap.stream.reconciler import ReconcileResult, UpdateListener
from flowmap.stream.turns import ConversationTurns, Turn

logger = structlog.get_logger()


class GraphStreamError(Exception):
    """Exception for generation endpoint errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class GraphStreamClient:
    """Client for the streaming generation endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.stream_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.stream_timeout
        self.transport = transport
        self.turns = ConversationTurns()

    async def stream_chunks(
        self,
        prompt: str,
        current_graph: Graph,
        selected_node_ids: Optional[list[str]] = None,
    ) -> AsyncIterator[bytes]:
        """Yield raw response chunks of one generation request."""
        body = {
            "prompt": prompt,
            "currentGraph": current_graph.to_wire(),
            "selectedNodeIds": selected_node_ids or [],
        }

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            async with client.stream("POST", "/api/generate-map", json=body) as response:
                logger.debug("generate_map_response", status_code=response.status_code)

                if response.status_code >= 400:
                    error_body = (await response.aread()).decode("utf-8", errors="replace")
                    raise GraphStreamError(
                        f"Generation failed: {response.status_code}",
                        status_code=response.status_code,
                        response_body=error_body,
                    )

                async for chunk in response.aiter_bytes():
                    yield chunk

    async def start(
        self,
        prompt: str,
        current_graph: Graph,
        selected_node_ids: Optional[list[str]] = None,
        on_update: Optional[UpdateListener] = None,
    ) -> Turn:
        """Start a new turn, cancelling the one still running."""
        chunks = self.stream_chunks(prompt, current_graph, selected_node_ids)
        return await self.turns.start(chunks, current_graph, on_update=on_update)

    async def generate(
        self,
        prompt: str,
        current_graph: Graph,
        selected_node_ids: Optional[list[str]] = None,
        on_update: Optional[UpdateListener] = None,
    ) -> ReconcileResult:
        """Run one turn to its end and return the result."""
        turn = await self.start(prompt, current_graph, selected_node_ids, on_update)
        result = await turn.wait()

        logger.info(
            "generate_map_finished",
            status=result.status.value,
            nodes=len(result.graph.nodes),
            edges=len(result.graph.edges),
            error=result.error,
        )
        return result
