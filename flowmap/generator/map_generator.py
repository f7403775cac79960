"""Map generator - turns a user request into a stream of graph events.

The generator asks the LLM for a graph update (create or update mode),
validates it, and replays it as the ordered event stream the
reconciliation engine consumes:

    mode -> node* -> remove_node* -> edges -> complete

Any failure becomes a single ``error`` event so the consumer always sees a
terminal record.
"""
from typing import AsyncIterator, Optional

import structlog
from pydantic import ValidationError

from flowmap.config import get_settings
from flowmap.generator.prompts import MAP_SYSTEM_PROMPT, build_user_message
from flowmap.layout.engine import LayoutParams, layout
from flowmap.llm.adapter import LLMAdapter, get_llm_adapter
from flowmap.models.graph import Edge, Graph, GraphUpdate, Node, decision_handles
from flowmap.stream.events import (
    CompleteEvent,
    EdgesEvent,
    ErrorEvent,
    ModeEvent,
    NodeEvent,
    RemoveNodeEvent,
    StreamEvent,
)

logger = structlog.get_logger()


class LLMResponseError(Exception):
    """The LLM reply could not be turned into a graph update."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


def assign_decision_handles(nodes: list[Node], edges: list[Edge]) -> list[Edge]:
    """Give decision exits without a source handle the next unused handle.

    Handles follow the canvas naming: ``left``/``right`` for two exits,
    ``output-N`` otherwise. Edges beyond the last handle are left as they are.
    """
    decisions = {node.id: node for node in nodes if node.is_decision}
    used: dict[str, set[str]] = {node_id: set() for node_id in decisions}
    for edge in edges:
        if edge.source in decisions and edge.source_handle:
            used[edge.source].add(edge.source_handle)

    assigned = []
    for edge in edges:
        if edge.source in decisions and not edge.source_handle:
            free = [
                handle for handle in decision_handles(decisions[edge.source].output_count)
                if handle not in used[edge.source]
            ]
            if free:
                used[edge.source].add(free[0])
                edge = edge.model_copy(update={"source_handle": free[0]})
        assigned.append(edge)
    return assigned


class MapGenerator:
    """Generates process-map updates from natural language."""

    def __init__(
        self,
        adapter: Optional[LLMAdapter] = None,
        layout_params: Optional[LayoutParams] = None,
        auto_layout: bool = True,
    ):
        """Initialize generator.

        Args:
            adapter: LLM adapter (configured default when omitted)
            layout_params: Parameters for laying out rebuilt graphs
            auto_layout: Lay out create-mode graphs before streaming them
        """
        self._adapter = adapter
        self.layout_params = layout_params
        self.auto_layout = auto_layout

    @property
    def llm(self) -> LLMAdapter:
        if self._adapter is None:
            self._adapter = get_llm_adapter()
        return self._adapter

    async def propose(
        self,
        prompt: str,
        current_graph: Graph,
        selected_node_ids: Optional[list[str]] = None,
    ) -> GraphUpdate:
        """Ask the LLM for a graph update.

        Raises:
            LLMResponseError: if the reply is not a valid graph update
        """
        settings = get_settings()
        selected_ids = set(selected_node_ids or [])
        selected = [node.to_wire() for node in current_graph.nodes if node.id in selected_ids]

        logger.info(
            "map_generate_start",
            prompt_length=len(prompt),
            current_nodes=len(current_graph.nodes),
            selected=len(selected),
        )

        response = await self.llm.generate_json(
            system_prompt=MAP_SYSTEM_PROMPT,
            user_message=build_user_message(prompt, current_graph.to_wire(), selected),
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )

        content = response.content
        if not isinstance(content, dict) or "error" in content:
            raise LLMResponseError("LLM did not return a graph object", raw=response.raw_content[:500])

        try:
            update = GraphUpdate.model_validate(content)
        except ValidationError as e:
            raise LLMResponseError(
                f"Invalid graph update: {e.error_count()} validation errors",
                raw=response.raw_content[:500],
            ) from e

        known_nodes = update.nodes if update.mode == "create" else [*current_graph.nodes, *update.nodes]
        update = update.model_copy(update={"edges": assign_decision_handles(known_nodes, update.edges)})

        if update.mode == "create" and self.auto_layout:
            params = self.layout_params or LayoutParams(**settings.layout_defaults())
            # Generated nodes all sit at the origin, so prior positions say nothing about loops
            params = params.model_copy(update={"loop_back": "topological"})
            update = update.model_copy(update={"nodes": layout(update.nodes, update.edges, params)})

        logger.info(
            "map_generate_complete",
            mode=update.mode,
            nodes=len(update.nodes),
            edges=len(update.edges),
            removed=len(update.removed_node_ids),
        )
        return update

    async def stream_events(
        self,
        prompt: str,
        current_graph: Graph,
        selected_node_ids: Optional[list[str]] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Yield the update as reconciliation events."""
        try:
            update = await self.propose(prompt, current_graph, selected_node_ids)
        except Exception as e:
            logger.error("map_generate_error", error=str(e), error_type=type(e).__name__)
            yield ErrorEvent(data=f"Failed to generate process map: {e}")
            return

        yield ModeEvent(data=update.mode)
        for node in update.nodes:
            yield NodeEvent(data=node)
        for node_id in update.removed_node_ids:
            yield RemoveNodeEvent(data=node_id)
        yield EdgesEvent(data=update.edges)
        yield CompleteEvent()
