"""Tests for conversation turns and the streaming HTTP client."""
import asyncio
import json

import httpx
import pytest

from flowmap.models.graph import Graph, Node
from flowmap.stream.client import GraphStreamClient
from flowmap.stream.reconciler import StreamStatus
from flowmap.stream.turns import ConversationTurns


def frame(record: dict) -> str:
    return f"data: {json.dumps(record)}\n\n"


def mode(value):
    return frame({"type": "mode", "data": value})


def node_frame(node_id):
    return frame({"type": "node", "data": {"id": node_id, "data": {"label": node_id}}})


COMPLETE = frame({"type": "complete"})


@pytest.fixture
def existing():
    return Graph(nodes=[Node(id="a", data={"label": "A"})])


class TestConversationTurns:
    """Only one reconciliation turn runs at a time."""

    async def test_new_turn_supersedes_running_turn(self, existing):
        reached = asyncio.Event()
        gate = asyncio.Event()
        late_updates = []

        async def slow_stream():
            yield mode("create")
            yield node_frame("first")
            reached.set()
            await gate.wait()
            yield node_frame("never")
            yield COMPLETE

        turns = ConversationTurns()
        first = await turns.start(slow_stream(), existing, on_update=late_updates.append)
        await reached.wait()

        second = await turns.start([mode("create"), node_frame("second"), COMPLETE], existing)
        gate.set()

        first_result = await first.wait()
        second_result = await second.wait()

        assert first_result.status == StreamStatus.CANCELLED
        assert [n.id for n in first_result.graph.nodes] == ["first"]
        assert first.token.cancelled
        assert first.token.reason == "superseded"
        assert len(late_updates) == 2

        assert second_result.status == StreamStatus.COMPLETED
        assert [n.id for n in second_result.graph.nodes] == ["second"]
        assert turns.active is second
        assert second.number == 2

    async def test_cancel_before_first_step(self, existing):
        turns = ConversationTurns()
        turn = await turns.start([mode("update"), node_frame("b"), COMPLETE], existing)

        result = await turns.cancel_active()

        assert result.status == StreamStatus.CANCELLED
        assert result.graph == existing
        assert turn.task.done()

    async def test_cancel_finished_turn_keeps_result(self, existing):
        turns = ConversationTurns()
        turn = await turns.start([mode("update"), node_frame("b"), COMPLETE], existing)
        await turn.wait()

        result = await turns.cancel_active()

        assert result.status == StreamStatus.COMPLETED
        assert [n.id for n in result.graph.nodes] == ["a", "b"]

    async def test_cancel_without_active_turn(self):
        assert await ConversationTurns().cancel_active() is None


class TestGraphStreamClient:
    """HTTP transport feeding a reconciliation turn."""

    async def test_generate_reconciles_response(self, existing):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            body = mode("update") + node_frame("b") + COMPLETE
            return httpx.Response(200, content=body.encode("utf-8"), headers={"content-type": "text/event-stream"})

        client = GraphStreamClient(base_url="http://flowmap.test", transport=httpx.MockTransport(handler))
        result = await client.generate("add a review step", existing, ["a"])

        assert captured["path"] == "/api/generate-map"
        assert captured["body"]["prompt"] == "add a review step"
        assert captured["body"]["selectedNodeIds"] == ["a"]
        assert captured["body"]["currentGraph"]["nodes"][0]["id"] == "a"

        assert result.completed
        assert [n.id for n in result.graph.nodes] == ["a", "b"]

    async def test_http_error_ends_turn_with_error(self, existing):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"detail": "boom"})

        client = GraphStreamClient(base_url="http://flowmap.test", transport=httpx.MockTransport(handler))
        result = await client.generate("anything", existing)

        assert result.status == StreamStatus.ERROR
        assert result.error == "Generation failed: 500"
        assert result.graph == existing
