import types
import unittest
from pathlib import Path

from fastapi import HTTPException, WebSocketDisconnect

from mdgraph.graph.engine import LinkGraphEngine
from mdgraph.models import GraphNode, GraphSnapshot
from mdgraph.routers import graph as graph_router


class _FakeWebSocket:
    def __init__(self, app, incoming: int = 0) -> None:
        self.app = app
        self.accepted = False
        self.closed_code = None
        self.sent: list[dict] = []
        self._incoming = incoming

    async def accept(self) -> None:
        self.accepted = True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_code = code

    async def send_json(self, data: dict) -> None:
        self.sent.append(data)

    async def receive_text(self) -> str:
        if self._incoming > 0:
            self._incoming -= 1
            return "ping"
        raise WebSocketDisconnect(code=1000)


class GraphRouterTests(unittest.IsolatedAsyncioTestCase):
    def _app(self, engine):
        return types.SimpleNamespace(state=types.SimpleNamespace(engine=engine))

    async def asyncSetUp(self) -> None:
        self.engine = LinkGraphEngine(Path("/vault"))
        await self.engine.broadcaster.publish(GraphSnapshot(nodes=[GraphNode(id="a.md")], palette=["#fff"]))

    async def test_get_graph_returns_current_snapshot(self) -> None:
        request = types.SimpleNamespace(app=self._app(self.engine))

        snapshot = await graph_router.get_graph(request)

        self.assertEqual([node.id for node in snapshot.nodes], ["a.md"])

    async def test_get_graph_without_engine_is_unavailable(self) -> None:
        request = types.SimpleNamespace(app=self._app(None))

        with self.assertRaises(HTTPException) as ctx:
            await graph_router.get_graph(request)

        self.assertEqual(ctx.exception.status_code, 503)

    async def test_websocket_sends_current_snapshot_on_connect(self) -> None:
        websocket = _FakeWebSocket(self._app(self.engine), incoming=2)

        await graph_router.graph_updates(websocket)

        self.assertTrue(websocket.accepted)
        self.assertEqual(len(websocket.sent), 1)
        message = websocket.sent[0]
        self.assertEqual(message["type"], "graph-update")
        self.assertEqual(message["data"]["nodes"], [{"id": "a.md"}])
        self.assertEqual(message["data"]["palette"], ["#fff"])
        # Subscription is released once the client goes away.
        self.assertEqual(self.engine.broadcaster.count(), 0)

    async def test_websocket_without_engine_is_closed(self) -> None:
        websocket = _FakeWebSocket(self._app(None))

        await graph_router.graph_updates(websocket)

        self.assertFalse(websocket.accepted)
        self.assertEqual(websocket.closed_code, 1011)

    def test_graph_update_message_shape(self) -> None:
        message = graph_router.graph_update_message(GraphSnapshot())
        self.assertEqual(
            message,
            {"type": "graph-update", "data": {"nodes": [], "links": [], "palette": [], "config": {}}},
        )


if __name__ == "__main__":
    unittest.main()
