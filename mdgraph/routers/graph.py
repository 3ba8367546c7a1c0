"""Graph snapshot API and live update WebSocket."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect

from mdgraph.graph.engine import LinkGraphEngine
from mdgraph.models import GraphSnapshot

logger = logging.getLogger("mdgraph.transport")

GRAPH_UPDATE = "graph-update"

graph_router = APIRouter(tags=["graph"])


def graph_update_message(snapshot: GraphSnapshot) -> dict[str, Any]:
    return {"type": GRAPH_UPDATE, "data": snapshot.model_dump(mode="json")}


def _get_engine(app: Any) -> LinkGraphEngine:
    engine = getattr(app.state, "engine", None)
    if not engine:
        raise HTTPException(status_code=503, detail="Graph engine not initialized")
    return engine


@graph_router.get("/api/graph", response_model=GraphSnapshot)
async def get_graph(request: Request) -> GraphSnapshot:
    """Return the most recently published snapshot."""
    return _get_engine(request.app).broadcaster.current


@graph_router.websocket("/ws")
async def graph_updates(websocket: WebSocket) -> None:
    """Push the current snapshot on connect, then every published change."""
    engine = getattr(websocket.app.state, "engine", None)
    if engine is None:
        await websocket.close(code=1011, reason="Graph engine not initialized")
        return

    await websocket.accept()

    async def send(snapshot: GraphSnapshot) -> None:
        await websocket.send_json(graph_update_message(snapshot))

    token = await engine.broadcaster.subscribe(send)
    logger.info(f"Subscriber {token} connected")
    try:
        # Inbound messages are not part of the protocol; read to detect disconnects.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error for subscriber {token}: {e}")
    finally:
        engine.broadcaster.unsubscribe(token)
        logger.info(f"Subscriber {token} disconnected")
