"""
Push channel from the diagram session to connected clients.

Events:
- `scene_updated`: the scene changed; clients refetch GET /api/diagram
- `load_progress`: `{loaded, total, percent}` while a diagram loads
"""
import asyncio
import json
import logging

from fastapi import WebSocket

from erd_core.models import LoadProgress


logger = logging.getLogger(__name__)

SCENE_UPDATED = "scene_updated"
LOAD_PROGRESS = "load_progress"


class WebSocketManager:
    """Registry of open client sockets; every event goes to all of them."""

    def __init__(self):
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
        logger.info("Client connected (%d open)", self.connection_count)

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._clients.discard(websocket)
        logger.info("Client disconnected (%d open)", self.connection_count)

    async def _deliver(self, websocket: WebSocket, text: str) -> bool:
        try:
            await websocket.send_text(text)
        except Exception as e:
            logger.debug("Dropping client after failed send: %s", e)
            return False
        return True

    async def broadcast(self, event_type: str, **fields):
        """Send `{"type": event_type, **fields}` to every client; drop dead ones."""
        async with self._lock:
            clients = list(self._clients)
        if not clients:
            return

        text = json.dumps({"type": event_type, **fields})
        delivered = await asyncio.gather(*(self._deliver(c, text) for c in clients))

        dead = {c for c, ok in zip(clients, delivered) if not ok}
        if dead:
            async with self._lock:
                self._clients -= dead

    async def notify_scene_updated(self, scope: dict | None = None):
        await self.broadcast(SCENE_UPDATED, scope=scope)

    async def notify_progress(self, progress: LoadProgress):
        await self.broadcast(
            LOAD_PROGRESS,
            loaded=progress.loaded,
            total=progress.total,
            percent=progress.percent,
        )


ws_manager = WebSocketManager()
