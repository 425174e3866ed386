import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class RealtimeHub:
    """Fan-out of display events to every connected WebSocket client."""

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._revision = 0
        self._pending: set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket, snapshot: dict[str, Any] | None = None) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
        await websocket.send_text(
            json.dumps(
                {
                    "type": "hello",
                    "revision": self._revision,
                    "payload": snapshot or {},
                    "ts": datetime.now(timezone.utc).isoformat(),
                },
                default=str,
            )
        )

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)

    async def publish(self, event_type: str, payload: dict[str, Any] | None = None) -> int:
        self._revision += 1
        message = json.dumps(
            {
                "type": event_type,
                "revision": self._revision,
                "payload": payload or {},
                "ts": datetime.now(timezone.utc).isoformat(),
            },
            default=str,
        )
        async with self._lock:
            clients = list(self._clients)

        stale: list[WebSocket] = []
        for client in clients:
            try:
                await client.send_text(message)
            except Exception:
                stale.append(client)

        if stale:
            logger.debug(f"Dropping {len(stale)} stale realtime client(s)")
            async with self._lock:
                for client in stale:
                    self._clients.discard(client)
        return self._revision

    def publish_soon(self, event_type: str, payload: dict[str, Any] | None = None) -> None:
        """Publish from synchronous code running on the event loop.

        Outside a running loop there is nobody to deliver to, so the event
        is dropped.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.publish(event_type, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def client_count(self) -> int:
        return len(self._clients)


hub = RealtimeHub()
