"""In-memory WebSocket fanout for canonical snapshots and notifications."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable

from fastapi import WebSocket

logger = logging.getLogger(__name__)

FEED_CHANNEL = "feed"


class RealtimeHub:
    """Tracks WebSocket connections per channel and broadcasts JSON payloads.

    The feed hub uses a single shared channel; the notification hub uses one
    channel per user id.
    """

    def __init__(self) -> None:
        self._channels: dict[str, set[WebSocket]] = {}
        self._connections: dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()

    async def connect(self, channel: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._channels.setdefault(channel, set()).add(websocket)
            self._connections[websocket] = channel

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            channel = self._connections.pop(websocket, None)
            if channel is None:
                return
            group = self._channels.get(channel)
            if group is None:
                return
            group.discard(websocket)
            if not group:
                self._channels.pop(channel, None)

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    async def publish(self, channels: str | Iterable[str], payload: dict[str, Any]) -> None:
        if isinstance(channels, str):
            targets_ids = [channels]
        else:
            targets_ids = [channel for channel in channels if channel]
        if not targets_ids:
            return
        serialized = json.dumps(payload, default=str)
        async with self._lock:
            targets: list[WebSocket] = []
            for channel in targets_ids:
                targets.extend(self._channels.get(channel, ()))
        for ws in targets:
            try:
                await ws.send_text(serialized)
            except Exception:
                logger.warning("Dropping realtime socket after failed send")
                await self.disconnect(ws)


feed_hub = RealtimeHub()
notification_hub = RealtimeHub()


async def broadcast_feed_event(message: dict[str, Any]) -> None:
    """Best-effort broadcast of a canonical snapshot to every feed subscriber."""

    if not message:
        return
    try:
        await feed_hub.publish(FEED_CHANNEL, message)
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Failed to broadcast feed update")


__all__ = ["FEED_CHANNEL", "RealtimeHub", "feed_hub", "notification_hub", "broadcast_feed_event"]
