"""Consume the feed websocket and fold pushed snapshots into the displayed state."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import websockets

from ..config import get_client_settings
from .coordinator import OptimisticMutationCoordinator
from .entities import RelationshipKind, RelationshipSnapshot
from .events import REALTIME_SNAPSHOT

logger = logging.getLogger(__name__)


def _counter(message: dict[str, Any], key: str) -> int | None:
    value = message.get(key)
    return int(value) if value is not None else None


def parse_message(raw: str | bytes) -> list[RelationshipSnapshot]:
    """Turn one broadcast into snapshots; unknown message types yield nothing.

    Raises ``ValueError`` for payloads that are not JSON objects.
    """

    message = json.loads(raw)
    if not isinstance(message, dict):
        raise ValueError("Realtime message must be a JSON object")

    message_type = message.get("type")
    if message_type == "post_engagement_updated":
        post_id = str(message["post_id"])
        return [
            RelationshipSnapshot(post_id, RelationshipKind.LIKE, None, _counter(message, "like_count")),
            RelationshipSnapshot(post_id, RelationshipKind.REPOST, None, _counter(message, "repost_count")),
        ]
    if message_type == "community_post_engagement_updated":
        return [
            RelationshipSnapshot(
                str(message["post_id"]),
                RelationshipKind.COMMUNITY_POST_LIKE,
                None,
                _counter(message, "like_count"),
            )
        ]
    if message_type == "community_membership_updated":
        return [
            RelationshipSnapshot(
                str(message["community_id"]),
                RelationshipKind.JOIN,
                None,
                _counter(message, "member_count"),
            )
        ]
    if message_type == "follow_stats_updated":
        return [
            RelationshipSnapshot(
                str(message["user_id"]),
                RelationshipKind.FOLLOW,
                None,
                _counter(message, "followers_count"),
            )
        ]
    return []


class RealtimeSubscriber:
    """Applies pushed counters to the coordinator's view and republishes them."""

    def __init__(self, coordinator: OptimisticMutationCoordinator, *, url: str | None = None) -> None:
        self.coordinator = coordinator
        self.url = url or get_client_settings().realtime_url

    def handle_message(self, raw: str | bytes) -> int:
        """Apply one message; returns how many displayed entities changed."""

        try:
            snapshots = parse_message(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Skipping malformed realtime message: %r", raw)
            return 0

        applied = 0
        events = self.coordinator.session.events
        for snapshot in snapshots:
            if self.coordinator.apply_snapshot(snapshot):
                applied += 1
            events.publish(REALTIME_SNAPSHOT, snapshot)
        return applied

    async def listen(self, stop: asyncio.Event | None = None) -> None:
        """Read the feed socket until ``stop`` is set or the server closes it."""

        stop = stop or asyncio.Event()
        async with websockets.connect(self.url) as ws:
            await ws.send(json.dumps({"type": "hello"}))
            logger.info("Realtime feed connected to %s", self.url)
            stopped = asyncio.create_task(stop.wait())
            received: asyncio.Task | None = None
            try:
                while True:
                    received = asyncio.create_task(ws.recv())
                    done, _ = await asyncio.wait({received, stopped}, return_when=asyncio.FIRST_COMPLETED)
                    if stopped in done:
                        break
                    try:
                        raw = received.result()
                    except websockets.ConnectionClosed:
                        logger.info("Realtime feed at %s closed", self.url)
                        break
                    try:
                        self.handle_message(raw)
                    except Exception:
                        logger.exception("Realtime handler failed")
            finally:
                stopped.cancel()
                if received is not None:
                    received.cancel()


__all__ = ["RealtimeSubscriber", "parse_message"]
