"""Tests for the session-scoped event bus and the client session."""
from __future__ import annotations

import logging

from wagerloop.client import AuthSession, EventBus
from wagerloop.client.events import FOLLOW_CHANGED, MEMBERSHIP_CHANGED


def test_subscribers_receive_only_their_topic():
    bus = EventBus()
    follows: list[object] = []
    memberships: list[object] = []
    bus.subscribe(FOLLOW_CHANGED, follows.append)
    bus.subscribe(MEMBERSHIP_CHANGED, memberships.append)

    delivered = bus.publish(FOLLOW_CHANGED, {"user_id": "u1"})

    assert delivered == 1
    assert follows == [{"user_id": "u1"}]
    assert memberships == []


def test_unsubscribe_handle_stops_delivery():
    bus = EventBus()
    received: list[object] = []
    unsubscribe = bus.subscribe(FOLLOW_CHANGED, received.append)

    unsubscribe()
    unsubscribe()
    bus.publish(FOLLOW_CHANGED, "ignored")

    assert received == []
    assert bus.subscriber_count(FOLLOW_CHANGED) == 0


def test_failing_subscriber_does_not_block_others(caplog):
    bus = EventBus()
    received: list[object] = []

    def broken(_payload: object) -> None:
        raise RuntimeError("boom")

    bus.subscribe(FOLLOW_CHANGED, broken)
    bus.subscribe(FOLLOW_CHANGED, received.append)

    with caplog.at_level(logging.ERROR, logger="wagerloop.client.events"):
        delivered = bus.publish(FOLLOW_CHANGED, 1)

    assert delivered == 1
    assert received == [1]
    assert "Event handler for follow.changed failed" in caplog.text


def test_closed_bus_ignores_publish_and_subscribe():
    bus = EventBus()
    received: list[object] = []
    bus.subscribe(FOLLOW_CHANGED, received.append)

    bus.close()
    late: list[object] = []
    bus.subscribe(FOLLOW_CHANGED, late.append)

    assert bus.publish(FOLLOW_CHANGED, 1) == 0
    assert received == []
    assert late == []


def test_logout_closes_bus_and_sign_in_starts_a_new_one():
    session = AuthSession()
    session.sign_in("u1", "token-1")
    first_bus = session.events

    session.logout()

    assert first_bus.closed is True
    assert session.actor_id is None
    assert session.is_authenticated is False

    session.sign_in("u2", "token-2")
    assert session.events is not first_bus
    assert session.events.closed is False
    assert session.actor_id == "u2"
