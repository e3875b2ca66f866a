"""Tests for folding pushed feed snapshots into displayed state."""
from __future__ import annotations

import asyncio
import json

import pytest
import websockets

from wagerloop.client import (
    AuthSession,
    Community,
    CommunityPost,
    FeedView,
    OptimisticMutationCoordinator,
    RealtimeSubscriber,
    RelationshipKind,
    RelationshipSnapshot,
    TextPost,
    UserProfile,
    parse_message,
)
from wagerloop.client.events import REALTIME_SNAPSHOT


class _UnusedStore:
    async def insert_relationship(self, subject_id, actor_id, kind):
        raise AssertionError("store must not be called")

    async def delete_relationship(self, subject_id, actor_id, kind):
        raise AssertionError("store must not be called")

    async def set_membership(self, community_id, actor_id, joined):
        raise AssertionError("store must not be called")


def _subscriber(*entities) -> tuple[RealtimeSubscriber, FeedView, AuthSession]:
    session = AuthSession()
    session.sign_in("me", "token")
    view = FeedView(entities)
    coordinator = OptimisticMutationCoordinator(_UnusedStore(), session, view)
    return RealtimeSubscriber(coordinator, url="ws://testserver/ws/feed"), view, session


def test_parse_post_engagement_yields_like_and_repost_counters():
    snapshots = parse_message(
        json.dumps({"type": "post_engagement_updated", "post_id": "p1", "like_count": 4, "repost_count": 2})
    )

    assert snapshots == [
        RelationshipSnapshot("p1", RelationshipKind.LIKE, None, 4),
        RelationshipSnapshot("p1", RelationshipKind.REPOST, None, 2),
    ]


@pytest.mark.parametrize(
    "message,expected",
    [
        (
            {"type": "community_post_engagement_updated", "post_id": "cp1", "community_id": "c1", "like_count": 3},
            RelationshipSnapshot("cp1", RelationshipKind.COMMUNITY_POST_LIKE, None, 3),
        ),
        (
            {"type": "community_membership_updated", "community_id": "c1", "member_count": 40},
            RelationshipSnapshot("c1", RelationshipKind.JOIN, None, 40),
        ),
        (
            {"type": "follow_stats_updated", "user_id": "u1", "followers_count": 9, "following_count": 1},
            RelationshipSnapshot("u1", RelationshipKind.FOLLOW, None, 9),
        ),
    ],
)
def test_parse_other_snapshot_types(message, expected):
    assert parse_message(json.dumps(message)) == [expected]


def test_unrelated_messages_are_ignored():
    assert parse_message('{"type": "pong"}') == []
    assert parse_message('{"type": "post_created", "post_id": "p9"}') == []


def test_counters_update_without_touching_viewer_flags():
    post = TextPost(id="p1", user_id="author", likes=1, is_liked=True)
    community = Community(id="c1", name="NBA Sharps", member_count=10)
    subscriber, view, _ = _subscriber(post, community)
    revision = view.revision

    applied = subscriber.handle_message(
        json.dumps({"type": "post_engagement_updated", "post_id": "p1", "like_count": 6, "repost_count": 0})
    )
    subscriber.handle_message(json.dumps({"type": "community_membership_updated", "community_id": "c1", "member_count": 11}))

    assert applied == 1
    assert (post.is_liked, post.likes, post.reposts) == (True, 6, 0)
    assert (community.is_joined, community.member_count) == (False, 11)
    assert view.revision == revision + 2


def test_snapshots_are_republished_on_the_bus():
    profile = UserProfile(id="u1", followers_count=2)
    subscriber, _, session = _subscriber(profile)
    received: list[RelationshipSnapshot] = []
    session.events.subscribe(REALTIME_SNAPSHOT, received.append)

    subscriber.handle_message(
        json.dumps({"type": "follow_stats_updated", "user_id": "u1", "followers_count": 3, "following_count": 0})
    )
    subscriber.handle_message(
        json.dumps({"type": "community_post_engagement_updated", "post_id": "elsewhere", "community_id": "c", "like_count": 1})
    )

    assert profile.followers_count == 3
    assert [snapshot.subject_id for snapshot in received] == ["u1", "elsewhere"]


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"type": "post_engagement_updated"}'])
def test_malformed_messages_are_skipped(raw):
    post = CommunityPost(id="cp1", community_id="c1", user_id="author", like_count=2)
    subscriber, _, _ = _subscriber(post)

    assert subscriber.handle_message(raw) == 0
    assert post.like_count == 2


def test_torn_down_view_is_not_updated():
    post = TextPost(id="p1", user_id="author", likes=1)
    subscriber, view, _ = _subscriber(post)
    view.teardown()

    subscriber.handle_message(
        json.dumps({"type": "post_engagement_updated", "post_id": "p1", "like_count": 5, "repost_count": 0})
    )

    assert post.likes == 1


def test_listen_applies_pushes_and_stops_on_a_quiet_socket():
    post = TextPost(id="p1", user_id="author", likes=1)
    subscriber, _, _ = _subscriber(post)
    greetings: list[str] = []

    async def feed(ws):
        greetings.append(await ws.recv())
        await ws.send(json.dumps({"type": "post_engagement_updated", "post_id": "p1", "like_count": 8, "repost_count": 0}))
        await ws.wait_closed()

    async def _until(condition):
        while not condition():
            await asyncio.sleep(0.01)

    async def scenario():
        async with websockets.serve(feed, "127.0.0.1", 0) as server:
            subscriber.url = f"ws://127.0.0.1:{server.sockets[0].getsockname()[1]}"
            stop = asyncio.Event()
            listening = asyncio.create_task(subscriber.listen(stop))
            await asyncio.wait_for(_until(lambda: post.likes == 8 or listening.done()), timeout=5)
            stop.set()
            await asyncio.wait_for(listening, timeout=5)

    asyncio.run(scenario())

    assert json.loads(greetings[0]) == {"type": "hello"}
    assert post.likes == 8
