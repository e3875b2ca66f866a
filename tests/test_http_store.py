"""Drive the HTTP relationship store and the coordinator against the in-process API."""
from __future__ import annotations

import asyncio
import os
from typing import Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_wagerloop.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from wagerloop.client import (  # noqa: E402
    AuthSession,
    Conflict,
    FeedView,
    HttpRelationshipStore,
    NetworkUnavailable,
    NotFound,
    OptimisticMutationCoordinator,
    RelationshipKind,
    Unauthorized,
)
from wagerloop.constants import CREATOR_CANNOT_LEAVE_DETAIL  # noqa: E402
from wagerloop.database import Base, SessionLocal, engine  # noqa: E402
from wagerloop.main import app  # noqa: E402


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
    yield


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


def _register(client: TestClient, username: str) -> AuthSession:
    response = client.post("/auth/register", json={"username": username, "password": "secret123"})
    assert response.status_code == 201, response.text
    data = response.json()
    session = AuthSession()
    session.sign_in(data["user_id"], data["access_token"])
    return session


def _headers(session: AuthSession) -> dict[str, str]:
    return {"Authorization": f"Bearer {session.access_token}"}


def _store(session: AuthSession) -> HttpRelationshipStore:
    return HttpRelationshipStore(session, base_url="http://testserver", transport=httpx.ASGITransport(app=app))


def test_like_flow_through_http_store(client: TestClient):
    author = _register(client, "author")
    fan = _register(client, "fan")
    other = _register(client, "other")
    post_id = client.post("/posts/", json={"content": "Parlay time"}, headers=_headers(author)).json()["id"]
    client.post(f"/posts/{post_id}/likes", headers=_headers(other))

    async def scenario():
        async with _store(fan) as store:
            feed = await store.fetch_feed()
            view = FeedView(feed)
            coordinator = OptimisticMutationCoordinator(store, fan, view)
            post = view.get(post_id)
            before = (post.is_liked, post.likes)
            liked = await coordinator.toggle(post, RelationshipKind.LIKE)
            reposted = await coordinator.toggle(post, RelationshipKind.REPOST)
            return before, liked, reposted, post

    before, liked, reposted, post = asyncio.run(scenario())

    assert before == (False, 1)
    assert (liked.ok, liked.state, liked.counter) == (True, True, 2)
    assert (reposted.ok, reposted.state, reposted.counter) == (True, True, 1)
    assert (post.is_liked, post.likes, post.is_reposted, post.reposts) == (True, 2, True, 1)


def test_membership_flow_uses_server_community(client: TestClient):
    creator = _register(client, "creator")
    fan = _register(client, "fan")
    community_id = client.post(
        "/communities/", json={"name": "Soccer Syndicate", "sport": "EPL"}, headers=_headers(creator)
    ).json()["id"]

    async def scenario():
        async with _store(fan) as store:
            view = FeedView(await store.fetch_communities())
            coordinator = OptimisticMutationCoordinator(store, fan, view)
            community = view.get(community_id)
            joined = await coordinator.join_or_leave(community)
            left = await coordinator.join_or_leave(community, confirm=lambda prompt: True)
            return joined, left, community

    joined, left, community = asyncio.run(scenario())

    assert (joined.ok, joined.state, joined.counter) == (True, True, 2)
    assert (left.ok, left.state, left.counter) == (True, False, 1)
    assert (community.is_joined, community.member_count) == (False, 1)


def test_creator_leave_is_a_conflict(client: TestClient):
    creator = _register(client, "creator")
    community_id = client.post(
        "/communities/", json={"name": "Soccer Syndicate"}, headers=_headers(creator)
    ).json()["id"]

    async def scenario():
        async with _store(creator) as store:
            view = FeedView(await store.fetch_communities())
            coordinator = OptimisticMutationCoordinator(store, creator, view)
            community = view.get(community_id)
            outcome = await coordinator.join_or_leave(community, confirm=lambda prompt: True)
            return outcome, community, view

    outcome, community, view = asyncio.run(scenario())

    assert isinstance(outcome.error, Conflict)
    assert outcome.error.message == CREATOR_CANNOT_LEAVE_DETAIL
    assert (community.is_joined, community.member_count) == (True, 1)
    assert view.notices[0].message == CREATOR_CANNOT_LEAVE_DETAIL


def test_follow_and_community_post_like(client: TestClient):
    tipster = _register(client, "tipster")
    fan = _register(client, "fan")
    community_id = client.post("/communities/", json={"name": "Hoops Hub"}, headers=_headers(tipster)).json()["id"]
    client.put(f"/communities/{community_id}/membership", json={"joined": True}, headers=_headers(fan))
    client.post(f"/communities/{community_id}/posts", json={"content": "Nuggets ML"}, headers=_headers(tipster))

    async def scenario():
        async with _store(fan) as store:
            profile = await store.fetch_profile(tipster.user_id, username="tipster")
            posts = await store.fetch_community_posts(community_id)
            coordinator = OptimisticMutationCoordinator(store, fan, FeedView([profile, *posts]))
            followed = await coordinator.toggle(profile, RelationshipKind.FOLLOW)
            liked = await coordinator.toggle(posts[0], RelationshipKind.COMMUNITY_POST_LIKE)
            unliked = await coordinator.toggle(posts[0], RelationshipKind.COMMUNITY_POST_LIKE)
            return profile, followed, liked, unliked

    profile, followed, liked, unliked = asyncio.run(scenario())

    assert (followed.ok, profile.is_following, profile.followers_count) == (True, True, 1)
    assert (liked.state, liked.counter) == (True, 1)
    assert (unliked.state, unliked.counter) == (False, 0)


def test_deleted_post_is_removed_from_view(client: TestClient):
    author = _register(client, "author")
    fan = _register(client, "fan")
    post_id = client.post("/posts/", json={"content": "Gone soon"}, headers=_headers(author)).json()["id"]

    async def load_feed():
        async with _store(fan) as store:
            return FeedView(await store.fetch_feed())

    async def like_first(view: FeedView):
        async with _store(fan) as store:
            coordinator = OptimisticMutationCoordinator(store, fan, view)
            return await coordinator.toggle(view.get(post_id), RelationshipKind.LIKE)

    view = asyncio.run(load_feed())
    client.delete(f"/posts/{post_id}", headers=_headers(author))
    outcome = asyncio.run(like_first(view))

    assert isinstance(outcome.error, NotFound)
    assert post_id not in view


def test_bad_token_maps_to_unauthorized(client: TestClient):
    author = _register(client, "author")
    post_id = client.post("/posts/", json={"content": "Locks"}, headers=_headers(author)).json()["id"]
    stale = AuthSession()
    stale.sign_in(author.user_id, "expired-token")

    async def scenario():
        async with _store(stale) as store:
            return await store.insert_relationship(post_id, stale.user_id, RelationshipKind.LIKE)

    with pytest.raises(Unauthorized) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.status_code == 401


def test_transport_failure_maps_to_network_unavailable():
    session = AuthSession()
    session.sign_in("u1", "token")

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        store = HttpRelationshipStore(session, base_url="http://testserver", transport=httpx.MockTransport(refuse))
        async with store:
            return await store.insert_relationship("p1", "u1", RelationshipKind.LIKE)

    with pytest.raises(NetworkUnavailable):
        asyncio.run(scenario())


def test_follow_toggle_from_follower_list_and_search(client: TestClient):
    tipster = _register(client, "tipster")
    fan = _register(client, "fan")
    rival = _register(client, "rival")
    client.post(f"/follows/{tipster.user_id}", headers=_headers(rival))

    async def scenario():
        async with _store(fan) as store:
            followers = await store.fetch_followers(tipster.user_id)
            coordinator = OptimisticMutationCoordinator(store, fan, FeedView(followers))
            outcome = await coordinator.toggle(followers[0], RelationshipKind.FOLLOW)
            found = await store.search_users("riv")
            following = await store.fetch_following(fan.user_id)
            suggested = await store.fetch_suggested_users()
            return followers[0], outcome, found, following, suggested

    row, outcome, found, following, suggested = asyncio.run(scenario())

    assert row.username == "rival"
    assert (outcome.ok, row.is_following, row.followers_count) == (True, True, 1)
    assert [(user.username, user.is_following) for user in found] == [("rival", True)]
    assert [user.id for user in following] == [rival.user_id]
    assert [user.username for user in suggested] == ["tipster"]
