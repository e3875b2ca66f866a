"""Integration tests for community membership and community posts."""
from __future__ import annotations

import os
from typing import Iterator
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_wagerloop.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from wagerloop.constants import CREATOR_CANNOT_LEAVE_DETAIL  # noqa: E402
from wagerloop.database import Base, SessionLocal, engine  # noqa: E402
from wagerloop.main import app  # noqa: E402
from wagerloop.models import CommunityPostLike, User  # noqa: E402
from wagerloop.services.community_service import set_community_post_like_state  # noqa: E402


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


def _register(client: TestClient, username: str) -> tuple[str, dict[str, str]]:
    response = client.post("/auth/register", json={"username": username, "password": "secret123"})
    assert response.status_code == 201, response.text
    data = response.json()
    return data["user_id"], {"Authorization": f"Bearer {data['access_token']}"}


def _create_community(client: TestClient, headers: dict[str, str], name: str = "NBA Sharps") -> dict:
    response = client.post(
        "/communities/",
        json={"name": name, "description": "Hoops betting talk", "sport": "NBA", "tags": ["nba", " props "]},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_creator_joins_own_community(client: TestClient):
    creator_id, creator = _register(client, "creator")

    community = _create_community(client, creator)

    assert community["member_count"] == 1
    assert community["is_joined"] is True
    assert community["creator_id"] == creator_id
    assert community["tags"] == ["nba", "props"]


def test_duplicate_community_name_conflicts(client: TestClient):
    _, creator = _register(client, "creator")
    _create_community(client, creator)

    response = client.post("/communities/", json={"name": "nba sharps"}, headers=creator)

    assert response.status_code == 409


def test_membership_is_idempotent_and_returns_server_count(client: TestClient):
    _, creator = _register(client, "creator")
    _, fan = _register(client, "fan")
    community_id = _create_community(client, creator)["id"]

    joined = client.put(f"/communities/{community_id}/membership", json={"joined": True}, headers=fan)
    joined_again = client.put(f"/communities/{community_id}/membership", json={"joined": True}, headers=fan)

    assert joined.status_code == 200
    assert joined.json()["member_count"] == 2
    assert joined.json()["is_joined"] is True
    assert joined_again.json()["member_count"] == 2

    left = client.put(f"/communities/{community_id}/membership", json={"joined": False}, headers=fan)
    assert left.json()["member_count"] == 1
    assert left.json()["is_joined"] is False

    members = client.get(f"/communities/{community_id}/members").json()["items"]
    assert [member["role"] for member in members] == ["owner"]


def test_creator_cannot_leave(client: TestClient):
    _, creator = _register(client, "creator")
    community_id = _create_community(client, creator)["id"]

    response = client.put(f"/communities/{community_id}/membership", json={"joined": False}, headers=creator)

    assert response.status_code == 409
    assert response.json()["detail"] == CREATOR_CANNOT_LEAVE_DETAIL
    assert client.get(f"/communities/{community_id}").json()["member_count"] == 1


def test_membership_of_missing_community_is_not_found(client: TestClient):
    _, fan = _register(client, "fan")

    response = client.put(
        "/communities/00000000-0000-0000-0000-000000000009/membership",
        json={"joined": True},
        headers=fan,
    )

    assert response.status_code == 404


def test_list_filters_and_viewer_flags(client: TestClient):
    _, creator = _register(client, "creator")
    _, fan = _register(client, "fan")
    nba = _create_community(client, creator, "NBA Sharps")
    _create_community(client, creator, "Premier League Picks")
    client.put(f"/communities/{nba['id']}/membership", json={"joined": True}, headers=fan)

    everything = client.get("/communities/", headers=fan).json()["items"]
    joined_only = client.get("/communities/", params={"joined": True}, headers=fan).json()["items"]
    searched = client.get("/communities/", params={"q": "premier"}).json()["items"]

    assert [item["name"] for item in everything] == ["NBA Sharps", "Premier League Picks"]
    assert [item["is_joined"] for item in everything] == [True, False]
    assert [item["name"] for item in joined_only] == ["NBA Sharps"]
    assert [item["name"] for item in searched] == ["Premier League Picks"]


def test_community_posts_require_membership(client: TestClient):
    _, creator = _register(client, "creator")
    _, fan = _register(client, "fan")
    community_id = _create_community(client, creator)["id"]

    outsider = client.post(f"/communities/{community_id}/posts", json={"content": "hi"}, headers=fan)
    assert outsider.status_code == 403

    client.put(f"/communities/{community_id}/membership", json={"joined": True}, headers=fan)
    member = client.post(f"/communities/{community_id}/posts", json={"content": "Celtics -4"}, headers=fan)
    assert member.status_code == 201

    media_without_url = client.post(
        f"/communities/{community_id}/posts",
        json={"content": "clip", "post_type": "video"},
        headers=fan,
    )
    assert media_without_url.status_code == 422


def test_community_post_likes_and_comments(client: TestClient):
    _, creator = _register(client, "creator")
    _, fan = _register(client, "fan")
    community_id = _create_community(client, creator)["id"]
    post_id = client.post(
        f"/communities/{community_id}/posts", json={"content": "Over 221.5"}, headers=creator
    ).json()["id"]

    liked = client.post(f"/communities/posts/{post_id}/likes", headers=fan)
    assert liked.json()["like_count"] == 1
    assert liked.json()["viewer_has_liked"] is True
    assert liked.json()["community_id"] == community_id

    listing = client.get(f"/communities/{community_id}/posts", headers=fan).json()["items"]
    assert listing[0]["viewer_has_liked"] is True
    assert listing[0]["like_count"] == 1

    unliked = client.delete(f"/communities/posts/{post_id}/likes", headers=fan)
    assert unliked.json()["like_count"] == 0

    blocked = client.post(f"/communities/posts/{post_id}/comments", json={"content": "nice"}, headers=fan)
    assert blocked.status_code == 403
    client.put(f"/communities/{community_id}/membership", json={"joined": True}, headers=fan)
    commented = client.post(f"/communities/posts/{post_id}/comments", json={"content": "nice"}, headers=fan)
    assert commented.status_code == 201
    assert client.get(f"/communities/posts/{post_id}/engagement").json()["comment_count"] == 1


def test_membership_change_is_broadcast(client: TestClient):
    _, creator = _register(client, "creator")
    _, fan = _register(client, "fan")
    community_id = _create_community(client, creator)["id"]

    with client.websocket_connect("/ws/feed") as websocket:
        websocket.send_text('{"type": "ping"}')
        assert websocket.receive_json() == {"type": "pong"}

        client.put(f"/communities/{community_id}/membership", json={"joined": True}, headers=fan)
        message = websocket.receive_json()

    assert message == {
        "type": "community_membership_updated",
        "community_id": community_id,
        "member_count": 2,
    }


def test_blank_community_name_is_rejected(client: TestClient):
    _, creator = _register(client, "creator")

    response = client.post("/communities/", json={"name": "     "}, headers=creator)
    padded = client.post("/communities/", json={"name": "  ab  "}, headers=creator)

    assert response.status_code == 422
    assert padded.status_code == 422
    assert client.get("/communities/").json()["items"] == []


def test_community_post_like_racing_a_duplicate_keeps_the_like(client: TestClient):
    _, creator = _register(client, "creator")
    fan_id, _ = _register(client, "fan")
    community_id = _create_community(client, creator)["id"]
    post_id = client.post(
        f"/communities/{community_id}/posts", json={"content": "Over 221.5"}, headers=creator
    ).json()["id"]

    with SessionLocal() as db:
        fan = db.get(User, UUID(fan_id))

        @event.listens_for(db, "before_commit", once=True)
        def _like_from_another_device(session):
            with SessionLocal() as other:
                other.add(CommunityPostLike(post_id=UUID(post_id), user_id=UUID(fan_id)))
                other.commit()

        snapshot = set_community_post_like_state(db, post_id=UUID(post_id), actor=fan, should_like=True)

    assert snapshot["like_count"] == 1
    assert snapshot["viewer_has_liked"] is True
