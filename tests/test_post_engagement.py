"""Integration tests for post likes, reposts, comments and the feed."""
from __future__ import annotations

import os
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_wagerloop.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from wagerloop.database import Base, SessionLocal, engine  # noqa: E402
from wagerloop.main import app  # noqa: E402
from wagerloop.services import post_service  # noqa: E402


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


def _create_post(client: TestClient, headers: dict[str, str], content: str = "Lakers by 7 tonight") -> str:
    response = client.post("/posts/", json={"content": content}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_like_is_idempotent_and_counted_from_rows(client: TestClient):
    _, author = _register(client, "author")
    _, fan = _register(client, "fan")
    post_id = _create_post(client, author)

    first = client.post(f"/posts/{post_id}/likes", headers=fan)
    second = client.post(f"/posts/{post_id}/likes", headers=fan)

    assert first.status_code == 200
    assert second.json()["like_count"] == 1
    assert second.json()["viewer_has_liked"] is True

    removed = client.delete(f"/posts/{post_id}/likes", headers=fan)
    assert removed.json()["like_count"] == 0
    assert removed.json()["viewer_has_liked"] is False

    again = client.delete(f"/posts/{post_id}/likes", headers=fan)
    assert again.json()["like_count"] == 0


def test_feed_reports_counts_and_viewer_flags(client: TestClient):
    _, author = _register(client, "author")
    _, fan = _register(client, "fan")
    _, other = _register(client, "other")
    post_id = _create_post(client, author)

    client.post(f"/posts/{post_id}/likes", headers=fan)
    client.post(f"/posts/{post_id}/likes", headers=other)
    client.post(f"/posts/{post_id}/reposts", headers=fan)

    fan_view = client.get("/posts/feed", headers=fan).json()["items"][0]
    other_view = client.get("/posts/feed", headers=other).json()["items"][0]
    anonymous = client.get("/posts/feed").json()["items"][0]

    assert fan_view["like_count"] == 2
    assert fan_view["repost_count"] == 1
    assert fan_view["viewer_has_liked"] is True
    assert fan_view["viewer_has_reposted"] is True
    assert other_view["viewer_has_liked"] is True
    assert other_view["viewer_has_reposted"] is False
    assert anonymous["viewer_has_liked"] is False


def test_like_requires_token_and_existing_post(client: TestClient):
    _, fan = _register(client, "fan")

    unauthenticated = client.post("/posts/00000000-0000-0000-0000-000000000001/likes")
    missing = client.post("/posts/00000000-0000-0000-0000-000000000001/likes", headers=fan)

    assert unauthenticated.status_code == 401
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Post not found"


def test_expired_or_garbage_token_is_rejected(client: TestClient):
    _, author = _register(client, "author")
    post_id = _create_post(client, author)

    response = client.post(f"/posts/{post_id}/likes", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Session expired"


def test_engagement_notifies_author_but_never_self(client: TestClient):
    _, author = _register(client, "author")
    _, fan = _register(client, "fan")
    post_id = _create_post(client, author)

    client.post(f"/posts/{post_id}/likes", headers=author)
    client.post(f"/posts/{post_id}/likes", headers=fan)
    client.post(f"/posts/{post_id}/reposts", headers=fan)

    items = client.get("/notifications/", headers=author).json()["items"]
    assert sorted(item["type"] for item in items) == ["post.like", "post.repost"]
    assert client.get("/notifications/summary", headers=author).json()["unread_count"] == 2

    assert client.post("/notifications/mark-read", headers=author).status_code == 204
    assert client.get("/notifications/summary", headers=author).json()["unread_count"] == 0


def test_pick_post_round_trips_picks(client: TestClient):
    _, capper = _register(client, "capper")
    payload = {
        "content": "Sunday card",
        "picks": [
            {
                "id": "pick-1",
                "game": {"id": "g1", "home_team": "Chiefs", "away_team": "Bills", "sport": "NFL"},
                "pick_type": "moneyline",
                "pick_side": "home",
                "odds": "-150",
            },
            {
                "id": "pick-2",
                "game": {"id": "g2", "home_team": "Lakers", "away_team": "Celtics"},
                "pick_type": "player_prop",
                "pick_side": "over",
                "odds": "+110",
                "player_name": "LeBron James",
                "prop_type": "Points",
                "prop_value": 27.5,
            },
        ],
    }

    created = client.post("/posts/picks", json=payload, headers=capper)
    assert created.status_code == 201, created.text
    assert created.json()["kind"] == "pick"

    item = client.get("/posts/feed").json()["items"][0]
    assert item["kind"] == "pick"
    assert [pick["id"] for pick in item["picks"]] == ["pick-1", "pick-2"]
    assert item["picks"][1]["prop_value"] == 27.5


def test_pick_post_needs_at_least_one_pick(client: TestClient):
    _, capper = _register(client, "capper")

    response = client.post("/posts/picks", json={"content": "nothing", "picks": []}, headers=capper)

    assert response.status_code == 422


def test_threaded_comments_and_counts(client: TestClient):
    _, author = _register(client, "author")
    _, fan = _register(client, "fan")
    post_id = _create_post(client, author)

    root = client.post(f"/posts/{post_id}/comments", json={"content": "Hammer it"}, headers=fan)
    assert root.status_code == 201
    reply = client.post(
        f"/posts/{post_id}/comments",
        json={"content": "Already did", "parent_id": root.json()["id"]},
        headers=author,
    )
    assert reply.status_code == 201

    tree = client.get(f"/posts/{post_id}/comments").json()["items"]
    assert len(tree) == 1
    assert tree[0]["replies"][0]["content"] == "Already did"
    assert client.get(f"/posts/{post_id}/engagement").json()["comment_count"] == 2


def test_only_author_can_delete_post(client: TestClient):
    _, author = _register(client, "author")
    _, fan = _register(client, "fan")
    post_id = _create_post(client, author)
    client.post(f"/posts/{post_id}/likes", headers=fan)

    forbidden = client.delete(f"/posts/{post_id}", headers=fan)
    deleted = client.delete(f"/posts/{post_id}", headers=author)

    assert forbidden.status_code == 403
    assert deleted.status_code == 204
    assert client.get(f"/posts/{post_id}/engagement").status_code == 404
    assert client.post(f"/posts/{post_id}/likes", headers=fan).status_code == 404


def test_feed_socket_receives_engagement_snapshot(client: TestClient):
    _, author = _register(client, "author")
    _, fan = _register(client, "fan")
    post_id = _create_post(client, author)

    with client.websocket_connect("/ws/feed") as websocket:
        websocket.send_text('{"type": "ping"}')
        assert websocket.receive_json() == {"type": "pong"}

        client.post(f"/posts/{post_id}/likes", headers=fan)
        message = websocket.receive_json()

    assert message["type"] == "post_engagement_updated"
    assert message["post_id"] == post_id
    assert message["like_count"] == 1
    assert "viewer_has_liked" not in message


def test_service_info_and_health(client: TestClient):
    info = client.get("/api").json()
    health = client.get("/health").json()

    assert info["service"] == app.title
    assert health["status"] == "ok"


def test_like_racing_a_duplicate_returns_the_stored_like(client: TestClient, monkeypatch):
    _, author = _register(client, "author")
    _, fan = _register(client, "fan")
    post_id = _create_post(client, author)
    set_row = post_service._set_engagement_row

    def _set_row_after_other_tab(db, model, *, post, user_id, active):
        changed = set_row(db, model, post=post, user_id=user_id, active=active)
        with SessionLocal() as other:
            other.add(model(post_id=post.id, user_id=user_id))
            other.commit()
        return changed

    monkeypatch.setattr(post_service, "_set_engagement_row", _set_row_after_other_tab)
    response = client.post(f"/posts/{post_id}/likes", headers=fan)

    assert response.status_code == 200, response.text
    assert response.json()["like_count"] == 1
    assert response.json()["viewer_has_liked"] is True
