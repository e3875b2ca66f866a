"""HTTP adapter between the coordinator and the WagerLoop API."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import get_client_settings
from .entities import (
    Community,
    CommunityPost,
    Post,
    RelationshipKind,
    RelationshipSnapshot,
    UserProfile,
    post_from_payload,
)
from .errors import NetworkUnavailable, error_for_status
from .session import AuthSession

logger = logging.getLogger(__name__)

# kind -> (path template, state key, counter key)
_ENDPOINTS: dict[RelationshipKind, tuple[str, str, str]] = {
    RelationshipKind.LIKE: ("/posts/{id}/likes", "viewer_has_liked", "like_count"),
    RelationshipKind.REPOST: ("/posts/{id}/reposts", "viewer_has_reposted", "repost_count"),
    RelationshipKind.COMMUNITY_POST_LIKE: ("/communities/posts/{id}/likes", "viewer_has_liked", "like_count"),
    RelationshipKind.FOLLOW: ("/follows/{id}", "is_following", "followers_count"),
}


class HttpRelationshipStore:
    """Relationship store backed by the REST API.

    The actor is implied by the session's bearer token. Every failure is raised
    as a :class:`~wagerloop.client.errors.MutationError`.
    """

    def __init__(
        self,
        session: AuthSession,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_client_settings()
        self.session = session
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.api_url).rstrip("/"),
            timeout=timeout if timeout is not None else settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpRelationshipStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self.session.access_token:
            return {}
        return {"Authorization": f"Bearer {self.session.access_token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkUnavailable() from exc
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail")
            except (ValueError, AttributeError):
                detail = response.text or None
            raise error_for_status(response.status_code, detail)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _check_actor(self, actor_id: str) -> None:
        if self.session.user_id and str(actor_id) != self.session.user_id:
            logger.warning("Actor %s does not match session user %s", actor_id, self.session.user_id)

    async def _set_relationship(
        self, method: str, subject_id: str, actor_id: str, kind: RelationshipKind
    ) -> RelationshipSnapshot | None:
        kind = RelationshipKind(kind)
        if kind is RelationshipKind.JOIN:
            community = await self.set_membership(subject_id, actor_id, method == "POST")
            return RelationshipSnapshot(subject_id, kind, community.is_joined, community.member_count)

        self._check_actor(actor_id)
        template, state_key, counter_key = _ENDPOINTS[kind]
        payload = await self._request(method, template.format(id=subject_id))
        if not isinstance(payload, dict):
            return None
        state = payload.get(state_key)
        counter = payload.get(counter_key)
        return RelationshipSnapshot(
            subject_id=str(subject_id),
            kind=kind,
            state=bool(state) if state is not None else None,
            counter=int(counter) if counter is not None else None,
        )

    async def insert_relationship(
        self, subject_id: str, actor_id: str, kind: RelationshipKind
    ) -> RelationshipSnapshot | None:
        return await self._set_relationship("POST", subject_id, actor_id, kind)

    async def delete_relationship(
        self, subject_id: str, actor_id: str, kind: RelationshipKind
    ) -> RelationshipSnapshot | None:
        return await self._set_relationship("DELETE", subject_id, actor_id, kind)

    async def set_membership(self, community_id: str, actor_id: str, joined: bool) -> Community:
        self._check_actor(actor_id)
        payload = await self._request("PUT", f"/communities/{community_id}/membership", json={"joined": joined})
        return Community.from_payload(payload)

    # Fresh fetches re-derive every displayed pair from the store.

    async def fetch_feed(self) -> list[Post]:
        payload = await self._request("GET", "/posts/feed")
        return [post_from_payload(item) for item in (payload or {}).get("items", [])]

    async def fetch_communities(self, *, query: str | None = None, joined_only: bool = False) -> list[Community]:
        params: dict[str, Any] = {"joined": joined_only}
        if query:
            params["q"] = query
        payload = await self._request("GET", "/communities/", params=params)
        return [Community.from_payload(item) for item in (payload or {}).get("items", [])]

    async def fetch_community_posts(self, community_id: str) -> list[CommunityPost]:
        payload = await self._request("GET", f"/communities/{community_id}/posts")
        return [CommunityPost.from_payload(item) for item in (payload or {}).get("items", [])]

    async def fetch_profile(self, user_id: str, *, username: str = "") -> UserProfile:
        payload = await self._request("GET", f"/follows/stats/{user_id}")
        profile = UserProfile.from_payload(payload)
        profile.username = username
        return profile

    async def _fetch_users(self, path: str, **params: Any) -> list[UserProfile]:
        payload = await self._request("GET", path, params=params or None)
        return [UserProfile.from_payload(item) for item in (payload or {}).get("items", [])]

    async def fetch_followers(self, user_id: str) -> list[UserProfile]:
        return await self._fetch_users(f"/follows/{user_id}/followers")

    async def fetch_following(self, user_id: str) -> list[UserProfile]:
        return await self._fetch_users(f"/follows/{user_id}/following")

    async def search_users(self, query: str, *, limit: int = 20) -> list[UserProfile]:
        if not query.strip():
            return []
        return await self._fetch_users("/users/search", q=query.strip(), limit=limit)

    async def fetch_suggested_users(self, *, limit: int = 10) -> list[UserProfile]:
        return await self._fetch_users("/users/suggested", limit=limit)


__all__ = ["HttpRelationshipStore"]
