"""Client-side entities holding the display copy of relationship state.

Every entity exposes one or more (state, counter) pairs; :data:`RELATIONSHIP_FIELDS`
names the attributes for each :class:`RelationshipKind` so mutation code can work
on any entity without inspecting its type.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar, TypeAlias


class RelationshipKind(StrEnum):
    LIKE = "like"
    REPOST = "repost"
    COMMUNITY_POST_LIKE = "community_post_like"
    JOIN = "join"
    FOLLOW = "follow"


# kind -> (state attribute, counter attribute)
RELATIONSHIP_FIELDS: dict[RelationshipKind, tuple[str, str]] = {
    RelationshipKind.LIKE: ("is_liked", "likes"),
    RelationshipKind.REPOST: ("is_reposted", "reposts"),
    RelationshipKind.COMMUNITY_POST_LIKE: ("is_liked", "like_count"),
    RelationshipKind.JOIN: ("is_joined", "member_count"),
    RelationshipKind.FOLLOW: ("is_following", "followers_count"),
}


def _str_id(value: Any) -> str | None:
    return str(value) if value is not None else None


@dataclass(frozen=True)
class RelationshipSnapshot:
    """Canonical values reported by the store for one relationship.

    ``state`` is ``None`` for broadcasts, which carry counters but never the
    viewer's own flag.
    """

    subject_id: str
    kind: RelationshipKind
    state: bool | None
    counter: int | None


@dataclass
class Game:
    id: str
    home_team: str
    away_team: str
    sport: str | None = None

    @property
    def matchup(self) -> str:
        return f"{self.home_team} vs {self.away_team}"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Game":
        return cls(
            id=str(payload.get("id") or ""),
            home_team=str(payload.get("home_team") or ""),
            away_team=str(payload.get("away_team") or ""),
            sport=payload.get("sport"),
        )


@dataclass
class Pick:
    id: str
    game: Game
    pick_type: str
    pick_side: str
    odds: str
    player_name: str | None = None
    prop_type: str | None = None
    prop_value: float | None = None
    stake: float | None = None
    reasoning: str | None = None

    @property
    def display_text(self) -> str:
        """Readable one-line summary, e.g. ``"Lakers ML (-150)"``."""

        side = "Over" if self.pick_side == "over" else "Under"
        if self.pick_type == "moneyline":
            if self.pick_side == "home":
                team = self.game.home_team
            elif self.pick_side == "away":
                team = self.game.away_team
            else:
                team = "Draw"
            return f"{team} ML ({self.odds})"
        if self.pick_type == "spread":
            team = self.game.home_team if self.pick_side == "home" else self.game.away_team
            return f"{team} {self.odds}"
        if self.pick_type == "total":
            return f"{side} {self.odds}"
        if self.player_name and self.prop_type:
            value = "" if self.prop_value is None else f"{self.prop_value:g}"
            return f"{self.player_name} {self.prop_type} {side} {value} ({self.odds})".replace("  ", " ")
        return f"Player Prop ({self.odds})"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Pick":
        prop_value = payload.get("prop_value")
        stake = payload.get("stake")
        return cls(
            id=str(payload.get("id") or ""),
            game=Game.from_payload(payload.get("game") or {}),
            pick_type=str(payload.get("pick_type") or "moneyline"),
            pick_side=str(payload.get("pick_side") or "home"),
            odds=str(payload.get("odds") or ""),
            player_name=payload.get("player_name"),
            prop_type=payload.get("prop_type"),
            prop_value=float(prop_value) if prop_value is not None else None,
            stake=float(stake) if stake is not None else None,
            reasoning=payload.get("reasoning"),
        )


@dataclass
class TextPost:
    id: str
    user_id: str
    content: str = ""
    username: str | None = None
    created_at: str | None = None
    likes: int = 0
    comments: int = 0
    reposts: int = 0
    is_liked: bool = False
    is_reposted: bool = False

    kind: ClassVar[str] = "text"


@dataclass
class PickPost(TextPost):
    picks: list[Pick] = field(default_factory=list)

    kind: ClassVar[str] = "pick"

    @property
    def display_lines(self) -> list[str]:
        return [pick.display_text for pick in self.picks]


Post: TypeAlias = TextPost | PickPost


def post_from_payload(payload: dict[str, Any]) -> Post:
    """Build a :class:`TextPost` or :class:`PickPost` from a feed item."""

    common = dict(
        id=str(payload["id"]),
        user_id=str(payload.get("user_id") or ""),
        content=payload.get("content") or "",
        username=payload.get("username"),
        created_at=_str_id(payload.get("created_at")),
        likes=int(payload.get("like_count") or 0),
        comments=int(payload.get("comment_count") or 0),
        reposts=int(payload.get("repost_count") or 0),
        is_liked=bool(payload.get("viewer_has_liked")),
        is_reposted=bool(payload.get("viewer_has_reposted")),
    )
    if payload.get("kind") == PickPost.kind:
        picks = [Pick.from_payload(item) for item in payload.get("picks") or []]
        return PickPost(picks=picks, **common)
    return TextPost(**common)


@dataclass
class CommunityPost:
    id: str
    community_id: str
    user_id: str
    content: str = ""
    post_type: str = "chat"
    media_url: str | None = None
    username: str | None = None
    like_count: int = 0
    comment_count: int = 0
    is_liked: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CommunityPost":
        return cls(
            id=str(payload["id"]),
            community_id=str(payload.get("community_id") or ""),
            user_id=str(payload.get("user_id") or ""),
            content=payload.get("content") or "",
            post_type=payload.get("post_type") or "chat",
            media_url=payload.get("media_url"),
            username=payload.get("username"),
            like_count=int(payload.get("like_count") or 0),
            comment_count=int(payload.get("comment_count") or 0),
            is_liked=bool(payload.get("viewer_has_liked")),
        )


@dataclass
class Community:
    id: str
    name: str
    creator_id: str | None = None
    description: str = ""
    sport: str | None = None
    tags: list[str] = field(default_factory=list)
    is_private: bool = False
    member_count: int = 0
    is_joined: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Community":
        return cls(
            id=str(payload["id"]),
            name=payload.get("name") or "",
            creator_id=_str_id(payload.get("creator_id")),
            description=payload.get("description") or "",
            sport=payload.get("sport"),
            tags=list(payload.get("tags") or []),
            is_private=bool(payload.get("is_private")),
            member_count=int(payload.get("member_count") or 0),
            is_joined=bool(payload.get("is_joined")),
        )


@dataclass
class UserProfile:
    id: str
    username: str = ""
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "UserProfile":
        return cls(
            id=str(payload.get("user_id") or payload["id"]),
            username=payload.get("username") or "",
            followers_count=int(payload.get("followers_count") or 0),
            following_count=int(payload.get("following_count") or 0),
            is_following=bool(payload.get("is_following")),
        )


_SUPPORTED_KINDS: dict[type, frozenset[RelationshipKind]] = {
    TextPost: frozenset({RelationshipKind.LIKE, RelationshipKind.REPOST}),
    PickPost: frozenset({RelationshipKind.LIKE, RelationshipKind.REPOST}),
    CommunityPost: frozenset({RelationshipKind.COMMUNITY_POST_LIKE}),
    Community: frozenset({RelationshipKind.JOIN}),
    UserProfile: frozenset({RelationshipKind.FOLLOW}),
}


def relationship_fields(entity: Any, kind: RelationshipKind | str) -> tuple[str, str]:
    """Return the (state, counter) attribute names ``kind`` mutates on ``entity``."""

    kind = RelationshipKind(kind)
    supported = _SUPPORTED_KINDS.get(type(entity), frozenset())
    if kind not in supported:
        raise ValueError(f"{type(entity).__name__} does not support {kind.value!r}")
    return RELATIONSHIP_FIELDS[kind]


def read_relationship(entity: Any, kind: RelationshipKind | str) -> tuple[bool, int]:
    state_attr, counter_attr = relationship_fields(entity, kind)
    return bool(getattr(entity, state_attr)), int(getattr(entity, counter_attr))


def write_relationship(entity: Any, kind: RelationshipKind | str, state: bool, counter: int) -> None:
    state_attr, counter_attr = relationship_fields(entity, kind)
    setattr(entity, state_attr, bool(state))
    setattr(entity, counter_attr, max(0, int(counter)))


__all__ = [
    "RelationshipKind",
    "RELATIONSHIP_FIELDS",
    "RelationshipSnapshot",
    "Game",
    "Pick",
    "TextPost",
    "PickPost",
    "Post",
    "post_from_payload",
    "CommunityPost",
    "Community",
    "UserProfile",
    "relationship_fields",
    "read_relationship",
    "write_relationship",
]
