"""Client-side optimistic relationship toggles for WagerLoop."""
from .coordinator import OptimisticMutationCoordinator, RelationshipStore, ToggleOutcome
from .entities import (
    Community,
    CommunityPost,
    Game,
    Pick,
    PickPost,
    Post,
    RelationshipKind,
    RelationshipSnapshot,
    TextPost,
    UserProfile,
    post_from_payload,
)
from .errors import Conflict, MutationError, NetworkUnavailable, NotFound, Unauthorized, Unknown, classify_error
from .events import EventBus
from .realtime import RealtimeSubscriber, parse_message
from .session import AuthSession
from .store import HttpRelationshipStore
from .view_state import FeedView, Notice

__all__ = [
    "OptimisticMutationCoordinator",
    "RelationshipStore",
    "ToggleOutcome",
    "Community",
    "CommunityPost",
    "Game",
    "Pick",
    "PickPost",
    "Post",
    "RelationshipKind",
    "RelationshipSnapshot",
    "TextPost",
    "UserProfile",
    "post_from_payload",
    "Conflict",
    "MutationError",
    "NetworkUnavailable",
    "NotFound",
    "Unauthorized",
    "Unknown",
    "classify_error",
    "EventBus",
    "RealtimeSubscriber",
    "parse_message",
    "AuthSession",
    "HttpRelationshipStore",
    "FeedView",
    "Notice",
]
