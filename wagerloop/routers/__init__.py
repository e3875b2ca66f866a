"""Aggregate router exports."""
from .auth import router as auth_router
from .communities import router as communities_router
from .follows import router as follows_router
from .notifications import router as notifications_router
from .posts import router as posts_router
from .realtime import router as realtime_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "communities_router",
    "follows_router",
    "notifications_router",
    "posts_router",
    "realtime_router",
    "users_router",
]
