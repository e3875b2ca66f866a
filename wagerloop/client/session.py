"""Authenticated client session: actor identity, bearer token and event bus."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .events import EventBus

logger = logging.getLogger(__name__)


@dataclass
class AuthSession:
    user_id: str | None = None
    access_token: str | None = None
    events: EventBus = field(default_factory=EventBus)

    @property
    def actor_id(self) -> str | None:
        return self.user_id if self.access_token else None

    @property
    def is_authenticated(self) -> bool:
        return self.actor_id is not None

    def sign_in(self, user_id: str, access_token: str) -> None:
        if self.events.closed:
            self.events = EventBus()
        self.user_id = str(user_id)
        self.access_token = access_token
        logger.info("Signed in as %s", self.user_id)

    def logout(self) -> None:
        """Forget the credentials and tear down every subscription of this session."""

        logger.info("Signing out %s", self.user_id)
        self.user_id = None
        self.access_token = None
        self.events.close()


__all__ = ["AuthSession"]
