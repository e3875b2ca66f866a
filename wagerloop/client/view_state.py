"""Transient, display-only state owned by one screen."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

logger = logging.getLogger(__name__)

REAUTHENTICATE_ACTION = "reauthenticate"


@dataclass(frozen=True)
class Notice:
    """A dismissible banner shown after a failed mutation."""

    message: str
    kind: str
    subject_id: str | None = None
    action: str | None = None


class FeedView:
    """An ordered collection of entities keyed by id, plus the notices on screen.

    ``active`` turns false on :meth:`teardown`; completion handlers check it and
    leave a disposed view alone.
    """

    def __init__(self, entities: Iterable[Any] = (), *, on_change: Callable[[str | None], None] | None = None) -> None:
        self._entities: dict[str, Any] = {}
        self._on_change = on_change
        self.notices: list[Notice] = []
        self.revision = 0
        self.active = True
        for entity in entities:
            self.add(entity)

    def __contains__(self, subject_id: object) -> bool:
        return str(subject_id) in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    @property
    def entities(self) -> list[Any]:
        return list(self._entities.values())

    def add(self, entity: Any) -> None:
        self._entities[str(entity.id)] = entity

    def get(self, subject_id: str) -> Any | None:
        return self._entities.get(str(subject_id))

    def remove(self, subject_id: str) -> Any | None:
        entity = self._entities.pop(str(subject_id), None)
        if entity is not None:
            self.notify(str(subject_id))
        return entity

    def replace_all(self, entities: Iterable[Any]) -> None:
        """Swap in a freshly fetched collection."""

        self._entities = {str(entity.id): entity for entity in entities}
        self.notify(None)

    def notify(self, subject_id: str | None = None) -> None:
        if not self.active:
            return
        self.revision += 1
        if self._on_change is not None:
            try:
                self._on_change(subject_id)
            except Exception:
                logger.exception("View change callback failed")

    def show_notice(self, notice: Notice) -> None:
        if not self.active:
            return
        self.notices.append(notice)
        self.notify(notice.subject_id)

    def dismiss_notice(self, notice: Notice) -> None:
        if notice in self.notices:
            self.notices.remove(notice)
            self.notify(notice.subject_id)

    def teardown(self) -> None:
        self.active = False
        self.notices.clear()


__all__ = ["FeedView", "Notice", "REAUTHENTICATE_ACTION"]
