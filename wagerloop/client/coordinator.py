"""Optimistic toggles of social relationships with reconciliation and rollback.

A toggle flips the displayed (state, counter) pair immediately, then asks the
remote store to make it durable. The store either confirms (optionally with
canonical values) or fails, in which case the display goes back to what was
last confirmed.

Each subject keeps a generation number per relationship kind. Overlapping
toggles on the same subject are allowed; a response only updates the
confirmed values when it belongs to a newer generation than the ones already
applied, and the display is only rewritten by the newest request or once no
request is left in flight.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

from ..constants import LEAVE_CONFIRMATION_PROMPT
from .entities import (
    Community,
    RelationshipKind,
    RelationshipSnapshot,
    read_relationship,
    relationship_fields,
    write_relationship,
)
from .errors import MutationError, NotFound, Unauthorized, classify_error
from .events import ENGAGEMENT_CHANGED, FOLLOW_CHANGED, MEMBERSHIP_CHANGED
from .session import AuthSession
from .view_state import REAUTHENTICATE_ACTION, FeedView, Notice

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], "bool | Awaitable[bool]"]


class RelationshipStore(Protocol):
    """Remote owner of relationship rows."""

    async def insert_relationship(
        self, subject_id: str, actor_id: str, kind: RelationshipKind
    ) -> RelationshipSnapshot | None: ...

    async def delete_relationship(
        self, subject_id: str, actor_id: str, kind: RelationshipKind
    ) -> RelationshipSnapshot | None: ...

    async def set_membership(self, community_id: str, actor_id: str, joined: bool) -> Community: ...


@dataclass(frozen=True)
class ToggleOutcome:
    """Result of one toggle.

    ``state`` and ``counter`` are the values displayed once the call settled.
    ``stale`` is true when the response was not written to the display because
    a newer toggle of the same subject was still in flight or the view had been
    torn down.
    """

    subject_id: str
    kind: RelationshipKind
    ok: bool
    state: bool
    counter: int
    error: MutationError | None = None
    stale: bool = False
    cancelled: bool = False


@dataclass
class _Track:
    confirmed_state: bool = False
    confirmed_counter: int = 0
    confirmed_generation: int = 0
    latest_generation: int = 0
    pending: int = 0


_TOPICS = {
    RelationshipKind.FOLLOW: FOLLOW_CHANGED,
    RelationshipKind.JOIN: MEMBERSHIP_CHANGED,
}


class OptimisticMutationCoordinator:
    def __init__(self, store: RelationshipStore, session: AuthSession, view: FeedView | None = None) -> None:
        self.store = store
        self.session = session
        self.view = view if view is not None else FeedView()
        self._tracks: dict[tuple[RelationshipKind, str], _Track] = {}

    def is_pending(self, subject_id: str, kind: RelationshipKind | str) -> bool:
        track = self._tracks.get((RelationshipKind(kind), str(subject_id)))
        return bool(track and track.pending)

    async def toggle(self, entity: Any, kind: RelationshipKind | str) -> ToggleOutcome:
        """Flip ``kind`` on ``entity`` now and reconcile it with the store.

        Remote failures never propagate; they come back as an outcome with
        ``ok=False`` after the display has been rolled back.
        """

        kind = RelationshipKind(kind)
        if kind is RelationshipKind.JOIN:
            return await self.join_or_leave(entity)
        relationship_fields(entity, kind)
        subject_id = self._subject_id(entity)
        actor_id = self.session.actor_id
        if actor_id is None:
            return self._reject_unauthenticated(entity, subject_id, kind)

        state, _ = read_relationship(entity, kind)
        target = not state
        if target:
            call = self.store.insert_relationship(subject_id, actor_id, kind)
        else:
            call = self.store.delete_relationship(subject_id, actor_id, kind)
        return await self._run(entity, subject_id, kind, target, call, adjust_counter=True)

    async def join_or_leave(self, community: Community, confirm: ConfirmCallback | None = None) -> ToggleOutcome:
        """Join, or after ``confirm`` agrees, leave ``community``.

        Leaving without a ``confirm`` callback is cancelled. The member count is
        never guessed; only the server's updated community changes it.
        """

        relationship_fields(community, RelationshipKind.JOIN)
        subject_id = self._subject_id(community)
        if self.session.actor_id is None:
            return self._reject_unauthenticated(community, subject_id, RelationshipKind.JOIN)

        target = not community.is_joined
        if not target:
            answer = confirm(LEAVE_CONFIRMATION_PROMPT) if confirm is not None else False
            if inspect.isawaitable(answer):
                answer = await answer
            if not answer:
                state, counter = read_relationship(community, RelationshipKind.JOIN)
                return ToggleOutcome(
                    subject_id, RelationshipKind.JOIN, ok=False, state=state, counter=counter, cancelled=True
                )
        # The session may have ended while the prompt was open.
        actor_id = self.session.actor_id
        if actor_id is None:
            return self._reject_unauthenticated(community, subject_id, RelationshipKind.JOIN)
        call = self._membership_snapshot(subject_id, actor_id, target)
        return await self._run(community, subject_id, RelationshipKind.JOIN, target, call, adjust_counter=False)

    def apply_snapshot(self, snapshot: RelationshipSnapshot) -> bool:
        """Refresh a displayed entity from a pushed snapshot.

        Subjects with a toggle in flight are left alone; their own response
        settles them.
        """

        if not self.view.active or self.is_pending(snapshot.subject_id, snapshot.kind):
            return False
        entity = self.view.get(snapshot.subject_id)
        if entity is None:
            return False
        try:
            state, counter = read_relationship(entity, snapshot.kind)
        except ValueError:
            return False
        new_state = state if snapshot.state is None else snapshot.state
        new_counter = counter if snapshot.counter is None else snapshot.counter
        if (new_state, max(0, new_counter)) == (state, counter):
            return False
        write_relationship(entity, snapshot.kind, new_state, new_counter)
        self.view.notify(snapshot.subject_id)
        return True

    async def _membership_snapshot(self, community_id: str, actor_id: str, joined: bool) -> RelationshipSnapshot:
        updated = await self.store.set_membership(community_id, actor_id, joined)
        return RelationshipSnapshot(
            subject_id=community_id,
            kind=RelationshipKind.JOIN,
            state=updated.is_joined,
            counter=updated.member_count,
        )

    @staticmethod
    def _subject_id(entity: Any) -> str:
        subject_id = getattr(entity, "id", None)
        if not subject_id:
            raise ValueError("Cannot toggle a relationship on an entity without an id")
        return str(subject_id)

    def _reject_unauthenticated(self, entity: Any, subject_id: str, kind: RelationshipKind) -> ToggleOutcome:
        error = Unauthorized()
        state, counter = read_relationship(entity, kind)
        self.view.show_notice(
            Notice(message=error.message, kind=error.kind, subject_id=subject_id, action=REAUTHENTICATE_ACTION)
        )
        return ToggleOutcome(subject_id, kind, ok=False, state=state, counter=counter, error=error)

    async def _run(
        self,
        entity: Any,
        subject_id: str,
        kind: RelationshipKind,
        target: bool,
        call: Awaitable[RelationshipSnapshot | None],
        *,
        adjust_counter: bool,
    ) -> ToggleOutcome:
        track = self._tracks.setdefault((kind, subject_id), _Track())
        state, counter = read_relationship(entity, kind)
        if track.pending == 0:
            track.confirmed_state = state
            track.confirmed_counter = counter
        track.latest_generation += 1
        generation = track.latest_generation
        track.pending += 1

        # Optimistic apply; nothing below may suspend before the store call.
        optimistic_counter = counter
        if adjust_counter and target != state:
            optimistic_counter = max(0, counter + (1 if target else -1))
        write_relationship(entity, kind, target, optimistic_counter)
        self.view.notify(subject_id)

        error: MutationError | None = None
        snapshot: RelationshipSnapshot | None = None
        try:
            snapshot = await call
        except Exception as exc:
            error = classify_error(exc)
            logger.warning("%s on %s failed: %s", kind.value, subject_id, error.message)
        finally:
            track.pending -= 1

        if error is None and generation > track.confirmed_generation:
            self._confirm(track, generation, target, snapshot, adjust_counter=adjust_counter)

        applied = self.view.active and (generation == track.latest_generation or track.pending == 0)
        if applied:
            write_relationship(entity, kind, track.confirmed_state, track.confirmed_counter)
            if error is not None:
                self._report(subject_id, error)
            self.view.notify(subject_id)
        elif error is not None and self.view.active:
            self._report(subject_id, error)

        if error is None:
            self.session.events.publish(
                _TOPICS.get(kind, ENGAGEMENT_CHANGED),
                RelationshipSnapshot(subject_id, kind, track.confirmed_state, track.confirmed_counter),
            )

        final_state, final_counter = read_relationship(entity, kind)
        return ToggleOutcome(
            subject_id,
            kind,
            ok=error is None,
            state=final_state,
            counter=final_counter,
            error=error,
            stale=not applied,
        )

    @staticmethod
    def _confirm(
        track: _Track,
        generation: int,
        target: bool,
        snapshot: RelationshipSnapshot | None,
        *,
        adjust_counter: bool,
    ) -> None:
        counter = track.confirmed_counter
        if adjust_counter and target != track.confirmed_state:
            counter = max(0, counter + (1 if target else -1))
        state = target
        if snapshot is not None:
            if snapshot.state is not None:
                state = snapshot.state
            if snapshot.counter is not None:
                counter = max(0, snapshot.counter)
        track.confirmed_state = state
        track.confirmed_counter = counter
        track.confirmed_generation = generation

    def _report(self, subject_id: str, error: MutationError) -> None:
        action = REAUTHENTICATE_ACTION if isinstance(error, Unauthorized) else None
        self.view.show_notice(Notice(message=error.message, kind=error.kind, subject_id=subject_id, action=action))
        if isinstance(error, NotFound):
            self.view.remove(subject_id)


__all__ = ["OptimisticMutationCoordinator", "RelationshipStore", "ToggleOutcome", "ConfirmCallback"]
