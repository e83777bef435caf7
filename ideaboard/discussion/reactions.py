"""Per-viewer like/dislike state with optimistic updates.

Every intent runs the same two-phase protocol:

1. the predicted transition is written to the store synchronously;
2. the backend call is issued as its own task, and once it settles (success
   or failure) counters and, where the backend supports it, the viewer's own
   reaction are refetched and replace whatever the store holds.

Intents are never queued behind each other. Whichever reconciliation
completes last determines the final state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional

from ideaboard.discussion.backends import BackendError, ReactionBackend, ReactionQueryUnsupported
from ideaboard.discussion.models import IdeaEngagementCounters


logger = logging.getLogger(__name__)


class ReactionState(str, Enum):
    NONE = "none"
    LIKED = "liked"
    DISLIKED = "disliked"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> "ReactionState":
        """Map the backend vocabulary (``like``/``dislike``/``null``) onto a state."""
        if value is None:
            return cls.NONE
        key = str(value).strip().lower()
        if key in ("like", "liked"):
            return cls.LIKED
        if key in ("dislike", "disliked"):
            return cls.DISLIKED
        if key in ("", "none", "null"):
            return cls.NONE
        logger.warning("Unknown reaction value from backend: %r", value)
        return cls.NONE


class Intent(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


_TRANSITIONS: Dict[tuple[ReactionState, Intent], ReactionState] = {
    (ReactionState.NONE, Intent.LIKE): ReactionState.LIKED,
    (ReactionState.LIKED, Intent.LIKE): ReactionState.NONE,
    (ReactionState.DISLIKED, Intent.LIKE): ReactionState.LIKED,
    (ReactionState.NONE, Intent.DISLIKE): ReactionState.DISLIKED,
    (ReactionState.DISLIKED, Intent.DISLIKE): ReactionState.NONE,
    (ReactionState.LIKED, Intent.DISLIKE): ReactionState.DISLIKED,
}


def predict(current: ReactionState, intent: Intent) -> ReactionState:
    return _TRANSITIONS[(current, intent)]


class ReactionStore:
    """Reaction slots and last known counters, keyed by idea id.

    Scoped to one discussion view. ``snapshot()`` and the ``states``
    constructor argument let a caller carry the slots across requests (the
    Flask surface keeps them in the session).
    """

    def __init__(self, states: Optional[Mapping[str, str]] = None) -> None:
        self._states: Dict[str, ReactionState] = {}
        self._counters: Dict[str, IdeaEngagementCounters] = {}
        for idea_id, raw in (states or {}).items():
            try:
                self._states[str(idea_id)] = ReactionState(raw)
            except ValueError:
                continue

    def get(self, idea_id: str) -> ReactionState:
        return self._states.get(idea_id, ReactionState.NONE)

    def set(self, idea_id: str, state: ReactionState) -> None:
        if state is ReactionState.NONE:
            self._states.pop(idea_id, None)
        else:
            self._states[idea_id] = state

    def counters(self, idea_id: str) -> Optional[IdeaEngagementCounters]:
        return self._counters.get(idea_id)

    def set_counters(self, idea_id: str, counters: IdeaEngagementCounters) -> None:
        self._counters[idea_id] = counters

    def snapshot(self) -> Dict[str, str]:
        return {idea_id: state.value for idea_id, state in self._states.items()}


@dataclass(slots=True)
class ReactionOutcome:
    idea_id: str
    intent: Optional[Intent]
    predicted: ReactionState
    state: ReactionState
    counters: Optional[IdeaEngagementCounters]
    confirmed: bool = False
    error: Optional[BackendError] = None
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "idea_id": self.idea_id,
            "state": self.state.value,
            "predicted": self.predicted.value,
            "confirmed": self.confirmed,
            "likes": self.counters.likes if self.counters else None,
            "dislikes": self.counters.dislikes if self.counters else None,
        }


class ReactionController:
    def __init__(
        self,
        backend: ReactionBackend,
        store: Optional[ReactionStore] = None,
        *,
        reaction_query_supported: bool = True,
    ) -> None:
        self.backend = backend
        self.store = store if store is not None else ReactionStore()
        self._reaction_query_supported = reaction_query_supported
        self._closed = False

    @property
    def reaction_query_supported(self) -> bool:
        return self._reaction_query_supported

    def state(self, idea_id: str) -> ReactionState:
        return self.store.get(idea_id)

    def counters(self, idea_id: str) -> Optional[IdeaEngagementCounters]:
        return self.store.counters(idea_id)

    def seed(self, idea_id: str, counters: IdeaEngagementCounters) -> None:
        self.store.set_counters(idea_id, counters)

    def close(self) -> None:
        """Stop applying results; in-flight reconciliations are discarded on arrival."""
        self._closed = True

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------
    def request_like(self, idea_id: str) -> "asyncio.Task[ReactionOutcome]":
        return self._request(idea_id, Intent.LIKE)

    def request_dislike(self, idea_id: str) -> "asyncio.Task[ReactionOutcome]":
        return self._request(idea_id, Intent.DISLIKE)

    def _request(self, idea_id: str, intent: Intent) -> "asyncio.Task[ReactionOutcome]":
        current = self.store.get(idea_id)
        predicted = predict(current, intent)
        self.store.set(idea_id, predicted)
        logger.debug("Reaction %s on idea %s: %s -> %s (optimistic)", intent.value, idea_id, current.value, predicted.value)
        return asyncio.create_task(self._send_and_reconcile(idea_id, intent, predicted))

    async def _send_and_reconcile(self, idea_id: str, intent: Intent, predicted: ReactionState) -> ReactionOutcome:
        send = self.backend.like if intent is Intent.LIKE else self.backend.dislike
        error: Optional[BackendError] = None
        try:
            await send(idea_id)
        except BackendError as exc:
            logger.warning("Reaction %s on idea %s failed: %s", intent.value, idea_id, exc)
            error = exc
        outcome = await self._reconcile(idea_id, intent, predicted)
        if error is not None:
            outcome.error = error
        return outcome

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    async def refresh(self, idea_id: str) -> ReactionOutcome:
        """Rehydrate state and counters for an idea without mutating anything."""
        return await self._reconcile(idea_id, None, self.store.get(idea_id))

    async def _reconcile(self, idea_id: str, intent: Optional[Intent], predicted: ReactionState) -> ReactionOutcome:
        error: Optional[BackendError] = None
        counters: Optional[IdeaEngagementCounters] = None
        confirmed_state: Optional[ReactionState] = None

        try:
            counters = await self.backend.fetch_counters(idea_id)
        except BackendError as exc:
            logger.warning("Counter refetch for idea %s failed: %s", idea_id, exc)
            error = exc

        if self._reaction_query_supported:
            try:
                confirmed_state = ReactionState.from_wire(await self.backend.fetch_my_reaction(idea_id))
            except ReactionQueryUnsupported:
                logger.info("Backend has no per-user reaction query; keeping optimistic reaction state")
                self._reaction_query_supported = False
            except BackendError as exc:
                logger.warning("Reaction refetch for idea %s failed: %s", idea_id, exc)
                error = error or exc

        if self._closed:
            logger.debug("Discarding reconciliation for idea %s after close", idea_id)
            return ReactionOutcome(
                idea_id=idea_id, intent=intent, predicted=predicted,
                state=self.store.get(idea_id), counters=self.store.counters(idea_id),
                error=error, discarded=True,
            )

        if counters is not None:
            self.store.set_counters(idea_id, counters)
        if confirmed_state is not None:
            self.store.set(idea_id, confirmed_state)

        return ReactionOutcome(
            idea_id=idea_id,
            intent=intent,
            predicted=predicted,
            state=self.store.get(idea_id),
            counters=self.store.counters(idea_id),
            confirmed=confirmed_state is not None,
            error=error,
        )
