"""Contracts for the REST collaborators the discussion core talks to.

Persisted state is owned by the backend; the core only holds in-memory
caches. Any object implementing these protocols can back a
``DiscussionView`` (the HTTP client in ``ideaboard.api.client`` does, and so
do the in-memory fakes used by the tests).
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from ideaboard.discussion.models import Comment, Idea, IdeaEngagementCounters


class BackendError(Exception):
    """A backend call failed. Never retried automatically."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BackendUnavailable(BackendError):
    """The backend could not be reached."""


class BackendAuthError(BackendError):
    """The forwarded credentials were rejected."""


class ReactionConflict(BackendError):
    """The backend refused a reaction it considers already recorded."""


class ReactionQueryUnsupported(BackendError):
    """The backend does not expose the viewer's own reaction."""


class InvalidSubmission(ValueError):
    """A submission was rejected locally before reaching the backend."""


class CommentBackend(Protocol):
    async def fetch_comments(self, idea_id: str) -> List[Comment]: ...

    async def submit_comment(self, idea_id: str, content: str, parent_id: Optional[str] = None) -> Comment: ...

    async def delete_comment(self, comment_id: str) -> None: ...


class ReactionBackend(Protocol):
    async def like(self, idea_id: str) -> None: ...

    async def dislike(self, idea_id: str) -> None: ...

    async def fetch_my_reaction(self, idea_id: str) -> Optional[str]:
        """Return ``"like"``, ``"dislike"`` or ``None``; raise ``ReactionQueryUnsupported`` when unavailable."""
        ...

    async def fetch_counters(self, idea_id: str) -> IdeaEngagementCounters: ...


class IdeaBackend(Protocol):
    async def fetch_ideas(self, topic_id: str) -> List[Idea]: ...

    async def submit_idea(
        self, topic_id: str, title: str, description: str, attachments: Sequence[str]
    ) -> Idea: ...
