"""Async REST client implementing the comment, reaction and idea backends."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from ideaboard.discussion.backends import (
    BackendAuthError,
    BackendError,
    BackendUnavailable,
    ReactionConflict,
    ReactionQueryUnsupported,
)
from ideaboard.discussion.models import Comment, Idea, IdeaEngagementCounters


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT_SECONDS = 10.0


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, list):
            message = "; ".join(str(m) for m in message)
        if message:
            return str(message)
    return f"HTTP {response.status_code}"


class IdeaBoardApiClient:
    """Talks to the IdeaBoard REST API on behalf of one viewer.

    The bearer token, when given, is forwarded unchanged. Use as an async
    context manager so the underlying connection pool is closed.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        reaction_query_enabled: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.reaction_query_enabled = reaction_query_enabled
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "IdeaBoardApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.error("Network error calling %s %s: %s", method, path, exc)
            raise BackendUnavailable("Network error. Please check your internet connection.") from exc

        if response.status_code == 401:
            raise BackendAuthError(_error_message(response), status_code=401)
        if response.is_error:
            message = _error_message(response)
            logger.warning("%s %s -> %s: %s", method, path, response.status_code, message)
            raise BackendError(message, status_code=response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError("Malformed response from backend", status_code=response.status_code) from exc

    # ------------------------------------------------------------------
    # Ideas
    # ------------------------------------------------------------------
    async def fetch_ideas(self, topic_id: str) -> List[Idea]:
        data = await self._request("GET", "/ideas", params={"topicId": topic_id})
        if isinstance(data, dict):
            data = data.get("ideas") or []
        if not isinstance(data, list):
            return []
        ideas: List[Idea] = []
        for item in data:
            try:
                ideas.append(Idea.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed idea in topic %s: %s", topic_id, exc.errors()[:1])
        return ideas

    async def submit_idea(self, topic_id: str, title: str, description: str, attachments: Sequence[str]) -> Idea:
        body: Dict[str, Any] = {"title": title, "description": description, "topicId": topic_id}
        if attachments:
            body["attachments"] = list(attachments)
        data = await self._request("POST", "/ideas", json=body)
        try:
            return Idea.model_validate(data)
        except ValidationError as exc:
            raise BackendError("Malformed idea returned by backend") from exc

    # ------------------------------------------------------------------
    # Reactions
    # ------------------------------------------------------------------
    async def _react(self, idea_id: str, kind: str) -> None:
        try:
            await self._request("POST", f"/ideas/{idea_id}/{kind}")
        except BackendAuthError:
            raise
        except BackendError as exc:
            if exc.status_code == 409 or "already" in exc.message.lower():
                raise ReactionConflict(exc.message, status_code=exc.status_code) from exc
            raise

    async def like(self, idea_id: str) -> None:
        await self._react(idea_id, "like")

    async def dislike(self, idea_id: str) -> None:
        await self._react(idea_id, "dislike")

    async def fetch_counters(self, idea_id: str) -> IdeaEngagementCounters:
        data = await self._request("GET", f"/ideas/{idea_id}")
        if not isinstance(data, dict):
            raise BackendError("Malformed idea returned by backend")
        try:
            return IdeaEngagementCounters.model_validate(data)
        except ValidationError as exc:
            raise BackendError("Malformed counters returned by backend") from exc

    async def fetch_my_reaction(self, idea_id: str) -> Optional[str]:
        if not self.reaction_query_enabled:
            raise ReactionQueryUnsupported("Per-user reaction query is disabled")
        try:
            data = await self._request("GET", f"/ideas/{idea_id}/my-reaction")
        except BackendError as exc:
            if exc.status_code in (404, 405, 501):
                raise ReactionQueryUnsupported(exc.message, status_code=exc.status_code) from exc
            raise
        if isinstance(data, dict):
            value = data.get("reaction")
            return value if isinstance(value, str) else None
        return data if isinstance(data, str) else None

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------
    async def fetch_comments(self, idea_id: str) -> List[Comment]:
        data = await self._request("GET", f"/ideas/{idea_id}/comments")
        if not isinstance(data, list):
            return []
        comments: List[Comment] = []
        for item in data:
            try:
                comments.append(Comment.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed comment on idea %s: %s", idea_id, exc.errors()[:1])
        return comments

    async def submit_comment(self, idea_id: str, content: str, parent_id: Optional[str] = None) -> Comment:
        body: Dict[str, Any] = {"content": content}
        if parent_id:
            body["parentId"] = parent_id
        data = await self._request("POST", f"/ideas/{idea_id}/comments", json=body)
        try:
            return Comment.model_validate(data)
        except ValidationError as exc:
            raise BackendError("Malformed comment returned by backend") from exc

    async def delete_comment(self, comment_id: str) -> None:
        await self._request("DELETE", f"/ideas/comments/{comment_id}")
