"""In-memory implementations of the backend protocols."""

from __future__ import annotations

import io
import itertools
from typing import Dict, List, Optional, Sequence

from PIL import Image

from ideaboard.discussion.backends import BackendError, ReactionQueryUnsupported
from ideaboard.discussion.models import Comment, Idea, IdeaEngagementCounters


class FakeBackend:
    """Mimics the REST backend: one reaction per user, toggling on repeat."""

    def __init__(self, *, reaction_query: bool = True) -> None:
        self.reaction_query = reaction_query
        self.calls: List[tuple] = []
        self.comments: Dict[str, List[dict]] = {}
        self.ideas: Dict[str, dict] = {}
        self.my_reactions: Dict[str, Optional[str]] = {}
        self.fail_reactions: Optional[BackendError] = None
        self.fail_counters: Optional[BackendError] = None
        self._ids = itertools.count(100)

    def add_idea(self, idea_id: str, topic_id: str = "t1", **fields) -> dict:
        idea = {"id": idea_id, "topicId": topic_id, "title": f"Idea {idea_id}", "likes": 0, "dislikes": 0}
        idea.update(fields)
        self.ideas[idea_id] = idea
        return idea

    # Ideas ------------------------------------------------------------
    async def fetch_ideas(self, topic_id: str) -> List[Idea]:
        self.calls.append(("fetch_ideas", topic_id))
        return [Idea.model_validate(i) for i in self.ideas.values() if i.get("topicId") == topic_id]

    async def submit_idea(self, topic_id: str, title: str, description: str, attachments: Sequence[str]) -> Idea:
        self.calls.append(("submit_idea", topic_id, title, description, list(attachments)))
        idea = self.add_idea(str(next(self._ids)), topic_id, title=title, description=description,
                             attachments=list(attachments))
        return Idea.model_validate(idea)

    # Reactions --------------------------------------------------------
    async def _react(self, idea_id: str, kind: str) -> None:
        self.calls.append((kind, idea_id))
        if self.fail_reactions is not None:
            raise self.fail_reactions
        idea = self.ideas.setdefault(idea_id, {"id": idea_id, "likes": 0, "dislikes": 0})
        current = self.my_reactions.get(idea_id)
        counter = "likes" if kind == "like" else "dislikes"
        if current == kind:
            idea[counter] -= 1
            self.my_reactions[idea_id] = None
            return
        if current is not None:
            other = "dislikes" if kind == "like" else "likes"
            idea[other] -= 1
        idea[counter] += 1
        self.my_reactions[idea_id] = kind

    async def like(self, idea_id: str) -> None:
        await self._react(idea_id, "like")

    async def dislike(self, idea_id: str) -> None:
        await self._react(idea_id, "dislike")

    async def fetch_my_reaction(self, idea_id: str) -> Optional[str]:
        self.calls.append(("fetch_my_reaction", idea_id))
        if not self.reaction_query:
            raise ReactionQueryUnsupported("not supported", status_code=404)
        return self.my_reactions.get(idea_id)

    async def fetch_counters(self, idea_id: str) -> IdeaEngagementCounters:
        self.calls.append(("fetch_counters", idea_id))
        if self.fail_counters is not None:
            raise self.fail_counters
        return IdeaEngagementCounters.model_validate(self.ideas.get(idea_id, {}))

    # Comments ---------------------------------------------------------
    async def fetch_comments(self, idea_id: str) -> List[Comment]:
        self.calls.append(("fetch_comments", idea_id))
        return [Comment.model_validate(c) for c in self.comments.get(idea_id, [])]

    async def submit_comment(self, idea_id: str, content: str, parent_id: Optional[str] = None) -> Comment:
        self.calls.append(("submit_comment", idea_id, content, parent_id))
        comment = {"id": str(next(self._ids)), "content": content, "parentId": parent_id,
                   "author": {"firstName": "Ada", "lastName": "L"}}
        self.comments.setdefault(idea_id, []).append(comment)
        return Comment.model_validate(comment)

    async def delete_comment(self, comment_id: str) -> None:
        self.calls.append(("delete_comment", comment_id))
        for items in self.comments.values():
            items[:] = [c for c in items if str(c["id"]) != comment_id]

    def reaction_calls(self) -> List[str]:
        return [call[0] for call in self.calls if call[0] in ("like", "dislike")]


class FakeClient:
    """Async context manager wrapper so a FakeBackend can stand in for the HTTP client."""

    def __init__(self, backend: FakeBackend) -> None:
        self.backend = backend

    async def __aenter__(self) -> FakeBackend:
        return self.backend

    async def __aexit__(self, *exc_info) -> None:
        return None


def make_image_bytes(size=(64, 48), fmt="PNG", color=(200, 40, 40)) -> bytes:
    if fmt in ("PNG", "WEBP"):
        img = Image.new("RGBA", size, tuple(color) + (255,))
    elif fmt == "GIF":
        img = Image.new("RGB", size, tuple(color)).convert("P")
    else:
        img = Image.new("RGB", size, tuple(color))
    buf = io.BytesIO()
    save_kwargs = {"quality": 90} if fmt in ("JPEG", "WEBP") else {}
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()
