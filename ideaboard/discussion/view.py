from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ideaboard.discussion.backends import CommentBackend, IdeaBackend, InvalidSubmission, ReactionBackend
from ideaboard.discussion.comments import CommentNode, CommentTreeBuilder
from ideaboard.discussion.models import Idea
from ideaboard.discussion.reactions import ReactionController, ReactionOutcome, ReactionStore
from ideaboard.media.codec import EncodedImageCodec, EncodedPayload
from ideaboard.media.ingest import ImageIngestPipeline, IngestRejection, RawImageFile


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IdeaCard:
    idea: Idea
    reaction: ReactionOutcome
    attachments: List[EncodedPayload] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.idea.id,
            "title": self.idea.title,
            "description": self.idea.description,
            "createdAt": self.idea.created_at,
            "author": self.idea.author.display_name,
            "likes": self.reaction.counters.likes if self.reaction.counters else self.idea.likes,
            "dislikes": self.reaction.counters.dislikes if self.reaction.counters else self.idea.dislikes,
            "reaction": self.reaction.state.value,
            "attachments": [payload.value for payload in self.attachments],
        }


@dataclass(slots=True)
class IdeaSubmission:
    idea: Idea
    attachments: List[EncodedPayload]
    rejections: List[IngestRejection]


class DiscussionView:
    """Wires comment threading, reactions and attachments to the backends."""

    def __init__(
        self,
        comments: CommentBackend,
        reactions: ReactionBackend,
        ideas: IdeaBackend,
        *,
        store: Optional[ReactionStore] = None,
        pipeline: Optional[ImageIngestPipeline] = None,
        codec: Optional[EncodedImageCodec] = None,
        reaction_query_supported: bool = True,
    ) -> None:
        self.comments = comments
        self.ideas = ideas
        self.tree_builder = CommentTreeBuilder()
        self.reactions = ReactionController(
            reactions, store, reaction_query_supported=reaction_query_supported
        )
        self.codec = codec or EncodedImageCodec()
        self.pipeline = pipeline or ImageIngestPipeline(codec=self.codec)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------
    async def load_comments(self, idea_id: str) -> List[CommentNode]:
        return self.tree_builder.build(await self.comments.fetch_comments(idea_id))

    async def submit_comment(self, idea_id: str, content: str, parent_id: Optional[str] = None) -> List[CommentNode]:
        text = (content or "").strip()
        if not text:
            raise InvalidSubmission("Comment cannot be empty")
        await self.comments.submit_comment(idea_id, text, parent_id or None)
        # The backend is eventually consistent; refetch instead of patching the tree
        return await self.load_comments(idea_id)

    async def delete_comment(self, idea_id: str, comment_id: str) -> List[CommentNode]:
        await self.comments.delete_comment(comment_id)
        return await self.load_comments(idea_id)

    # ------------------------------------------------------------------
    # Reactions
    # ------------------------------------------------------------------
    def like(self, idea_id: str) -> "asyncio.Task[ReactionOutcome]":
        return self.reactions.request_like(idea_id)

    def dislike(self, idea_id: str) -> "asyncio.Task[ReactionOutcome]":
        return self.reactions.request_dislike(idea_id)

    async def load_reaction(self, idea_id: str) -> ReactionOutcome:
        return await self.reactions.refresh(idea_id)

    # ------------------------------------------------------------------
    # Ideas
    # ------------------------------------------------------------------
    def render_attachments(self, raw: Sequence[str]) -> List[EncodedPayload]:
        rendered: List[EncodedPayload] = []
        for item in raw:
            payload = self.codec.normalize(item)
            if payload is None:
                logger.info("Hiding attachment that could not be normalized")
                continue
            rendered.append(payload)
        return rendered

    async def load_ideas(self, topic_id: str) -> List[IdeaCard]:
        cards: List[IdeaCard] = []
        for idea in await self.ideas.fetch_ideas(topic_id):
            self.reactions.seed(idea.id, idea.counters)
            state = self.reactions.state(idea.id)
            outcome = ReactionOutcome(
                idea_id=idea.id, intent=None, predicted=state, state=state,
                counters=self.reactions.counters(idea.id),
            )
            cards.append(IdeaCard(idea=idea, reaction=outcome, attachments=self.render_attachments(idea.attachments)))
        return cards

    async def submit_idea(
        self,
        topic_id: str,
        title: str,
        description: str = "",
        files: Sequence[RawImageFile] = (),
        current_count: int = 0,
    ) -> IdeaSubmission:
        if not isinstance(title or "", str) or not isinstance(description or "", str):
            raise InvalidSubmission("Idea title and description must be text")
        clean_title = (title or "").strip()
        if not clean_title:
            raise InvalidSubmission("Idea title cannot be empty")
        # The backend requires a description; the title doubles as one
        clean_description = (description or "").strip() or clean_title

        result = await self.pipeline.ingest(files, current_count)
        idea = await self.ideas.submit_idea(
            topic_id, clean_title, clean_description, [payload.value for payload in result.payloads]
        )
        return IdeaSubmission(idea=idea, attachments=result.payloads, rejections=result.rejections)

    def close(self) -> None:
        self.reactions.close()
