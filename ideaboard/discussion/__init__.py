from ideaboard.discussion.comments import CommentNode, CommentTreeBuilder, build_comment_tree
from ideaboard.discussion.models import Author, Comment, Idea, IdeaEngagementCounters
from ideaboard.discussion.reactions import (
    Intent,
    ReactionController,
    ReactionOutcome,
    ReactionState,
    ReactionStore,
)
from ideaboard.discussion.view import DiscussionView, IdeaCard, IdeaSubmission

__all__ = [
    "Author",
    "Comment",
    "CommentNode",
    "CommentTreeBuilder",
    "DiscussionView",
    "Idea",
    "IdeaCard",
    "IdeaEngagementCounters",
    "IdeaSubmission",
    "Intent",
    "ReactionController",
    "ReactionOutcome",
    "ReactionState",
    "ReactionStore",
    "build_comment_tree",
]
