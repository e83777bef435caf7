from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from ideaboard.discussion.models import Comment


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommentNode:
    comment: Comment
    replies: Tuple[Comment, ...] = ()

    def to_dict(self) -> dict:
        data = self.comment.to_dict()
        data["replies"] = [reply.to_dict() for reply in self.replies]
        return data


class CommentTreeBuilder:
    """Groups a flat comment list into roots with one level of replies.

    Replies whose parent is not a root in the same list (orphans, and replies
    to replies) are left out of the tree. Source order is kept everywhere.
    """

    def build(self, comments: Iterable[Comment]) -> List[CommentNode]:
        roots: List[Comment] = []
        replies_by_parent: Dict[str, List[Comment]] = {}
        for comment in comments:
            if comment.parent_id is None:
                roots.append(comment)
            else:
                replies_by_parent.setdefault(comment.parent_id, []).append(comment)

        nodes: List[CommentNode] = []
        root_ids: set[str] = set()
        for root in roots:
            # A duplicated root id keeps its replies on the first occurrence only
            replies = () if root.id in root_ids else tuple(replies_by_parent.get(root.id, ()))
            root_ids.add(root.id)
            nodes.append(CommentNode(comment=root, replies=replies))

        if logger.isEnabledFor(logging.DEBUG):
            hidden = sum(len(group) for parent, group in replies_by_parent.items() if parent not in root_ids)
            if hidden:
                logger.debug("Comment tree hides %d replies without a root parent", hidden)
        return nodes


def build_comment_tree(comments: Iterable[Comment]) -> List[CommentNode]:
    return CommentTreeBuilder().build(comments)
