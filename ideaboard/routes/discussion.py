from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from flask import Blueprint, current_app, jsonify, request, session

from ideaboard.discussion.backends import (
    BackendAuthError,
    BackendError,
    BackendUnavailable,
    InvalidSubmission,
    ReactionConflict,
)
from ideaboard.discussion.reactions import ReactionOutcome, ReactionStore
from ideaboard.discussion.view import DiscussionView
from ideaboard.extensions import api_backend
from ideaboard.media.codec import EncodedImageCodec
from ideaboard.media.ingest import ImageIngestPipeline, RawImageFile
from ideaboard.utils.telemetry import log_event


logger = logging.getLogger(__name__)

discussion_bp = Blueprint("discussion_bp", __name__)

_SESSION_KEY = "reactions"


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


def _parse_non_negative_int(raw: Optional[str], default: int = 0) -> int:
    try:
        return max(0, int(raw)) if raw not in (None, "") else default
    except (TypeError, ValueError):
        return default


@asynccontextmanager
async def _discussion_view() -> AsyncIterator[DiscussionView]:
    """One view per request; reaction slots round-trip through the session."""
    store = ReactionStore(session.get(_SESSION_KEY) or {})
    async with api_backend.open_client(_bearer_token()) as client:
        view = DiscussionView(
            client,
            client,
            client,
            store=store,
            pipeline=ImageIngestPipeline.from_config(current_app.config),
            reaction_query_supported=api_backend.reaction_query_enabled,
        )
        try:
            yield view
        finally:
            view.close()
            session[_SESSION_KEY] = store.snapshot()


@discussion_bp.errorhandler(BackendError)
def _backend_error(exc: BackendError):
    if isinstance(exc, BackendAuthError):
        status = 401
    elif isinstance(exc, ReactionConflict):
        status = 409
    elif isinstance(exc, BackendUnavailable):
        status = 503
    else:
        status = 502
    return jsonify({"ok": False, "error": exc.message}), status


@discussion_bp.errorhandler(InvalidSubmission)
def _invalid_submission(exc: InvalidSubmission):
    return jsonify({"ok": False, "error": str(exc)}), 400


# ----------------------------------------------------------------------
# Ideas
# ----------------------------------------------------------------------
@discussion_bp.get("/topics/<topic_id>/ideas")
async def list_ideas(topic_id: str):
    async with _discussion_view() as view:
        cards = await view.load_ideas(topic_id)
    return jsonify({"ok": True, "ideas": [card.to_dict() for card in cards]})


@discussion_bp.post("/topics/<topic_id>/ideas")
async def create_idea(topic_id: str):
    if request.is_json:
        data = request.get_json(silent=True) or {}
        title, description = data.get("title", ""), data.get("description", "")
        staged_count = _parse_non_negative_int(str(data.get("staged_count", "")))
        files = []
    else:
        title = request.form.get("title", "")
        description = request.form.get("description", "")
        staged_count = _parse_non_negative_int(request.form.get("staged_count"))
        files = [
            RawImageFile.from_file_storage(f)
            for f in request.files.getlist("attachments")
            if f and f.filename
        ]

    async with _discussion_view() as view:
        submission = await view.submit_idea(topic_id, title, description, files, staged_count)

    for rejection in submission.rejections:
        log_event("attachment.rejected", {
            "topic_id": topic_id,
            "attachment": rejection.filename,
            "reason": rejection.reason.value,
        })
    log_event("idea.submitted", {
        "topic_id": topic_id,
        "idea_id": submission.idea.id,
        "attachments": len(submission.attachments),
    })
    return jsonify({
        "ok": True,
        "idea": {
            "id": submission.idea.id,
            "title": submission.idea.title,
            "description": submission.idea.description,
            "topicId": submission.idea.topic_id or topic_id,
        },
        "attachments": len(submission.attachments),
        "rejections": [r.to_dict() for r in submission.rejections],
    }), 201


# ----------------------------------------------------------------------
# Discussion
# ----------------------------------------------------------------------
@discussion_bp.get("/ideas/<idea_id>/discussion")
async def get_discussion(idea_id: str):
    async with _discussion_view() as view:
        nodes = await view.load_comments(idea_id)
        reaction = await view.load_reaction(idea_id)
    return jsonify({
        "ok": True,
        "comments": [node.to_dict() for node in nodes],
        "reaction": reaction.to_dict(),
    })


@discussion_bp.post("/ideas/<idea_id>/comments")
async def add_comment(idea_id: str):
    data = request.get_json(silent=True) or {}
    parent_id = data.get("parentId")
    async with _discussion_view() as view:
        nodes = await view.submit_comment(
            idea_id, str(data.get("content") or ""), str(parent_id) if parent_id else None
        )
    log_event("comment.submitted", {"idea_id": idea_id, "reply": bool(parent_id)})
    return jsonify({"ok": True, "comments": [node.to_dict() for node in nodes]}), 201


@discussion_bp.delete("/ideas/<idea_id>/comments/<comment_id>")
async def remove_comment(idea_id: str, comment_id: str):
    async with _discussion_view() as view:
        nodes = await view.delete_comment(idea_id, comment_id)
    return jsonify({"ok": True, "comments": [node.to_dict() for node in nodes]})


# ----------------------------------------------------------------------
# Reactions
# ----------------------------------------------------------------------
def _reaction_response(outcome: ReactionOutcome):
    log_event("reaction.reconciled", {
        "idea_id": outcome.idea_id,
        "intent": outcome.intent.value if outcome.intent else None,
        "state": outcome.state.value,
        "confirmed": outcome.confirmed,
    })
    error = outcome.error
    if isinstance(error, BackendAuthError):
        return jsonify({"ok": False, "error": error.message}), 401
    # "Already reacted" answers are not worth surfacing; the refetch settled the state
    if error is not None and not isinstance(error, ReactionConflict):
        return jsonify({"ok": False, "error": error.message, "reaction": outcome.to_dict()})
    return jsonify({"ok": True, "reaction": outcome.to_dict()})


@discussion_bp.post("/ideas/<idea_id>/like")
async def like_idea(idea_id: str):
    async with _discussion_view() as view:
        task = view.like(idea_id)
        log_event("reaction.requested", {"idea_id": idea_id, "intent": "like", "predicted": view.reactions.state(idea_id).value})
        outcome = await task
    return _reaction_response(outcome)


@discussion_bp.post("/ideas/<idea_id>/dislike")
async def dislike_idea(idea_id: str):
    async with _discussion_view() as view:
        task = view.dislike(idea_id)
        log_event("reaction.requested", {"idea_id": idea_id, "intent": "dislike", "predicted": view.reactions.state(idea_id).value})
        outcome = await task
    return _reaction_response(outcome)


# ----------------------------------------------------------------------
# Attachments
# ----------------------------------------------------------------------
@discussion_bp.post("/attachments/normalize")
def normalize_attachment():
    data = request.get_json(silent=True) or {}
    payload = EncodedImageCodec().normalize(data.get("payload"))
    if payload is None:
        return jsonify({"ok": False, "error": "Invalid image data"}), 422
    return jsonify({
        "ok": True,
        "payload": payload.value,
        "format": payload.format,
        "repaired": payload.repaired,
    })
