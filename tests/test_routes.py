import base64
import io

import pytest

from ideaboard import create_app
from ideaboard.config import Config
from ideaboard.discussion.backends import BackendError, BackendUnavailable
from tests.fakes import FakeBackend, FakeClient, make_image_bytes


class RouteConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    REACTION_QUERY_ENABLED = False
    EVENT_LOG_PATH = ""


@pytest.fixture
def backend():
    return FakeBackend(reaction_query=False)


@pytest.fixture
def client(backend):
    app = create_app(RouteConfig, client_factory=lambda token: FakeClient(backend))
    return app.test_client()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["ok"] is True


def test_discussion_returns_threaded_comments(client, backend):
    backend.add_idea("i1", likes=2)
    backend.comments["i1"] = [
        {"id": "1", "content": "root", "parentId": None},
        {"id": "2", "content": "reply", "parentId": "1"},
        {"id": "3", "content": "orphan", "parentId": "missing"},
    ]

    data = client.get("/ideas/i1/discussion").get_json()

    assert [c["id"] for c in data["comments"]] == ["1"]
    assert [r["id"] for r in data["comments"][0]["replies"]] == ["2"]
    assert data["reaction"]["state"] == "none"
    assert data["reaction"]["likes"] == 2


def test_blank_comment_is_refused(client, backend):
    response = client.post("/ideas/i1/comments", json={"content": "   "})

    assert response.status_code == 400
    assert not [c for c in backend.calls if c[0] == "submit_comment"]


def test_comment_and_reply_are_refetched(client, backend):
    first = client.post("/ideas/i1/comments", json={"content": "  hello  "})
    root_id = first.get_json()["comments"][0]["id"]
    second = client.post("/ideas/i1/comments", json={"content": "re", "parentId": root_id})

    assert first.status_code == 201
    assert ("submit_comment", "i1", "hello", None) in backend.calls
    tree = second.get_json()["comments"]
    assert [r["content"] for r in tree[0]["replies"]] == ["re"]
    assert tree[0]["author"]["displayName"] == "Ada L"


def test_delete_comment_returns_remaining_tree(client, backend):
    backend.comments["i1"] = [{"id": "1", "content": "a"}, {"id": "2", "content": "b"}]

    data = client.delete("/ideas/i1/comments/1").get_json()

    assert [c["id"] for c in data["comments"]] == ["2"]


def test_liking_twice_toggles_through_the_session(client, backend):
    backend.add_idea("i1")

    first = client.post("/ideas/i1/like").get_json()
    second = client.post("/ideas/i1/like").get_json()

    assert first["ok"] and first["reaction"]["state"] == "liked"
    assert first["reaction"]["likes"] == 1
    assert second["reaction"]["predicted"] == "none"
    assert second["reaction"]["likes"] == 0
    assert backend.reaction_calls() == ["like", "like"]


def test_dislike_after_like_switches(client, backend):
    backend.add_idea("i1")
    client.post("/ideas/i1/like")

    data = client.post("/ideas/i1/dislike").get_json()

    assert data["reaction"]["state"] == "disliked"
    assert (data["reaction"]["likes"], data["reaction"]["dislikes"]) == (0, 1)


def test_failed_reaction_reports_error_with_reconciled_state(client, backend):
    backend.add_idea("i1", likes=3)
    backend.fail_reactions = BackendError("boom", status_code=500)

    response = client.post("/ideas/i1/like")
    data = response.get_json()

    assert response.status_code == 200
    assert data["ok"] is False
    assert data["error"] == "boom"
    assert data["reaction"]["likes"] == 3


def test_listing_ideas_normalizes_attachments(client, backend):
    body = base64.b64encode(make_image_bytes(fmt="PNG")).decode()
    backend.add_idea("i1", likes=1, attachments=[body, "garbage"])
    backend.add_idea("other", topic_id="t2")

    data = client.get("/topics/t1/ideas").get_json()

    assert [i["id"] for i in data["ideas"]] == ["i1"]
    idea = data["ideas"][0]
    assert idea["attachments"] == [f"data:image/png;base64,{body}"]
    assert idea["likes"] == 1
    assert idea["reaction"] == "none"


def test_idea_submission_with_attachments(client, backend):
    png = make_image_bytes(fmt="PNG")
    response = client.post(
        "/topics/t1/ideas",
        data={
            "title": "Better coffee",
            "staged_count": "4",
            "attachments": [
                (io.BytesIO(png), "one.png", "image/png"),
                (io.BytesIO(b"plain text"), "notes.txt", "text/plain"),
                (io.BytesIO(png), "two.png", "image/png"),
            ],
        },
        content_type="multipart/form-data",
    )
    data = response.get_json()

    assert response.status_code == 201
    assert data["attachments"] == 1
    assert {(r["filename"], r["reason"]) for r in data["rejections"]} == {
        ("notes.txt", "unsupported_type"),
        ("two.png", "batch_limit"),
    }
    call = [c for c in backend.calls if c[0] == "submit_idea"][0]
    assert call[2:4] == ("Better coffee", "Better coffee")
    assert call[4][0].startswith("data:image/png;base64,")


def test_idea_without_title_is_refused(client):
    response = client.post("/topics/t1/ideas", json={"title": " ", "description": "x"})
    assert response.status_code == 400


def test_backend_errors_map_to_gateway_statuses(backend):
    class Failing(FakeBackend):
        def __init__(self, exc):
            super().__init__()
            self.exc = exc

        async def fetch_comments(self, idea_id):
            raise self.exc

    for exc, status in ((BackendUnavailable("offline"), 503), (BackendError("bad", status_code=500), 502)):
        app = create_app(RouteConfig, client_factory=lambda token, exc=exc: FakeClient(Failing(exc)))
        response = app.test_client().get("/ideas/i1/discussion")
        assert response.status_code == status
        assert response.get_json()["ok"] is False


def test_normalize_endpoint(client):
    body = base64.b64encode(make_image_bytes(fmt="GIF")).decode()

    repaired = client.post("/attachments/normalize", json={"payload": f"data:image/gif,base64,{body}"})
    rejected = client.post("/attachments/normalize", json={"payload": "not an image"})

    assert repaired.get_json()["payload"] == f"data:image/gif;base64,{body}"
    assert repaired.get_json()["repaired"] is True
    assert rejected.status_code == 422


@pytest.mark.parametrize("body", [{"title": 5}, {"title": "Ok", "description": ["x"]}])
def test_non_text_idea_fields_are_refused(client, backend, body):
    response = client.post("/topics/t1/ideas", json=body)

    assert response.status_code == 400
    assert not [c for c in backend.calls if c[0] == "submit_idea"]
