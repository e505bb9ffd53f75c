"""
HTTP tests for /api/v1/posts against SQLite and an in-memory object store.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from resourcehub.core.config import settings
from resourcehub.core.security import create_access_token
from resourcehub.db.session import get_db
from resourcehub.main import create_app
from resourcehub.modules.posts.models.post import Post
from tests.conftest import AUTHOR_ID, OTHER_USER_ID, FakeAssetStore

POSTS_URL = "/api/v1/posts"

NOTE = {
    "type": "NOTE",
    "title": "Green's theorem summary",
    "content": "Circulation around a curve equals the curl over the region.",
}


def auth(user_id: str = AUTHOR_ID) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


def make_client(db, store) -> TestClient:
    app = create_app(asset_store=store)
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app)


@pytest.fixture
def client(db, store) -> TestClient:
    return make_client(db, store)


def create_note(client, **overrides) -> dict:
    response = client.post(POSTS_URL, data={**NOTE, **overrides}, headers=auth())
    assert response.status_code == 201, response.text
    return response.json()


# --- Create ---


def test_create_text_post(client):
    body = create_note(client, tag_ids="[1, 2]")

    assert body["type"] == "NOTE"
    assert [tag["name"] for tag in body["tags"]] == ["Algorithms", "Calculus"]
    assert body["author"]["username"] == "ada"
    assert body["file_url"] is None


def test_create_accepts_repeated_tag_fields(client):
    body = create_note(client, tag_ids=["3", "4"])

    assert [tag["id"] for tag in body["tags"]] == [3, 4]


def test_create_resource_post(client, store):
    response = client.post(
        POSTS_URL,
        data={"type": "RESOURCE", "title": "Past exam 2025", "tag_ids": "[4]"},
        files={"file": ("exam.pdf", b"%PDF-1.4 exam", "application/pdf")},
        headers=auth(),
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["file_name"] == "exam.pdf"
    assert body["file_size"] == len(b"%PDF-1.4 exam")
    assert body["mime_type"] == "application/pdf"
    assert body["content"] is None
    assert "asset_id" not in body
    assert len(store.objects) == 1


def test_create_rejects_disallowed_file_type_before_upload(client, store):
    response = client.post(
        POSTS_URL,
        data={"type": "RESOURCE", "title": "Totally a PDF"},
        files={"file": ("setup.exe", b"MZ\x90\x00", "application/x-msdownload")},
        headers=auth(),
    )

    assert response.status_code == 422
    assert store.uploads == []


def test_create_rejects_text_post_with_file(client, store):
    response = client.post(
        POSTS_URL,
        data=NOTE,
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        headers=auth(),
    )

    assert response.status_code == 422
    assert store.uploads == []


def test_create_rejects_malformed_tag_list(client):
    response = client.post(POSTS_URL, data={**NOTE, "tag_ids": "[1, 2"}, headers=auth())

    assert response.status_code == 422


def test_create_upload_failure_returns_502(db):
    client = make_client(db, FakeAssetStore(fail_upload=True))

    response = client.post(
        POSTS_URL,
        data={"type": "RESOURCE", "title": "Past exam 2025"},
        files={"file": ("exam.pdf", b"%PDF-1.4 exam", "application/pdf")},
        headers=auth(),
    )

    assert response.status_code == 502
    assert response.json()["code"] == "ASSET_UPLOAD_FAILED"
    assert db.query(Post).count() == 0


def test_create_with_unknown_tag_compensates_upload(client, store, db):
    response = client.post(
        POSTS_URL,
        data={"type": "RESOURCE", "title": "Past exam 2025", "tag_ids": "[99]"},
        files={"file": ("exam.pdf", b"%PDF-1.4 exam", "application/pdf")},
        headers=auth(),
    )

    assert response.status_code == 500
    assert response.json() == {
        "detail": "The post could not be saved. Please try again.",
        "code": "WRITE_FAILED",
    }
    assert store.deletes == store.uploaded_ids
    assert store.objects == {}
    assert db.query(Post).count() == 0


# --- Auth ---


def test_requires_token(client):
    assert client.post(POSTS_URL, data=NOTE).status_code == 401


def test_rejects_bad_token(client):
    response = client.post(POSTS_URL, data=NOTE, headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 403


# --- Read ---


def test_get_post(client):
    created = create_note(client, tag_ids="[2]")

    response = client.get(f"{POSTS_URL}/{created['id']}", headers=auth(OTHER_USER_ID))

    assert response.status_code == 200
    assert response.json()["title"] == NOTE["title"]
    assert response.json()["comment_count"] == 0


def test_get_missing_post(client):
    response = client.get(f"{POSTS_URL}/does-not-exist", headers=auth())

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_edit_view_is_owner_only(client):
    created = create_note(client, tag_ids="[1]")

    own = client.get(f"{POSTS_URL}/{created['id']}/edit", headers=auth())
    other = client.get(f"{POSTS_URL}/{created['id']}/edit", headers=auth(OTHER_USER_ID))

    assert own.status_code == 200
    assert own.json()["has_file"] is False
    assert own.json()["content"] == NOTE["content"]
    assert other.status_code == 403


# --- Update ---


def test_update_replaces_tags(client):
    created = create_note(client, tag_ids="[1, 2]")

    response = client.put(
        f"{POSTS_URL}/{created['id']}",
        json={**NOTE, "title": "Green's theorem, revised", "tag_ids": [3]},
        headers=auth(),
    )

    assert response.status_code == 200, response.text
    assert response.json()["title"] == "Green's theorem, revised"
    assert [tag["id"] for tag in response.json()["tags"]] == [3]


def test_update_by_other_user_is_forbidden(client):
    created = create_note(client)

    response = client.put(f"{POSTS_URL}/{created['id']}", json=NOTE, headers=auth(OTHER_USER_ID))

    assert response.status_code == 403


def test_update_missing_post(client):
    response = client.put(f"{POSTS_URL}/does-not-exist", json=NOTE, headers=auth())

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_update_cannot_switch_variant(client):
    created = create_note(client)

    response = client.put(
        f"{POSTS_URL}/{created['id']}",
        json={"type": "RESOURCE", "title": "Now a file", "file_name": "green.pdf"},
        headers=auth(),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_FAILED"


def test_update_after_edit_window(client, db):
    created = create_note(client)
    post = db.get(Post, created["id"])
    post.created_at = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=10)
    db.commit()

    response = client.put(f"{POSTS_URL}/{created['id']}", json=NOTE, headers=auth())

    assert response.status_code == 403
    assert response.json()["detail"] == "Edit time window has expired"


# --- Delete ---


def test_delete_post_and_file(client, store):
    response = client.post(
        POSTS_URL,
        data={"type": "RESOURCE", "title": "Past exam 2025"},
        files={"file": ("exam.pdf", b"%PDF-1.4 exam", "application/pdf")},
        headers=auth(),
    )
    post_id = response.json()["id"]

    deleted = client.delete(f"{POSTS_URL}/{post_id}", headers=auth())

    assert deleted.status_code == 204
    assert client.get(f"{POSTS_URL}/{post_id}", headers=auth()).status_code == 404
    assert store.objects == {}


def test_delete_by_other_user_is_forbidden(client):
    created = create_note(client)

    response = client.delete(f"{POSTS_URL}/{created['id']}", headers=auth(OTHER_USER_ID))

    assert response.status_code == 403


def test_create_rejects_oversized_file_before_reading_it(client, store, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 16)

    response = client.post(
        POSTS_URL,
        data={"type": "RESOURCE", "title": "Past exam 2025"},
        files={"file": ("exam.pdf", b"%PDF-1.4 " + b"x" * 64, "application/pdf")},
        headers=auth(),
    )

    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"] == ["body", "file"]
    assert store.uploads == []
