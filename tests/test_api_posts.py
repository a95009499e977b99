"""
tests/test_api_posts.py -- Integration tests for /api/v1/posts/*.

Covers:
  - create requires auth; author comes from the token, never the body
  - missing board -> 400 validation_error
  - edit/delete only by author or admin; a refused edit leaves the post unchanged
  - pin/notice flags are admin-only
  - delete hides the post: 404 for others, board count drops, admin can restore
  - draft visibility and publish
  - listing: board filter, sort, page past the end
  - views counted on read; likes/dislikes
  - attachments: upload, size limit, non-owner refused
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

BASE = "/api/v1/posts"


@pytest.fixture(scope="module")
def alice(api):
    return api.new_user("alice_p")


@pytest.fixture(scope="module")
def bob(api):
    return api.new_user("bob_p")


def test_create_requires_auth(api):
    resp = api.client.post(BASE, json={"title": "t", "content": "c", "board": "politics"})
    assert resp.status_code == 401


def test_create_post_sets_author_from_token(api, alice):
    uid, headers = alice
    post = api.create_post(headers, title="Mine", tags="one, two,one", author_id=api.admin_id)
    assert post["author"]["id"] == uid
    assert post["author"]["username"] == "alice_p"
    assert post["status"] == "published"
    assert post["tags"] == ["one", "two"]
    assert post["stats"] == {"views": 0, "likes": 0, "dislikes": 0, "comments": 0}


def test_create_on_missing_board_rejected(api, alice):
    _, headers = alice
    resp = api.client.post(BASE, json={"title": "t", "content": "c", "board": "nowhere"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_create_validation_errors_are_400(api, alice):
    _, headers = alice
    resp = api.client.post(BASE, json={"title": "", "content": "c", "board": "politics"}, headers=headers)
    assert resp.status_code == 400
    too_long = api.client.post(BASE, json={"title": "x" * 201, "content": "c", "board": "politics"}, headers=headers)
    assert too_long.status_code == 400


def test_non_owner_cannot_edit_and_post_is_unchanged(api, alice, bob):
    _, alice_headers = alice
    _, bob_headers = bob
    post = api.create_post(alice_headers, title="Original")

    resp = api.client.patch(f"{BASE}/{post['id']}", json={"title": "Hacked"}, headers=bob_headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"
    assert api.client.get(f"{BASE}/{post['id']}").json()["title"] == "Original"

    resp = api.client.delete(f"{BASE}/{post['id']}", headers=bob_headers)
    assert resp.status_code == 403
    assert api.client.get(f"{BASE}/{post['id']}").status_code == 200


def test_owner_and_admin_can_edit(api, alice):
    _, headers = alice
    post = api.create_post(headers)
    resp = api.client.patch(f"{BASE}/{post['id']}", json={"title": "Edited", "tags": ["x"]}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Edited"
    assert resp.json()["tags"] == ["x"]

    resp = api.client.patch(f"{BASE}/{post['id']}", json={"content": "By admin"}, headers=api.admin)
    assert resp.status_code == 200
    assert resp.json()["content"] == "By admin"


def test_empty_patch_rejected(api, alice):
    _, headers = alice
    post = api.create_post(headers)
    resp = api.client.patch(f"{BASE}/{post['id']}", json={}, headers=headers)
    assert resp.status_code == 400


def test_pin_is_admin_only(api, alice):
    _, headers = alice
    post = api.create_post(headers)
    assert api.client.patch(f"{BASE}/{post['id']}", json={"is_pinned": True}, headers=headers).status_code == 403
    resp = api.client.patch(f"{BASE}/{post['id']}", json={"is_pinned": True}, headers=api.admin)
    assert resp.status_code == 200
    assert resp.json()["is_pinned"] is True


def test_delete_hides_post_and_admin_restores(api, alice, bob):
    _, headers = alice
    _, bob_headers = bob
    before = api.forum_store.get_board("society").post_count
    post = api.create_post(headers, board="society")
    assert api.forum_store.get_board("society").post_count == before + 1

    assert api.client.delete(f"{BASE}/{post['id']}", headers=headers).status_code == 200
    assert api.forum_store.get_board("society").post_count == before
    assert api.client.get(f"{BASE}/{post['id']}").status_code == 404
    assert api.client.get(f"{BASE}/{post['id']}", headers=headers).status_code == 404
    assert api.client.get(f"{BASE}/{post['id']}", headers=api.admin).json()["status"] == "hidden"

    assert api.client.post(f"{BASE}/{post['id']}/restore", headers=bob_headers).status_code == 403
    resp = api.client.post(f"{BASE}/{post['id']}/restore", headers=api.admin)
    assert resp.status_code == 200
    assert resp.json()["status"] == "published"
    assert api.forum_store.get_board("society").post_count == before + 1


def test_admin_hide_and_restore_rules(api, alice):
    _, headers = alice
    post = api.create_post(headers)
    assert api.client.post(f"{BASE}/{post['id']}/hide", headers=headers).status_code == 403
    assert api.client.post(f"{BASE}/{post['id']}/restore", headers=api.admin).status_code == 400
    assert api.client.post(f"{BASE}/{post['id']}/hide", headers=api.admin).json()["status"] == "hidden"
    assert api.client.post(f"{BASE}/{post['id']}/hide", headers=api.admin).status_code == 400


def test_draft_visible_to_author_only_until_published(api, alice, bob):
    _, headers = alice
    _, bob_headers = bob
    draft = api.create_post(headers, status="draft", board="issue")
    assert draft["status"] == "draft"
    assert api.client.get(f"{BASE}/{draft['id']}").status_code == 404
    assert api.client.get(f"{BASE}/{draft['id']}", headers=bob_headers).status_code == 404
    assert api.client.get(f"{BASE}/{draft['id']}", headers=headers).status_code == 200
    listed = api.client.get(BASE, params={"board": "issue"}).json()["posts"]
    assert draft["id"] not in [p["id"] for p in listed]

    assert api.client.post(f"{BASE}/{draft['id']}/publish", headers=bob_headers).status_code == 404
    resp = api.client.post(f"{BASE}/{draft['id']}/publish", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "published"
    assert api.client.post(f"{BASE}/{draft['id']}/publish", headers=headers).status_code == 400


def test_reading_counts_views(api, alice):
    _, headers = alice
    post = api.create_post(headers)
    api.client.get(f"{BASE}/{post['id']}")
    second = api.client.get(f"{BASE}/{post['id']}").json()
    assert second["stats"]["views"] == 2


def test_like_and_dislike(api, alice, bob):
    uid, headers = alice
    _, bob_headers = bob
    post = api.create_post(headers)
    likes_before = api.user_store.get_by_id(uid).stats.likes
    assert api.client.post(f"{BASE}/{post['id']}/like").status_code == 401
    api.client.post(f"{BASE}/{post['id']}/like", headers=bob_headers)
    resp = api.client.post(f"{BASE}/{post['id']}/dislike", headers=bob_headers)
    assert resp.json() == {"likes": 1, "dislikes": 1}
    assert api.user_store.get_by_id(uid).stats.likes == likes_before + 1
    assert api.client.post(f"{BASE}/999999/like", headers=bob_headers).status_code == 404


def test_unknown_post_404(api):
    resp = api.client.get(f"{BASE}/999999")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def test_page_three_of_two_is_empty(api):
    _, headers = api.new_user("lister")
    for i in range(4):
        api.create_post(headers, board="celeb", title=f"celeb {i}")
    resp = api.client.get(BASE, params={"board": "celeb", "page": 3, "limit": 2})
    assert resp.status_code == 200
    data = resp.json()
    assert data["posts"] == []
    assert data["pagination"] == {
        "current_page": 3,
        "page_size": 2,
        "total_posts": 4,
        "total_pages": 2,
        "has_next": False,
        "has_prev": True,
    }


def test_listing_latest_first_and_popular(api):
    _, headers = api.new_user("sorter")
    _, fan = api.new_user("fan")
    first = api.create_post(headers, board="stock", title="first")
    second = api.create_post(headers, board="stock", title="second")
    latest = api.client.get(BASE, params={"board": "stock"}).json()["posts"]
    assert [p["id"] for p in latest][:2] == [second["id"], first["id"]]

    api.client.post(f"{BASE}/{first['id']}/like", headers=fan)
    popular = api.client.get(BASE, params={"board": "stock", "sort": "popular"}).json()["posts"]
    assert popular[0]["id"] == first["id"]


def test_listing_rejects_bad_window_and_sort(api):
    assert api.client.get(BASE, params={"page": 0}).status_code == 400
    assert api.client.get(BASE, params={"limit": 101}).status_code == 400
    assert api.client.get(BASE, params={"sort": "random"}).status_code == 400


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------


def test_upload_attachment(api, alice, bob):
    _, headers = alice
    _, bob_headers = bob
    post = api.create_post(headers)
    files = [("files", ("../../evil name.txt", b"hello", "text/plain"))]

    refused = api.client.post(f"{BASE}/{post['id']}/attachments", files=files, headers=bob_headers)
    assert refused.status_code == 403

    resp = api.client.post(f"{BASE}/{post['id']}/attachments", files=files, headers=headers)
    assert resp.status_code == 201
    attachment = resp.json()["attachments"][0]
    assert attachment["original_name"] == "evil name.txt"
    assert attachment["size"] == 5
    assert attachment["url"].startswith("/uploads/files-")
    assert ".." not in attachment["name"]


def test_upload_too_large_rejected(api, alice):
    _, headers = alice
    post = api.create_post(headers)
    storage = api.client.app.state.file_storage
    original_limit = storage.max_bytes
    storage.max_bytes = 1024
    try:
        resp = api.client.post(
            f"{BASE}/{post['id']}/attachments",
            files=[
                ("files", ("small.txt", b"ok", "text/plain")),
                ("files", ("big.bin", b"x" * 1025, "application/octet-stream")),
            ],
            headers=headers,
        )
    finally:
        storage.max_bytes = original_limit
    assert resp.status_code == 400
    assert api.forum_store.get_post(post["id"]).attachments == []


def test_failed_attachment_row_removes_stored_file(api, alice, monkeypatch):
    _, headers = alice
    post = api.create_post(headers)
    storage = api.client.app.state.file_storage
    storage.root.mkdir(parents=True, exist_ok=True)
    before = set(storage.root.iterdir())

    def locked(post_id, attachment):
        raise OperationalError("INSERT INTO attachments", {}, Exception("database is locked"))

    monkeypatch.setattr(api.forum_store, "add_attachment", locked)
    resp = api.client.post(
        f"{BASE}/{post['id']}/attachments",
        files=[("files", ("note.txt", b"hello", "text/plain"))],
        headers=headers,
    )
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "storage_unavailable"
    assert set(storage.root.iterdir()) == before
