"""
tests/test_api_comments.py -- Integration tests for comment threads.

Covers:
  - comment + reply; post and user comment counters follow
  - replies to a foreign or deleted parent rejected
  - comments on a draft or hidden post -> 404
  - edit/delete by author or admin only
  - delete leaves a tombstone with content withheld
  - comment reactions
"""

from __future__ import annotations

import pytest


@pytest.fixture(scope="module")
def author(api):
    return api.new_user("writer_c")


@pytest.fixture(scope="module")
def commenter(api):
    return api.new_user("commenter_c")


@pytest.fixture()
def post(api, author):
    _, headers = author
    return api.create_post(headers)


def _comment(api, post_id: int, headers, content: str = "hello", parent_id=None):
    body = {"content": content}
    if parent_id is not None:
        body["parent_id"] = parent_id
    return api.client.post(f"/api/v1/posts/{post_id}/comments", json=body, headers=headers)


def test_comment_and_reply_update_counters(api, post, commenter):
    uid, headers = commenter
    before = api.user_store.get_by_id(uid).stats.comments

    top = _comment(api, post["id"], headers)
    assert top.status_code == 201
    assert top.json()["author"]["username"] == "commenter_c"
    reply = _comment(api, post["id"], headers, "reply", parent_id=top.json()["id"])
    assert reply.status_code == 201
    assert reply.json()["parent_id"] == top.json()["id"]

    assert api.client.get(f"/api/v1/posts/{post['id']}").json()["stats"]["comments"] == 2
    assert api.user_store.get_by_id(uid).stats.comments == before + 2

    thread = api.client.get(f"/api/v1/posts/{post['id']}/comments").json()
    assert [c["id"] for c in thread] == [top.json()["id"], reply.json()["id"]]


def test_comment_requires_auth_and_content(api, post, commenter):
    assert _comment(api, post["id"], {}).status_code == 401
    _, headers = commenter
    assert _comment(api, post["id"], headers, content="").status_code == 400


def test_reply_to_foreign_parent_rejected(api, author, commenter):
    _, author_headers = author
    _, headers = commenter
    one = api.create_post(author_headers)
    two = api.create_post(author_headers)
    parent = _comment(api, one["id"], headers).json()
    resp = _comment(api, two["id"], headers, parent_id=parent["id"])
    assert resp.status_code == 400
    assert api.forum_store.get_post(two["id"]).stats.comments == 0


def test_comment_on_draft_or_missing_post_is_404(api, author, commenter):
    _, author_headers = author
    _, headers = commenter
    draft = api.create_post(author_headers, status="draft")
    assert _comment(api, draft["id"], headers).status_code == 404
    assert _comment(api, 999999, headers).status_code == 404
    assert api.client.get(f"/api/v1/posts/{draft['id']}/comments").status_code == 404


def test_only_author_or_admin_can_edit_and_delete(api, post, author, commenter):
    _, author_headers = author
    _, headers = commenter
    comment = _comment(api, post["id"], headers, "original").json()
    url = f"/api/v1/comments/{comment['id']}"

    assert api.client.patch(url, json={"content": "nope"}, headers=author_headers).status_code == 403
    assert api.client.delete(url, headers=author_headers).status_code == 403
    assert api.forum_store.get_comment(comment["id"]).content == "original"

    resp = api.client.patch(url, json={"content": "edited"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["content"] == "edited"

    assert api.client.delete(url, headers=api.admin).status_code == 200


def test_delete_leaves_tombstone(api, post, commenter):
    uid, headers = commenter
    top = _comment(api, post["id"], headers, "secret").json()
    reply = _comment(api, post["id"], headers, "child", parent_id=top["id"]).json()
    before = api.user_store.get_by_id(uid).stats.comments

    assert api.client.delete(f"/api/v1/comments/{top['id']}", headers=headers).status_code == 200
    assert api.client.delete(f"/api/v1/comments/{top['id']}", headers=headers).status_code == 404
    assert api.client.patch(f"/api/v1/comments/{top['id']}", json={"content": "x"}, headers=headers).status_code == 404

    thread = {c["id"]: c for c in api.client.get(f"/api/v1/posts/{post['id']}/comments").json()}
    assert thread[top["id"]]["is_deleted"] is True
    assert thread[top["id"]]["content"] is None
    assert thread[reply["id"]]["parent_id"] == top["id"]
    assert thread[reply["id"]]["content"] == "child"
    assert api.user_store.get_by_id(uid).stats.comments == before - 1

    assert _comment(api, post["id"], headers, parent_id=top["id"]).status_code == 400


def test_comment_reactions(api, post, author, commenter):
    _, author_headers = author
    uid, headers = commenter
    comment = _comment(api, post["id"], headers).json()
    likes_before = api.user_store.get_by_id(uid).stats.likes
    resp = api.client.post(f"/api/v1/comments/{comment['id']}/like", headers=author_headers)
    assert resp.json() == {"likes": 1, "dislikes": 0}
    resp = api.client.post(f"/api/v1/comments/{comment['id']}/dislike", headers=author_headers)
    assert resp.json() == {"likes": 1, "dislikes": 1}
    assert api.user_store.get_by_id(uid).stats.likes == likes_before + 1


def test_hidden_post_comments_not_visible(api, author, commenter):
    _, author_headers = author
    _, headers = commenter
    post = api.create_post(author_headers)
    comment = _comment(api, post["id"], headers).json()
    api.client.post(f"/api/v1/posts/{post['id']}/hide", headers=api.admin)

    assert api.client.get(f"/api/v1/posts/{post['id']}/comments").status_code == 404
    assert api.client.get(f"/api/v1/posts/{post['id']}/comments", headers=api.admin).status_code == 200
    resp = api.client.patch(f"/api/v1/comments/{comment['id']}", json={"content": "x"}, headers=headers)
    assert resp.status_code == 404


def test_cannot_react_to_comment_on_hidden_post(api, author, commenter):
    _, author_headers = author
    uid, headers = commenter
    post = api.create_post(author_headers)
    comment = _comment(api, post["id"], headers).json()
    likes_before = api.user_store.get_by_id(uid).stats.likes
    api.client.post(f"/api/v1/posts/{post['id']}/hide", headers=api.admin)

    for reaction in ("like", "dislike"):
        resp = api.client.post(f"/api/v1/comments/{comment['id']}/{reaction}", headers=author_headers)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"
    assert api.forum_store.get_comment(comment["id"]).stats.likes == 0
    assert api.user_store.get_by_id(uid).stats.likes == likes_before
