"""
tests/test_concurrency.py -- Counter updates under concurrent writers.

Uses a file-backed SQLite database so that every thread gets its own
connection and real lock contention happens.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from auth.models import User
from auth.store import UserStore
from forum.models import Comment, Post, Reaction
from forum.seed import seed_boards
from forum.store import ForumStore

WORKERS = 8
PER_WORKER = 10


@pytest.fixture()
def stores(tmp_path):
    db_url = f"sqlite:///{tmp_path}/concurrency.db"
    user_store = UserStore(db_url=db_url)
    forum_store = ForumStore(db_url=db_url)
    seed_boards(forum_store)
    yield user_store, forum_store
    forum_store.close()
    user_store.close()


def _author(user_store: UserStore) -> int:
    return user_store.create_user(User(username="busy", email="busy@example.com"), "x")


def test_concurrent_likes_are_not_lost(stores):
    user_store, forum_store = stores
    author_id = _author(user_store)
    post_id = forum_store.create_post(Post(title="t", content="c", author_id=author_id, board="politics"))

    def like_many(_):
        for _ in range(PER_WORKER):
            forum_store.react_to_post(post_id, Reaction.LIKE)

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        list(pool.map(like_many, range(WORKERS)))

    assert forum_store.get_post(post_id).stats.likes == WORKERS * PER_WORKER
    assert user_store.get_by_id(author_id).stats.likes == WORKERS * PER_WORKER


def test_concurrent_views_and_comments(stores):
    user_store, forum_store = stores
    author_id = _author(user_store)
    post_id = forum_store.create_post(Post(title="t", content="c", author_id=author_id, board="issue"))

    def view(_):
        forum_store.record_view(post_id)

    def comment(i):
        forum_store.create_comment(Comment(post_id=post_id, author_id=author_id, content=f"c{i}"))

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        list(pool.map(view, range(40)))
        list(pool.map(comment, range(20)))

    post = forum_store.get_post(post_id)
    assert post.stats.views == 40
    assert post.stats.comments == 20
    assert len(forum_store.list_comments(post_id)) == 20
    assert forum_store.reconcile_counters().total == 0
