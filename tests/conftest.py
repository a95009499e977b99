"""
tests/conftest.py -- Shared test fixtures for the forum test suite.

This module provides:
  - memory_db_url(): a named shared-memory SQLite URL
  - make_user(): insert a user straight through UserStore and mint its token
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api: one TestClient per test module with an admin account ready
  - user_store / forum_store: isolated stores for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment must be set before any auth/core import:
  DEBUG=true               -- get_settings() auto-generates SECRET_KEY
  BCRYPT_ROUNDS=4          -- keeps hashing cheap
  RATE_LIMIT_ENABLED=false -- the suite makes far more requests than the budget
  UPLOAD_DIR               -- a temp directory, never the project tree
"""

from __future__ import annotations

import asyncio
import os
import tempfile
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set env before any auth/core import so get_settings() picks it up.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="fightclub-uploads-"))

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.denylist import TokenDenylist
from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import issue_token
from core.config import get_settings
from forum.seed import seed_boards
from forum.store import ForumStore
from forum.uploads import LocalFileStorage

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def memory_db_url(name: str) -> str:
    """Named shared-memory SQLite URL. Unique names keep test modules isolated."""
    return f"sqlite:///file:{name}_{uuid.uuid4().hex[:8]}?mode=memory&cache=shared&uri=true"


def make_user(
    user_store: UserStore,
    username: str,
    password: str = "pass1234",
    role: Role = Role.USER,
) -> tuple[int, str]:
    """Create a user directly in the store. Returns (user_id, bearer token)."""
    uid = user_store.create_user(
        User(username=username, email=f"{username}@example.com", role=role),
        hash_password(password),
    )
    return uid, issue_token(uid, username)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _patch_lifespan(user_store: UserStore, forum_store: ForumStore, denylist: TokenDenylist, storage: LocalFileStorage):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the production databases.

    The maintenance_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.forum_store = forum_store
        app.state.denylist = denylist
        app.state.file_storage = storage
        app.state.maintenance_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.maintenance_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped API harness -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    client: TestClient
    user_store: UserStore
    forum_store: ForumStore
    denylist: TokenDenylist
    admin_id: int
    admin_token: str

    def new_user(self, username: str, role: Role = Role.USER) -> tuple[int, dict[str, str]]:
        """Create a user and return (user_id, Authorization header)."""
        uid, token = make_user(self.user_store, username, role=role)
        return uid, auth_header(token)

    @property
    def admin(self) -> dict[str, str]:
        return auth_header(self.admin_token)

    def create_post(self, headers: dict[str, str], **fields) -> dict:
        body = {"title": "A title", "content": "Some content", "board": "politics"}
        body.update(fields)
        resp = self.client.post("/api/v1/posts", json=body, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()


@pytest.fixture(scope="module")
def api(request, tmp_path_factory) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness bound to fresh stores with the default boards seeded.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use isolated in-memory stores.
    """
    db_url = memory_db_url(request.module.__name__.rsplit(".", 1)[-1])
    user_store = UserStore(db_url=db_url)
    forum_store = ForumStore(db_url=db_url)
    seed_boards(forum_store)
    denylist = TokenDenylist()
    storage = LocalFileStorage(tmp_path_factory.mktemp("uploads"), max_bytes=get_settings().max_upload_bytes)

    admin_id, admin_token = make_user(user_store, "rootadmin", role=Role.ADMIN)

    app.router.lifespan_context = _patch_lifespan(user_store, forum_store, denylist, storage)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(
            client=client,
            user_store=user_store,
            forum_store=forum_store,
            denylist=denylist,
            admin_id=admin_id,
            admin_token=admin_token,
        )

    denylist.close()
    forum_store.close()
    user_store.close()


# ---------------------------------------------------------------------------
# Function-scoped stores for unit tests
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_url() -> str:
    return memory_db_url("unit")


@pytest.fixture()
def user_store(db_url) -> Generator[UserStore, None, None]:
    store = UserStore(db_url=db_url)
    yield store
    store.close()


@pytest.fixture()
def forum_store(db_url, user_store) -> Generator[ForumStore, None, None]:
    store = ForumStore(db_url=db_url)
    seed_boards(store)
    yield store
    store.close()
