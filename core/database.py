"""
core/database.py -- Engine construction shared by every SQLAlchemy store.

auth/store.py and forum/store.py point at the same database so that a content
change and the user/board counters it affects can commit in one transaction.
Both build their engine here so the SQLite connection policy (WAL, busy
timeout, cross-thread use) is identical for each.

Layer rule: core/ is the kernel. No imports from api/, auth/, or forum/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from core.config import get_settings


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url with the project's SQLite settings applied.

    check_same_thread=False: FastAPI runs sync handlers in a thread pool, so a
        pooled connection may be used from a different thread than opened it.
    timeout: seconds to wait on a locked database. A write that cannot get the
        lock in time fails with OperationalError, which the API reports as a
        retryable 500 instead of hanging the request.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = get_settings().db_busy_timeout
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
