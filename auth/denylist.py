"""
auth/denylist.py -- SQLite-backed denylist of revoked token ids.

JWT verification is stateless, so a token stays valid until its exp even
after the user logs out. Logging out records the token's jti here with the
token's own expiry; the AuthN gate rejects any token whose jti is listed.
Entries are only useful until the token would have expired anyway, so
purge_expired() trims them and the list stays short.

Usage:
    denylist = TokenDenylist()
    denylist.add(claims.token_id, claims.expires_at)
    denylist.contains(claims.token_id)   # True until expires_at passes
    denylist.purge_expired()             # call periodically

Layer rule: no imports from api/ or forum/.
"""

import sqlite3
import threading
import time
from pathlib import Path
from typing import Union

_DDL = """
CREATE TABLE IF NOT EXISTS revoked_tokens (
    token_id    TEXT PRIMARY KEY,
    expires_at  REAL NOT NULL
);
"""


class TokenDenylist:
    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        # One connection shared by the request thread pool; writes are serialized.
        self._lock = threading.Lock()
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(_DDL)
        self._conn.commit()

    def add(self, token_id: str, expires_at: float) -> None:
        """Revoke token_id until expires_at (epoch seconds)."""
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO revoked_tokens (token_id, expires_at) VALUES (?, ?)",
                (token_id, float(expires_at)),
            )
            self._conn.commit()

    def contains(self, token_id: str) -> bool:
        """Return True if token_id is revoked and the entry has not lapsed."""
        with self._lock:
            row = self._conn.execute(
                "SELECT expires_at FROM revoked_tokens WHERE token_id = ?",
                (token_id,),
            ).fetchone()
        if row is None:
            return False
        return row[0] > time.time()

    def purge_expired(self) -> int:
        """Delete entries whose token has expired. Returns number of rows removed."""
        with self._lock:
            cursor = self._conn.execute("DELETE FROM revoked_tokens WHERE expires_at <= ?", (time.time(),))
            self._conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        self._conn.close()
