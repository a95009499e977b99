"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper (same as forum/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and dependency
code never touches SQL directly.

Credential secrecy:
  The hashed_password column is written by create_user() and
  read only by authenticate(). _row_to_user() never copies it into the User
  dataclass, so no object handed out by this module carries the digest.

Uniqueness:
  username and email each carry a UNIQUE index. create_user() lets the
  IntegrityError surface as Conflict; the route pre-checks to produce a
  field-specific message, the index is what actually closes the race.

Counters:
  post_count / comment_count / like_count are owned by forum/store.py, which
  updates them inside its own content transactions. This module only reads
  them.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or forum/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Role, User, UserStats
from auth.passwords import DUMMY_HASH, verify_password
from core.config import get_settings
from core.database import make_engine, now_iso
from core.errors import Conflict

logger = logging.getLogger("fightclub.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(30), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(10), nullable=False, server_default=Role.USER.value),
    Column("avatar", Text, nullable=False, server_default=""),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("joined_at", String(32), nullable=False),
    Column("last_active", String(32), nullable=False),
    Column("post_count", Integer, nullable=False, server_default="0"),
    Column("comment_count", Integer, nullable=False, server_default="0"),
    Column("like_count", Integer, nullable=False, server_default="0"),
)

_users = users_table

# Columns an admin or the owner may change through update_user().
_MUTABLE_FIELDS = {"role", "is_active", "avatar"}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities and their password digests.

    Usage:
        store = UserStore("sqlite:///forum.db")
        uid = store.create_user(User(username="alice", email="a@x.com"), hash_password("pw1234"))
        user = store.authenticate("alice", "pw1234")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User, hashed_password: str) -> int:
        """Insert a new user and return its assigned database ID.

        Raises Conflict if the username or email is already taken. The
        existing record is left untouched.
        """
        now = now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        email=user.email,
                        hashed_password=hashed_password,
                        role=Role(user.role).value,
                        avatar=user.avatar,
                        is_active=1 if user.is_active else 0,
                        joined_at=now,
                        last_active=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise Conflict("Username or email is already registered.") from exc
        return result.inserted_primary_key[0]

    def update_user(self, user_id: int, /, **fields) -> bool:
        """Update mutable fields (role, is_active, avatar) on an existing user.

        Returns True if a row was updated, False if user_id was not found.
        Raises ValueError for any other field name.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        if "role" in fields:
            fields["role"] = Role(fields["role"]).value
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def touch_last_active(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_active for the given user."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_active=now_iso()))
            conn.commit()

    # ------------------------------------------------------------------
    # Credential check (constant-time) [C1]
    # ------------------------------------------------------------------

    def authenticate(self, login: str, password: str) -> User | None:
        """Check a username-or-email / password pair with timing equalization.

        Always runs bcrypt whether or not the account exists:
        - Unknown login: bcrypt runs against DUMMY_HASH (same cost as real check)
        - Wrong password: bcrypt runs against the real hash (same cost)

        Returns the User on success, None on any failure including a
        deactivated account.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(or_(_users.c.username == login, _users.c.email == login))
            ).fetchone()
        if row is None:
            verify_password(password, DUMMY_HASH)
            return None
        if not verify_password(password, row.hashed_password):
            return None
        if not row.is_active:
            return None
        return _row_to_user(row)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by username. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.username)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_active_admins(self) -> int:
        """Return the number of active admin users.

        Used by PATCH /admin/users/{id} to prevent demoting or deactivating
        the last admin [M4].
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count())
                .select_from(_users)
                .where((_users.c.role == Role.ADMIN.value) & (_users.c.is_active == 1))
            ).scalar()
        return result or 0

    def count_active_since(self, since_iso: str) -> int:
        """Number of users whose last_active is at or after since_iso."""
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_users).where(_users.c.last_active >= since_iso)
            ).scalar()
        return result or 0

    def count_joined_since(self, since_iso: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_users).where(_users.c.joined_at >= since_iso)
            ).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(select(1)).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        role=Role(row.role),
        avatar=row.avatar or "",
        is_active=bool(row.is_active),
        joined_at=row.joined_at,
        last_active=row.last_active,
        stats=UserStats(posts=row.post_count, comments=row.comment_count, likes=row.like_count),
    )
