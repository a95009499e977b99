"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in forum/models.py -- dataclasses own domain shape; stores and routes do the
work.

The User dataclass deliberately has no password field. The bcrypt digest
lives only inside auth/store.py; everything that leaves the Credential Store
is safe to serialize.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. Anything not ADMIN is treated as a regular user."""

    USER = "user"
    ADMIN = "admin"


@dataclass
class UserStats:
    posts: int = 0
    comments: int = 0
    likes: int = 0


@dataclass
class User:
    """A registered forum member.

    Counters in stats are cached aggregates maintained by forum/store.py in
    the same transaction as the content change they summarize.

    id is None before the record is written to the database.
    """

    username: str
    email: str
    role: Role = Role.USER
    id: int | None = None
    avatar: str = ""
    is_active: bool = True
    joined_at: str = ""  # ISO 8601, set by store on insert
    last_active: str = ""  # ISO 8601
    stats: UserStats = field(default_factory=UserStats)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access token."""

    subject_id: int
    username: str
    issued_at: int  # epoch seconds
    expires_at: int  # epoch seconds
    token_id: str  # jti, key for the logout denylist


@dataclass(frozen=True)
class AuthContext:
    """What the AuthN gate hands downstream: the live user plus the token it used."""

    user: User
    claims: TokenClaims
