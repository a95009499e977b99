"""
auth/tokens.py -- JWT issue and verify.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       the user id (sub), username, issued-at, expiry and a random token id
       (jti). Verification returns None on any failure -- the AuthN gate turns
       that into InvalidToken (401).

  TTL tiers: 7 days for a normal login, 30 days when the client asks to be
       remembered. Both tiers carry exactly the same claims; only exp differs.

  Statelessness: verify_token() is a pure function of the token and the
       secret. Early revocation (logout) is layered on top by the jti denylist
       in auth/denylist.py, checked by the AuthN gate, not here.

Layer rule: no imports from api/ or forum/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import TokenClaims
from core.config import get_settings

logger = logging.getLogger("fightclub.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton [M6]
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

STANDARD_TTL = timedelta(days=_settings.token_ttl_days)
REMEMBER_TTL = timedelta(days=_settings.remember_token_ttl_days)


def ttl_for(remember: bool) -> timedelta:
    """Pick the token lifetime for a login request."""
    return REMEMBER_TTL if remember else STANDARD_TTL


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_token(
    subject_id: int,
    username: str,
    ttl: timedelta = STANDARD_TTL,
    issued_at: datetime | None = None,
) -> str:
    """Encode a signed JWT for the given user.

    Args:
        subject_id: Numeric user ID stored in the DB; becomes the sub claim.
        username:   Carried for display; never trusted for lookups.
        ttl:        Lifetime of the token, normally from ttl_for().
        issued_at:  Override for the iat claim. Defaults to now; tests pass a
                    past instant to produce an already-expired token.
    """
    iat = issued_at or datetime.now(timezone.utc)
    payload = {
        "sub": str(subject_id),
        "username": username,
        "iat": iat,
        "exp": iat + ttl,
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def verify_token(token: str) -> TokenClaims | None:
    """Decode and verify a JWT. Returns the claims or None on any failure.

    Failure covers a bad signature, an elapsed exp, a structurally broken
    token, and a payload missing any of the required claims.
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    try:
        return TokenClaims(
            subject_id=int(payload["sub"]),
            username=str(payload["username"]),
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
            token_id=str(payload["jti"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("Rejected signed token with malformed claims")
        return None
