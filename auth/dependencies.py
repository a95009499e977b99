"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication (AuthN gate).

A request authenticates with an Authorization: Bearer <jwt> header. The gate:
  1. rejects a missing token              -> Unauthenticated
  2. verifies signature/expiry via tokens -> InvalidToken on failure
  3. checks the jti denylist (logout)     -> InvalidToken if revoked
  4. loads the subject from UserStore     -> InvalidToken if gone,
                                             InactiveAccount if deactivated
  5. stamps last_active (best-effort; a storage failure is logged, never
     raised, so the request proceeds)

get_auth_context() returns user + claims (logout needs the jti).
get_current_user() returns just the user.
try_get_current_user() is the soft variant (returns None on any failure).
require_admin() adds the admin role check on top.

Layer rule: no imports from api/ or forum/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from auth.denylist import TokenDenylist
from auth.models import AuthContext, User
from auth.policy import is_admin
from auth.store import UserStore
from auth.tokens import verify_token
from core.errors import Forbidden, InactiveAccount, InvalidToken, Unauthenticated

logger = logging.getLogger("fightclub.auth")


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def stamp_activity(user_store: UserStore, user_id: int) -> None:
    """Write last_active without letting a storage failure fail the request."""
    try:
        user_store.touch_last_active(user_id)
    except SQLAlchemyError:
        logger.warning("Could not record activity for user %s", user_id, exc_info=True)


def get_auth_context(request: Request) -> AuthContext:
    """Require a valid bearer token for an active user.

    Use as a FastAPI dependency:
        @router.post("/auth/logout")
        def route(ctx: AuthContext = Depends(get_auth_context)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise Unauthenticated()

    claims = verify_token(token)
    if claims is None:
        raise InvalidToken()

    denylist: TokenDenylist = request.app.state.denylist
    if denylist.contains(claims.token_id):
        raise InvalidToken("This token has been revoked.")

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(claims.subject_id)
    if user is None:
        raise InvalidToken()
    if not user.is_active:
        raise InactiveAccount()

    stamp_activity(user_store, user.id)
    return AuthContext(user=user, claims=claims)


def get_current_user(request: Request) -> User:
    """Require authentication. Raises a 401-class error if not authenticated."""
    return get_auth_context(request).user


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated User, or None for anonymous/invalid requests.

    Public routes use this when they show more to owners and admins (e.g. a
    draft post) but must still answer anonymous callers.
    """
    try:
        return get_current_user(request)
    except Unauthenticated:
        return None


def require_admin(request: Request) -> User:
    """Require admin role. 401-class error if unauthenticated, 403 if not admin."""
    user = get_current_user(request)
    if not is_admin(user):
        raise Forbidden("Admin access required.")
    return user
