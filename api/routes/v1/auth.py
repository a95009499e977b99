"""
api/routes/v1/auth.py -- Registration, login, logout and identity endpoints.

Routes:
  POST /api/v1/auth/register   -- create an account; returns a token
  POST /api/v1/auth/login      -- username-or-email + password; returns a token
  POST /api/v1/auth/logout     -- revokes the presented token (jti denylist)
  GET  /api/v1/auth/me         -- current user with counters

Security:
  [H2] register and login carry the stricter login rate limit on top of the
       global API budget.
  [C1] UserStore.authenticate() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on every response that carries a token.
  Wrong username and wrong password share one generic error ("bad_credentials").
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import AuthResponse, LoginRequest, MessageResponse, RegisterRequest, UserResponse
from auth.denylist import TokenDenylist
from auth.dependencies import get_auth_context, get_current_user, stamp_activity
from auth.models import AuthContext, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import issue_token, ttl_for
from core.config import get_settings
from core.errors import Conflict, Forbidden, Internal, ValidationError

logger = logging.getLogger("fightclub.api.auth")

_settings = get_settings()

# Auth policy:
# - POST /api/v1/auth/register: public -- disabled when SELF_REGISTRATION_ENABLED=false
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/logout:   requires auth (get_auth_context; the jti is revoked)
# - GET  /api/v1/auth/me:       requires auth (get_current_user)
router = APIRouter()


def _token_response(status_code: int, message: str, user: User, remember: bool = False) -> JSONResponse:
    ttl = ttl_for(remember)
    token = issue_token(user.id, user.username, ttl)
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(
            message=message,
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=int(ttl.total_seconds()),
            user=UserResponse.from_user(user),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_settings.login_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a regular user account and log it in.

    Username and email are checked up front for a field-specific message;
    the UNIQUE indexes in the store close the race between check and insert.
    """
    if not _settings.self_registration_enabled:
        raise Forbidden("Registration is closed.", code="registration_closed")
    if body.password_confirm is not None and body.password_confirm != body.password:
        raise ValidationError("Passwords do not match.")

    user_store: UserStore = request.app.state.user_store
    if user_store.get_by_username(body.username) is not None:
        raise Conflict("That username is already taken.")
    if user_store.get_by_email(body.email) is not None:
        raise Conflict("That email is already registered.")

    user_id = user_store.create_user(User(username=body.username, email=body.email), hash_password(body.password))
    user = user_store.get_by_id(user_id)
    if user is None:
        raise Internal("User not found after write.")
    logger.info("User registered: %s (id=%s)", user.username, user.id)
    return _token_response(201, "Registration complete.", user)


@limiter.limit(_settings.login_rate_limit)  # [H2]
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username (or email) and password.

    Returns the same generic error for an unknown login, a wrong password and
    a deactivated account so the response never reveals which one it was.
    """
    user_store: UserStore = request.app.state.user_store
    user = user_store.authenticate(body.username, body.password)
    if user is None:
        logger.info("Failed login for %r", body.username)
        resp = JSONResponse(
            status_code=401,
            content={
                "error": {
                    "code": "bad_credentials",
                    "message": "Invalid username or password.",
                    "detail": None,
                }
            },
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    stamp_activity(user_store, user.id)
    return _token_response(200, "Logged in.", user, remember=body.remember)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, ctx: AuthContext = Depends(get_auth_context)) -> MessageResponse:
    """Revoke the presented token until it would have expired anyway."""
    denylist: TokenDenylist = request.app.state.denylist
    denylist.add(ctx.claims.token_id, ctx.claims.expires_at)
    logger.info("User logged out: %s", ctx.user.username)
    return MessageResponse(message="Logged out.")


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the currently authenticated user, counters included."""
    return UserResponse.from_user(current_user)
