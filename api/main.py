"""
api/main.py -- FastAPI application entry point for the Fight Club community API.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for the configured frontend origin
  3. SlowAPIMiddleware     -- enforces the default and per-route rate limits

Lifespan handles startup (stores, denylist, default boards, maintenance task)
and shutdown (cancel the task, close every store) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ApiIndexResponse, ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.admin import router as admin_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.boards import router as boards_router
from api.routes.v1.comments import router as comments_router
from api.routes.v1.posts import router as posts_router
from api.routes.v1.stats import router as stats_router
from auth.denylist import TokenDenylist
from auth.store import UserStore
from core.config import get_settings
from core.errors import ForumError
from forum.seed import seed_boards
from forum.store import ForumStore
from forum.uploads import LocalFileStorage

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("fightclub.api")

settings = get_settings()

# ---------------------------------------------------------------------------
# Background maintenance task
# ---------------------------------------------------------------------------


def run_maintenance(app: FastAPI) -> None:
    """Purge expired denylist entries and rebuild drifted counters."""
    purged = app.state.denylist.purge_expired()
    report = app.state.forum_store.reconcile_counters()
    logger.info(
        "Maintenance: purged %d revoked tokens, corrected %d counters (boards=%d posts=%d users=%d)",
        purged,
        report.total,
        report.boards,
        report.posts,
        report.users,
    )


async def _maintenance_loop(app: FastAPI) -> None:
    """Run run_maintenance() every maintenance_interval_seconds.

    A failed pass is logged and the loop carries on; CancelledError from
    task.cancel() during shutdown propagates out of asyncio.sleep.
    """
    while True:
        await asyncio.sleep(settings.maintenance_interval_seconds)
        try:
            await asyncio.to_thread(run_maintenance, app)
        except (SQLAlchemyError, sqlite3.Error):
            logger.exception("Maintenance pass failed")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. UserStore first -- ForumStore's counter updates touch the users table.
      2. ForumStore and default boards.
      3. Denylist and file storage.
      4. Maintenance task last -- it references all of the above.
    """
    logger.info("Fight Club API starting up (environment=%s)", settings.environment)
    app.state.started_at = time.monotonic()
    app.state.user_store = UserStore()
    app.state.forum_store = ForumStore()
    created = seed_boards(app.state.forum_store)
    if created:
        logger.info("Seeded %d default boards", created)
    app.state.denylist = TokenDenylist(settings.denylist_path)
    app.state.file_storage = LocalFileStorage(settings.upload_dir, max_bytes=settings.max_upload_bytes)
    app.state.maintenance_task = asyncio.create_task(_maintenance_loop(app))

    yield

    app.state.maintenance_task.cancel()
    app.state.denylist.close()
    app.state.forum_store.close()
    app.state.user_store.close()
    logger.info("Fight Club API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Fight Club Community API",
    description="Boards, posts, threaded comments and accounts for the Fight Club community.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPIMiddleware looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(boards_router, prefix="/api/v1", tags=["Boards"])
app.include_router(posts_router, prefix="/api/v1", tags=["Posts"])
app.include_router(comments_router, prefix="/api/v1", tags=["Comments"])
app.include_router(stats_router, prefix="/api/v1", tags=["Statistics"])
app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])

# Attachment locators are "/uploads/<name>". check_dir=False so the app
# imports before the directory exists; LocalFileStorage creates it on first save.
app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError) -> JSONResponse:
    """Map a domain error to its status and code."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.code, exc.message, exc.detail)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests. Try again later.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with structured error when request body or query params fail validation."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = f"{field}: {first.get('msg')}" if field else "Request validation failed."
    return _error_response(400, "validation_error", message, str(errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for framework-level HTTP exceptions (unknown route, bad method)."""
    if exc.status_code == 404:
        return _error_response(404, "not_found", "The requested resource was not found.")
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Storage failures (locked database, lost connection) are retryable 500s."""
    logger.exception("Storage error on %s %s", request.method, request.url.path)
    response = _error_response(
        500,
        "storage_unavailable",
        "The data store is temporarily unavailable.",
        "Retry the request in a few seconds.",
    )
    response.headers["Retry-After"] = "5"
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged only, never written to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health and index
#
# Defined directly in main.py (not in a router) so they are always reachable
# regardless of router registration state. Health checks are exempt from rate
# limiting.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
@limiter.exempt
async def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    try:
        db_ok = request.app.state.user_store.ping()
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)
        db_ok = False
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=API_VERSION,
        environment=settings.environment,
        uptime_seconds=round(time.monotonic() - started_at, 3),
        timestamp=datetime.now(timezone.utc).isoformat(),
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )


@app.get("/api/v1", tags=["Health"])
async def api_index() -> ApiIndexResponse:
    """List the main endpoint groups."""
    return ApiIndexResponse(
        message="Fight Club community API",
        version=API_VERSION,
        endpoints={
            "auth": {
                "POST /api/v1/auth/register": "Create an account",
                "POST /api/v1/auth/login": "Log in",
                "POST /api/v1/auth/logout": "Log out",
                "GET /api/v1/auth/me": "Current user",
            },
            "posts": {
                "GET /api/v1/posts": "List posts",
                "GET /api/v1/posts/{id}": "Post detail",
                "POST /api/v1/posts": "Create a post",
                "PATCH /api/v1/posts/{id}": "Edit a post",
                "DELETE /api/v1/posts/{id}": "Delete a post",
            },
            "boards": {
                "GET /api/v1/boards": "List boards",
                "POST /api/v1/boards": "Create a board (admin)",
                "DELETE /api/v1/boards/{slug}": "Disable a board (admin)",
            },
        },
    )
