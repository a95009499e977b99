"""
api/routes/v1/boards.py -- Board listing and management.

Routes:
  GET    /api/v1/boards          -- active boards (admins may pass include_inactive=true)
  POST   /api/v1/boards          -- create a board (admin)
  PATCH  /api/v1/boards/{slug}   -- rename / re-describe / re-activate (admin)
  DELETE /api/v1/boards/{slug}   -- soft-disable (admin); posts are kept

A disabled board rejects new posts but its existing posts and their counters
stay untouched.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.models import BoardCreate, BoardPatch, BoardResponse
from auth.dependencies import require_admin, try_get_current_user
from auth.models import User
from auth.policy import Operation, authorize, is_admin
from core.errors import Internal, NotFound, ValidationError
from forum.models import Board
from forum.store import ForumStore

logger = logging.getLogger("fightclub.api.boards")

# Auth policy:
# - GET    /api/v1/boards:        public
# - POST   /api/v1/boards:        requires admin (require_admin)
# - PATCH  /api/v1/boards/{slug}: requires admin (require_admin)
# - DELETE /api/v1/boards/{slug}: requires admin (require_admin)
router = APIRouter()


@router.get("/boards", response_model=list[BoardResponse])
def list_boards(
    request: Request,
    include_inactive: bool = False,
    current_user: User | None = Depends(try_get_current_user),
) -> list[BoardResponse]:
    """List boards by name. Disabled boards are listed only for admins who ask."""
    store: ForumStore = request.app.state.forum_store
    show_inactive = include_inactive and current_user is not None and is_admin(current_user)
    return [BoardResponse.from_board(b) for b in store.list_boards(include_inactive=show_inactive)]


@router.post("/boards", response_model=BoardResponse, status_code=201)
def create_board(
    request: Request,
    body: BoardCreate,
    current_user: User = Depends(require_admin),
) -> BoardResponse:
    authorize(current_user, Operation.CREATE_BOARD)
    store: ForumStore = request.app.state.forum_store
    store.create_board(
        Board(slug=body.slug, name=body.name, description=body.description, category=body.category)
    )
    logger.info("Board %s created by %s", body.slug, current_user.username)
    return _board_or_500(store, body.slug)


@router.patch("/boards/{slug}", response_model=BoardResponse)
def update_board(
    request: Request,
    slug: str,
    body: BoardPatch,
    current_user: User = Depends(require_admin),
) -> BoardResponse:
    authorize(current_user, Operation.UPDATE_BOARD)
    store: ForumStore = request.app.state.forum_store
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError("No fields to update.", code="no_changes")
    if not store.update_board(slug, **updates):
        raise NotFound("Board not found.")
    return _board_or_500(store, slug)


@router.delete("/boards/{slug}", response_model=BoardResponse)
def disable_board(
    request: Request,
    slug: str,
    current_user: User = Depends(require_admin),
) -> BoardResponse:
    """Soft-disable a board. Re-enable with PATCH is_active=true."""
    authorize(current_user, Operation.DISABLE_BOARD)
    store: ForumStore = request.app.state.forum_store
    if not store.update_board(slug, is_active=False):
        raise NotFound("Board not found.")
    logger.info("Board %s disabled by %s", slug, current_user.username)
    return _board_or_500(store, slug)


def _board_or_500(store: ForumStore, slug: str) -> BoardResponse:
    board = store.get_board(slug)
    if board is None:
        raise Internal("Board not found after write.")
    return BoardResponse.from_board(board)
