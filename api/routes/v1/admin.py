"""
api/routes/v1/admin.py -- User management and maintenance (admin only).

Routes:
  GET   /admin/users            -- every account, counters included
  PATCH /admin/users/{user_id}  -- change role and/or is_active
  POST  /admin/reconcile        -- rebuild cached counters now

Security:
  [M4] PATCH /admin/users/{id} blocks self-deactivation, self-demotion and
       removing the last active admin (no recovery path without DB access).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.models import ReconcileResponse, UserPatch, UserResponse
from auth.dependencies import require_admin
from auth.models import Role, User
from auth.policy import Operation, authorize
from auth.store import UserStore
from core.errors import Internal, NotFound, ValidationError
from forum.store import ForumStore

logger = logging.getLogger("fightclub.api.admin")

# Auth policy:
# - every route on this router requires admin (require_admin)
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/admin/users", response_model=list[UserResponse])
def list_users(request: Request) -> list[UserResponse]:
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in user_store.list_users()]


@router.patch("/admin/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: int,
    body: UserPatch,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Update a user's role or active status.

    A deactivated user's existing tokens stop working on their next request;
    the AuthN gate reloads the account every time.
    """
    authorize(current_user, Operation.MANAGE_USERS)
    user_store: UserStore = request.app.state.user_store

    target = user_store.get_by_id(user_id)
    if target is None:
        raise NotFound("User not found.")

    updates: dict = {}
    removes_admin = False
    if body.role is not None:
        new_role = Role(body.role.value)
        if target.role is Role.ADMIN and new_role is not Role.ADMIN:
            if target.id == current_user.id:
                raise ValidationError("You cannot remove your own admin role.", code="self_demotion")
            removes_admin = target.is_active
        updates["role"] = new_role
    if body.is_active is not None:
        if not body.is_active and target.id == current_user.id:
            raise ValidationError("You cannot deactivate your own account.", code="self_deactivation")
        if not body.is_active and target.role is Role.ADMIN and target.is_active:
            removes_admin = True
        updates["is_active"] = body.is_active

    if not updates:
        raise ValidationError("No fields to update.", code="no_changes")
    if removes_admin and user_store.count_active_admins() <= 1:
        raise ValidationError("Cannot remove the last active admin account.", code="last_admin")

    user_store.update_user(user_id, **updates)
    logger.info("User %s updated by %s: %s", target.username, current_user.username, sorted(updates))
    updated = user_store.get_by_id(user_id)
    if updated is None:
        raise Internal("User not found after write.")
    return UserResponse.from_user(updated)


@router.post("/admin/reconcile", response_model=ReconcileResponse)
def reconcile(request: Request, current_user: User = Depends(require_admin)) -> ReconcileResponse:
    """Recompute every cached counter from source rows. Safe to run any time."""
    authorize(current_user, Operation.RECONCILE)
    store: ForumStore = request.app.state.forum_store
    report = store.reconcile_counters()
    logger.info("Reconcile by %s corrected %d rows", current_user.username, report.total)
    return ReconcileResponse(boards=report.boards, posts=report.posts, users=report.users, total=report.total)
