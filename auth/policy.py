"""
auth/policy.py -- AuthZ gate: who may perform which operation.

Every decision is a pure function of (identity, operation, resource owner).
There is no hidden state and no I/O, so route handlers call authorize()
before touching the store and the store never re-checks permissions.

Two kinds of operation exist:
  admin-only  -- board management, cross-user moderation, user management.
  owner-or-admin -- edit/delete/publish on a post or comment.

Operation is a closed enum and every member belongs to exactly one of the two
sets, so adding an operation without classifying it fails loudly in
authorize() instead of silently allowing it.

Layer rule: no imports from api/ or forum/. Import from core/ is allowed.
"""

from __future__ import annotations

from enum import Enum

from auth.models import Role, User
from core.errors import Forbidden


class Operation(str, Enum):
    CREATE_BOARD = "create_board"
    UPDATE_BOARD = "update_board"
    DISABLE_BOARD = "disable_board"
    HIDE_POST = "hide_post"
    RESTORE_POST = "restore_post"
    FLAG_POST = "flag_post"  # pin / notice
    MANAGE_USERS = "manage_users"
    RECONCILE = "reconcile"

    EDIT_POST = "edit_post"
    DELETE_POST = "delete_post"
    PUBLISH_POST = "publish_post"
    ATTACH_FILE = "attach_file"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT = "delete_comment"


ADMIN_ONLY: frozenset[Operation] = frozenset(
    {
        Operation.CREATE_BOARD,
        Operation.UPDATE_BOARD,
        Operation.DISABLE_BOARD,
        Operation.HIDE_POST,
        Operation.RESTORE_POST,
        Operation.FLAG_POST,
        Operation.MANAGE_USERS,
        Operation.RECONCILE,
    }
)

OWNER_OR_ADMIN: frozenset[Operation] = frozenset(
    {
        Operation.EDIT_POST,
        Operation.DELETE_POST,
        Operation.PUBLISH_POST,
        Operation.ATTACH_FILE,
        Operation.EDIT_COMMENT,
        Operation.DELETE_COMMENT,
    }
)


def is_admin(user: User) -> bool:
    return user.role is Role.ADMIN


def can_modify(user: User, author_id: int) -> bool:
    """True if user owns the resource or is an admin."""
    return is_admin(user) or user.id == author_id


def authorize(user: User, operation: Operation, author_id: int | None = None) -> None:
    """Raise Forbidden unless user may perform operation.

    author_id is the owner of the target resource and is required for
    owner-or-admin operations.
    """
    if operation in ADMIN_ONLY:
        if not is_admin(user):
            raise Forbidden("Admin access required.")
        return
    if operation in OWNER_OR_ADMIN:
        if author_id is None:
            raise ValueError(f"{operation.value} requires the resource owner")
        if not can_modify(user, author_id):
            raise Forbidden("Only the author or an admin can do that.")
        return
    raise ValueError(f"Unclassified operation: {operation!r}")
