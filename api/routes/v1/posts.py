"""
api/routes/v1/posts.py -- Post listing, detail, authoring, reactions and moderation.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /posts                      -- paginated listing (board, page, limit, sort)
  POST   /posts                      -- create (draft or published)
  GET    /posts/{post_id}            -- detail; counts a view on published posts
  PATCH  /posts/{post_id}            -- edit (author or admin; pin/notice admin only)
  DELETE /posts/{post_id}            -- soft delete: moves the post to hidden
  POST   /posts/{post_id}/publish    -- draft -> published (author or admin)
  POST   /posts/{post_id}/hide       -- -> hidden (admin)
  POST   /posts/{post_id}/restore    -- hidden -> published (admin)
  POST   /posts/{post_id}/like       -- +1 like
  POST   /posts/{post_id}/dislike    -- +1 dislike
  POST   /posts/{post_id}/attachments -- multipart upload, field "files"

Visibility:
  Published posts are visible to everyone. A draft is visible to its author
  and admins. A hidden post is visible to admins only; everyone else gets the
  same 404 as for a post that never existed.

Authorization is checked with auth.policy.authorize() BEFORE any write, so a
refused request leaves the post exactly as it was.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from api.models import (
    MessageResponse,
    PaginationModel,
    PostCreate,
    PostListResponse,
    PostPatch,
    PostResponse,
    ReactionResponse,
)
from auth.dependencies import get_current_user, require_admin, try_get_current_user
from auth.models import User
from auth.policy import Operation, authorize, is_admin
from core.config import get_settings
from core.errors import Conflict, Internal, NotFound, ValidationError
from forum.listing import CROSS_BOARD, SortKey, validate_window
from forum.models import Post, PostStatus, Reaction
from forum.store import ForumStore
from forum.uploads import LocalFileStorage

logger = logging.getLogger("fightclub.api.posts")

_settings = get_settings()

# Auth policy:
# - GET    /posts, /posts/{id}:            public (owner/admin see drafts; admin sees hidden)
# - POST   /posts:                         requires auth (get_current_user)
# - PATCH  /posts/{id}:                    requires auth + author-or-admin
# - DELETE /posts/{id}:                    requires auth + author-or-admin
# - POST   /posts/{id}/publish:            requires auth + author-or-admin
# - POST   /posts/{id}/attachments:        requires auth + author-or-admin
# - POST   /posts/{id}/like, /dislike:     requires auth (get_current_user)
# - POST   /posts/{id}/hide, /restore:     requires admin (require_admin)
router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def can_view(post: Post, user: User | None) -> bool:
    if post.status is PostStatus.PUBLISHED:
        return True
    if user is None:
        return False
    if is_admin(user):
        return True
    return post.status is PostStatus.DRAFT and post.author_id == user.id


def load_visible_post(store: ForumStore, post_id: int, user: User | None) -> Post:
    """Fetch a post the caller may see, else NotFound."""
    post = store.get_post(post_id)
    if post is None or not can_view(post, user):
        raise NotFound("Post not found.")
    return post


def _fresh(store: ForumStore, post_id: int) -> PostResponse:
    post = store.get_post(post_id)
    if post is None:
        raise Internal("Post not found after write.")
    return PostResponse.from_post(post)


def _transition(store: ForumStore, post: Post, target: PostStatus, actor: User) -> None:
    if not store.transition_post(post.id, post.status, target):
        raise Conflict("The post was changed by another request. Reload and try again.")
    logger.info("Post %s: %s -> %s by %s", post.id, post.status.value, target.value, actor.username)


# ---------------------------------------------------------------------------
# Listing and detail
# ---------------------------------------------------------------------------


@router.get("/posts", response_model=PostListResponse)
def list_posts(
    request: Request,
    board: str = CROSS_BOARD,
    page: int = 1,
    limit: int | None = Query(default=None, description="Page size, 1..max_page_size"),
    sort: SortKey = SortKey.LATEST,
) -> PostListResponse:
    """List published posts. board=best lists every board.

    A page past the end returns an empty list with correct pagination.
    """
    page_size = limit if limit is not None else _settings.default_page_size
    validate_window(page, page_size, _settings.max_page_size)
    store: ForumStore = request.app.state.forum_store
    result = store.list_posts(board=board, page=page, page_size=page_size, sort=sort)
    return PostListResponse(
        posts=[PostResponse.from_post(p) for p in result.items],
        pagination=PaginationModel.from_pagination(result.pagination),
    )


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    request: Request,
    body: PostCreate,
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    """Create a post authored by the caller. The board must exist and be active."""
    store: ForumStore = request.app.state.forum_store
    post_id = store.create_post(
        Post(
            title=body.title,
            content=body.content,
            board=body.board,
            author_id=current_user.id,
            category=body.category,
            tags=body.tags,
            status=PostStatus(body.status.value),
        )
    )
    return _fresh(store, post_id)


@router.get("/posts/{post_id}", response_model=PostResponse)
def get_post(
    request: Request,
    post_id: int,
    current_user: User | None = Depends(try_get_current_user),
) -> PostResponse:
    """Return one post. Reading a published post counts a view."""
    store: ForumStore = request.app.state.forum_store
    post = load_visible_post(store, post_id, current_user)
    if post.status is PostStatus.PUBLISHED and store.record_view(post_id):
        post.stats.views += 1
    return PostResponse.from_post(post)


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------


@router.patch("/posts/{post_id}", response_model=PostResponse)
def update_post(
    request: Request,
    post_id: int,
    body: PostPatch,
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    """Edit title, content, category or tags. is_pinned / is_notice need an admin."""
    store: ForumStore = request.app.state.forum_store
    post = load_visible_post(store, post_id, current_user)
    authorize(current_user, Operation.EDIT_POST, author_id=post.author_id)
    updates = body.model_dump(exclude_none=True)
    if "is_pinned" in updates or "is_notice" in updates:
        authorize(current_user, Operation.FLAG_POST)
    if not updates:
        raise ValidationError("No fields to update.", code="no_changes")
    store.update_post(post_id, **updates)
    return _fresh(store, post_id)


@router.delete("/posts/{post_id}", response_model=MessageResponse)
def delete_post(
    request: Request,
    post_id: int,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    """Hide the post. The row, its comments and its attachments are kept."""
    store: ForumStore = request.app.state.forum_store
    post = load_visible_post(store, post_id, current_user)
    authorize(current_user, Operation.DELETE_POST, author_id=post.author_id)
    if post.status is PostStatus.HIDDEN:
        raise ValidationError("The post is already deleted.")
    _transition(store, post, PostStatus.HIDDEN, current_user)
    return MessageResponse(message="Post deleted.")


@router.post("/posts/{post_id}/publish", response_model=PostResponse)
def publish_post(
    request: Request,
    post_id: int,
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    store: ForumStore = request.app.state.forum_store
    post = load_visible_post(store, post_id, current_user)
    authorize(current_user, Operation.PUBLISH_POST, author_id=post.author_id)
    if post.status is not PostStatus.DRAFT:
        raise ValidationError("Only a draft can be published.")
    _transition(store, post, PostStatus.PUBLISHED, current_user)
    return _fresh(store, post_id)


@router.post("/posts/{post_id}/attachments", response_model=PostResponse, status_code=201)
def upload_attachments(
    request: Request,
    post_id: int,
    files: list[UploadFile] = File(...),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    """Attach one or more files to a post.

    Every file is size-checked before any is written, so an oversized file in
    the batch leaves the post without partial attachments.
    """
    store: ForumStore = request.app.state.forum_store
    storage: LocalFileStorage = request.app.state.file_storage
    post = load_visible_post(store, post_id, current_user)
    authorize(current_user, Operation.ATTACH_FILE, author_id=post.author_id)

    payloads = []
    for upload in files:
        data = upload.file.read(storage.max_bytes + 1)
        if len(data) > storage.max_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {storage.max_bytes // (1024 * 1024)} MB.",
                detail=upload.filename,
            )
        payloads.append((upload.filename or "upload", upload.content_type or "", data))

    for original_name, mime_type, data in payloads:
        attachment = storage.save(original_name, mime_type, data)
        try:
            store.add_attachment(post_id, attachment)
        except Exception:
            storage.delete(attachment.name)
            raise
        logger.info("Attachment %s added to post %s", attachment.name, post_id)
    return _fresh(store, post_id)


# ---------------------------------------------------------------------------
# Reactions
# ---------------------------------------------------------------------------


@router.post("/posts/{post_id}/like", response_model=ReactionResponse)
def like_post(
    request: Request,
    post_id: int,
    current_user: User = Depends(get_current_user),
) -> ReactionResponse:
    store: ForumStore = request.app.state.forum_store
    stats = store.react_to_post(post_id, Reaction.LIKE)
    return ReactionResponse(likes=stats.likes, dislikes=stats.dislikes)


@router.post("/posts/{post_id}/dislike", response_model=ReactionResponse)
def dislike_post(
    request: Request,
    post_id: int,
    current_user: User = Depends(get_current_user),
) -> ReactionResponse:
    store: ForumStore = request.app.state.forum_store
    stats = store.react_to_post(post_id, Reaction.DISLIKE)
    return ReactionResponse(likes=stats.likes, dislikes=stats.dislikes)


# ---------------------------------------------------------------------------
# Moderation (admin only)
# ---------------------------------------------------------------------------


@router.post("/posts/{post_id}/hide", response_model=PostResponse)
def hide_post(
    request: Request,
    post_id: int,
    current_user: User = Depends(require_admin),
) -> PostResponse:
    authorize(current_user, Operation.HIDE_POST)
    store: ForumStore = request.app.state.forum_store
    post = load_visible_post(store, post_id, current_user)
    if post.status is PostStatus.HIDDEN:
        raise ValidationError("The post is already hidden.")
    _transition(store, post, PostStatus.HIDDEN, current_user)
    return _fresh(store, post_id)


@router.post("/posts/{post_id}/restore", response_model=PostResponse)
def restore_post(
    request: Request,
    post_id: int,
    current_user: User = Depends(require_admin),
) -> PostResponse:
    authorize(current_user, Operation.RESTORE_POST)
    store: ForumStore = request.app.state.forum_store
    post = load_visible_post(store, post_id, current_user)
    if post.status is not PostStatus.HIDDEN:
        raise ValidationError("Only a hidden post can be restored.")
    _transition(store, post, PostStatus.PUBLISHED, current_user)
    return _fresh(store, post_id)
