"""
api/routes/v1/comments.py -- Threaded comments on posts.

Routes:
  GET    /posts/{post_id}/comments   -- whole thread, oldest first, tombstones included
  POST   /posts/{post_id}/comments   -- add a comment or a reply (parent_id)
  PATCH  /comments/{comment_id}      -- edit content (author or admin)
  DELETE /comments/{comment_id}      -- tombstone (author or admin)
  POST   /comments/{comment_id}/like
  POST   /comments/{comment_id}/dislike

Deleted comments keep their place so replies still hang off the right
parent; their content is withheld in responses.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.models import CommentCreate, CommentPatch, CommentResponse, MessageResponse, ReactionResponse
from api.routes.v1.posts import can_view, load_visible_post
from auth.dependencies import get_current_user, try_get_current_user
from auth.models import User
from auth.policy import Operation, authorize
from core.errors import Internal, NotFound
from forum.models import Comment, CommentState, Reaction
from forum.store import ForumStore

logger = logging.getLogger("fightclub.api.comments")

# Auth policy:
# - GET    /posts/{id}/comments:             public (same visibility as the post)
# - POST   /posts/{id}/comments:             requires auth (get_current_user)
# - PATCH  /comments/{id}:                   requires auth + author-or-admin
# - DELETE /comments/{id}:                   requires auth + author-or-admin
# - POST   /comments/{id}/like, /dislike:    requires auth (get_current_user)
router = APIRouter()


def _load_live_comment(store: ForumStore, comment_id: int, user: User) -> Comment:
    """A live comment on a post the caller can see, else NotFound."""
    comment = store.get_comment(comment_id)
    if comment is None or comment.state is CommentState.DELETED:
        raise NotFound("Comment not found.")
    post = store.get_post(comment.post_id)
    if post is None or not can_view(post, user):
        raise NotFound("Comment not found.")
    return comment


def _fresh(store: ForumStore, comment_id: int) -> CommentResponse:
    comment = store.get_comment(comment_id)
    if comment is None:
        raise Internal("Comment not found after write.")
    return CommentResponse.from_comment(comment)


@router.get("/posts/{post_id}/comments", response_model=list[CommentResponse])
def list_comments(
    request: Request,
    post_id: int,
    current_user: User | None = Depends(try_get_current_user),
) -> list[CommentResponse]:
    store: ForumStore = request.app.state.forum_store
    load_visible_post(store, post_id, current_user)
    return [CommentResponse.from_comment(c) for c in store.list_comments(post_id)]


@router.post("/posts/{post_id}/comments", response_model=CommentResponse, status_code=201)
def create_comment(
    request: Request,
    post_id: int,
    body: CommentCreate,
    current_user: User = Depends(get_current_user),
) -> CommentResponse:
    """Comment on a published post. parent_id must be a live comment on the same post."""
    store: ForumStore = request.app.state.forum_store
    comment_id = store.create_comment(
        Comment(post_id=post_id, author_id=current_user.id, content=body.content, parent_id=body.parent_id)
    )
    logger.info("Comment %s on post %s by %s", comment_id, post_id, current_user.username)
    return _fresh(store, comment_id)


@router.patch("/comments/{comment_id}", response_model=CommentResponse)
def update_comment(
    request: Request,
    comment_id: int,
    body: CommentPatch,
    current_user: User = Depends(get_current_user),
) -> CommentResponse:
    store: ForumStore = request.app.state.forum_store
    comment = _load_live_comment(store, comment_id, current_user)
    authorize(current_user, Operation.EDIT_COMMENT, author_id=comment.author_id)
    if not store.update_comment(comment_id, body.content):
        raise NotFound("Comment not found.")
    return _fresh(store, comment_id)


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
def delete_comment(
    request: Request,
    comment_id: int,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    store: ForumStore = request.app.state.forum_store
    comment = _load_live_comment(store, comment_id, current_user)
    authorize(current_user, Operation.DELETE_COMMENT, author_id=comment.author_id)
    if not store.delete_comment(comment_id):
        raise NotFound("Comment not found.")
    logger.info("Comment %s deleted by %s", comment_id, current_user.username)
    return MessageResponse(message="Comment deleted.")


@router.post("/comments/{comment_id}/like", response_model=ReactionResponse)
def like_comment(
    request: Request,
    comment_id: int,
    current_user: User = Depends(get_current_user),
) -> ReactionResponse:
    store: ForumStore = request.app.state.forum_store
    _load_live_comment(store, comment_id, current_user)
    stats = store.react_to_comment(comment_id, Reaction.LIKE)
    return ReactionResponse(likes=stats.likes, dislikes=stats.dislikes)


@router.post("/comments/{comment_id}/dislike", response_model=ReactionResponse)
def dislike_comment(
    request: Request,
    comment_id: int,
    current_user: User = Depends(get_current_user),
) -> ReactionResponse:
    store: ForumStore = request.app.state.forum_store
    _load_live_comment(store, comment_id, current_user)
    stats = store.react_to_comment(comment_id, Reaction.DISLIKE)
    return ReactionResponse(likes=stats.likes, dislikes=stats.dislikes)
