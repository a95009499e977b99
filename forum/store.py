"""
forum/store.py -- SQLAlchemy-backed content repository for boards, posts and comments.

Uses SQLAlchemy Core (not ORM) so the dataclasses in forum/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. ForumStore is the repository; the _row_to_*
functions are the mappers. Route handlers never touch SQL directly.

Counter discipline:
  Every cached counter (boards.post_count, posts.comment_count, users.*_count)
  changes in the SAME transaction as the row change it summarizes, and always
  as an in-database expression (col = col + 1), never as a value computed in
  Python. Status changes are conditional updates (WHERE status = :current) so
  two concurrent moderators cannot both apply the same transition and double
  count. reconcile_counters() rebuilds every counter from source rows and is
  run periodically as a safety net.

  What each counter counts:
    boards.post_count     -- published posts on the board
    posts.comment_count   -- live comments on the post
    users.post_count      -- published posts by the user
    users.comment_count   -- live comments by the user
    users.like_count      -- likes on the user's posts and comments

The users table belongs to auth/store.py; this store shares the database so
content and user counters commit together.

Security: all queries use bound parameters. No f-strings in SQL.
"""

import json
import logging
from typing import Optional

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.store import metadata as auth_metadata
from auth.store import users_table as _users
from core.config import get_settings
from core.database import make_engine, now_iso
from core.errors import Conflict, InactiveAccount, NotFound, ValidationError
from forum.listing import CROSS_BOARD, Page, SortKey, offset_for, order_by, paginate
from forum.models import (
    Attachment,
    AuthorRef,
    Board,
    Comment,
    CommentState,
    CommentStats,
    Post,
    PostStats,
    PostStatus,
    Reaction,
    ReconcileReport,
)

logger = logging.getLogger("fightclub.forum.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_boards = Table(
    "boards",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("slug", String(50), nullable=False, unique=True),
    Column("name", String(100), nullable=False),
    Column("description", Text, nullable=False),
    Column("category", String(50), nullable=False, server_default="general"),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("post_count", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

_posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=False),
    Column("content", Text, nullable=False),
    Column("author_id", Integer, nullable=False, index=True),
    Column("board", String(50), nullable=False, index=True),  # board slug, resolved by lookup
    Column("category", String(50), nullable=False, server_default="general"),
    Column("tags", Text),  # JSON array serialized as text
    Column("status", String(10), nullable=False, server_default=PostStatus.PUBLISHED.value),
    Column("is_pinned", Integer, nullable=False, server_default="0"),
    Column("is_notice", Integer, nullable=False, server_default="0"),
    Column("views", Integer, nullable=False, server_default="0"),
    Column("likes", Integer, nullable=False, server_default="0"),
    Column("dislikes", Integer, nullable=False, server_default="0"),
    Column("comment_count", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_attachments = Table(
    "post_attachments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, ForeignKey("posts.id"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("original_name", String(255), nullable=False),
    Column("mime_type", String(100), nullable=False),
    Column("size", Integer, nullable=False),
    Column("locator", Text, nullable=False),
)

_comments = Table(
    "comments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, nullable=False, index=True),
    Column("author_id", Integer, nullable=False, index=True),
    Column("parent_id", Integer),  # NULL for top-level comments
    Column("content", Text, nullable=False),
    Column("state", String(10), nullable=False, server_default=CommentState.LIVE.value),
    Column("likes", Integer, nullable=False, server_default="0"),
    Column("dislikes", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Post fields a caller may change through update_post(). status and the
# counters are deliberately absent: they only move through transition_post()
# and the reaction/view/comment methods.
_POST_MUTABLE_FIELDS = {"title", "content", "category", "tags", "is_pinned", "is_notice"}
_BOARD_MUTABLE_FIELDS = {"name", "description", "category", "is_active"}


# ---------------------------------------------------------------------------
# Status workflow
# ---------------------------------------------------------------------------

# Allowed (from, to) pairs. Anything else is rejected. Who may apply which
# pair is the route's concern (auth/policy.py); hidden -> published is only
# reachable through the admin restore route.
ALLOWED_TRANSITIONS: frozenset = frozenset(
    {
        (PostStatus.DRAFT, PostStatus.PUBLISHED),
        (PostStatus.DRAFT, PostStatus.HIDDEN),
        (PostStatus.PUBLISHED, PostStatus.HIDDEN),
        (PostStatus.HIDDEN, PostStatus.PUBLISHED),
    }
)


def ensure_transition_allowed(current: PostStatus, target: PostStatus) -> None:
    if (current, target) not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"A {current.value} post cannot become {target.value}.")


def _published_delta(current: PostStatus, target: PostStatus) -> int:
    """+1 when a post enters published, -1 when it leaves, 0 otherwise."""
    was = current is PostStatus.PUBLISHED
    now = target is PostStatus.PUBLISHED
    return int(now) - int(was)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ForumStore:
    """Repository for Board, Post, Attachment and Comment entities.

    Usage:
        store = ForumStore("sqlite:///forum.db")
        store.create_board(Board(slug="free", name="Free", description="Anything goes"))
        post_id = store.create_post(Post(title="Hi", content="...", board="free", author_id=1))
        page = store.list_posts("best", page=1, page_size=30, sort=SortKey.POPULAR)
        store.close()
    """

    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        auth_metadata.create_all(self.engine)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    def create_board(self, board: Board) -> int:
        """Insert a board and return its ID. Raises Conflict on a duplicate slug."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _boards.insert().values(
                        slug=board.slug,
                        name=board.name,
                        description=board.description,
                        category=board.category,
                        is_active=1 if board.is_active else 0,
                        created_at=now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise Conflict(f"Board '{board.slug}' already exists.") from exc
        return result.inserted_primary_key[0]

    def get_board(self, slug: str) -> Optional[Board]:
        with self.engine.connect() as conn:
            row = conn.execute(_boards.select().where(_boards.c.slug == slug)).fetchone()
        return _row_to_board(row) if row is not None else None

    def list_boards(self, include_inactive: bool = False) -> list[Board]:
        """Return boards ordered by name; inactive boards only when asked."""
        query = _boards.select().order_by(_boards.c.name)
        if not include_inactive:
            query = query.where(_boards.c.is_active == 1)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_board(r) for r in rows]

    def update_board(self, slug: str, /, **fields) -> bool:
        """Update name, description, category or is_active. Returns False if slug is unknown."""
        unknown = set(fields) - _BOARD_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown board fields: {unknown!r}")
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        if not fields:
            return self.get_board(slug) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_boards.update().where(_boards.c.slug == slug).values(**fields))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def create_post(self, post: Post) -> int:
        """Insert a post and bump the board and author counters in one transaction.

        The board must exist and be active (ValidationError otherwise); the
        author must exist and be active (InactiveAccount otherwise). Counters
        start at zero regardless of what the caller put on the dataclass. Only
        a published post counts towards board and author post totals.
        """
        delta = 1 if post.status is PostStatus.PUBLISHED else 0
        now = now_iso()
        with self.engine.begin() as conn:
            board_hit = conn.execute(
                _boards.update()
                .where((_boards.c.slug == post.board) & (_boards.c.is_active == 1))
                .values(post_count=_boards.c.post_count + delta)
            ).rowcount
            if not board_hit:
                raise ValidationError(f"Board '{post.board}' does not exist.")
            author_hit = conn.execute(
                _users.update()
                .where((_users.c.id == post.author_id) & (_users.c.is_active == 1))
                .values(post_count=_users.c.post_count + delta)
            ).rowcount
            if not author_hit:
                raise InactiveAccount("The author account is not active.")
            result = conn.execute(
                _posts.insert().values(
                    title=post.title,
                    content=post.content,
                    author_id=post.author_id,
                    board=post.board,
                    category=post.category,
                    tags=json.dumps(post.tags),
                    status=post.status.value,
                    is_pinned=1 if post.is_pinned else 0,
                    is_notice=1 if post.is_notice else 0,
                    created_at=now,
                    updated_at=now,
                )
            )
            post_id = result.inserted_primary_key[0]
        logger.info("Post %s created on board %s by user %s (%s)", post_id, post.board, post.author_id, post.status.value)
        return post_id

    def get_post(self, post_id: int) -> Optional[Post]:
        """Fetch a post with its author and attachments. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_post_select().where(_posts.c.id == post_id)).fetchone()
            if row is None:
                return None
            attachments = _load_attachments(conn, [post_id])
        return _row_to_post(row, attachments.get(post_id, []))

    def update_post(self, post_id: int, /, **fields) -> bool:
        """Update editable post fields. Tags must be passed as list[str].

        Returns True if a row was updated, False if post_id was not found.
        """
        unknown = set(fields) - _POST_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown post fields: {unknown!r}")
        if "tags" in fields:
            fields["tags"] = json.dumps(fields["tags"])
        for flag in ("is_pinned", "is_notice"):
            if flag in fields:
                fields[flag] = 1 if fields[flag] else 0
        with self.engine.connect() as conn:
            result = conn.execute(
                _posts.update().where(_posts.c.id == post_id).values(updated_at=now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def transition_post(self, post_id: int, current: PostStatus, target: PostStatus) -> bool:
        """Move a post from current to target status and fix up counters.

        The update only applies while the row still has status == current, so
        a concurrent transition makes this return False instead of double
        counting. Raises ValidationError for a transition outside the workflow.
        """
        ensure_transition_allowed(current, target)
        delta = _published_delta(current, target)
        with self.engine.begin() as conn:
            result = conn.execute(
                _posts.update()
                .where((_posts.c.id == post_id) & (_posts.c.status == current.value))
                .values(status=target.value, updated_at=now_iso())
            )
            if result.rowcount == 0:
                return False
            if delta:
                _adjust_published_counters(conn, post_id, delta)
        logger.info("Post %s moved %s -> %s", post_id, current.value, target.value)
        return True

    def record_view(self, post_id: int) -> bool:
        """Count one view on a published post. Returns False if not published."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _posts.update()
                .where((_posts.c.id == post_id) & (_posts.c.status == PostStatus.PUBLISHED.value))
                .values(views=_posts.c.views + 1)
            )
            conn.commit()
        return result.rowcount > 0

    def react_to_post(self, post_id: int, reaction: Reaction) -> PostStats:
        """Apply a like or dislike to a published post and return the fresh counters.

        A like also counts towards the author's like total, in the same
        transaction. Raises NotFound if the post is missing or not published.
        """
        column = _posts.c.likes if reaction is Reaction.LIKE else _posts.c.dislikes
        with self.engine.begin() as conn:
            hit = conn.execute(
                _posts.update()
                .where((_posts.c.id == post_id) & (_posts.c.status == PostStatus.PUBLISHED.value))
                .values({column: column + 1})
            ).rowcount
            if not hit:
                raise NotFound("Post not found.")
            if reaction is Reaction.LIKE:
                author = select(_posts.c.author_id).where(_posts.c.id == post_id).scalar_subquery()
                conn.execute(
                    _users.update().where(_users.c.id == author).values(like_count=_users.c.like_count + 1)
                )
            row = conn.execute(select(_posts).where(_posts.c.id == post_id)).fetchone()
        return PostStats(views=row.views, likes=row.likes, dislikes=row.dislikes, comments=row.comment_count)

    def add_attachment(self, post_id: int, attachment: Attachment) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _attachments.insert().values(
                    post_id=post_id,
                    name=attachment.name,
                    original_name=attachment.original_name,
                    mime_type=attachment.mime_type,
                    size=attachment.size,
                    locator=attachment.locator,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def list_posts(
        self,
        board: str = CROSS_BOARD,
        page: int = 1,
        page_size: int = 30,
        sort: SortKey = SortKey.LATEST,
    ) -> Page:
        """Return one page of published posts plus pagination metadata.

        board == CROSS_BOARD lists every board. A page beyond the last one
        returns an empty item list.
        """
        condition = _posts.c.status == PostStatus.PUBLISHED.value
        if board != CROSS_BOARD:
            condition = condition & (_posts.c.board == board)
        with self.engine.connect() as conn:
            total = conn.execute(select(func.count()).select_from(_posts).where(condition)).scalar() or 0
            rows = conn.execute(
                _post_select()
                .where(condition)
                .order_by(*order_by(sort, _posts))
                .limit(page_size)
                .offset(offset_for(page, page_size))
            ).fetchall()
            attachments = _load_attachments(conn, [r.id for r in rows])
        items = [_row_to_post(r, attachments.get(r.id, [])) for r in rows]
        return Page(items=items, pagination=paginate(total, page, page_size))

    def count_published_since(self, since_iso: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count())
                .select_from(_posts)
                .where((_posts.c.status == PostStatus.PUBLISHED.value) & (_posts.c.created_at >= since_iso))
            ).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def create_comment(self, comment: Comment) -> int:
        """Insert a comment and bump the post and author comment counters.

        The post must exist and be published (NotFound otherwise). A parent,
        when given, must be a live comment on the same post (ValidationError
        otherwise).
        """
        now = now_iso()
        with self.engine.begin() as conn:
            post_hit = conn.execute(
                _posts.update()
                .where((_posts.c.id == comment.post_id) & (_posts.c.status == PostStatus.PUBLISHED.value))
                .values(comment_count=_posts.c.comment_count + 1)
            ).rowcount
            if not post_hit:
                raise NotFound("Post not found.")
            if comment.parent_id is not None:
                parent = conn.execute(
                    select(_comments.c.post_id, _comments.c.state).where(_comments.c.id == comment.parent_id)
                ).fetchone()
                if parent is None or parent.post_id != comment.post_id:
                    raise ValidationError("Parent comment does not belong to this post.")
                if parent.state != CommentState.LIVE.value:
                    raise ValidationError("Cannot reply to a deleted comment.")
            author_hit = conn.execute(
                _users.update()
                .where((_users.c.id == comment.author_id) & (_users.c.is_active == 1))
                .values(comment_count=_users.c.comment_count + 1)
            ).rowcount
            if not author_hit:
                raise InactiveAccount("The author account is not active.")
            result = conn.execute(
                _comments.insert().values(
                    post_id=comment.post_id,
                    author_id=comment.author_id,
                    parent_id=comment.parent_id,
                    content=comment.content,
                    state=CommentState.LIVE.value,
                    created_at=now,
                    updated_at=now,
                )
            )
            return result.inserted_primary_key[0]

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        with self.engine.connect() as conn:
            row = conn.execute(_comment_select().where(_comments.c.id == comment_id)).fetchone()
        return _row_to_comment(row) if row is not None else None

    def list_comments(self, post_id: int) -> list[Comment]:
        """Return every comment on a post, tombstones included, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _comment_select()
                .where(_comments.c.post_id == post_id)
                .order_by(_comments.c.created_at, _comments.c.id)
            ).fetchall()
        return [_row_to_comment(r) for r in rows]

    def update_comment(self, comment_id: int, content: str) -> bool:
        """Replace the content of a live comment. Returns False if missing or deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _comments.update()
                .where((_comments.c.id == comment_id) & (_comments.c.state == CommentState.LIVE.value))
                .values(content=content, updated_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_comment(self, comment_id: int) -> bool:
        """Tombstone a live comment and decrement the post and author counters.

        Returns False if the comment is missing or already deleted.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _comments.update()
                .where((_comments.c.id == comment_id) & (_comments.c.state == CommentState.LIVE.value))
                .values(state=CommentState.DELETED.value, updated_at=now_iso())
            )
            if result.rowcount == 0:
                return False
            post_id = select(_comments.c.post_id).where(_comments.c.id == comment_id).scalar_subquery()
            author_id = select(_comments.c.author_id).where(_comments.c.id == comment_id).scalar_subquery()
            conn.execute(
                _posts.update().where(_posts.c.id == post_id).values(comment_count=_posts.c.comment_count - 1)
            )
            conn.execute(
                _users.update().where(_users.c.id == author_id).values(comment_count=_users.c.comment_count - 1)
            )
        return True

    def react_to_comment(self, comment_id: int, reaction: Reaction) -> CommentStats:
        """Like or dislike a live comment on a published post.

        Raises NotFound if the comment is missing or deleted, or its post is
        not published.
        """
        column = _comments.c.likes if reaction is Reaction.LIKE else _comments.c.dislikes
        published_posts = select(_posts.c.id).where(_posts.c.status == PostStatus.PUBLISHED.value)
        with self.engine.begin() as conn:
            hit = conn.execute(
                _comments.update()
                .where(
                    (_comments.c.id == comment_id)
                    & (_comments.c.state == CommentState.LIVE.value)
                    & _comments.c.post_id.in_(published_posts)
                )
                .values({column: column + 1})
            ).rowcount
            if not hit:
                raise NotFound("Comment not found.")
            if reaction is Reaction.LIKE:
                author = select(_comments.c.author_id).where(_comments.c.id == comment_id).scalar_subquery()
                conn.execute(
                    _users.update().where(_users.c.id == author).values(like_count=_users.c.like_count + 1)
                )
            row = conn.execute(select(_comments).where(_comments.c.id == comment_id)).fetchone()
        return CommentStats(likes=row.likes, dislikes=row.dislikes)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile_counters(self) -> ReconcileReport:
        """Recompute every cached counter from source rows.

        Each UPDATE only touches rows whose cached value disagrees with the
        recomputed one, so the returned report counts real corrections and a
        healthy database reports zero.
        """
        published = PostStatus.PUBLISHED.value
        live = CommentState.LIVE.value

        board_posts = (
            select(func.count())
            .select_from(_posts)
            .where((_posts.c.board == _boards.c.slug) & (_posts.c.status == published))
            .scalar_subquery()
        )
        post_comments = (
            select(func.count())
            .select_from(_comments)
            .where((_comments.c.post_id == _posts.c.id) & (_comments.c.state == live))
            .scalar_subquery()
        )
        user_posts = (
            select(func.count())
            .select_from(_posts)
            .where((_posts.c.author_id == _users.c.id) & (_posts.c.status == published))
            .scalar_subquery()
        )
        user_comments = (
            select(func.count())
            .select_from(_comments)
            .where((_comments.c.author_id == _users.c.id) & (_comments.c.state == live))
            .scalar_subquery()
        )
        user_likes = (
            select(func.coalesce(func.sum(_posts.c.likes), 0))
            .where(_posts.c.author_id == _users.c.id)
            .scalar_subquery()
        ) + (
            select(func.coalesce(func.sum(_comments.c.likes), 0))
            .where(_comments.c.author_id == _users.c.id)
            .scalar_subquery()
        )

        report = ReconcileReport()
        with self.engine.begin() as conn:
            report.boards = conn.execute(
                _boards.update().where(_boards.c.post_count != board_posts).values(post_count=board_posts)
            ).rowcount
            report.posts = conn.execute(
                _posts.update().where(_posts.c.comment_count != post_comments).values(comment_count=post_comments)
            ).rowcount
            for column, expected in (
                (_users.c.post_count, user_posts),
                (_users.c.comment_count, user_comments),
                (_users.c.like_count, user_likes),
            ):
                report.users += conn.execute(
                    _users.update().where(column != expected).values({column: expected})
                ).rowcount
        if report.total:
            logger.warning(
                "Counter drift corrected: boards=%d posts=%d users=%d", report.boards, report.posts, report.users
            )
        return report

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            return conn.execute(select(1)).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------


def _adjust_published_counters(conn, post_id: int, delta: int) -> None:
    """Shift the board and author post counters of post_id by delta."""
    board = select(_posts.c.board).where(_posts.c.id == post_id).scalar_subquery()
    author = select(_posts.c.author_id).where(_posts.c.id == post_id).scalar_subquery()
    conn.execute(_boards.update().where(_boards.c.slug == board).values(post_count=_boards.c.post_count + delta))
    conn.execute(_users.update().where(_users.c.id == author).values(post_count=_users.c.post_count + delta))


def _post_select():
    return select(
        _posts,
        _users.c.username.label("author_username"),
        _users.c.avatar.label("author_avatar"),
    ).select_from(_posts.join(_users, _users.c.id == _posts.c.author_id))


def _comment_select():
    return select(
        _comments,
        _users.c.username.label("author_username"),
        _users.c.avatar.label("author_avatar"),
    ).select_from(_comments.join(_users, _users.c.id == _comments.c.author_id))


def _load_attachments(conn, post_ids: list[int]) -> dict[int, list[Attachment]]:
    """Fetch attachments for several posts in one query, grouped by post id."""
    if not post_ids:
        return {}
    rows = conn.execute(
        _attachments.select().where(_attachments.c.post_id.in_(post_ids)).order_by(_attachments.c.id)
    ).fetchall()
    grouped: dict[int, list[Attachment]] = {}
    for r in rows:
        grouped.setdefault(r.post_id, []).append(_row_to_attachment(r))
    return grouped


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_board(row) -> Board:
    return Board(
        id=row.id,
        slug=row.slug,
        name=row.name,
        description=row.description,
        category=row.category,
        is_active=bool(row.is_active),
        post_count=row.post_count,
        created_at=row.created_at,
    )


def _row_to_attachment(row) -> Attachment:
    return Attachment(
        id=row.id,
        post_id=row.post_id,
        name=row.name,
        original_name=row.original_name,
        mime_type=row.mime_type,
        size=row.size,
        locator=row.locator,
    )


def _row_to_post(row, attachments: list[Attachment]) -> Post:
    return Post(
        id=row.id,
        title=row.title,
        content=row.content,
        board=row.board,
        author_id=row.author_id,
        author=AuthorRef(id=row.author_id, username=row.author_username, avatar=row.author_avatar or ""),
        category=row.category,
        tags=json.loads(row.tags) if row.tags else [],
        status=PostStatus(row.status),
        is_pinned=bool(row.is_pinned),
        is_notice=bool(row.is_notice),
        stats=PostStats(views=row.views, likes=row.likes, dislikes=row.dislikes, comments=row.comment_count),
        attachments=attachments,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row.id,
        post_id=row.post_id,
        author_id=row.author_id,
        author=AuthorRef(id=row.author_id, username=row.author_username, avatar=row.author_avatar or ""),
        parent_id=row.parent_id,
        content=row.content,
        state=CommentState(row.state),
        stats=CommentStats(likes=row.likes, dislikes=row.dislikes),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
