"""
forum/models.py -- Domain dataclasses for boards, posts and comments.

These are pure data containers with zero logic. Lifecycle rules, counter
maintenance and listing order live in forum/store.py and forum/listing.py.

Counters on Board, Post and Comment are cached aggregates. Their source of
truth is the underlying rows; forum/store.py keeps them equal in the same
transaction as each mutation and reconcile_counters() can rebuild them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PostStatus(str, Enum):
    """Post lifecycle. Moves forward draft -> published -> hidden.

    hidden is terminal for regular users; only an admin can restore a hidden
    post to published.
    """

    DRAFT = "draft"
    PUBLISHED = "published"
    HIDDEN = "hidden"


class CommentState(str, Enum):
    """Comment lifecycle. deleted is a tombstone: the row and its place in the
    thread stay, the content is withheld."""

    LIVE = "live"
    DELETED = "deleted"


class Reaction(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


@dataclass
class AuthorRef:
    """The public face of a user as shown next to content."""

    id: int
    username: str
    avatar: str = ""


@dataclass
class Board:
    slug: str
    name: str
    description: str
    category: str = "general"
    is_active: bool = True
    post_count: int = 0
    id: Optional[int] = None
    created_at: str = ""


@dataclass
class Attachment:
    """Metadata for an uploaded file. The bytes live with the file storage;
    only the locator is kept here."""

    name: str  # stored file name
    original_name: str
    mime_type: str
    size: int
    locator: str  # URL path the file is served from
    id: Optional[int] = None
    post_id: Optional[int] = None


@dataclass
class PostStats:
    views: int = 0
    likes: int = 0
    dislikes: int = 0
    comments: int = 0


@dataclass
class Post:
    """A post on a board.

    id is None before the record is written to the database. author is None
    on a draft built from client input; the store fills it on read.
    """

    title: str
    content: str
    board: str  # board slug
    author_id: int
    category: str = "general"
    tags: list[str] = field(default_factory=list)
    status: PostStatus = PostStatus.PUBLISHED
    is_pinned: bool = False
    is_notice: bool = False
    stats: PostStats = field(default_factory=PostStats)
    attachments: list[Attachment] = field(default_factory=list)
    author: Optional[AuthorRef] = None
    id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class CommentStats:
    likes: int = 0
    dislikes: int = 0


@dataclass
class Comment:
    post_id: int
    author_id: int
    content: str
    parent_id: Optional[int] = None
    state: CommentState = CommentState.LIVE
    stats: CommentStats = field(default_factory=CommentStats)
    author: Optional[AuthorRef] = None
    id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class ReconcileReport:
    """Rows whose cached counter disagreed with the source data and was fixed."""

    boards: int = 0
    posts: int = 0
    users: int = 0

    @property
    def total(self) -> int:
        return self.boards + self.posts + self.users
