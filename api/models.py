"""
API request and response models for the forum REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
forum/models.py, which own the internal domain representation. The from_*
factory methods do the mapping so route handlers stay short.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import User
from forum.listing import Pagination
from forum.models import Attachment, Board, Comment, CommentState, Post, PostStatus

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]*$"

_MAX_TAGS = 20


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    user = "user"
    admin = "admin"


class NewPostStatusEnum(str, Enum):
    """Statuses a client may create a post in. hidden is reached by moderation only."""

    draft = "draft"
    published = "published"


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    environment: str
    uptime_seconds: float
    timestamp: str
    components: dict[str, str]


class ApiIndexResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    version: str
    endpoints: dict[str, dict[str, str]]


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    password_confirm is optional; when present it must match password.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6, max_length=72)
    password_confirm: Optional[str] = Field(default=None, max_length=72)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(BaseModel):
    """username accepts either the username or the email address."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=72)
    remember: bool = False


class UserStatsModel(BaseModel):
    posts: int
    comments: int
    likes: int


class UserResponse(BaseModel):
    """A user as seen by themselves or an admin. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: str
    avatar: str
    is_active: bool
    joined_at: str
    last_active: str
    stats: UserStatsModel

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role.value,
            avatar=user.avatar,
            is_active=user.is_active,
            joined_at=user.joined_at,
            last_active=user.last_active,
            stats=UserStatsModel(posts=user.stats.posts, comments=user.stats.comments, likes=user.stats.likes),
        )


class AuthResponse(BaseModel):
    """Returned by register and login."""

    message: str
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class UserPatch(BaseModel):
    """Request body for PATCH /api/v1/admin/users/{id}."""

    role: Optional[RoleEnum] = None
    is_active: Optional[bool] = None


# ---------------------------------------------------------------------------
# Boards
# ---------------------------------------------------------------------------


class BoardCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    slug: str = Field(min_length=1, max_length=50, pattern=SLUG_PATTERN)
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    category: str = Field(default="general", max_length=50)


class BoardPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    category: Optional[str] = Field(default=None, max_length=50)
    is_active: Optional[bool] = None


class BoardResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    slug: str
    name: str
    description: str
    category: str
    is_active: bool
    post_count: int
    created_at: str

    @classmethod
    def from_board(cls, board: Board) -> "BoardResponse":
        return cls(
            id=board.id,
            slug=board.slug,
            name=board.name,
            description=board.description,
            category=board.category,
            is_active=board.is_active,
            post_count=board.post_count,
            created_at=board.created_at,
        )


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


def _split_tags(value: Union[str, list, None]) -> list[str]:
    """Accept a comma-separated string or a list; strip, drop blanks, dedupe."""
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else [str(v) for v in value]
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        tag = item.strip()
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


class PostCreate(BaseModel):
    """Request body for POST /api/v1/posts. The author is never taken from the body."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    board: str = Field(min_length=1, max_length=50)
    category: str = Field(default="general", max_length=50)
    tags: list[str] = Field(default_factory=list, max_length=_MAX_TAGS)
    status: NewPostStatusEnum = NewPostStatusEnum.published

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value) -> list[str]:
        return _split_tags(value)


class PostPatch(BaseModel):
    """Request body for PATCH /api/v1/posts/{id}. is_pinned / is_notice are admin-only."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, max_length=50)
    tags: Optional[list[str]] = Field(default=None, max_length=_MAX_TAGS)
    is_pinned: Optional[bool] = None
    is_notice: Optional[bool] = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value) -> Optional[list[str]]:
        return None if value is None else _split_tags(value)


class AuthorModel(BaseModel):
    id: int
    username: str
    avatar: str


class PostStatsModel(BaseModel):
    views: int
    likes: int
    dislikes: int
    comments: int


class AttachmentModel(BaseModel):
    name: str
    original_name: str
    mime_type: str
    size: int
    url: str

    @classmethod
    def from_attachment(cls, attachment: Attachment) -> "AttachmentModel":
        return cls(
            name=attachment.name,
            original_name=attachment.original_name,
            mime_type=attachment.mime_type,
            size=attachment.size,
            url=attachment.locator,
        )


class PostResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    content: str
    board: str
    category: str
    tags: list[str]
    status: PostStatus
    is_pinned: bool
    is_notice: bool
    author: AuthorModel
    stats: PostStatsModel
    attachments: list[AttachmentModel]
    created_at: str
    updated_at: str

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        return cls(
            id=post.id,
            title=post.title,
            content=post.content,
            board=post.board,
            category=post.category,
            tags=post.tags,
            status=post.status,
            is_pinned=post.is_pinned,
            is_notice=post.is_notice,
            author=AuthorModel(id=post.author.id, username=post.author.username, avatar=post.author.avatar),
            stats=PostStatsModel(
                views=post.stats.views,
                likes=post.stats.likes,
                dislikes=post.stats.dislikes,
                comments=post.stats.comments,
            ),
            attachments=[AttachmentModel.from_attachment(a) for a in post.attachments],
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PaginationModel(BaseModel):
    current_page: int
    page_size: int
    total_posts: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_pagination(cls, p: Pagination) -> "PaginationModel":
        return cls(
            current_page=p.current_page,
            page_size=p.page_size,
            total_posts=p.total_items,
            total_pages=p.total_pages,
            has_next=p.has_next,
            has_prev=p.has_prev,
        )


class PostListResponse(BaseModel):
    posts: list[PostResponse]
    pagination: PaginationModel


class ReactionResponse(BaseModel):
    likes: int
    dislikes: int


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class CommentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(min_length=1, max_length=5000)
    parent_id: Optional[int] = None


class CommentPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    """A comment. Deleted comments keep their place with content withheld (None)."""

    model_config = ConfigDict(frozen=True)

    id: int
    post_id: int
    parent_id: Optional[int]
    author: AuthorModel
    content: Optional[str]
    is_deleted: bool
    stats: ReactionResponse
    created_at: str
    updated_at: str

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        deleted = comment.state is CommentState.DELETED
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            parent_id=comment.parent_id,
            author=AuthorModel(id=comment.author.id, username=comment.author.username, avatar=comment.author.avatar),
            content=None if deleted else comment.content,
            is_deleted=deleted,
            stats=ReactionResponse(likes=comment.stats.likes, dislikes=comment.stats.dislikes),
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


# ---------------------------------------------------------------------------
# Statistics and maintenance
# ---------------------------------------------------------------------------


class OnlineStatsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    online_users: int
    today_users: int
    today_posts: int
    timestamp: str


class ReconcileResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    boards: int
    posts: int
    users: int
    total: int
