"""
# Blog Models

This module defines the **data structures** of the blog: stored documents (`Category`, `Post`,
`Comment`), the caller identity handed to every service call, and the request/response models
used by the HTTP layer.

## Domain Model Overview

- **Category**: A named bucket for posts. Owned either by a user or by the shared template
  set (`owner_id == "system-template"`). Templates are copied lazily into each user's set.
- **Post**: The content unit. Owned by exactly one `author_id`; visible to others only when
  `published`.
- **Comment**: Embedded in its post; only the commenter may change or remove it.
- **Caller**: `{user_id, role}` for authenticated requests; anonymous requests pass `None`.

## Ownership Model

Category ownership is a tagged variant rather than a bare string:

```python
owner = category.owner
if isinstance(owner, TemplateOwner):
    ...  # shared template, never edited in place
elif owner.user_id == caller.user_id:
    ...  # the caller's own copy
```

## Module Attributes

Attributes:
    TEMPLATE_OWNER_ID (str): Storage sentinel for template categories.
    POST_STATUSES (List[str]): Valid post lifecycle states.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

import bleach
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

TEMPLATE_OWNER_ID = "system-template"
POST_STATUSES = ["draft", "published", "archived"]


class PostStatus(str, Enum):
    """Enumeration of post lifecycle states.

    Every transition is allowed in either direction; only the author may perform it.

    Attributes:
        DRAFT: Being written, visible to the author only.
        PUBLISHED: Visible to everyone.
        ARCHIVED: Withdrawn, visible to the author only.
    """
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class UserRole(str, Enum):
    """Roles carried in the identity provider's session claims.

    Attributes:
        EDITOR: Writes posts and manages categories.
        VIEWER: Reads and comments; the only role whose reads are counted.
    """
    EDITOR = "editor"
    VIEWER = "viewer"


# Ownership variants


@dataclass(frozen=True)
class UserOwner:
    user_id: str


@dataclass(frozen=True)
class TemplateOwner:
    pass


Owner = Union[UserOwner, TemplateOwner]


def owner_from_storage(owner_id: str) -> Owner:
    if owner_id == TEMPLATE_OWNER_ID:
        return TemplateOwner()
    return UserOwner(owner_id)


def owner_to_storage(owner: Owner) -> str:
    if isinstance(owner, TemplateOwner):
        return TEMPLATE_OWNER_ID
    return owner.user_id


class Caller(BaseModel):
    """Verified identity of the requester.

    Attributes:
        user_id (str): Identity-provider user id (`sub` claim).
        role (Optional[UserRole]): Role claim; `None` when the token carries none.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1, description="Authenticated user id")
    role: Optional[UserRole] = Field(None, description="Role claim")

    @property
    def is_editor(self) -> bool:
        return self.role == UserRole.EDITOR

    @property
    def is_viewer(self) -> bool:
        return self.role == UserRole.VIEWER


class UserProfile(BaseModel):
    """Profile fields used to build author and commenter display names."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None


# Stored documents


class Category(BaseModel):
    """A category document.

    Attributes:
        id (str): Document id.
        name (str): Display name. Not unique; same-named categories across owners are the
            same logical category when filtering posts.
        description (Optional[str]): Free text.
        owner_id (str): User id, or `TEMPLATE_OWNER_ID` for shared templates.
        created_at (datetime): Creation time.
    """
    id: str = Field(..., description="Category ID")
    name: str = Field(..., description="Category name")
    description: Optional[str] = Field(None, description="Category description")
    owner_id: str = Field(..., description="Owning user ID or template sentinel")
    created_at: datetime = Field(..., description="Creation timestamp")

    @property
    def owner(self) -> Owner:
        return owner_from_storage(self.owner_id)

    @property
    def is_template(self) -> bool:
        return isinstance(self.owner, TemplateOwner)

    def is_owned_by(self, user_id: Optional[str]) -> bool:
        owner = self.owner
        return isinstance(owner, UserOwner) and owner.user_id == user_id


class ViewRecord(BaseModel):
    """Last counted view of a post by one reader.

    `user_id` is optional so that damaged records still load; the post service drops them
    before de-duplicating.
    """
    user_id: Optional[str] = None
    last_viewed: Optional[datetime] = None


class Comment(BaseModel):
    """A comment embedded in a post."""

    id: str = Field(..., description="Comment ID")
    user_id: str = Field(..., description="Commenter user ID")
    user: str = Field(..., description="Commenter display name at time of writing")
    content: str = Field(..., description="Comment text")
    created_at: datetime = Field(..., description="Creation timestamp")


class Post(BaseModel):
    """A post document, optionally with its category resolved.

    `category` is filled by the post service from `category_id`; it is `None` when the
    reference is dangling.
    """
    id: str = Field(..., description="Post ID")
    title: str = Field(..., description="Post title")
    content: str = Field(..., description="Post body")
    excerpt: Optional[str] = Field(None, description="First 200 characters of the body")
    slug: str = Field(..., description="URL slug, unique across posts")
    author: str = Field("Anonymous", description="Author display name")
    author_id: str = Field(..., description="Owning user ID")
    category_id: Optional[str] = Field(None, description="Referenced category ID")
    category: Optional[Category] = Field(None, description="Resolved category")
    tags: List[str] = Field(default_factory=list, description="Normalised tags")
    status: PostStatus = Field(PostStatus.DRAFT, description="Lifecycle state")
    featured_image: Optional[str] = Field(None, description="Stored image path")
    view_count: int = Field(0, ge=0, description="Counted reader views")
    viewed_by: List[ViewRecord] = Field(default_factory=list, description="View de-duplication records")
    comments: List[Comment] = Field(default_factory=list, description="Embedded comments")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @computed_field
    @property
    def url(self) -> str:
        return f"/posts/{self.slug}"


# Request Models


class PostInput(BaseModel):
    """
    Form fields accepted when creating or updating a post.

    Everything is optional at this layer because create and update share the model; the post
    service enforces which fields are required for each operation. `tags` is the raw
    comma-separated string from the form.
    """

    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    tags: Optional[str] = None
    author: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is None:
            return v
        return bleach.clean(v, tags=[], strip=True).strip()

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        if v is None:
            return v
        return v.strip()


class CreateCategoryRequest(BaseModel):
    """
    Request model for creating a category.

    **Validation:**
    *   **name**: Required, trimmed and HTML-escaped.
    *   **description**: Optional, trimmed and HTML-escaped.
    """

    name: str = Field(..., min_length=1, max_length=100, description="Category name")
    description: Optional[str] = Field(None, max_length=500, description="Category description")

    @field_validator("name", "description")
    @classmethod
    def escape_text(cls, v):
        if v is None:
            return v
        return bleach.clean(v.strip(), tags=[], strip=False)


class UpdateCategoryRequest(BaseModel):
    """
    Request model for editing a category.

    When the target is a template, omitted fields are copied from the template into the new
    user-owned category.
    """

    name: Optional[str] = Field(None, max_length=100, description="Category name")
    description: Optional[str] = Field(None, max_length=500, description="Category description")

    @field_validator("name", "description")
    @classmethod
    def escape_text(cls, v):
        if v is None:
            return v
        return bleach.clean(v.strip(), tags=[], strip=False)


class UpdatePostStatusRequest(BaseModel):
    """Body of `PATCH /api/posts/{id}/status`. The value is checked by the post service."""

    status: str = Field(..., description="draft, published or archived")


class CommentRequest(BaseModel):
    """
    Request model for adding or editing a comment.

    **Sanitization:**
    *   **content**: Limited to basic formatting tags (`<strong>`, `<em>`, `<a>`, etc.).
    """

    content: str = Field(..., min_length=1, max_length=2000, description="Comment content")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        allowed_tags = ['p', 'br', 'strong', 'em', 'code', 'a']
        return bleach.clean(v, tags=allowed_tags, strip=True).strip()


# Response Models


class CategoryWriteResult(BaseModel):
    """Outcome of a category update: `created` is `True` when a template was forked."""

    category: Category
    created: bool = False


class PostListResponse(BaseModel):
    posts: List[Post]
    total_pages: int
    current_page: int


class MessageResponse(BaseModel):
    message: str
