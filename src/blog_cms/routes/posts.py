"""
# Post Routes

REST endpoints for posts and comments under `/api/posts`.

## API Endpoints

### Posts
- `GET /api/posts` - Paginated listing (`page`, `limit`, `category`, `tag`, `authorId`)
- `GET /api/posts/{id_or_slug}` - Anonymous read
- `GET /api/posts/authenticated/{id_or_slug}` - Authenticated read; counts viewer reads
- `POST /api/posts` - Create (editor, multipart with optional `image`)
- `PUT /api/posts/{post_id}` - Update (editor, multipart with optional `image`)
- `PATCH /api/posts/{post_id}/status` - Change status (editor)
- `DELETE /api/posts/{post_id}` - Delete (editor)

### Comments
- `POST /api/posts/{post_id}/comments` - Add (viewer or editor)
- `PUT /api/posts/{post_id}/comments/{comment_id}` - Edit own comment
- `DELETE /api/posts/{post_id}/comments/{comment_id}` - Remove own comment

## Author Listings

`authorId` shows drafts and archived posts only when it is the caller's own id. For anyone
else the listing is narrowed to that author's published posts.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from blog_cms.config import settings
from blog_cms.exceptions import BlogError
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import (
    Caller,
    CommentRequest,
    MessageResponse,
    Post,
    PostInput,
    PostListResponse,
    UpdatePostStatusRequest,
    UserRole,
)
from blog_cms.routes.auth.dependencies import get_current_caller, get_optional_caller, require_role
from blog_cms.routes.dependencies import get_blob_store, get_post_service
from blog_cms.services.post_service import PostService
from blog_cms.services.storage_service import LocalBlobStore

logger = get_logger(prefix="[Post Routes]")

router = APIRouter(prefix="/api/posts", tags=["posts"])

require_editor = require_role(UserRole.EDITOR)
require_reader = require_role(UserRole.VIEWER, UserRole.EDITOR)


async def _store_image(blobs: LocalBlobStore, image: Optional[UploadFile]) -> Optional[str]:
    if image is None or not image.filename:
        return None
    return await blobs.save(image)


@router.get("", response_model=PostListResponse)
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.POSTS_DEFAULT_PAGE_SIZE, ge=1, le=settings.POSTS_MAX_PAGE_SIZE),
    category: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    author_id: Optional[str] = Query(None, alias="authorId"),
    caller: Optional[Caller] = Depends(get_optional_caller),
    service: PostService = Depends(get_post_service),
):
    """
    List posts, newest first.

    **Filters:**
    *   **category**: Matches every category sharing the given category's name.
    *   **tag**: Case-insensitive exact tag match.
    *   **authorId**: All statuses for the caller's own id; published only for other authors.
    """
    own_listing = bool(author_id) and caller is not None and caller.user_id == author_id
    return await service.list_posts(
        caller,
        page=page,
        limit=limit,
        category=category,
        tag=tag,
        author_id=author_id,
        include_unpublished=own_listing,
    )


@router.get("/authenticated/{id_or_slug}", response_model=Post)
async def get_post_authenticated(
    id_or_slug: str,
    caller: Caller = Depends(get_current_caller),
    service: PostService = Depends(get_post_service),
):
    """Read a post as a signed-in user. Viewer reads are counted once per day."""
    return await service.get_post(id_or_slug, caller)


@router.get("/{id_or_slug}", response_model=Post)
async def get_post(
    id_or_slug: str,
    service: PostService = Depends(get_post_service),
):
    return await service.get_post(id_or_slug, None)


@router.post("", response_model=Post, status_code=status.HTTP_201_CREATED)
async def create_post(
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    post_status: Optional[str] = Form(None, alias="status"),
    tags: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    caller: Caller = Depends(require_editor),
    service: PostService = Depends(get_post_service),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    """
    Create a post from a multipart form.

    The optional `image` part is stored first; if the post is then rejected the stored image
    is removed again.
    """
    data = PostInput(title=title, content=content, category=category, status=post_status, tags=tags, author=author)
    image_path = await _store_image(blobs, image)
    try:
        return await service.create_post(caller, data, image_path)
    except BlogError:
        if image_path:
            logger.info("Discarding stored image %s after rejected write", image_path)
            blobs.delete_best_effort(image_path)
        raise


@router.put("/{post_id}", response_model=Post)
async def update_post(
    post_id: str,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    post_status: Optional[str] = Form(None, alias="status"),
    tags: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    caller: Caller = Depends(require_editor),
    service: PostService = Depends(get_post_service),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    data = PostInput(title=title, content=content, category=category, status=post_status, tags=tags, author=author)
    image_path = await _store_image(blobs, image)
    try:
        return await service.update_post(caller, post_id, data, image_path)
    except BlogError:
        if image_path:
            logger.info("Discarding stored image %s after rejected write", image_path)
            blobs.delete_best_effort(image_path)
        raise


@router.patch("/{post_id}/status", response_model=Post)
async def update_post_status(
    post_id: str,
    request: UpdatePostStatusRequest,
    caller: Caller = Depends(require_editor),
    service: PostService = Depends(get_post_service),
):
    return await service.update_post_status(caller, post_id, request.status)


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    caller: Caller = Depends(require_editor),
    service: PostService = Depends(get_post_service),
):
    message = await service.delete_post(caller, post_id)
    return MessageResponse(message=message)


@router.post("/{post_id}/comments", response_model=Post, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    request: CommentRequest,
    caller: Caller = Depends(require_reader),
    service: PostService = Depends(get_post_service),
):
    return await service.add_comment(caller, post_id, request.content)


@router.put("/{post_id}/comments/{comment_id}", response_model=Post)
async def update_comment(
    post_id: str,
    comment_id: str,
    request: CommentRequest,
    caller: Caller = Depends(get_current_caller),
    service: PostService = Depends(get_post_service),
):
    return await service.update_comment(caller, post_id, comment_id, request.content)


@router.delete("/{post_id}/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    post_id: str,
    comment_id: str,
    caller: Caller = Depends(get_current_caller),
    service: PostService = Depends(get_post_service),
):
    await service.delete_comment(caller, post_id, comment_id)
    return MessageResponse(message="Comment deleted")
