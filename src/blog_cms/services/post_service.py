"""
# Post Service

Business rules for posts and their embedded comments.

## Visibility

- Listings show `published` posts only, unless an `author_id` filter is given, in which case
  every status of that author is returned. Whether the caller may use that filter is decided by
  the route layer.
- A single post that is not `published` is only returned to its author; everyone else gets
  `NotFoundError`.

## Ownership

Only `post.author_id` may update, delete or change the status of a post. Comments are owned
by their commenter: the post author cannot edit or remove other people's comments.

## Category Cross-Reference

Filtering by a category id matches every category with the same *name*, across owners. A post
filed under the "Tech" template therefore appears next to posts filed under a user's own
"Tech" copy.

## View Counting

Only callers with the `viewer` role are counted, at most once per post per rolling window
(24 hours by default). The view list and counter are rewritten together on each counted view;
concurrent readers can lose an increment.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from blog_cms.database.repositories import CategoryRepository, PostFilter, PostRepository
from blog_cms.exceptions import ForbiddenError, NotFoundError, ValidationError
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import (
    POST_STATUSES,
    Caller,
    Comment,
    Post,
    PostInput,
    PostListResponse,
    PostStatus,
    ViewRecord,
)
from blog_cms.services.identity_service import IdentityClient
from blog_cms.services.storage_service import LocalBlobStore
from blog_cms.utils.text import (
    derive_tags_from_title,
    make_excerpt,
    normalize_tags,
    parse_tags,
    slugify,
)

logger = get_logger(prefix="[PostService]")

TITLE_MAX_LENGTH = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _field_error(field: str, message: str) -> Dict[str, str]:
    return {"field": field, "message": message}


class PostService:
    """
    Post listing, retrieval, authoring and commenting.

    Args:
        posts: Post repository.
        categories: Category repository, used for cross-referencing and embedding.
        identity: Profile client for author and commenter display names.
        blobs: Image store; old images are removed through it on replace and delete.
        view_window: Minimum time between two counted views by the same reader.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        posts: PostRepository,
        categories: CategoryRepository,
        identity: IdentityClient,
        blobs: LocalBlobStore,
        view_window: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.posts = posts
        self.categories = categories
        self.identity = identity
        self.blobs = blobs
        self.view_window = view_window
        self._clock = clock

    # Reading

    async def list_posts(
        self,
        caller: Optional[Caller],
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        author_id: Optional[str] = None,
        include_unpublished: bool = True,
    ) -> PostListResponse:
        """
        Return one page of posts, newest first.

        Args:
            caller: Requesting identity; not consulted here.
            page: 1-based page number.
            limit: Page size.
            category: Category id; matches every category sharing its name.
            tag: Case-insensitive exact tag.
            author_id: Return every status for this author instead of published posts only.
            include_unpublished: Set to `False` to keep the author filter but still show only
                published posts (used when the caller is not that author).

        Returns:
            PostListResponse: Posts with categories embedded, plus paging information.
        """
        page = max(page, 1)
        limit = max(limit, 1)

        post_filter = PostFilter(tag=tag or None)
        if author_id:
            post_filter.author_id = author_id
        if not author_id or not include_unpublished:
            post_filter.status = PostStatus.PUBLISHED.value
        if category:
            post_filter.category_ids = await self._same_name_category_ids(category)

        total = await self.posts.count(post_filter)
        posts = await self.posts.find_page(post_filter, skip=(page - 1) * limit, limit=limit)
        return PostListResponse(
            posts=await self._attach_categories(posts),
            total_pages=math.ceil(total / limit),
            current_page=page,
        )

    async def get_post(self, id_or_slug: str, caller: Optional[Caller] = None) -> Post:
        """
        Fetch a post by id, falling back to slug.

        A malformed id that also matches no slug re-raises the original
        `bson.errors.InvalidId`, which the HTTP layer reports as not found.

        Raises:
            InvalidId: Malformed id and no slug match.
            NotFoundError: Nothing matched, or the post is not visible to `caller`.
        """
        lookup_error: Optional[InvalidId] = None
        post = None
        try:
            post = await self.posts.find_by_id(id_or_slug)
        except InvalidId as e:
            lookup_error = e

        if post is None:
            post = await self.posts.find_by_slug(id_or_slug)
        if post is None:
            if lookup_error is not None:
                raise lookup_error
            raise NotFoundError("Post not found")

        if not self._is_visible(post, caller):
            raise NotFoundError("Post not found")

        if caller is not None and caller.is_viewer:
            post = await self._record_view(post, caller)

        return (await self._attach_categories([post]))[0]

    # Authoring

    async def create_post(self, caller: Caller, data: PostInput, image_path: Optional[str] = None) -> Post:
        """
        Create a post owned by `caller`.

        Tags come from `data.tags` when given, otherwise from the title. The author name
        defaults to the caller's profile display name, the featured image to the placeholder,
        and the status to `draft`.

        Raises:
            ForbiddenError: The caller is not an editor.
            ValidationError: Title, content, category or status is missing or invalid.
        """
        if not caller.is_editor:
            raise ForbiddenError("Requires editor role")

        errors = []
        title = self._check_title(data.title, errors)
        if not data.content:
            errors.append(_field_error("content", "Please provide content"))
        category_id = self._check_category(data.category, errors)
        status = self._check_status(data.status, errors) if data.status else PostStatus.DRAFT
        if errors:
            raise ValidationError("Invalid post data", errors=errors)

        tags = parse_tags(data.tags) if data.tags else derive_tags_from_title(title)
        author = data.author or await self.identity.resolve_display_name(caller.user_id)
        now = self._clock()

        fields = {
            "title": title,
            "content": data.content,
            "excerpt": make_excerpt(data.content),
            "slug": await self._unique_slug(title),
            "author": author,
            "author_id": caller.user_id,
            "category": category_id,
            "tags": self._persistable_tags(tags),
            "status": status.value,
            "featured_image": image_path or self.blobs.default_image,
            "created_at": now,
            "updated_at": now,
        }
        try:
            post = await self.posts.insert(fields)
        except DuplicateKeyError:
            raise ValidationError(
                "A post with this title already exists",
                errors=[_field_error("title", "A post with this title already exists")],
            )

        logger.info("User %s created post %s (%s)", caller.user_id, post.id, post.slug)
        return (await self._attach_categories([post]))[0]

    async def update_post(
        self,
        caller: Caller,
        post_id: str,
        data: PostInput,
        image_path: Optional[str] = None,
    ) -> Post:
        """
        Apply a partial update to a post owned by `caller`.

        When a new image is supplied the previous one is removed afterwards, unless it is the
        placeholder; a failed removal is logged and does not affect the update.

        Raises:
            NotFoundError: No such post.
            ForbiddenError: The caller is not the author.
            ValidationError: A supplied field is invalid.
        """
        post = await self._load_post(post_id)
        self._require_author(caller, post, "update")

        errors = []
        fields = {}
        title = None
        if data.title is not None:
            title = self._check_title(data.title, errors)
        if data.content is not None:
            if not data.content:
                errors.append(_field_error("content", "Please provide content"))
            fields["content"] = data.content
            fields["excerpt"] = make_excerpt(data.content)
        if data.category is not None:
            fields["category"] = self._check_category(data.category, errors)
        if data.status is not None:
            fields["status"] = self._check_status(data.status, errors)
        if errors:
            raise ValidationError("Invalid post data", errors=errors)

        if title is not None:
            fields["title"] = title
            if title != post.title:
                fields["slug"] = await self._unique_slug(title, exclude_id=post.id)
        if data.author:
            fields["author"] = data.author

        if data.tags:
            fields["tags"] = self._persistable_tags(parse_tags(data.tags))
        elif title:
            fields["tags"] = self._persistable_tags(derive_tags_from_title(title))

        if image_path:
            fields["featured_image"] = image_path
        fields["updated_at"] = self._clock()

        updated = await self.posts.update_fields(post.id, fields)
        if updated is None:
            raise NotFoundError("Post not found")

        if image_path and post.featured_image != image_path:
            self.blobs.delete_best_effort(post.featured_image)

        logger.info("User %s updated post %s", caller.user_id, post.id)
        return (await self._attach_categories([updated]))[0]

    async def update_post_status(self, caller: Caller, post_id: str, status: str) -> Post:
        errors = []
        new_status = self._check_status(status, errors)
        if errors:
            raise ValidationError("Invalid status value", errors=errors)

        post = await self._load_post(post_id)
        self._require_author(caller, post, "update")

        updated = await self.posts.update_fields(
            post.id, {"status": new_status.value, "updated_at": self._clock()}
        )
        if updated is None:
            raise NotFoundError("Post not found")
        logger.info("User %s moved post %s from %s to %s", caller.user_id, post.id, post.status.value, new_status.value)
        return (await self._attach_categories([updated]))[0]

    async def delete_post(self, caller: Caller, post_id: str) -> str:
        post = await self._load_post(post_id)
        self._require_author(caller, post, "delete")

        self.blobs.delete_best_effort(post.featured_image)
        await self.posts.delete(post.id)
        logger.info("User %s deleted post %s", caller.user_id, post.id)
        return "Post deleted successfully"

    # Comments

    async def add_comment(self, caller: Caller, post_id: str, content: str) -> Post:
        content = self._check_comment(content)
        post = await self._load_post(post_id)
        if not self._is_visible(post, caller):
            raise NotFoundError("Post not found")

        comment = Comment(
            id=str(ObjectId()),
            user_id=caller.user_id,
            user=await self.identity.resolve_display_name(caller.user_id),
            content=content,
            created_at=self._clock(),
        )
        return await self._save_comments(post, [*post.comments, comment])

    async def update_comment(self, caller: Caller, post_id: str, comment_id: str, content: str) -> Post:
        content = self._check_comment(content)
        post = await self._load_post(post_id)
        index = self._owned_comment_index(caller, post, comment_id, "update")

        comments = list(post.comments)
        comments[index] = comments[index].model_copy(update={"content": content})
        return await self._save_comments(post, comments)

    async def delete_comment(self, caller: Caller, post_id: str, comment_id: str) -> Post:
        post = await self._load_post(post_id)
        index = self._owned_comment_index(caller, post, comment_id, "delete")

        comments = list(post.comments)
        del comments[index]
        return await self._save_comments(post, comments)

    # Helpers

    @staticmethod
    def _is_visible(post: Post, caller: Optional[Caller]) -> bool:
        if post.status == PostStatus.PUBLISHED:
            return True
        return caller is not None and caller.user_id == post.author_id

    async def _load_post(self, post_id: str) -> Post:
        try:
            post = await self.posts.find_by_id(post_id)
        except InvalidId:
            post = None
        if post is None:
            raise NotFoundError("Post not found")
        return post

    @staticmethod
    def _require_author(caller: Caller, post: Post, action: str) -> None:
        if caller.user_id != post.author_id:
            logger.warning("User %s denied %s of post %s", caller.user_id, action, post.id)
            raise ForbiddenError(f"User not authorized to {action} this post")

    @staticmethod
    def _owned_comment_index(caller: Caller, post: Post, comment_id: str, action: str) -> int:
        index = next((i for i, comment in enumerate(post.comments) if comment.id == comment_id), None)
        if index is None:
            raise NotFoundError("Comment not found")
        if post.comments[index].user_id != caller.user_id:
            logger.warning("User %s denied %s of comment %s", caller.user_id, action, comment_id)
            raise ForbiddenError(f"User not authorized to {action} this comment")
        return index

    async def _save_comments(self, post: Post, comments: List[Comment]) -> Post:
        updated = await self.posts.update_fields(post.id, {"comments": comments})
        if updated is None:
            raise NotFoundError("Post not found")
        return (await self._attach_categories([updated]))[0]

    @staticmethod
    def _check_comment(content: Optional[str]) -> str:
        content = (content or "").strip()
        if not content:
            raise ValidationError(
                "Comment content is required",
                errors=[_field_error("content", "Comment content is required")],
            )
        return content

    @staticmethod
    def _check_title(title: Optional[str], errors: List[Dict[str, str]]) -> str:
        title = (title or "").strip()
        if not title:
            errors.append(_field_error("title", "Title is required"))
        elif len(title) > TITLE_MAX_LENGTH:
            errors.append(_field_error("title", "Title cannot be more than 100 characters"))
        return title

    @staticmethod
    def _check_category(category_id: Optional[str], errors: List[Dict[str, str]]) -> Optional[str]:
        if not category_id or not ObjectId.is_valid(category_id):
            errors.append(_field_error("category", "You must select a valid category."))
            return None
        return category_id

    @staticmethod
    def _check_status(status: Optional[str], errors: List[Dict[str, str]]) -> Optional[PostStatus]:
        if status not in POST_STATUSES:
            errors.append(_field_error("status", "Status must be draft, published or archived"))
            return None
        return PostStatus(status)

    @staticmethod
    def _persistable_tags(tags: List[str]) -> List[str]:
        return [tag for tag in normalize_tags(tags) if tag]

    async def _unique_slug(self, title: str, exclude_id: Optional[str] = None) -> str:
        base = slugify(title) or "post"
        candidate = base
        suffix = 2
        while await self.posts.slug_exists(candidate, exclude_id=exclude_id):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    async def _same_name_category_ids(self, category_id: str) -> List[str]:
        try:
            category = await self.categories.find_by_id(category_id)
        except InvalidId:
            category = None
        if category is None:
            return [category_id]
        return await self.categories.find_ids_by_name(category.name) or [category_id]

    async def _attach_categories(self, posts: List[Post]) -> List[Post]:
        found = await self.categories.find_by_ids(post.category_id for post in posts if post.category_id)
        resolved = []
        for post in posts:
            category = found.get(post.category_id) if post.category_id else None
            if post.category_id and category is None:
                logger.warning("Data integrity: post %s references missing category %s", post.id, post.category_id)
            resolved.append(post.model_copy(update={"category": category}))
        return resolved

    async def _record_view(self, post: Post, caller: Caller) -> Post:
        now = self._clock()
        records = [record for record in post.viewed_by if record.user_id]
        existing = next((record for record in records if record.user_id == caller.user_id), None)

        if existing is not None and existing.last_viewed is not None and existing.last_viewed > now - self.view_window:
            return post.model_copy(update={"viewed_by": records})

        if existing is not None:
            records = [
                ViewRecord(user_id=record.user_id, last_viewed=now) if record.user_id == caller.user_id else record
                for record in records
            ]
        else:
            records.append(ViewRecord(user_id=caller.user_id, last_viewed=now))

        updated = await self.posts.update_fields(
            post.id, {"view_count": post.view_count + 1, "viewed_by": records}
        )
        logger.debug("Counted view of post %s by user %s", post.id, caller.user_id)
        return updated or post
