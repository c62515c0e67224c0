"""
Shared fixtures: in-memory repositories, callers and services.

The in-memory repositories implement the same async interface as
`blog_cms.database.repositories`, so services can be exercised without MongoDB.
"""
import os
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

# Settings are built at import time and refuse an empty session secret.
os.environ.setdefault("AUTH_JWT_SECRET", "test-session-secret")

from blog_cms.database.repositories import PostFilter
from blog_cms.models.blog_models import (
    TEMPLATE_OWNER_ID,
    Caller,
    Category,
    Post,
    PostStatus,
    UserRole,
)
from blog_cms.services.category_service import CategoryService
from blog_cms.services.post_service import PostService
from blog_cms.services.storage_service import BlobDeleteResult, LocalBlobStore

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class InMemoryCategoryRepository:
    def __init__(self):
        self.docs: Dict[str, Category] = {}
        self.insert_many_calls: List[int] = []

    def add(self, name: str, owner_id: str = TEMPLATE_OWNER_ID, description: Optional[str] = None) -> Category:
        category = Category(
            id=str(ObjectId()), name=name, description=description, owner_id=owner_id, created_at=BASE_TIME
        )
        self.docs[category.id] = category
        return category

    async def find_by_id(self, category_id: str) -> Optional[Category]:
        ObjectId(category_id)
        return self.docs.get(category_id)

    async def find_by_ids(self, category_ids) -> Dict[str, Category]:
        return {cid: self.docs[cid] for cid in category_ids if cid in self.docs}

    async def find_by_owner(self, owner_id: str) -> List[Category]:
        return sorted((c for c in self.docs.values() if c.owner_id == owner_id), key=lambda c: c.name)

    async def find_ids_by_name(self, name: str) -> List[str]:
        return [c.id for c in self.docs.values() if c.name == name]

    async def insert(self, name, description, owner_id) -> Category:
        return self.add(name, owner_id, description)

    async def insert_many(self, entries, owner_id) -> int:
        self.insert_many_calls.append(len(entries))
        for name, description in entries:
            self.add(name, owner_id, description)
        return len(entries)

    async def update_fields(self, category_id, fields) -> Optional[Category]:
        if category_id not in self.docs:
            return None
        self.docs[category_id] = self.docs[category_id].model_copy(update=fields)
        return self.docs[category_id]

    async def delete(self, category_id) -> bool:
        return self.docs.pop(category_id, None) is not None


class InMemoryPostRepository:
    def __init__(self):
        self.docs: Dict[str, Post] = {}

    def add(self, title: str = "A Post", author_id: str = "user_editor", status: str = "published", **extra) -> Post:
        fields = {
            "title": title,
            "content": extra.pop("content", "Body"),
            "slug": extra.pop("slug", f"post-{len(self.docs) + 1}"),
            "author_id": author_id,
            "status": status,
            "created_at": extra.pop("created_at", BASE_TIME + timedelta(minutes=len(self.docs))),
            "updated_at": BASE_TIME,
        }
        fields.update(extra)
        post = Post(id=str(ObjectId()), **fields)
        self.docs[post.id] = post
        return post

    @staticmethod
    def _matches(post: Post, post_filter: PostFilter) -> bool:
        if post_filter.author_id and post.author_id != post_filter.author_id:
            return False
        if post_filter.status and post.status.value != post_filter.status:
            return False
        if post_filter.category_ids is not None and post.category_id not in post_filter.category_ids:
            return False
        if post_filter.tag and post_filter.tag.lower() not in [t.lower() for t in post.tags]:
            return False
        return True

    async def find_by_id(self, post_id: str) -> Optional[Post]:
        ObjectId(post_id)
        return self.docs.get(post_id)

    async def find_by_slug(self, slug: str) -> Optional[Post]:
        return next((p for p in self.docs.values() if p.slug == slug), None)

    async def find_page(self, post_filter, skip, limit) -> List[Post]:
        matching = sorted(
            (p for p in self.docs.values() if self._matches(p, post_filter)),
            key=lambda p: p.created_at,
            reverse=True,
        )
        return matching[skip:skip + limit]

    async def count(self, post_filter) -> int:
        return sum(1 for p in self.docs.values() if self._matches(p, post_filter))

    async def slug_exists(self, slug, exclude_id=None) -> bool:
        return any(p.slug == slug and p.id != exclude_id for p in self.docs.values())

    async def insert(self, fields) -> Post:
        data = dict(fields)
        data["category_id"] = data.pop("category", None)
        post = Post(id=str(ObjectId()), **data)
        self.docs[post.id] = post
        return post

    async def update_fields(self, post_id, fields) -> Optional[Post]:
        if post_id not in self.docs:
            return None
        data = dict(fields)
        if "category" in data:
            data["category_id"] = data.pop("category")
        if "status" in data:
            data["status"] = PostStatus(data["status"])
        self.docs[post_id] = self.docs[post_id].model_copy(update=data)
        return self.docs[post_id]

    async def delete(self, post_id) -> bool:
        return self.docs.pop(post_id, None) is not None


@pytest.fixture
def editor():
    return Caller(user_id="user_editor", role=UserRole.EDITOR)


@pytest.fixture
def other_editor():
    return Caller(user_id="user_other", role=UserRole.EDITOR)


@pytest.fixture
def viewer():
    return Caller(user_id="user_viewer", role=UserRole.VIEWER)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def category_repo():
    return InMemoryCategoryRepository()


@pytest.fixture
def post_repo():
    return InMemoryPostRepository()


@pytest.fixture
def identity():
    client = AsyncMock()
    client.resolve_display_name.return_value = "Jane Doe"
    return client


@pytest.fixture
def blobs():
    store = MagicMock(spec=LocalBlobStore)
    store.default_image = "default-post.jpg"
    store.delete_best_effort.return_value = BlobDeleteResult(path=None, skipped=True)
    return store


@pytest.fixture
def category_service(category_repo):
    return CategoryService(category_repo)


@pytest.fixture
def post_service(post_repo, category_repo, identity, blobs, clock):
    return PostService(post_repo, category_repo, identity, blobs, clock=clock)
