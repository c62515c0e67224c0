"""
# Repositories

Thin data-access classes over the `categories` and `posts` collections. They translate
between MongoDB documents and the Pydantic models in `blog_cms.models.blog_models`, and
they are the only code in the project that builds MongoDB queries.

## Storage Notes

- Document ids are `ObjectId`s; models carry them as strings. `find_by_id` with a malformed
  id lets `bson.errors.InvalidId` propagate so callers can decide how to report it.
- `posts.category` stores the category `ObjectId`.
- Comments are embedded with their own `_id`; the whole list is rewritten on change.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument

from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import (
    TEMPLATE_OWNER_ID,
    Category,
    Comment,
    Post,
    ViewRecord,
)

logger = get_logger(prefix="[Repository]")


def _maybe_object_id(value: str) -> Any:
    return ObjectId(value) if ObjectId.is_valid(value) else value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CategoryRepository:
    """Data access for the `categories` collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @staticmethod
    def _to_model(doc: Dict[str, Any]) -> Category:
        return Category(
            id=str(doc["_id"]),
            name=doc["name"],
            description=doc.get("description"),
            owner_id=doc["owner_id"],
            created_at=doc.get("created_at") or _utcnow(),
        )

    async def find_by_id(self, category_id: str) -> Optional[Category]:
        doc = await self.collection.find_one({"_id": ObjectId(category_id)})
        return self._to_model(doc) if doc else None

    async def find_by_ids(self, category_ids: Iterable[str]) -> Dict[str, Category]:
        """Resolve many ids at once. Malformed ids are skipped."""
        object_ids = list({ObjectId(cid) for cid in category_ids if cid and ObjectId.is_valid(cid)})
        if not object_ids:
            return {}
        docs = await self.collection.find({"_id": {"$in": object_ids}}).to_list(length=None)
        return {str(doc["_id"]): self._to_model(doc) for doc in docs}

    async def find_by_owner(self, owner_id: str) -> List[Category]:
        """All categories of one owner, sorted by name ascending."""
        docs = await self.collection.find({"owner_id": owner_id}).sort("name", 1).to_list(length=None)
        return [self._to_model(doc) for doc in docs]

    async def find_ids_by_name(self, name: str) -> List[str]:
        docs = await self.collection.find({"name": name}, {"_id": 1}).to_list(length=None)
        return [str(doc["_id"]) for doc in docs]

    async def insert(self, name: str, description: Optional[str], owner_id: str) -> Category:
        doc = {"name": name, "description": description, "owner_id": owner_id, "created_at": _utcnow()}
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self._to_model(doc)

    async def insert_many(self, entries: List[Tuple[str, Optional[str]]], owner_id: str) -> int:
        """Insert `(name, description)` pairs for one owner. Returns the inserted count."""
        if not entries:
            return 0
        now = _utcnow()
        docs = [
            {"name": name, "description": description, "owner_id": owner_id, "created_at": now}
            for name, description in entries
        ]
        result = await self.collection.insert_many(docs)
        return len(result.inserted_ids)

    async def update_fields(self, category_id: str, fields: Dict[str, Any]) -> Optional[Category]:
        doc = await self.collection.find_one_and_update(
            {"_id": ObjectId(category_id)},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(doc) if doc else None

    async def delete(self, category_id: str) -> bool:
        result = await self.collection.delete_one({"_id": ObjectId(category_id)})
        return result.deleted_count > 0

    async def upsert_template(self, name: str, description: Optional[str]) -> bool:
        """
        Create or refresh a template category keyed by name.

        Returns:
            bool: `True` when a new template was inserted, `False` when an existing one was
            updated.
        """
        result = await self.collection.update_one(
            {"owner_id": TEMPLATE_OWNER_ID, "name": name},
            {"$set": {"description": description}, "$setOnInsert": {"created_at": _utcnow()}},
            upsert=True,
        )
        return result.upserted_id is not None


@dataclass
class PostFilter:
    """
    Criteria for post listings. Unset fields do not constrain the result.

    Attributes:
        author_id: Exact author match.
        status: Exact status match.
        category_ids: Post's category must be one of these ids.
        tag: Case-insensitive exact match against any tag.
    """

    author_id: Optional[str] = None
    status: Optional[str] = None
    category_ids: Optional[List[str]] = None
    tag: Optional[str] = None


class PostRepository:
    """Data access for the `posts` collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @staticmethod
    def build_query(post_filter: PostFilter) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if post_filter.author_id:
            query["author_id"] = post_filter.author_id
        if post_filter.status:
            query["status"] = post_filter.status
        if post_filter.category_ids is not None:
            query["category"] = {"$in": [_maybe_object_id(cid) for cid in post_filter.category_ids]}
        if post_filter.tag:
            query["tags"] = {"$regex": f"^{re.escape(post_filter.tag)}$", "$options": "i"}
        return query

    @staticmethod
    def _to_model(doc: Dict[str, Any]) -> Post:
        category = doc.get("category")
        return Post(
            id=str(doc["_id"]),
            title=doc.get("title", ""),
            content=doc.get("content", ""),
            excerpt=doc.get("excerpt"),
            slug=doc["slug"],
            author=doc.get("author") or "Anonymous",
            author_id=doc["author_id"],
            category_id=str(category) if category else None,
            tags=doc.get("tags", []),
            status=doc.get("status", "draft"),
            featured_image=doc.get("featured_image"),
            view_count=doc.get("view_count", 0),
            viewed_by=[ViewRecord(**record) for record in doc.get("viewed_by", []) if isinstance(record, dict)],
            comments=[
                Comment(
                    id=str(comment["_id"]),
                    user_id=comment["user_id"],
                    user=comment.get("user", "Anonymous"),
                    content=comment["content"],
                    created_at=comment["created_at"],
                )
                for comment in doc.get("comments", [])
            ],
            created_at=doc["created_at"],
            updated_at=doc.get("updated_at") or doc["created_at"],
        )

    @staticmethod
    def _to_document_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
        """Convert model-level values (string ids, embedded models) to their stored form."""
        stored = dict(fields)
        if "category" in stored and stored["category"] is not None:
            stored["category"] = _maybe_object_id(stored["category"])
        if "status" in stored and hasattr(stored["status"], "value"):
            stored["status"] = stored["status"].value
        if "viewed_by" in stored:
            stored["viewed_by"] = [record.model_dump() for record in stored["viewed_by"]]
        if "comments" in stored:
            stored["comments"] = [
                {
                    "_id": _maybe_object_id(comment.id),
                    "user_id": comment.user_id,
                    "user": comment.user,
                    "content": comment.content,
                    "created_at": comment.created_at,
                }
                for comment in stored["comments"]
            ]
        return stored

    async def find_by_id(self, post_id: str) -> Optional[Post]:
        doc = await self.collection.find_one({"_id": ObjectId(post_id)})
        return self._to_model(doc) if doc else None

    async def find_by_slug(self, slug: str) -> Optional[Post]:
        doc = await self.collection.find_one({"slug": slug})
        return self._to_model(doc) if doc else None

    async def find_page(self, post_filter: PostFilter, skip: int, limit: int) -> List[Post]:
        """One page of matching posts, newest first."""
        cursor = (
            self.collection.find(self.build_query(post_filter))
            .sort("created_at", -1)
            .skip(skip)
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        return [self._to_model(doc) for doc in docs]

    async def count(self, post_filter: PostFilter) -> int:
        return await self.collection.count_documents(self.build_query(post_filter))

    async def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        query: Dict[str, Any] = {"slug": slug}
        if exclude_id:
            query["_id"] = {"$ne": ObjectId(exclude_id)}
        return await self.collection.count_documents(query, limit=1) > 0

    async def insert(self, fields: Dict[str, Any]) -> Post:
        doc = self._to_document_fields(fields)
        doc.setdefault("view_count", 0)
        doc.setdefault("viewed_by", [])
        doc.setdefault("comments", [])
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.debug("Inserted post %s with slug %s", result.inserted_id, doc.get("slug"))
        return self._to_model(doc)

    async def update_fields(self, post_id: str, fields: Dict[str, Any]) -> Optional[Post]:
        doc = await self.collection.find_one_and_update(
            {"_id": ObjectId(post_id)},
            {"$set": self._to_document_fields(fields)},
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(doc) if doc else None

    async def delete(self, post_id: str) -> bool:
        result = await self.collection.delete_one({"_id": ObjectId(post_id)})
        return result.deleted_count > 0
