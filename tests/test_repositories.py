"""
Tests for repository query shapes and document conversion, using mocked Motor collections.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from blog_cms.database.repositories import CategoryRepository, PostFilter, PostRepository
from blog_cms.models.blog_models import TEMPLATE_OWNER_ID, Comment, PostStatus

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_cursor(docs):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


@pytest.fixture
def collection():
    coll = MagicMock()
    coll.find_one = AsyncMock()
    coll.insert_one = AsyncMock()
    coll.insert_many = AsyncMock()
    coll.update_one = AsyncMock()
    coll.find_one_and_update = AsyncMock()
    coll.delete_one = AsyncMock()
    coll.count_documents = AsyncMock()
    return coll


def post_doc(**overrides):
    doc = {
        "_id": ObjectId(),
        "title": "Hello",
        "content": "Body",
        "slug": "hello",
        "author": "Jane",
        "author_id": "user_1",
        "category": ObjectId(),
        "tags": ["a"],
        "status": "published",
        "created_at": NOW,
        "updated_at": NOW,
    }
    doc.update(overrides)
    return doc


def test_build_query_for_public_listing():
    query = PostRepository.build_query(PostFilter(status="published", tag="C++"))

    assert query == {"status": "published", "tags": {"$regex": r"^C\+\+$", "$options": "i"}}


def test_build_query_converts_category_ids():
    valid = str(ObjectId())
    query = PostRepository.build_query(PostFilter(author_id="user_1", category_ids=[valid, "legacy"]))

    assert query == {"author_id": "user_1", "category": {"$in": [ObjectId(valid), "legacy"]}}


@pytest.mark.asyncio
async def test_find_page_sorts_newest_first(collection):
    cursor = make_cursor([post_doc()])
    collection.find.return_value = cursor
    repo = PostRepository(collection)

    posts = await repo.find_page(PostFilter(status="published"), skip=10, limit=5)

    collection.find.assert_called_once_with({"status": "published"})
    cursor.sort.assert_called_once_with("created_at", -1)
    cursor.skip.assert_called_once_with(10)
    cursor.limit.assert_called_once_with(5)
    assert posts[0].slug == "hello"


@pytest.mark.asyncio
async def test_post_document_conversion(collection):
    category_id = ObjectId()
    comment_id = ObjectId()
    collection.find_one.return_value = post_doc(
        category=category_id,
        viewed_by=["garbage", {"last_viewed": NOW}, {"user_id": "user_2", "last_viewed": NOW}],
        comments=[{"_id": comment_id, "user_id": "user_3", "user": "Sam", "content": "Hi", "created_at": NOW}],
    )
    repo = PostRepository(collection)

    post = await repo.find_by_slug("hello")

    assert post.category_id == str(category_id)
    assert post.status == PostStatus.PUBLISHED
    assert [r.user_id for r in post.viewed_by] == [None, "user_2"]
    assert post.comments[0].id == str(comment_id)


@pytest.mark.asyncio
async def test_post_find_by_malformed_id_raises(collection):
    repo = PostRepository(collection)

    with pytest.raises(InvalidId):
        await repo.find_by_id("not-an-object-id")
    collection.find_one.assert_not_called()


@pytest.mark.asyncio
async def test_update_fields_stores_ids_and_comments(collection):
    post_id = ObjectId()
    category_id = ObjectId()
    comment_id = ObjectId()
    collection.find_one_and_update.return_value = post_doc(_id=post_id)
    repo = PostRepository(collection)
    comment = Comment(id=str(comment_id), user_id="user_3", user="Sam", content="Hi", created_at=NOW)

    await repo.update_fields(
        str(post_id), {"category": str(category_id), "status": PostStatus.DRAFT, "comments": [comment]}
    )

    collection.find_one_and_update.assert_awaited_once_with(
        {"_id": post_id},
        {
            "$set": {
                "category": category_id,
                "status": "draft",
                "comments": [
                    {"_id": comment_id, "user_id": "user_3", "user": "Sam", "content": "Hi", "created_at": NOW}
                ],
            }
        },
        return_document=ReturnDocument.AFTER,
    )


@pytest.mark.asyncio
async def test_slug_exists_excludes_current_post(collection):
    collection.count_documents.return_value = 0
    repo = PostRepository(collection)
    post_id = ObjectId()

    assert await repo.slug_exists("hello", exclude_id=str(post_id)) is False
    collection.count_documents.assert_awaited_once_with({"slug": "hello", "_id": {"$ne": post_id}}, limit=1)


@pytest.mark.asyncio
async def test_insert_post_sets_defaults(collection):
    inserted_id = ObjectId()
    collection.insert_one.return_value = MagicMock(inserted_id=inserted_id)
    repo = PostRepository(collection)
    fields = post_doc()
    del fields["_id"]
    fields["category"] = None

    post = await repo.insert(fields)

    stored = collection.insert_one.await_args.args[0]
    assert stored["view_count"] == 0
    assert stored["viewed_by"] == []
    assert stored["comments"] == []
    assert post.id == str(inserted_id)
    assert post.category_id is None


@pytest.mark.asyncio
async def test_categories_by_owner_sorted_by_name(collection):
    cursor = make_cursor([{"_id": ObjectId(), "name": "Art", "owner_id": TEMPLATE_OWNER_ID, "created_at": NOW}])
    collection.find.return_value = cursor
    repo = CategoryRepository(collection)

    categories = await repo.find_by_owner(TEMPLATE_OWNER_ID)

    collection.find.assert_called_once_with({"owner_id": TEMPLATE_OWNER_ID})
    cursor.sort.assert_called_once_with("name", 1)
    assert categories[0].is_template


@pytest.mark.asyncio
async def test_find_by_ids_skips_malformed(collection):
    repo = CategoryRepository(collection)

    assert await repo.find_by_ids(["bad", None]) == {}
    collection.find.assert_not_called()


@pytest.mark.asyncio
async def test_insert_many_tags_owner(collection):
    collection.insert_many.return_value = MagicMock(inserted_ids=[ObjectId(), ObjectId()])
    repo = CategoryRepository(collection)

    count = await repo.insert_many([("Tech", "T"), ("Food", None)], "user_1")

    docs = collection.insert_many.await_args.args[0]
    assert count == 2
    assert [d["owner_id"] for d in docs] == ["user_1", "user_1"]
    assert [d["name"] for d in docs] == ["Tech", "Food"]


@pytest.mark.asyncio
async def test_insert_many_with_nothing_to_insert(collection):
    repo = CategoryRepository(collection)

    assert await repo.insert_many([], "user_1") == 0
    collection.insert_many.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("upserted_id, expected", [(ObjectId(), True), (None, False)])
async def test_upsert_template(collection, upserted_id, expected):
    collection.update_one.return_value = MagicMock(upserted_id=upserted_id)
    repo = CategoryRepository(collection)

    assert await repo.upsert_template("Tech", "Technology") is expected

    query, update = collection.update_one.await_args.args
    assert query == {"owner_id": TEMPLATE_OWNER_ID, "name": "Tech"}
    assert update["$set"] == {"description": "Technology"}
    assert collection.update_one.await_args.kwargs == {"upsert": True}
