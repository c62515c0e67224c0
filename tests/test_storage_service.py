"""
Tests for the local image store.
"""
from io import BytesIO
from unittest.mock import patch

import pytest
from starlette.datastructures import Headers, UploadFile

from blog_cms.exceptions import ValidationError
from blog_cms.services.storage_service import LocalBlobStore


@pytest.fixture
def store(tmp_path):
    return LocalBlobStore(str(tmp_path / "uploads"), max_size_bytes=1024)


def make_upload(filename, content_type="image/png", data=b"\x89PNG fake"):
    return UploadFile(file=BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


@pytest.mark.parametrize("filename", ["photo.PNG", "photo.jpeg", "anim.gif"])
def test_validate_accepts_images(store, filename):
    assert store.validate_image(filename, "image/whatever").startswith(".")


@pytest.mark.parametrize(
    "filename, content_type",
    [("notes.txt", "text/plain"), ("photo.png", "application/octet-stream"), ("photo", "image/png"), (None, None)],
)
def test_validate_rejects_non_images(store, filename, content_type):
    with pytest.raises(ValidationError) as exc_info:
        store.validate_image(filename, content_type)
    assert exc_info.value.message == "Images only!"


@pytest.mark.asyncio
async def test_save_writes_file_and_returns_public_path(store):
    path = await store.save(make_upload("cover.png"))

    assert path.startswith("/uploads/image-")
    assert path.endswith(".png")
    stored = store.upload_dir / path.rsplit("/", 1)[1]
    assert stored.read_bytes() == b"\x89PNG fake"


@pytest.mark.asyncio
async def test_save_rejects_oversized_upload(store):
    with pytest.raises(ValidationError):
        await store.save(make_upload("big.png", data=b"x" * 2048))
    assert not store.upload_dir.exists()


def test_delete_skips_missing_and_default_image(store):
    assert store.delete_best_effort(None).skipped
    assert store.delete_best_effort("").skipped
    assert store.delete_best_effort("/uploads/default-post.jpg").skipped
    assert store.delete_best_effort("default-post.jpg").skipped


def test_delete_removes_stored_file(store):
    store.ensure_directory()
    (store.upload_dir / "image-1.png").write_bytes(b"data")

    result = store.delete_best_effort("/uploads/image-1.png")

    assert result.deleted
    assert not (store.upload_dir / "image-1.png").exists()


def test_delete_ignores_directories_in_path(store, tmp_path):
    """Only the file name of the stored path is used."""
    store.ensure_directory()
    outside = tmp_path / "keep.png"
    outside.write_bytes(b"data")
    (store.upload_dir / "keep.png").write_bytes(b"data")

    result = store.delete_best_effort("/uploads/../keep.png")

    assert result.deleted
    assert outside.exists()


def test_delete_reports_missing_file_without_raising(store):
    result = store.delete_best_effort("/uploads/image-404.png")

    assert not result.deleted
    assert result.error == "not found"


def test_default_image_path(store):
    assert store.default_image_path == "/uploads/default-post.jpg"


@pytest.mark.asyncio
async def test_uploads_in_the_same_millisecond_get_distinct_names(store):
    with patch("blog_cms.services.storage_service.time") as fake_time:
        fake_time.time.return_value = 1700000000.0
        first = await store.save(make_upload("a.png", data=b"first"))
        second = await store.save(make_upload("b.png", data=b"second"))

    assert first != second
    assert first.startswith("/uploads/image-1700000000000-")
    assert sorted(p.read_bytes() for p in store.upload_dir.iterdir()) == [b"first", b"second"]
