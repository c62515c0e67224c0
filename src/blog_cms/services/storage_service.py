"""
# Storage Service

Local blob store for featured images. Uploads are written to `UPLOAD_DIR` and served by the
application under `UPLOAD_URL_PREFIX`. The stored path, e.g.
`/uploads/image-1700000000000-9f2c4a1b.png`, is what posts keep in `featured_image`. The random
suffix keeps uploads in the same millisecond apart.

Deletion is best-effort. `delete_best_effort` reports what happened in a `BlobDeleteResult`
and logs failures, but never raises, so callers may ignore the result.
"""

import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from blog_cms.config import Settings
from blog_cms.exceptions import ValidationError
from blog_cms.managers.logging_manager import get_logger

logger = get_logger(prefix="[BlobStore]")


@dataclass
class BlobDeleteResult:
    path: Optional[str]
    deleted: bool = False
    skipped: bool = False
    error: Optional[str] = None


class LocalBlobStore:
    """Filesystem-backed image storage."""

    def __init__(
        self,
        upload_dir: str,
        url_prefix: str = "/uploads",
        default_image: str = "default-post.jpg",
        allowed_extensions: Iterable[str] = ("jpeg", "jpg", "png", "gif"),
        max_size_bytes: Optional[int] = None,
    ):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.default_image = default_image
        self.allowed_extensions = {ext.lower().lstrip(".") for ext in allowed_extensions}
        self.max_size_bytes = max_size_bytes

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalBlobStore":
        return cls(
            settings.UPLOAD_DIR,
            url_prefix=settings.UPLOAD_URL_PREFIX,
            default_image=settings.DEFAULT_FEATURED_IMAGE,
            allowed_extensions=settings.ALLOWED_IMAGE_EXTENSIONS,
            max_size_bytes=settings.MAX_UPLOAD_SIZE_BYTES,
        )

    @property
    def default_image_path(self) -> str:
        return f"{self.url_prefix}/{self.default_image}"

    def ensure_directory(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def validate_image(self, filename: Optional[str], content_type: Optional[str]) -> str:
        """
        Check that an upload looks like an image.

        Returns:
            str: The lowercased extension including the dot, e.g. `".png"`.

        Raises:
            ValidationError: The extension is not allowed or the MIME type is not `image/*`.
        """
        extension = Path(filename or "").suffix.lower()
        if extension.lstrip(".") not in self.allowed_extensions:
            raise ValidationError("Images only!")
        if not content_type or not content_type.lower().startswith("image/"):
            raise ValidationError("Images only!")
        return extension

    async def save(self, upload: UploadFile) -> str:
        """Validate and store an upload, returning its public path."""
        extension = self.validate_image(upload.filename, upload.content_type)
        data = await upload.read()
        if self.max_size_bytes and len(data) > self.max_size_bytes:
            raise ValidationError("Image exceeds the maximum upload size")

        self.ensure_directory()
        filename = f"image-{int(time.time() * 1000)}-{secrets.token_hex(4)}{extension}"
        await run_in_threadpool((self.upload_dir / filename).write_bytes, data)
        logger.info("Stored upload %s (%d bytes)", filename, len(data))
        return f"{self.url_prefix}/{filename}"

    def _resolve(self, path: str) -> Path:
        relative = path
        if relative.startswith(self.url_prefix + "/"):
            relative = relative[len(self.url_prefix) + 1:]
        # Only the file name is honoured; stored paths never contain subdirectories.
        return self.upload_dir / Path(relative).name

    def delete_best_effort(self, path: Optional[str]) -> BlobDeleteResult:
        if not path or Path(path).name == self.default_image:
            return BlobDeleteResult(path=path, skipped=True)

        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning("Image %s already removed", target)
            return BlobDeleteResult(path=path, error="not found")
        except OSError as e:
            logger.error("Error deleting image %s: %s", target, e)
            return BlobDeleteResult(path=path, error=str(e))

        logger.info("Deleted image %s", target)
        return BlobDeleteResult(path=path, deleted=True)
