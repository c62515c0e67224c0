"""
Service accessors for route handlers.

Services are built once by the application lifespan and kept on `app.state`; these
dependencies hand them to handlers and are the seam tests override.
"""

from fastapi import Request

from blog_cms.services.category_service import CategoryService
from blog_cms.services.post_service import PostService
from blog_cms.services.storage_service import LocalBlobStore


def get_category_service(request: Request) -> CategoryService:
    return request.app.state.category_service


def get_post_service(request: Request) -> PostService:
    return request.app.state.post_service


def get_blob_store(request: Request) -> LocalBlobStore:
    return request.app.state.blob_store
