"""
# Category Routes

REST endpoints for categories under `/api/categories`.

## API Endpoints

- `GET /api/categories` - Templates for anonymous callers; the caller's own set otherwise
- `POST /api/categories` - Create a category (editor)
- `GET /api/categories/{category_id}` - Read a template or one of the caller's categories
- `PUT /api/categories/{category_id}` - Edit; answers `201` when a template was forked (editor)
- `DELETE /api/categories/{category_id}` - Delete one of the caller's categories (editor)

Business errors raised by `CategoryService` are turned into responses by the handlers
registered in `blog_cms.main`.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import (
    Caller,
    Category,
    CreateCategoryRequest,
    MessageResponse,
    UpdateCategoryRequest,
    UserRole,
)
from blog_cms.routes.auth.dependencies import get_optional_caller, require_role
from blog_cms.routes.dependencies import get_category_service
from blog_cms.services.category_service import CategoryService

logger = get_logger(prefix="[Category Routes]")

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=List[Category])
async def list_categories(
    caller: Optional[Caller] = Depends(get_optional_caller),
    service: CategoryService = Depends(get_category_service),
):
    """
    List the categories visible to the caller.

    On the first authenticated request, missing template categories are copied into the
    caller's own set before the list is returned.
    """
    logger.debug("Resolving categories for %s", caller.user_id if caller else "anonymous caller")
    return await service.resolve_categories(caller)


@router.post("", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    request: CreateCategoryRequest,
    caller: Caller = Depends(require_role(UserRole.EDITOR)),
    service: CategoryService = Depends(get_category_service),
):
    return await service.create_category(caller, request.name, request.description)


@router.get("/{category_id}", response_model=Category)
async def get_category(
    category_id: str,
    caller: Optional[Caller] = Depends(get_optional_caller),
    service: CategoryService = Depends(get_category_service),
):
    return await service.get_category(caller, category_id)


@router.put("/{category_id}", response_model=Category)
async def update_category(
    category_id: str,
    request: UpdateCategoryRequest,
    response: Response,
    caller: Caller = Depends(require_role(UserRole.EDITOR)),
    service: CategoryService = Depends(get_category_service),
):
    """
    Update a category.

    **Copy-on-write:** editing a template never changes it. A new category owned by the caller
    is created instead and the response status is `201 Created`; an in-place update answers
    `200 OK`.
    """
    result = await service.update_category(caller, category_id, request.name, request.description)
    if result.created:
        response.status_code = status.HTTP_201_CREATED
    return result.category


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: str,
    caller: Caller = Depends(require_role(UserRole.EDITOR)),
    service: CategoryService = Depends(get_category_service),
):
    await service.delete_category(caller, category_id)
    return MessageResponse(message="Category removed")
