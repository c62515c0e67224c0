"""
# Category Service

Decides which categories a caller sees and applies the copy-on-write rule for shared
template categories.

## Template Resolution

Anonymous callers see the template set. An authenticated caller gets a private copy of every
template whose name they do not already own, created on first access; afterwards only their
own categories are returned:

```python
service = CategoryService(CategoryRepository(db.get_collection("categories")))
await service.resolve_categories(None)            # templates, sorted by name
await service.resolve_categories(caller)          # clones missing templates, then caller's set
```

The name-membership check is recomputed on every call, so repeated resolution never creates a
second copy. Concurrent first requests from the same user can still race past the check; no
unique constraint closes that window.

## Copy-on-write

Editing a template never touches the template. `update_category` forks a new category owned by
the caller and reports `created=True` so the route can answer `201`.
"""

from typing import List, Optional

from bson.errors import InvalidId

from blog_cms.database.repositories import CategoryRepository
from blog_cms.exceptions import ForbiddenError, NotFoundError, ValidationError
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import (
    TEMPLATE_OWNER_ID,
    Caller,
    Category,
    CategoryWriteResult,
    UserOwner,
    owner_to_storage,
)

logger = get_logger(prefix="[CategoryService]")


def _required_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError(
            "Category name is required",
            errors=[{"field": "name", "message": "Category name is required"}],
        )
    return name


class CategoryService:
    """Category visibility, lazy template cloning and ownership checks."""

    def __init__(self, categories: CategoryRepository):
        self.categories = categories

    async def resolve_categories(self, caller: Optional[Caller]) -> List[Category]:
        """
        Return the categories visible to `caller`.

        Args:
            caller: The authenticated caller, or `None` for anonymous requests.

        Returns:
            List[Category]: Templates for anonymous callers; otherwise the caller's own
            categories (including freshly cloned templates), sorted by name.
        """
        templates = await self.categories.find_by_owner(TEMPLATE_OWNER_ID)
        if caller is None:
            return templates

        owned = await self.categories.find_by_owner(caller.user_id)
        owned_names = {category.name for category in owned}
        missing = [
            (template.name, template.description)
            for template in templates
            if template.name not in owned_names
        ]

        if not missing:
            return owned

        inserted = await self.categories.insert_many(missing, caller.user_id)
        logger.info("Cloned %d template categories for user %s", inserted, caller.user_id)
        return await self.categories.find_by_owner(caller.user_id)

    async def _load(self, category_id: str) -> Category:
        try:
            category = await self.categories.find_by_id(category_id)
        except InvalidId:
            category = None
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def get_category(self, caller: Optional[Caller], category_id: str) -> Category:
        """
        Fetch one category.

        Templates are visible to everyone, user-owned categories only to their owner. Anything
        else is reported as not found so that private categories do not leak their existence.
        """
        category = await self._load(category_id)
        if category.is_template:
            return category
        if caller is not None and category.is_owned_by(caller.user_id):
            return category
        raise NotFoundError("Category not found")

    async def create_category(self, caller: Caller, name: str, description: Optional[str] = None) -> Category:
        if not caller.is_editor:
            raise ForbiddenError("Requires editor role")
        name = _required_name(name)

        category = await self.categories.insert(name, description, owner_to_storage(UserOwner(caller.user_id)))
        logger.info("Created category %s (%s) for user %s", category.id, category.name, caller.user_id)
        return category

    async def update_category(
        self,
        caller: Caller,
        category_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> CategoryWriteResult:
        """
        Edit a category, forking it first when it is a template.

        Returns:
            CategoryWriteResult: `created=True` with the new user-owned category when a template
            was forked, `created=False` with the updated category otherwise.

        Raises:
            NotFoundError: The category does not exist.
            ForbiddenError: The category belongs to another user.
            ValidationError: `name` was given but is blank.
        """
        category = await self._load(category_id)
        if name is not None:
            name = _required_name(name)

        if category.is_template:
            forked = await self.categories.insert(
                name or category.name,
                description or category.description,
                owner_to_storage(UserOwner(caller.user_id)),
            )
            logger.info(
                "Forked template category %s into %s for user %s", category.id, forked.id, caller.user_id
            )
            return CategoryWriteResult(category=forked, created=True)

        if not category.is_owned_by(caller.user_id):
            logger.warning("User %s denied update of category %s", caller.user_id, category.id)
            raise ForbiddenError("User not authorized to update this category")

        fields = {}
        if name:
            fields["name"] = name
        if description is not None:
            fields["description"] = description
        if not fields:
            return CategoryWriteResult(category=category, created=False)

        updated = await self.categories.update_fields(category.id, fields)
        if updated is None:
            raise NotFoundError("Category not found")
        return CategoryWriteResult(category=updated, created=False)

    async def delete_category(self, caller: Caller, category_id: str) -> None:
        category = await self._load(category_id)
        if not category.is_owned_by(caller.user_id):
            logger.warning("User %s denied delete of category %s", caller.user_id, category.id)
            raise ForbiddenError("User not authorized to delete this category")

        await self.categories.delete(category.id)
        logger.info("Deleted category %s for user %s", category.id, caller.user_id)
