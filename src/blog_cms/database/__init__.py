"""
# Database Package

Persistence layer for the Blog CMS, built on **Motor**.

- **`manager`**: `DatabaseManager`, the connection handle created by the application lifespan.
- **`repositories`**: `CategoryRepository` and `PostRepository`, which translate between
  MongoDB documents and the models in `blog_cms.models.blog_models`.
"""

from blog_cms.database.manager import DatabaseManager
from blog_cms.database.repositories import CategoryRepository, PostFilter, PostRepository

__all__ = ["DatabaseManager", "CategoryRepository", "PostFilter", "PostRepository"]
