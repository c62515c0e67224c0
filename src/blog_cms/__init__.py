"""
# Blog CMS

A **FastAPI + MongoDB backend** for a multi-author blog. Editors write posts and organise them
into categories; viewers read published content, leave comments and are counted once per day
per post.

## Architecture Overview

```
┌──────────────────────────────────────────────────────────────┐
│                      FastAPI Application                      │
│   routes/ (HTTP)  ──▶  services/ (rules)  ──▶  database/ (IO) │
└──────────────────────────────────────────────────────────────┘
          │                     │                      │
          ▼                     ▼                      ▼
   Identity provider       Blob store (local)      MongoDB (Motor)
   (JWT + profile API)     uploads/ directory      posts, categories
```

## Package Structure

- **`main`**: Application factory, lifespan and exception mapping
- **`config`**: Pydantic-settings configuration with `.blog` / `.env` discovery
- **`database`**: `DatabaseManager` (connection lifecycle) and the post/category repositories
- **`models`**: Pydantic documents, request and response models
- **`services`**: Category resolution, post visibility/ownership, identity and blob storage
- **`routes`**: `/api/categories` and `/api/posts` routers plus the auth gate
- **`cli`**: `blog-cms-seed` for seeding shared template categories

## Quick Start

```bash
export MONGODB_URL="mongodb://localhost:27017"
export AUTH_JWT_SECRET="..."
uvicorn blog_cms.main:app --reload
```
"""

__version__ = "1.0.0"
__description__ = "Blog content-management API with per-user category templates"

from blog_cms.config import settings

__all__ = ["settings", "__version__"]
