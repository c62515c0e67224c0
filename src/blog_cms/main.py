"""
# Blog CMS Application

FastAPI application factory and entry point.

## Startup Sequence

The `lifespan()` context manager runs before the first request is served:

1.  **Database**: Constructs a `DatabaseManager`, connects and ensures indexes.
2.  **Storage**: Creates the upload directory.
3.  **Services**: Builds repositories, `CategoryService` and `PostService`, and stores them on
    `app.state` where the route dependencies find them.

On shutdown the database connection is closed.

Every request is logged with its status and duration by `RequestLoggingMiddleware`
(`blog_cms.utils.logging_utils`); requests slower than `SLOW_REQUEST_THRESHOLD_MS` are logged as
warnings.

## Error Mapping

| Exception | Status | Body |
|-----------|--------|------|
| `BlogError` subclasses | their `status_code` | `{"message", "errors"?}` |
| `bson.errors.InvalidId` | 404 | `{"message": "Resource not found"}` |
| `RequestValidationError` | 400 | `{"message", "errors"}` |
| anything else | 500 | `{"message": "Internal server error"}` |

## Running

```bash
uvicorn blog_cms.main:app --host 127.0.0.1 --port 5000
```
"""

import time
from contextlib import asynccontextmanager
from datetime import timedelta

import uvicorn
from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from blog_cms import __version__
from blog_cms.config import Settings, settings
from blog_cms.database.manager import CATEGORIES_COLLECTION, POSTS_COLLECTION, DatabaseManager
from blog_cms.database.repositories import CategoryRepository, PostRepository
from blog_cms.exceptions import BlogError
from blog_cms.managers.logging_manager import get_logger
from blog_cms.routes.categories import router as categories_router
from blog_cms.routes.posts import router as posts_router
from blog_cms.services.category_service import CategoryService
from blog_cms.services.identity_service import IdentityClient
from blog_cms.services.post_service import PostService
from blog_cms.services.storage_service import LocalBlobStore
from blog_cms.utils.logging_utils import RequestLoggingMiddleware

logger = get_logger(prefix="[Main]")


def build_services(app: FastAPI, db: DatabaseManager, app_settings: Settings) -> None:
    """Wire repositories and services onto `app.state`."""
    categories = CategoryRepository(db.get_collection(CATEGORIES_COLLECTION))
    posts = PostRepository(db.get_collection(POSTS_COLLECTION))
    blob_store = LocalBlobStore.from_settings(app_settings)
    blob_store.ensure_directory()

    app.state.db = db
    app.state.blob_store = blob_store
    app.state.category_service = CategoryService(categories)
    app.state.post_service = PostService(
        posts,
        categories,
        IdentityClient.from_settings(app_settings),
        blob_store,
        view_window=timedelta(hours=app_settings.VIEW_DEDUP_WINDOW_HOURS),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Connect the database and build services; disconnect on shutdown.

    Raises:
        ServerSelectionTimeoutError: MongoDB could not be reached at startup.
    """
    startup_start_time = time.time()
    app_settings: Settings = app.state.settings
    logger.info(
        "Starting Blog CMS %s (%s)", __version__, "production" if app_settings.is_production else "development"
    )

    db = DatabaseManager(app_settings)
    await db.connect()
    await db.create_indexes()
    build_services(app, db, app_settings)

    logger.info("Application startup completed in %.3fs", time.time() - startup_start_time)
    try:
        yield
    finally:
        logger.info("Shutting down Blog CMS")
        await db.disconnect()


async def blog_error_handler(_request: Request, exc: BlogError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def invalid_id_handler(_request: Request, _exc: InvalidId) -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": "Resource not found"})


async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error["loc"] if part not in ("body", "query", "path", "form")]
        errors.append({"field": ".".join(location), "message": error["msg"]})
    return JSONResponse(status_code=400, content={"message": "Invalid input", "errors": errors})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(app_settings: Settings = settings) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Configuration to run with; defaults to the process-wide settings.

    Returns:
        FastAPI: The configured application. Services are attached by `lifespan()`.
    """
    app = FastAPI(
        title="Blog CMS API",
        description="Posts, categories and comments with per-user category templates.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_exception_handler(BlogError, blog_error_handler)
    app.add_exception_handler(InvalidId, invalid_id_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    cors_origins = app_settings.cors_origins_list
    logger.info("Configuring CORS with origins: %s", cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware, slow_threshold_ms=app_settings.SLOW_REQUEST_THRESHOLD_MS)

    app.include_router(categories_router)
    app.include_router(posts_router)
    app.mount(
        app_settings.UPLOAD_URL_PREFIX,
        StaticFiles(directory=app_settings.UPLOAD_DIR, check_dir=False),
        name="uploads",
    )

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def root():
        return "API is running..."

    @app.get("/health")
    async def health(request: Request):
        db = getattr(request.app.state, "db", None)
        healthy = db is not None and await db.health_check()
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={"status": "healthy" if healthy else "unhealthy", "database": healthy},
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("blog_cms.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG, log_level="info")
