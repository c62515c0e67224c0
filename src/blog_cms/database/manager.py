"""
# Database Management Module

This module owns the **MongoDB connection** for the Blog CMS. `DatabaseManager` wraps a Motor
client and provides connection lifecycle, health checks, collection access and index creation.

## Explicit Handle

There is no module-level instance. The application lifespan constructs one manager, connects
it, and stores it on `app.state`; repositories receive collections from it:

```python
manager = DatabaseManager(settings)
await manager.connect()
await manager.create_indexes()

categories = CategoryRepository(manager.get_collection("categories"))
...
await manager.disconnect()
```

## Index Catalog

| Collection | Fields | Options | Purpose |
|------------|--------|---------|---------|
| `posts` | `slug` | unique | Slug lookups and uniqueness backstop |
| `posts` | `author_id` | | Author listings |
| `posts` | `status`, `created_at` (-1) | | Public listing, newest first |
| `posts` | `category` | | Category filter |
| `posts` | `tags` | | Tag filter |
| `categories` | `owner_id`, `name` | | Per-owner listing sorted by name |
| `categories` | `name` | | Cross-owner name matching |

`(owner_id, name)` is deliberately not unique: forking a template may give a user two
categories with the same name.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from blog_cms.config import Settings
from blog_cms.managers.logging_manager import get_logger

db_logger = get_logger(prefix="[DATABASE]")
perf_logger = get_logger(prefix="[DB_PERFORMANCE]")
health_logger = get_logger(prefix="[DB_HEALTH]")

POSTS_COLLECTION = "posts"
CATEGORIES_COLLECTION = "categories"

BLOG_INDEXES: List[Dict[str, Any]] = [
    {"collection": POSTS_COLLECTION, "index": "slug", "options": {"unique": True}},
    {"collection": POSTS_COLLECTION, "index": "author_id", "options": {}},
    {"collection": POSTS_COLLECTION, "index": [("status", 1), ("created_at", -1)], "options": {}},
    {"collection": POSTS_COLLECTION, "index": "category", "options": {}},
    {"collection": POSTS_COLLECTION, "index": "tags", "options": {}},
    {"collection": CATEGORIES_COLLECTION, "index": [("owner_id", 1), ("name", 1)], "options": {}},
    {"collection": CATEGORIES_COLLECTION, "index": "name", "options": {}},
]


class DatabaseManager:
    """
    Manages the MongoDB client, database handle and indexes.

    Attributes:
        client (`Optional[AsyncIOMotorClient]`): `None` until `connect()` succeeds.
        database (`Optional[AsyncIOMotorDatabase]`): The configured database.
    """

    def __init__(self, settings: Settings, connection_retries: int = 3):
        self.settings = settings
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._connection_retries = connection_retries

    def _connection_string(self) -> str:
        settings = self.settings
        if settings.MONGODB_USERNAME and settings.MONGODB_PASSWORD:
            db_logger.debug("Using authenticated connection to MongoDB")
            return (
                f"mongodb://{settings.MONGODB_USERNAME}:"
                f"{settings.MONGODB_PASSWORD.get_secret_value()}@"
                f"{settings.MONGODB_URL.replace('mongodb://', '')}"
            )
        db_logger.debug("Using unauthenticated connection to MongoDB")
        return settings.MONGODB_URL

    async def connect(self):
        """
        Connect to MongoDB, retrying with exponential backoff (1s, 2s, ...).

        The client is created with `tz_aware=True` so stored timestamps come back as aware UTC
        datetimes.

        Raises:
            ServerSelectionTimeoutError: MongoDB stayed unreachable for every attempt.
            ConnectionFailure: Authentication or connection was refused on the last attempt.
        """
        start_time = time.time()
        db_logger.info("Starting MongoDB connection process")

        for attempt in range(self._connection_retries):
            attempt_start = time.time()
            try:
                db_logger.info("Connection attempt %d/%d to MongoDB", attempt + 1, self._connection_retries)
                db_logger.info(
                    "MongoDB connection config - URL: %s, Database: %s, MaxPool: %d, MinPool: %d",
                    self.settings.MONGODB_URL,
                    self.settings.MONGODB_DATABASE,
                    self.settings.MONGODB_MAX_POOL_SIZE,
                    self.settings.MONGODB_MIN_POOL_SIZE,
                )

                self.client = AsyncIOMotorClient(
                    self._connection_string(),
                    serverSelectionTimeoutMS=self.settings.MONGODB_SERVER_SELECTION_TIMEOUT,
                    connectTimeoutMS=self.settings.MONGODB_CONNECTION_TIMEOUT,
                    maxPoolSize=self.settings.MONGODB_MAX_POOL_SIZE,
                    minPoolSize=self.settings.MONGODB_MIN_POOL_SIZE,
                    tz_aware=True,
                )
                self.database = self.client[self.settings.MONGODB_DATABASE]

                ping_start = time.time()
                await self.client.admin.command("ping")
                ping_duration = time.time() - ping_start

                perf_logger.info(
                    "MongoDB connection established successfully in %.3fs (ping: %.3fs)",
                    time.time() - start_time,
                    ping_duration,
                )
                db_logger.info("Successfully connected to MongoDB database: %s", self.settings.MONGODB_DATABASE)
                return

            except (ServerSelectionTimeoutError, ConnectionFailure) as e:
                perf_logger.warning("Connection attempt %d failed after %.3fs", attempt + 1, time.time() - attempt_start)
                db_logger.warning(
                    "Failed to connect to MongoDB (attempt %d/%d): %s", attempt + 1, self._connection_retries, e
                )
                if attempt == self._connection_retries - 1:
                    db_logger.error("All connection attempts failed after %.3fs", time.time() - start_time)
                    raise

                backoff_time = 2**attempt
                db_logger.info("Waiting %.1fs before retry (exponential backoff)", backoff_time)
                await asyncio.sleep(backoff_time)

    async def disconnect(self):
        """Close the client. Safe to call when never connected."""
        if self.client is None:
            db_logger.warning("Disconnect called but no active MongoDB connection found")
            return

        start_time = time.time()
        self.client.close()
        self.client = None
        self.database = None
        perf_logger.info("MongoDB disconnection completed in %.3fs", time.time() - start_time)
        db_logger.info("Successfully disconnected from MongoDB")

    async def health_check(self) -> bool:
        """
        Ping the server.

        Returns:
            bool: `True` when the server answered, `False` when there is no client or the
            ping failed. Never raises.
        """
        if self.client is None:
            health_logger.warning("Health check failed: No database client available")
            return False

        start_time = time.time()
        try:
            await self.client.admin.command("ping")
        except (ServerSelectionTimeoutError, ConnectionFailure) as e:
            health_logger.error("Database health check failed: %s", e)
            return False
        except PyMongoError as e:
            health_logger.error("Unexpected error during health check: %s", e)
            return False

        perf_logger.debug("Database health check completed in %.3fs", time.time() - start_time)
        return True

    def get_collection(self, collection_name: str) -> AsyncIOMotorCollection:
        """
        Return a collection from the connected database.

        Raises:
            RuntimeError: `connect()` has not been called.
        """
        if self.database is None:
            db_logger.error("Attempted to get collection '%s' without database connection", collection_name)
            raise RuntimeError("Database not connected")
        return self.database[collection_name]

    async def create_indexes(self):
        """Ensure every index in `BLOG_INDEXES` exists. Individual failures are logged, not raised."""
        start_time = time.time()
        db_logger.info("Starting database index creation process")

        for spec in BLOG_INDEXES:
            collection = self.get_collection(spec["collection"])
            await self._create_index_if_not_exists(collection, spec["index"], spec["options"])

        perf_logger.info("Database index creation completed in %.3fs", time.time() - start_time)
        db_logger.info("Database indexes created successfully")

    async def _create_index_if_not_exists(
        self, collection: AsyncIOMotorCollection, field_spec: Any, options: Dict[str, Any]
    ):
        """Create an index if it doesn't already exist"""
        start_time = time.time()

        try:
            await collection.create_index(field_spec, **options)
            perf_logger.debug("Created/ensured index '%s' in %.3fs", field_spec, time.time() - start_time)
        except PyMongoError as e:
            perf_logger.warning(
                "Failed to create/ensure index '%s' after %.3fs", field_spec, time.time() - start_time
            )
            db_logger.warning("Could not create/ensure index '%s': %s", field_spec, e)
