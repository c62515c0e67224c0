"""
# Configuration Management Module

This module provides the configuration system for the Blog CMS API. It is built on
**Pydantic Settings**, so every value is type-checked at import time and can be supplied
through the environment, a config file, or class defaults.

## Configuration Loading Hierarchy

```
┌─────────────────────────────────────────────────────────────┐
│  (Higher layers override lower layers)                      │
├─────────────────────────────────────────────────────────────┤
│  1. Environment Variables (HIGHEST PRIORITY)                │
│  2. BLOG_CMS_CONFIG_PATH (custom config file path)          │
│  3. .blog file (project root)                               │
│  4. .env file (project root)                                │
│  5. Default values (LOWEST PRIORITY)                        │
└─────────────────────────────────────────────────────────────┘
```

If no configuration file is found, the application runs in **environment-only mode**.

## Configuration Groups

| Group | Purpose |
|-------|---------|
| **Server** | Host, port, debug mode, CORS origins |
| **MongoDB** | Connection URL, database name, timeouts, pool sizes |
| **Auth** | Session-token verification (secret, algorithm, role claim) |
| **Identity** | Profile API used to resolve author and commenter names |
| **Uploads** | Local blob directory, URL prefix, placeholder image, size limits |
| **Content** | Pagination defaults, view-count de-duplication window |

## Usage Example

```python
from blog_cms.config import settings

if settings.DEBUG:
    print(f"Serving on {settings.HOST}:{settings.PORT}")

secret = settings.AUTH_JWT_SECRET.get_secret_value()
```

## Module Attributes

Attributes:
    BLOG_FILENAME (str): Primary configuration filename (`.blog`).
    DEFAULT_ENV_FILENAME (str): Fallback configuration filename (`.env`).
    CONFIG_ENV_VAR (str): Environment variable naming a custom config file.
    PROJECT_ROOT (Path): Repository root used to locate config files.
    CONFIG_PATH (Optional[str]): Resolved config file, or `None` in environment-only mode.
    settings (Settings): Global settings instance.
"""

import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
BLOG_FILENAME: str = ".blog"
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "BLOG_CMS_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parents[2]


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """
    Determines the configuration file path based on a predefined precedence order.

    1.  **Environment Variable**: `BLOG_CMS_CONFIG_PATH` (if set and the file exists).
    2.  **Blog Config**: `.blog` file in the project root directory.
    3.  **Dotenv Config**: `.env` file in the project root directory.
    4.  **Fallback**: `None`, which means environment-variable-only mode.

    Returns:
        Optional[str]: The path to the configuration file, or `None` if not found.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    blog_path: Path = PROJECT_ROOT / BLOG_FILENAME
    if blog_path.exists():
        return str(blog_path)
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=True)


class Settings(BaseSettings):
    """
    Application configuration settings model.

    **Configuration Groups:**
    *   **Server**: Host, port, debug mode, CORS.
    *   **Database**: MongoDB connection details.
    *   **Auth**: Verification of the identity provider's session tokens.
    *   **Identity**: Profile lookups for display names.
    *   **Uploads**: Featured-image storage.
    *   **Content**: Listing and view-counting rules.

    **Validation:**
    The MongoDB URL and the session-token secret may not be blank, and numeric limits must be
    positive.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Server configuration
    HOST: str = "127.0.0.1"
    PORT: int = 5000
    DEBUG: bool = True
    CORS_ORIGINS: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"
    SLOW_REQUEST_THRESHOLD_MS: int = 1000

    # MongoDB configuration
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "blog_cms"
    MONGODB_CONNECTION_TIMEOUT: int = 10000
    MONGODB_SERVER_SELECTION_TIMEOUT: int = 5000
    MONGODB_MAX_POOL_SIZE: int = 50
    MONGODB_MIN_POOL_SIZE: int = 5
    MONGODB_USERNAME: Optional[str] = None
    MONGODB_PASSWORD: Optional[SecretStr] = None

    # Session-token verification (tokens are minted by the identity provider)
    # Must be set in .blog or environment
    AUTH_JWT_SECRET: SecretStr = Field(SecretStr(""), validate_default=True)
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_ISSUER: Optional[str] = None
    AUTH_JWT_AUDIENCE: Optional[str] = None
    AUTH_ROLE_CLAIM: str = "metadata.role"

    # Identity provider profile API
    IDENTITY_API_URL: str = "https://api.clerk.com/v1"
    IDENTITY_API_KEY: Optional[SecretStr] = None
    IDENTITY_TIMEOUT_SECONDS: float = 5.0

    # Uploads
    UPLOAD_DIR: str = str(PROJECT_ROOT / "uploads")
    UPLOAD_URL_PREFIX: str = "/uploads"
    DEFAULT_FEATURED_IMAGE: str = "default-post.jpg"
    ALLOWED_IMAGE_EXTENSIONS: List[str] = ["jpeg", "jpg", "png", "gif"]
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024

    # Content rules
    POSTS_DEFAULT_PAGE_SIZE: int = 10
    POSTS_MAX_PAGE_SIZE: int = 100
    VIEW_DEDUP_WINDOW_HOURS: int = 24

    @field_validator("MONGODB_URL", mode="before")
    @classmethod
    def no_empty_urls(cls, v: Any, info: Any) -> Any:
        """
        Validates that the MongoDB URL is not empty.

        Raises:
            ValueError: If the URL is empty or whitespace.
        """
        if not v or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .blog and not empty!")
        return v

    @field_validator("AUTH_JWT_SECRET", mode="before")
    @classmethod
    def no_empty_secrets(cls, v: Any, info: Any) -> Any:
        """
        Validates that the session-token secret is set.

        Raises:
            ValueError: If the secret is missing, empty or whitespace.
        """
        raw = v.get_secret_value() if isinstance(v, SecretStr) else v
        if not raw or not str(raw).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .blog and not empty!")
        return v

    @field_validator(
        "MONGODB_MAX_POOL_SIZE",
        "MONGODB_MIN_POOL_SIZE",
        "MAX_UPLOAD_SIZE_BYTES",
        "POSTS_DEFAULT_PAGE_SIZE",
        "POSTS_MAX_PAGE_SIZE",
        "VIEW_DEDUP_WINDOW_HOURS",
        "SLOW_REQUEST_THRESHOLD_MS",
        mode="before",
    )
    @classmethod
    def validate_positive_integers(cls, v: Any, info: Any) -> int:
        """
        Validates that numeric limits are positive integers.

        Raises:
            ValueError: If the value is not a positive integer.
        """
        try:
            value = int(v)
        except (TypeError, ValueError):
            raise ValueError(f"{info.field_name} must be an integer")
        if value <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return value

    @property
    def is_production(self) -> bool:
        """`True` when debug mode is off."""
        return not self.DEBUG

    @property
    def cors_origins_list(self) -> List[str]:
        """Comma-separated `CORS_ORIGINS` as a list, blanks removed."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings: Settings = Settings()
