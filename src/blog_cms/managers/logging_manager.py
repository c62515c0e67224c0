"""
# Logging Manager

Central logger factory for the Blog CMS. Every module obtains its logger here so that output
shares one handler, one format and one level (`LOG_LEVEL`).

## Usage Example

```python
from blog_cms.managers.logging_manager import get_logger

logger = get_logger(prefix="[CategoryService]")
logger.info("Cloned %d templates for user %s", count, user_id)
# 2026-01-01 12:00:00 | INFO | BlogCMS | [CategoryService] Cloned 3 templates for user u_1
```
"""

import logging
import sys
from typing import Any, MutableMapping, Optional, Tuple

from blog_cms.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_LOGGER_NAME = "BlogCMS"

_configured = False


class PrefixAdapter(logging.LoggerAdapter):
    """Logger adapter that prepends a fixed prefix such as `[DATABASE]` to each message."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        prefix = self.extra.get("prefix") if self.extra else None
        if prefix:
            return f"{prefix} {msg}", kwargs
        return msg, kwargs


def _configure_root(name: str) -> None:
    global _configured
    if _configured:
        return
    base = logging.getLogger(name)
    base.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    if not base.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        base.addHandler(handler)
    base.propagate = False
    _configured = True


def get_logger(name: str = DEFAULT_LOGGER_NAME, prefix: Optional[str] = None) -> PrefixAdapter:
    """
    Return a prefixed logger.

    Args:
        name: Logger name. Child names (``BlogCMS.routes``) inherit the shared handler.
        prefix: Text placed in front of every message.

    Returns:
        PrefixAdapter: A standard-library logger adapter.
    """
    _configure_root(DEFAULT_LOGGER_NAME)
    logger_name = name if name.startswith(DEFAULT_LOGGER_NAME) else f"{DEFAULT_LOGGER_NAME}.{name}"
    return PrefixAdapter(logging.getLogger(logger_name), {"prefix": prefix})
