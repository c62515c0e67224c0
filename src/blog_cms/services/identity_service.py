"""
# Identity Service

Client for the identity provider's user-profile API. Post authors and commenters are shown by
display name, which is resolved here from the provider's `first_name`, `last_name` and
`username` fields.

Failures (network errors, non-2xx answers) propagate as `httpx` exceptions; the application's
generic error handler reports them as internal errors.
"""

from typing import Dict, Optional

import httpx

from blog_cms.config import Settings
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import UserProfile
from blog_cms.utils.text import display_name

logger = get_logger(prefix="[IdentityClient]")


class IdentityClient:
    """
    Fetches user profiles from `GET {base_url}/users/{user_id}`.

    Args:
        base_url: Root of the provider API.
        api_key: Bearer secret for the provider API, if it requires one.
        timeout: Request timeout in seconds.
        transport: Optional `httpx` transport, used by tests to stub the provider.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityClient":
        api_key = settings.IDENTITY_API_KEY.get_secret_value() if settings.IDENTITY_API_KEY else None
        return cls(settings.IDENTITY_API_URL, api_key=api_key, timeout=settings.IDENTITY_TIMEOUT_SECONDS)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def get_user_profile(self, user_id: str) -> UserProfile:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(f"{self.base_url}/users/{user_id}", headers=self._headers())
            response.raise_for_status()
            data = response.json()

        logger.debug("Fetched profile for user %s", user_id)
        return UserProfile(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            username=data.get("username"),
        )

    async def resolve_display_name(self, user_id: str) -> str:
        """Full name, else username, else `"Anonymous"`."""
        profile = await self.get_user_profile(user_id)
        return display_name(profile.first_name, profile.last_name, profile.username)
