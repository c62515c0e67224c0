"""
# Authentication Dependencies

FastAPI dependencies that turn the identity provider's session token into a `Caller`.

The token is a bearer JWT verified with the shared secret (`AUTH_JWT_SECRET`). The `sub`
claim is the user id; the role is read from a dotted claim path (`AUTH_ROLE_CLAIM`, by default
`metadata.role`).

## Dependency Chain

```
get_optional_caller  ->  None for anonymous requests, 401 for a bad token
        │
get_current_caller   ->  401 when anonymous
        │
require_role(...)    ->  403 when the role is not allowed
```

## Usage Example

```python
@router.post("/api/categories")
async def create_category(caller: Caller = Depends(require_role(UserRole.EDITOR))):
    ...
```
"""

from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from blog_cms.config import settings
from blog_cms.exceptions import AuthenticationError, ForbiddenError
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import Caller, UserRole

logger = get_logger(prefix="[Auth Dependencies]")

bearer_scheme = HTTPBearer(auto_error=False)


def _claim(payload: Dict[str, Any], path: str) -> Any:
    value: Any = payload
    for key in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def decode_session_token(
    token: str,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
    audience: Optional[str] = None,
    issuer: Optional[str] = None,
    role_claim: Optional[str] = None,
) -> Caller:
    """
    Verify a session token and build the caller it identifies.

    Parameters left as `None` fall back to the corresponding `AUTH_*` setting.

    Raises:
        AuthenticationError: Bad signature, expired token, wrong audience/issuer or no `sub`, or
            no verification secret configured.
    """
    secret = secret if secret is not None else settings.AUTH_JWT_SECRET.get_secret_value()
    algorithm = algorithm or settings.AUTH_JWT_ALGORITHM
    audience = audience if audience is not None else settings.AUTH_JWT_AUDIENCE
    issuer = issuer if issuer is not None else settings.AUTH_JWT_ISSUER
    role_claim = role_claim or settings.AUTH_ROLE_CLAIM

    if not secret or not secret.strip():
        logger.error("Session token secret is not configured; rejecting token")
        raise AuthenticationError("Invalid authentication credentials")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=audience,
            issuer=issuer,
            options={"verify_aud": audience is not None},
        )
    except JWTError as e:
        logger.warning("Rejected session token: %s", e)
        raise AuthenticationError("Invalid authentication credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid authentication credentials")

    role = _claim(payload, role_claim)
    if role not in (UserRole.EDITOR.value, UserRole.VIEWER.value):
        role = None
    return Caller(user_id=user_id, role=role)


async def get_optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Caller]:
    """`None` when no bearer token was sent; otherwise the verified caller."""
    if credentials is None:
        return None
    return decode_session_token(credentials.credentials)


async def get_current_caller(caller: Optional[Caller] = Depends(get_optional_caller)) -> Caller:
    if caller is None:
        raise AuthenticationError("Unauthenticated")
    return caller


def require_role(*roles: UserRole):
    """
    Build a dependency that admits authenticated callers holding one of `roles`.

    Raises (from the dependency):
        AuthenticationError: No caller.
        ForbiddenError: The caller's role is not in `roles`.
    """
    allowed = set(roles)
    names = " or ".join(role.value for role in roles)

    async def dependency(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in allowed:
            logger.warning("User %s with role %s denied; requires %s", caller.user_id, caller.role, names)
            raise ForbiddenError(f"Requires {names} role")
        return caller

    return dependency
