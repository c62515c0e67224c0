"""
Business-level errors raised by the services.

Each error carries the HTTP status the route layer answers with. Services raise them; the
exception handlers registered in `blog_cms.main` turn them into JSON responses.
"""

from typing import Dict, List, Optional


class BlogError(Exception):
    """Base class for expected, caller-facing failures."""

    status_code: int = 400
    message: str = "Request failed"

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, object]:
        return {"message": self.message}


class ValidationError(BlogError):
    """Malformed or missing input. May carry field-level detail."""

    status_code = 400
    message = "Invalid input"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, object]:
        body: Dict[str, object] = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class NotFoundError(BlogError):
    """Entity does not exist, or is not visible to the caller."""

    status_code = 404
    message = "Resource not found"


class ForbiddenError(BlogError):
    """Caller is authenticated but does not own the targeted resource."""

    status_code = 403
    message = "User not authorized to perform this action"


class AuthenticationError(BlogError):
    """Missing or invalid credentials on a private route."""

    status_code = 401
    message = "Unauthenticated"
