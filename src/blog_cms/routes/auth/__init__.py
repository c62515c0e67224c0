from blog_cms.routes.auth.dependencies import (
    get_current_caller,
    get_optional_caller,
    require_role,
)

__all__ = ["get_current_caller", "get_optional_caller", "require_role"]
