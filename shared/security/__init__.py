from .jwt_handler import verify_access_token
from .dependencies import (
    CallerIdentity,
    ROLE_ADMIN,
    ROLE_SELLER,
    ROLE_USER,
    get_current_user,
    get_optional_user,
    require_admin,
)
from .rate_limiter import caller_or_ip, limiter

__all__ = [
    "verify_access_token",
    "CallerIdentity",
    "ROLE_ADMIN",
    "ROLE_SELLER",
    "ROLE_USER",
    "get_current_user",
    "get_optional_user",
    "require_admin",
    "limiter",
    "caller_or_ip",
]
