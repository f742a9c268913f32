from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from shared.config.settings import RATE_LIMIT_STORAGE_URI
from .dependencies import identity_from_token


def caller_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    Checkout is limited per buyer: the caller resolved by get_current_user is
    used when present, then the bearer token itself, then the client address.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        caller = identity_from_token(auth_header.removeprefix("Bearer ").strip())
        if caller is not None:
            return f"user:{caller.id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=caller_or_ip, storage_uri=RATE_LIMIT_STORAGE_URI)
