from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from shared.exceptions import Forbidden, Unauthenticated
from .jwt_handler import verify_access_token

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

ROLE_USER = "USER"
ROLE_SELLER = "SELLER"
ROLE_ADMIN = "ADMIN"


@dataclass(frozen=True)
class CallerIdentity:
    """Who is calling, as resolved by the identity provider's token."""
    id: str
    email: str | None = None
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def identity_from_token(token: str | None) -> CallerIdentity | None:
    if not token:
        return None

    payload = verify_access_token(token)
    if payload is None:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    return CallerIdentity(
        id=str(user_id),
        email=payload.get("email"),
        role=payload.get("role") or ROLE_USER,
    )


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> CallerIdentity:
    """Dependency to validate the JWT and return the caller identity."""
    caller = identity_from_token(token)
    if caller is None:
        raise Unauthenticated("Could not validate credentials")

    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = caller.id
    return caller


async def get_optional_user(request: Request, token: str = Depends(oauth2_scheme)) -> CallerIdentity | None:
    """Like get_current_user, but anonymous callers resolve to None."""
    caller = identity_from_token(token)
    if caller is not None:
        request.state.user_id = caller.id
    return caller


async def require_admin(caller: CallerIdentity = Depends(get_current_user)) -> CallerIdentity:
    if not caller.is_admin:
        raise Forbidden("Unauthorized: Admin access required")
    return caller
