import os
from jose import JWTError, jwt

from shared.config import settings  # noqa: F401 (loads .env before the key is read)

SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("FATAL ERROR: JWT_SECRET_KEY is not set in the environment!")

# Tokens are minted by the identity provider; this service only verifies them.
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")


def verify_access_token(token: str) -> dict | None:
    """Decodes and verifies the JWT. Returns the claims (sub, email, role) or None if invalid/expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
