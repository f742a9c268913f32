"""
Error taxonomy shared by every service.

Services raise these instead of HTTPException so the same failure reads the
same way whether it comes from the order saga, the payment callback or a
review write. `register_exception_handlers()` renders all of them as
`{"error": <message>}` with the status code carried by the exception.
"""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class MarketplaceError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class UnknownAccount(Unauthenticated):
    # Valid token, but the identity has not been provisioned into users yet.
    default_message = "Unknown account"


class Forbidden(MarketplaceError):
    # Only for role gates. Ownership failures are reported as NotFound.
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class InvalidInput(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class ValidationFailed(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"

    def __init__(self, message: str | None = None, missing: list[str] | None = None):
        self.missing = missing or []
        super().__init__(message)


class PaymentInitFailed(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Failed to initialize payment"


class PaymentVerificationFailed(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Payment verification failed"


class PaymentGatewayError(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InvalidTransition(Conflict):
    default_message = "Invalid status transition"


class PersistenceFailure(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to place order"


async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message, kind=type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "; ".join(messages) or "Invalid input"},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal Server Error"},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
