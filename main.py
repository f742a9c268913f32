from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import engine, Base
from shared.config.settings import SERVICE_NAME
from shared.exceptions import register_exception_handlers
from shared.observability import setup_observability
from shared.security import limiter

# IMPORTANT: import models so they register with Base
from services.user_service import models as user_models  # noqa: F401
from services.catalog_service import models as catalog_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401
from services.payment_service import models as payment_models  # noqa: F401
from services.review_service import models as review_models  # noqa: F401

from services.catalog_service.router import router as saved_router
from services.order_service.router import router as order_router
from services.payment_service.router import router as payment_router
from services.review_service.router import router as review_router

app = FastAPI(title="Marketplace", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, SERVICE_NAME)

# --- RATE LIMITER & ERRORS ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

# /order/confirmation must be registered before /order/{order_id}
app.include_router(payment_router)
app.include_router(order_router)
app.include_router(review_router)
app.include_router(saved_router)


@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": SERVICE_NAME}
