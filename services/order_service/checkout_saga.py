from datetime import datetime, timezone
from decimal import Decimal
from urllib.parse import urlencode

import structlog
from sqlalchemy.exc import SQLAlchemyError

from services.catalog_service.repository import CatalogRepository
from services.payment_service.models import (
    ATTEMPT_ABANDONED, ATTEMPT_FAILED, ATTEMPT_INITIALIZED, PaymentAttempt,
)
from services.payment_service.repository import PaymentRepository
from services.user_service.repository import UserRepository
from shared.config.settings import API_BASE_URL
from shared.exceptions import (
    InvalidInput, PaymentGatewayError, PaymentInitFailed, PersistenceFailure, UnknownAccount,
    ValidationFailed,
)
from .models import Order, OrderLine, OrderStatus, PaymentStatus
from .repository import OrderRepository
from .saga import SagaOrchestrator

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")
# Largest value a Numeric(10, 2) money column holds
MAX_AMOUNT = Decimal("99999999.99")


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1")))


def confirmation_callback_url(order_id: str) -> str:
    return f"{API_BASE_URL}/order/confirmation?{urlencode({'orderId': order_id})}"


# --- ACTIONS ---

async def price_cart(ctx: dict):
    """Recompute every line total and the order figures from quantity x price."""
    data = ctx["data"]
    line_totals = [(item.price * item.quantity).quantize(CENTS) for item in data.items]
    subtotal = sum(line_totals, Decimal("0.00")).quantize(CENTS)
    shipping = data.shipping.quantize(CENTS)
    total = (subtotal + shipping).quantize(CENTS)

    for position, line_total in enumerate(line_totals):
        if line_total > MAX_AMOUNT:
            raise InvalidInput(f"Line {position + 1} total {line_total} exceeds the maximum of {MAX_AMOUNT}")
    if total > MAX_AMOUNT:
        raise InvalidInput(f"Order total {total} exceeds the maximum of {MAX_AMOUNT}")

    if data.subtotal != subtotal:
        raise InvalidInput(f"Subtotal {data.subtotal} does not match line items ({subtotal})")
    if data.total != total:
        raise InvalidInput(f"Total {data.total} does not equal subtotal plus shipping ({total})")

    ctx["line_totals"] = line_totals
    ctx["subtotal"] = subtotal
    ctx["shipping"] = shipping
    ctx["total"] = total

async def verify_buyer(ctx: dict):
    """The caller must exist in the users mirror before anything is written for them."""
    if not await UserRepository.exists(ctx["db"], ctx["caller"].id):
        raise UnknownAccount()

async def validate_catalog(ctx: dict):
    """One batched lookup for every distinct (product, seller) pair in the cart."""
    data = ctx["data"]
    pairs = {(item.product_id, item.seller_id) for item in data.items}
    rows = await CatalogRepository.find_listed_pairs(ctx["db"], pairs)
    listed = {(row.id, row.seller_id) for row in rows}

    missing = list(dict.fromkeys(
        item.product_id for item in data.items
        if (item.product_id, item.seller_id) not in listed
    ))
    if missing:
        raise ValidationFailed(f"Products not found: {', '.join(missing)}", missing=missing)

async def initialize_payment(ctx: dict):
    db, gateway, caller, order_id = ctx["db"], ctx["gateway"], ctx["caller"], ctx["order_id"]
    amount = to_minor_units(ctx["total"])

    # Written before the gateway is contacted so every gateway transaction has a row to reconcile.
    attempt = await PaymentRepository.create_attempt(
        db, PaymentAttempt(order_id=order_id, buyer_id=caller.id, amount=amount)
    )
    ctx["attempt_id"] = attempt.id

    try:
        result = await gateway.initialize(
            email=caller.email or ctx["data"].email,
            amount_minor_units=amount,
            callback_url=confirmation_callback_url(order_id),
            metadata={"buyerId": caller.id, "orderId": order_id},
        )
    except PaymentGatewayError as e:
        await PaymentRepository.update_attempt(db, attempt, status=ATTEMPT_FAILED, failure_reason=e.message)
        raise PaymentInitFailed() from e

    if not result.success or not result.authorization_url:
        await PaymentRepository.update_attempt(
            db, attempt, status=ATTEMPT_FAILED, failure_reason=result.message or "rejected by gateway"
        )
        raise PaymentInitFailed()

    await PaymentRepository.update_attempt(
        db, attempt,
        status=ATTEMPT_INITIALIZED,
        reference=result.reference,
        access_code=result.access_code,
    )
    ctx["payment"] = result

async def persist_order(ctx: dict):
    data, caller, payment = ctx["data"], ctx["caller"], ctx["payment"]
    now = datetime.now(timezone.utc)

    order = Order(
        id=ctx["order_id"],
        buyer_id=caller.id,
        status=OrderStatus.PENDING.value,
        payment_status=PaymentStatus.PENDING.value,
        subtotal=ctx["subtotal"],
        shipping=ctx["shipping"],
        total=ctx["total"],
        name=data.name,
        email=data.email,
        phone=data.phone,
        shipping_address=data.shipping_address,
        city=data.city,
        state=data.state,
        zip=data.zip,
        country=data.country,
        notes=data.notes,
        payment_reference=payment.reference,
        payment_access_code=payment.access_code,
        created_at=now,
        updated_at=now,
    )
    lines = [
        OrderLine(
            order_id=order.id,
            product_id=item.product_id,
            seller_id=item.seller_id,
            position=position,
            quantity=item.quantity,
            price=item.price,
            total=line_total,
            variant=item.variant,
            created_at=now,
        )
        for position, (item, line_total) in enumerate(zip(data.items, ctx["line_totals"]))
    ]

    try:
        ctx["order"] = await OrderRepository.create_order_with_lines(ctx["db"], order, lines)
    except SQLAlchemyError as e:
        raise PersistenceFailure() from e


# --- COMPENSATIONS (Rollbacks) ---

async def abandon_payment(ctx: dict):
    payment = ctx["payment"]
    # The gateway offers no void for an unpaid transaction; the buyer never
    # receives its authorization URL, and the attempt row is left for an operator.
    logger.critical(
        "payment_initialized_without_order",
        order_id=ctx["order_id"],
        reference=payment.reference,
        attempt_id=ctx["attempt_id"],
    )
    await PaymentRepository.set_status(
        ctx["db"], ctx["attempt_id"], ATTEMPT_ABANDONED, failure_reason="order not persisted"
    )


# --- BUILDER FACTORY ---

def build_checkout_saga() -> SagaOrchestrator:
    saga = SagaOrchestrator()
    saga.add_step("price_cart", price_cart, None) # Pure computation
    saga.add_step("verify_buyer", verify_buyer, None) # Read-only
    saga.add_step("validate_catalog", validate_catalog, None) # Read-only, no rollback needed
    saga.add_step("initialize_payment", initialize_payment, abandon_payment)
    saga.add_step("persist_order", persist_order, None) # Single transaction, rolls itself back
    return saga

