import time
import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.payment_service.gateway import PaymentGateway
from shared.exceptions import (
    InvalidInput, InvalidTransition, NotFound, PaymentInitFailed, PersistenceFailure, UnknownAccount,
    ValidationFailed,
)
from shared.observability import ecomm_checkout_duration_seconds, ecomm_checkout_total
from shared.security import CallerIdentity
from .checkout_saga import build_checkout_saga
from .models import OrderStatus, PaymentStatus
from .repository import OrderRepository
from .schemas import CreatedOrder, OrderCreate, OrderCreatedResponse, PaymentRedirect

logger = structlog.get_logger(__name__)

# Terminal states are reachable only from pending.
ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
}
PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
}

_OUTCOMES = {
    UnknownAccount: "unknown_buyer",
    InvalidInput: "invalid_input",
    ValidationFailed: "validation_failed",
    PaymentInitFailed: "payment_failed",
    PersistenceFailure: "persistence_failed",
}


class OrderService:
    @staticmethod
    async def create_order(
        db: AsyncSession, gateway: PaymentGateway, caller: CallerIdentity, data: OrderCreate
    ) -> OrderCreatedResponse:
        ctx = {
            "db": db,
            "gateway": gateway,
            "caller": caller,
            "data": data,
            # Generated up front: it rides along in the gateway metadata and callback URL.
            "order_id": str(uuid.uuid4()),
        }
        log = logger.bind(order_id=ctx["order_id"], buyer_id=caller.id, lines=len(data.items))

        started = time.perf_counter()
        try:
            await build_checkout_saga().execute(ctx)
        except Exception as e:
            outcome = next((label for kind, label in _OUTCOMES.items() if isinstance(e, kind)), "failed")
            ecomm_checkout_total.labels(status=outcome).inc()
            log.warning("checkout_failed", step=ctx.get("failed_step"), outcome=outcome)
            raise
        finally:
            ecomm_checkout_duration_seconds.observe(time.perf_counter() - started)

        ecomm_checkout_total.labels(status="success").inc()
        order, payment = ctx["order"], ctx["payment"]
        log.info("order_created", total=str(order.total), reference=payment.reference)

        return OrderCreatedResponse(
            order=CreatedOrder(id=order.id, status=order.status, total=order.total),
            payment=PaymentRedirect(
                authorization_url=payment.authorization_url,
                reference=payment.reference,
            ),
        )

    @staticmethod
    async def update_status(db: AsyncSession, order_id: str, status: OrderStatus):
        return await OrderService._transition(db, order_id, "status", ORDER_TRANSITIONS, status)

    @staticmethod
    async def update_payment_status(db: AsyncSession, order_id: str, payment_status: PaymentStatus):
        return await OrderService._transition(db, order_id, "payment_status", PAYMENT_TRANSITIONS, payment_status)

    @staticmethod
    async def _transition(db: AsyncSession, order_id: str, column: str, allowed: dict, target):
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise NotFound("Order not found")

        current = getattr(order, column)
        if target not in allowed.get(type(target)(current), set()):
            raise InvalidTransition(f"Cannot change {column} from {current} to {target.value}")

        # Compare-and-set so a concurrent change is not silently overwritten.
        changed = await OrderRepository.transition(db, order_id, column, current, target.value)
        if not changed:
            raise InvalidTransition(f"Order {column} changed concurrently")

        logger.info("order_transitioned", order_id=order_id, field=column, previous=current, current=target.value)
        return await OrderRepository.get_order(db, order_id)

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: str):
        deleted = await OrderRepository.delete_order(db, order_id)
        if not deleted:
            raise NotFound("Order not found")
        logger.info("order_deleted", order_id=order_id)
