import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.checkout_saga import to_minor_units
from services.order_service.repository import OrderRepository
from shared.exceptions import InvalidInput, NotFound, PaymentVerificationFailed
from shared.observability import ecomm_payment_verification_total
from .gateway import PaymentGateway
from .models import ATTEMPT_VERIFIED
from .repository import PaymentRepository

logger = structlog.get_logger(__name__)


class PaymentReconciliationService:
    @staticmethod
    async def confirm(db: AsyncSession, gateway: PaymentGateway, reference: str | None, order_id: str | None) -> str:
        """Verify a gateway callback and settle the order's payment.

        Returns the order id to redirect to. Safe to replay: only a pending
        payment is ever moved to paid, so a second callback changes nothing.
        """
        if not reference:
            raise InvalidInput("Missing reference")
        if not order_id:
            raise InvalidInput("Missing orderId")

        log = logger.bind(order_id=order_id, reference=reference)

        verification = await gateway.verify(reference)
        if not verification.succeeded:
            ecomm_payment_verification_total.labels(result="failed").inc()
            log.warning("payment_verification_failed", gateway_status=verification.status)
            raise PaymentVerificationFailed()

        order = await OrderRepository.get_order(db, order_id)
        if not order:
            log.error("verified_payment_without_order")
            raise NotFound("Order not found")

        claimed_order = verification.metadata.get("orderId")
        if order.payment_reference != reference or (claimed_order and claimed_order != order.id):
            ecomm_payment_verification_total.labels(result="failed").inc()
            log.warning("payment_reference_mismatch", stored_reference=order.payment_reference)
            raise PaymentVerificationFailed()

        if verification.amount is not None and verification.amount != to_minor_units(order.total):
            ecomm_payment_verification_total.labels(result="failed").inc()
            log.warning("payment_amount_mismatch", paid=verification.amount, expected=to_minor_units(order.total))
            raise PaymentVerificationFailed()

        settled = await OrderRepository.settle_payment(db, order.id, reference)
        if settled:
            await PaymentRepository.mark_reference(db, reference, ATTEMPT_VERIFIED)
            ecomm_payment_verification_total.labels(result="paid").inc()
            log.info("payment_settled")
        else:
            ecomm_payment_verification_total.labels(result="already_settled").inc()
            log.info("payment_already_settled", payment_status=order.payment_status)

        return order.id
