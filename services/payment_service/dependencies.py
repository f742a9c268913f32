from shared.config.settings import (
    PAYMENT_GATEWAY, PAYMENT_TIMEOUT_SECONDS, PAYSTACK_BASE_URL, PAYSTACK_SECRET_KEY,
)
from .fake_adapter import FakeGateway
from .gateway import PaymentGateway
from .paystack_adapter import PaystackGateway

_gateway: PaymentGateway | None = None


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the process-wide gateway adapter."""
    global _gateway
    if _gateway is None:
        if PAYMENT_GATEWAY == "fake":
            _gateway = FakeGateway()
        else:
            _gateway = PaystackGateway(PAYSTACK_SECRET_KEY, PAYSTACK_BASE_URL, PAYMENT_TIMEOUT_SECONDS)
    return _gateway
