from .setup import setup_observability, configure_logging
from .metrics import (
    ecomm_checkout_total,
    ecomm_checkout_duration_seconds,
    ecomm_saga_compensation_total,
    ecomm_payment_verification_total,
    ecomm_review_aggregate_failures_total,
)
