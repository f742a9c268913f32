from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_checkout_total = Counter(
    "ecomm_checkout_total",
    "Total checkouts processed",
    ["status"] # Labels: success, invalid_input, unknown_buyer, validation_failed, payment_failed, persistence_failed
)

ecomm_checkout_duration_seconds = Histogram(
    "ecomm_checkout_duration_seconds",
    "Checkout duration in seconds"
)

ecomm_saga_compensation_total = Counter(
    "ecomm_saga_compensation_total",
    "Total saga compensations triggered",
    ["step_name"] # Labels: 'initialize_payment', ...
)

ecomm_payment_verification_total = Counter(
    "ecomm_payment_verification_total",
    "Payment confirmation callbacks processed",
    ["result"] # Labels: 'paid', 'already_settled', 'failed'
)

ecomm_review_aggregate_failures_total = Counter(
    "ecomm_review_aggregate_failures_total",
    "Product rating recomputes that failed after a review write"
)
