import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from shared.config.database import Base

ATTEMPT_INITIALIZING = "initializing"
ATTEMPT_INITIALIZED = "initialized"
ATTEMPT_FAILED = "failed"
ATTEMPT_ABANDONED = "abandoned"
ATTEMPT_VERIFIED = "verified"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentAttempt(Base):
    """One gateway transaction, recorded before the gateway is contacted.

    order_id is a correlation key only: an attempt can outlive an order that
    failed to persist, and that row is what an operator reconciles against.
    """
    __tablename__ = "payment_attempts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column(String(36), nullable=False, index=True)
    buyer_id = Column(String(36), nullable=False)
    amount = Column(Integer, nullable=False) # minor units
    reference = Column(String(128), nullable=True, unique=True)
    access_code = Column(String(128), nullable=True)
    status = Column(String(16), nullable=False, default=ATTEMPT_INITIALIZING)
    failure_reason = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
