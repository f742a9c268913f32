import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from shared.config.database import Base


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    buyer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(16), nullable=False, default=OrderStatus.PENDING.value)
    payment_status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value)

    # total = subtotal + shipping, fixed at creation
    subtotal = Column(Numeric(10, 2), nullable=False)
    shipping = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    # Contact/shipping snapshot as typed at checkout
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(64), nullable=False)
    shipping_address = Column(Text, nullable=False)
    city = Column(String(128), nullable=False)
    state = Column(String(128), nullable=False)
    zip = Column(String(32), nullable=False)
    country = Column(String(128), nullable=False)
    notes = Column(Text, nullable=True)

    payment_reference = Column(String(128), nullable=True, index=True)
    payment_access_code = Column(String(128), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    lines = relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [OrderLine.created_at, OrderLine.position],
    )


class OrderLine(Base):
    __tablename__ = "order_lines"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    # Who fulfils this line, as listed at purchase time. Never re-derived from the product.
    seller_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False) # quantity * price, frozen
    variant = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    order = relationship("Order", back_populates="lines")
