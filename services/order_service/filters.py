"""
Filter spec for order listings.

Each recognised key maps to exactly one predicate. The admin listing builds
its page query and its count query from the same `predicates()` call, so the
two can never disagree about which orders match.
"""
from dataclasses import dataclass

from sqlalchemy import or_

from .models import Order, OrderStatus, PaymentStatus


@dataclass(frozen=True)
class OrderFilterSpec:
    status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    search: str | None = None
    buyer_id: str | None = None

    def predicates(self) -> list:
        clauses = []
        if self.buyer_id:
            clauses.append(Order.buyer_id == self.buyer_id)
        if self.status:
            clauses.append(Order.status == self.status.value)
        if self.payment_status:
            clauses.append(Order.payment_status == self.payment_status.value)
        search = (self.search or "").strip()
        if search:
            # Wildcards typed by the admin match literally
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            clauses.append(
                or_(
                    Order.name.ilike(pattern, escape="\\"),
                    Order.email.ilike(pattern, escape="\\"),
                    Order.id.ilike(pattern, escape="\\"),
                )
            )
        return clauses
