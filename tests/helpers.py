from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from jose import jwt

from shared.security import ROLE_ADMIN, ROLE_SELLER, ROLE_USER
from shared.security.jwt_handler import ALGORITHM, SECRET_KEY


def mint_token(claims: dict, expires_delta: timedelta = timedelta(minutes=60)) -> str:
    """Signs claims the way the identity provider does."""
    payload = {**claims, "exp": datetime.now(timezone.utc) + expires_delta}
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


@dataclass
class Account:
    id: str
    name: str
    email: str
    role: str

    @property
    def headers(self) -> dict:
        token = mint_token({"sub": self.id, "email": self.email, "role": self.role})
        return {"Authorization": f"Bearer {token}"}


ACCOUNTS = {
    "buyer": Account("u-buyer", "Ada Buyer", "ada@example.com", ROLE_USER),
    "other_buyer": Account("u-other", "Otto Other", "otto@example.com", ROLE_USER),
    "seller_a": Account("u-seller-a", "Sam Seller", "sam@example.com", ROLE_SELLER),
    "seller_b": Account("u-seller-b", "Bea Seller", "bea@example.com", ROLE_SELLER),
    "seller_c": Account("u-seller-c", "Cy Seller", "cy@example.com", ROLE_SELLER),
    "admin": Account("u-admin", "Ann Admin", "ann@example.com", ROLE_ADMIN),
}


def order_payload(items: list[dict], shipping: str = "0.00", **overrides) -> dict:
    """Checkout body with totals computed from the given lines."""
    subtotal = sum((Decimal(i["price"]) * i["quantity"] for i in items), Decimal("0.00"))
    payload = {
        "name": "Ada Buyer",
        "email": "ada@example.com",
        "phone": "+2348000000000",
        "shippingAddress": "1 Market Road",
        "city": "Lagos",
        "state": "Lagos",
        "zip": "100001",
        "country": "NG",
        "subtotal": str(subtotal),
        "shipping": shipping,
        "total": str(subtotal + Decimal(shipping)),
        "items": items,
    }
    payload.update(overrides)
    return payload


def line(product_id: str, seller_id: str, quantity: int, price: str, **extra) -> dict:
    return {"productId": product_id, "sellerId": seller_id, "quantity": quantity, "price": price, **extra}
