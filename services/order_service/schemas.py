from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, EmailStr, Field

from shared.schemas import CamelModel
from .models import OrderStatus, PaymentStatus

Money = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]
Price = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]
RequiredText = Annotated[str, Field(min_length=1)]


# --- REQUESTS ---

class OrderLineCreate(CamelModel):
    product_id: RequiredText
    seller_id: RequiredText
    quantity: int = Field(gt=0)
    price: Price
    variant: str | None = None


class OrderCreate(CamelModel):
    name: RequiredText
    email: EmailStr
    phone: RequiredText
    shipping_address: RequiredText
    city: RequiredText
    state: RequiredText
    zip: RequiredText
    country: RequiredText

    # Totals as the client computed them; re-derived and checked server-side
    subtotal: Money
    shipping: Money = Decimal("0")
    total: Money

    notes: str | None = None
    items: list[OrderLineCreate] = Field(min_length=1)


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class PaymentStatusUpdate(CamelModel):
    payment_status: PaymentStatus


# --- CHECKOUT RESPONSE ---

class CreatedOrder(BaseModel):
    id: str
    status: str
    total: Decimal


class PaymentRedirect(BaseModel):
    authorization_url: str
    reference: str | None


class OrderCreatedResponse(BaseModel):
    success: bool = True
    order: CreatedOrder
    payment: PaymentRedirect
    message: str = "Order created successfully. Proceed to payment."


# --- SHARED BLOCKS ---

class PartyRef(CamelModel):
    id: str
    name: str
    email: str


class ProductRef(CamelModel):
    id: str
    name: str
    description: str | None = None
    price: Decimal
    unit: str
    brand: str | None = None


class OrderHeader(CamelModel):
    id: str
    buyer_id: str
    status: str
    payment_status: str
    subtotal: Decimal
    shipping: Decimal
    total: Decimal
    name: str
    email: str
    phone: str
    shipping_address: str
    city: str
    state: str
    zip: str
    country: str
    notes: str | None = None
    payment_reference: str | None = None
    created_at: datetime
    updated_at: datetime


# --- BUYER VIEWS ---

class BuyerOrderLine(CamelModel):
    id: str
    product_id: str
    seller_id: str
    quantity: int
    price: Decimal
    total: Decimal
    variant: str | None = None
    created_at: datetime
    product_name: str | None = None
    product_image: str | None = None
    product_brand: str | None = None
    product_unit: str | None = None


class BuyerOrderView(OrderHeader):
    items: list[BuyerOrderLine]


class BuyerOrderSummary(OrderHeader):
    item_count: int


class BuyerOrderPage(CamelModel):
    orders: list[BuyerOrderSummary]
    total_count: int
    total_pages: int
    current_page: int


class PurchaseStats(CamelModel):
    total_orders: int
    total_spent: Decimal
    pending_orders: int
    completed_orders: int


# --- SELLER VIEWS ---

class SellerOrderLine(CamelModel):
    id: str
    quantity: int
    price: Decimal
    total: Decimal
    variant: str | None = None
    created_at: datetime
    product: ProductRef | None = None
    product_image: str | None = None


class SellerOrderView(CamelModel):
    order_id: str
    status: str
    payment_status: str
    total: Decimal
    subtotal: Decimal
    shipping: Decimal
    shipping_address: str
    city: str
    state: str
    zip: str
    country: str
    phone: str
    email: str
    name: str
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    customer: PartyRef | None = None
    items: list[SellerOrderLine]
    seller_total: Decimal
    seller_item_count: int


class SellerOrderDetail(SellerOrderView):
    # Only this seller's lines; the order may contain others.
    is_partial_order: bool = True


class SellerOrderPage(CamelModel):
    orders: list[SellerOrderView]
    total_count: int
    total_pages: int
    current_page: int


# --- ADMIN VIEWS ---

class AdminOrderLine(SellerOrderLine):
    product_id: str
    seller: PartyRef | None = None


class AdminOrderView(OrderHeader):
    customer: PartyRef | None = None
    item_count: int
    items: list[AdminOrderLine]


class AdminOrderPage(CamelModel):
    orders: list[AdminOrderView]
    total_count: int
    total_pages: int
    current_page: int


class AdminOrderStats(CamelModel):
    total_orders: int
    total_revenue: Decimal
    pending_orders: int
    completed_orders: int
    cancelled_orders: int
    paid_orders: int
