from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.payment_service.dependencies import get_payment_gateway
from services.payment_service.gateway import PaymentGateway
from shared.config.database import get_db
from shared.config.settings import ORDER_RATE_LIMIT
from shared.pagination import PageParams
from shared.security import CallerIdentity, get_current_user, limiter, require_admin
from .filters import OrderFilterSpec
from .models import OrderStatus, PaymentStatus
from .projections import OrderProjectionService
from .schemas import (
    AdminOrderPage, AdminOrderStats, AdminOrderView, BuyerOrderPage, BuyerOrderView,
    OrderCreate, OrderCreatedResponse, OrderHeader, OrderStatusUpdate, PaymentStatusUpdate,
    PurchaseStats, SellerOrderDetail, SellerOrderPage,
)
from .service import OrderService

router = APIRouter(prefix="/order", tags=["Orders"])


@router.post("", response_model=OrderCreatedResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(ORDER_RATE_LIMIT)
async def create_order(
    request: Request,                      # REQUIRED: slowapi needs this to check IP/Headers
    payload: OrderCreate,
    caller: CallerIdentity = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.create_order(db, gateway, caller, payload)


# --- BUYER ---

@router.get("/mine", response_model=BuyerOrderPage)
async def my_orders(
    page: PageParams = Depends(),
    order_status: OrderStatus | None = Query(default=None, alias="status"),
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderProjectionService.buyer_orders(db, caller.id, page, order_status)


@router.get("/mine/stats", response_model=PurchaseStats)
async def my_purchase_stats(
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderProjectionService.purchase_stats(db, caller.id)


# --- SELLER ---

@router.get("/seller", response_model=SellerOrderPage)
async def seller_orders(
    page: PageParams = Depends(),
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderProjectionService.seller_orders(db, caller.id, page)


@router.get("/seller/{order_id}", response_model=SellerOrderDetail)
async def seller_order(
    order_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderProjectionService.seller_order(db, caller.id, order_id)


# --- ADMIN ---

@router.get("/admin", response_model=AdminOrderPage)
async def admin_orders(
    page: PageParams = Depends(),
    order_status: OrderStatus | None = Query(default=None, alias="status"),
    payment_status: PaymentStatus | None = Query(default=None, alias="paymentStatus"),
    search: str | None = Query(default=None, max_length=255),
    _admin: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    spec = OrderFilterSpec(status=order_status, payment_status=payment_status, search=search)
    return await OrderProjectionService.admin_orders(db, spec, page)


@router.get("/admin/stats", response_model=AdminOrderStats)
async def admin_stats(
    _admin: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await OrderProjectionService.admin_stats(db)


@router.get("/admin/{order_id}", response_model=AdminOrderView)
async def admin_order(
    order_id: str,
    _admin: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await OrderProjectionService.admin_order(db, order_id)


@router.patch("/admin/{order_id}/status", response_model=OrderHeader)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    _admin: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.update_status(db, order_id, payload.status)


@router.patch("/admin/{order_id}/payment-status", response_model=OrderHeader)
async def update_payment_status(
    order_id: str,
    payload: PaymentStatusUpdate,
    _admin: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.update_payment_status(db, order_id, payload.payment_status)


@router.delete("/admin/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str,
    _admin: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await OrderService.delete_order(db, order_id)


# Catch-all id route stays last so /mine, /seller and /admin match first.
@router.get("/{order_id}", response_model=BuyerOrderView)
async def buyer_order(
    order_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderProjectionService.buyer_order(db, caller.id, order_id)
