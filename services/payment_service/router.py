from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from urllib.parse import urlencode

from shared.config.database import get_db
from shared.config.settings import APP_BASE_URL
from .dependencies import get_payment_gateway
from .gateway import PaymentGateway
from .service import PaymentReconciliationService

router = APIRouter(tags=["Payments"])


@router.get("/order/confirmation", response_class=RedirectResponse)
async def confirm_payment(
    reference: str | None = Query(default=None),
    order_id: str | None = Query(default=None, alias="orderId"),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    """Gateway callback: verify the payment, settle the order, send the buyer on."""
    confirmed_id = await PaymentReconciliationService.confirm(db, gateway, reference, order_id)
    return RedirectResponse(f"{APP_BASE_URL}/checkout/confirmed?{urlencode({'orderId': confirmed_id})}")
