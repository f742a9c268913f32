"""
Read-side views over the shared order tables.

The same orders and order_lines rows are projected three ways:

* buyer  - the caller's own order with every line, 404 for anyone else's
* seller - only the lines the caller fulfils, with seller_total and
           seller_item_count recomputed from those lines
* admin  - everything, with the seller attached to each line

Buyer and seller lookups that fail ownership raise NotFound, never Forbidden,
so a caller cannot discover other people's order ids.
"""
from collections import defaultdict
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import NotFound
from shared.pagination import PageParams, total_pages
from .filters import OrderFilterSpec
from .models import OrderStatus
from .repository import OrderRepository
from .schemas import (
    AdminOrderLine, AdminOrderPage, AdminOrderStats, AdminOrderView, BuyerOrderLine,
    BuyerOrderPage, BuyerOrderSummary, BuyerOrderView, OrderHeader, PartyRef, ProductRef,
    PurchaseStats, SellerOrderDetail, SellerOrderLine, SellerOrderPage, SellerOrderView,
)


def _party(user) -> PartyRef | None:
    if user is None:
        return None
    return PartyRef(id=user.id, name=user.name, email=user.email)


def _product(product, with_description: bool = False) -> ProductRef | None:
    if product is None:
        return None
    return ProductRef(
        id=product.id,
        name=product.name,
        description=product.description if with_description else None,
        price=product.price,
        unit=product.unit,
        brand=product.brand,
    )


def _header_fields(order) -> dict:
    return OrderHeader.model_validate(order).model_dump()


def _seller_line(line, product, image, with_description: bool = False) -> SellerOrderLine:
    return SellerOrderLine(
        id=line.id,
        quantity=line.quantity,
        price=line.price,
        total=line.total,
        variant=line.variant,
        created_at=line.created_at,
        product=_product(product, with_description),
        product_image=image,
    )


def _seller_view(order, customer, lines: list[SellerOrderLine], view=SellerOrderView):
    # Recomputed from the seller's own lines; the order's grand total covers every seller.
    seller_total = sum((line.total for line in lines), Decimal("0.00"))
    seller_item_count = sum(line.quantity for line in lines)
    return view(
        order_id=order.id,
        status=order.status,
        payment_status=order.payment_status,
        total=order.total,
        subtotal=order.subtotal,
        shipping=order.shipping,
        shipping_address=order.shipping_address,
        city=order.city,
        state=order.state,
        zip=order.zip,
        country=order.country,
        phone=order.phone,
        email=order.email,
        name=order.name,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
        customer=_party(customer),
        items=lines,
        seller_total=seller_total,
        seller_item_count=seller_item_count,
    )


def _admin_line(line, product, image, seller) -> AdminOrderLine:
    return AdminOrderLine(
        id=line.id,
        product_id=line.product_id,
        quantity=line.quantity,
        price=line.price,
        total=line.total,
        variant=line.variant,
        created_at=line.created_at,
        product=_product(product, with_description=True),
        product_image=image,
        seller=_party(seller),
    )


class OrderProjectionService:

    # --- BUYER ---

    @staticmethod
    async def buyer_order(db: AsyncSession, buyer_id: str, order_id: str) -> BuyerOrderView:
        order = await OrderRepository.get_buyer_order(db, order_id, buyer_id)
        if not order:
            raise NotFound("Order not found")

        rows = await OrderRepository.get_lines(db, [order.id])
        items = [
            BuyerOrderLine(
                id=line.id,
                product_id=line.product_id,
                seller_id=line.seller_id,
                quantity=line.quantity,
                price=line.price,
                total=line.total,
                variant=line.variant,
                created_at=line.created_at,
                product_name=product.name if product else None,
                product_image=image,
                product_brand=product.brand if product else None,
                product_unit=product.unit if product else None,
            )
            for line, product, image, _seller in rows
        ]
        return BuyerOrderView(**_header_fields(order), items=items)

    @staticmethod
    async def buyer_orders(
        db: AsyncSession, buyer_id: str, page: PageParams, status: OrderStatus | None = None
    ) -> BuyerOrderPage:
        spec = OrderFilterSpec(buyer_id=buyer_id, status=status)
        rows = await OrderRepository.list_orders(db, spec, page.limit, page.offset)
        count = await OrderRepository.count_orders(db, spec)
        return BuyerOrderPage(
            orders=[
                BuyerOrderSummary(**_header_fields(order), item_count=line_count)
                for order, _customer, line_count in rows
            ],
            total_count=count,
            total_pages=total_pages(count, page.limit),
            current_page=page.page,
        )

    @staticmethod
    async def purchase_stats(db: AsyncSession, buyer_id: str) -> PurchaseStats:
        stats = await OrderRepository.order_stats(db, OrderFilterSpec(buyer_id=buyer_id))
        return PurchaseStats(
            total_orders=stats.total_orders,
            total_spent=Decimal(str(stats.total_spent or 0)).quantize(Decimal("0.01")),
            pending_orders=stats.pending_orders,
            completed_orders=stats.completed_orders,
        )

    # --- SELLER ---

    @staticmethod
    async def seller_orders(db: AsyncSession, seller_id: str, page: PageParams) -> SellerOrderPage:
        # Paginate on distinct orders first, then load only this page's lines.
        order_ids = await OrderRepository.seller_order_ids(db, seller_id, page.limit, page.offset)
        count = await OrderRepository.count_seller_orders(db, seller_id)

        headers = {order.id: (order, customer) for order, customer in
                   await OrderRepository.get_orders_with_customer(db, order_ids)}
        lines_by_order = defaultdict(list)
        for line, product, image, _seller in await OrderRepository.get_lines(db, order_ids, seller_id=seller_id):
            lines_by_order[line.order_id].append(_seller_line(line, product, image))

        orders = [
            _seller_view(*headers[order_id], lines_by_order[order_id])
            for order_id in order_ids
            if order_id in headers
        ]
        return SellerOrderPage(
            orders=orders,
            total_count=count,
            total_pages=total_pages(count, page.limit),
            current_page=page.page,
        )

    @staticmethod
    async def seller_order(db: AsyncSession, seller_id: str, order_id: str) -> SellerOrderDetail:
        if not await OrderRepository.seller_has_lines(db, order_id, seller_id):
            raise NotFound("Order not found or you don't have items in this order")

        row = await OrderRepository.get_order_with_customer(db, order_id)
        if row is None:
            raise NotFound("Order not found")
        order, customer, _line_count = row

        lines = [
            _seller_line(line, product, image, with_description=True)
            for line, product, image, _seller in await OrderRepository.get_lines(db, [order_id], seller_id=seller_id)
        ]
        return _seller_view(order, customer, lines, view=SellerOrderDetail)

    # --- ADMIN ---

    @staticmethod
    async def admin_orders(db: AsyncSession, spec: OrderFilterSpec, page: PageParams) -> AdminOrderPage:
        rows = await OrderRepository.list_orders(db, spec, page.limit, page.offset)
        count = await OrderRepository.count_orders(db, spec)

        lines_by_order = defaultdict(list)
        for line, product, image, seller in await OrderRepository.get_lines(db, [order.id for order, _, _ in rows]):
            lines_by_order[line.order_id].append(_admin_line(line, product, image, seller))

        return AdminOrderPage(
            orders=[
                AdminOrderView(
                    **_header_fields(order),
                    customer=_party(customer),
                    item_count=line_count,
                    items=lines_by_order[order.id],
                )
                for order, customer, line_count in rows
            ],
            total_count=count,
            total_pages=total_pages(count, page.limit),
            current_page=page.page,
        )

    @staticmethod
    async def admin_order(db: AsyncSession, order_id: str) -> AdminOrderView:
        row = await OrderRepository.get_order_with_customer(db, order_id)
        if row is None:
            raise NotFound("Order not found")
        order, customer, line_count = row

        items = [
            _admin_line(line, product, image, seller)
            for line, product, image, seller in await OrderRepository.get_lines(db, [order_id])
        ]
        return AdminOrderView(**_header_fields(order), customer=_party(customer), item_count=line_count, items=items)

    @staticmethod
    async def admin_stats(db: AsyncSession) -> AdminOrderStats:
        stats = await OrderRepository.order_stats(db, OrderFilterSpec())
        return AdminOrderStats(
            total_orders=stats.total_orders,
            total_revenue=Decimal(str(stats.paid_revenue or 0)).quantize(Decimal("0.01")),
            pending_orders=stats.pending_orders,
            completed_orders=stats.completed_orders,
            cancelled_orders=stats.cancelled_orders,
            paid_orders=stats.paid_orders,
        )
