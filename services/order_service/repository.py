from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import and_, case, delete, desc, distinct, func, select, update
from sqlalchemy.orm import aliased

from services.catalog_service.models import Product, ProductImage
from services.user_service.models import User
from .filters import OrderFilterSpec
from .models import Order, OrderLine, OrderStatus, PaymentStatus

Customer = aliased(User, name="customer")
Seller = aliased(User, name="seller")

_line_count = (
    select(func.count(OrderLine.id))
    .where(OrderLine.order_id == Order.id)
    .correlate(Order)
    .scalar_subquery()
)


class OrderRepository:
    @staticmethod
    async def create_order_with_lines(db: AsyncSession, order: Order, lines: list[OrderLine]):
        """Inserts the header and every line in a single transaction.

        Either all rows are committed or none are.
        """
        try:
            db.add(order)
            db.add_all(lines)
            await db.flush()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        await db.refresh(order)
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str):
        result = await db.execute(
            select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_buyer_order(db: AsyncSession, order_id: str, buyer_id: str):
        result = await db.execute(
            select(Order).where(Order.id == order_id, Order.buyer_id == buyer_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_order_with_customer(db: AsyncSession, order_id: str):
        result = await db.execute(
            select(Order, Customer, _line_count)
            .outerjoin(Customer, Order.buyer_id == Customer.id)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.first()

    @staticmethod
    async def get_lines(db: AsyncSession, order_ids: list[str], seller_id: str | None = None):
        """Lines for the given orders with product, primary image and seller.

        Rows are (OrderLine, Product, image_url, Seller), oldest line first.
        When seller_id is given only that seller's lines are returned.
        """
        if not order_ids:
            return []
        query = (
            select(OrderLine, Product, ProductImage.url, Seller)
            .select_from(OrderLine)
            .outerjoin(Product, OrderLine.product_id == Product.id)
            .outerjoin(
                ProductImage,
                and_(ProductImage.product_id == Product.id, ProductImage.is_primary.is_(True)),
            )
            .outerjoin(Seller, OrderLine.seller_id == Seller.id)
            .where(OrderLine.order_id.in_(order_ids))
            .order_by(OrderLine.created_at, OrderLine.position)
        )
        if seller_id is not None:
            query = query.where(OrderLine.seller_id == seller_id)
        result = await db.execute(query)
        return result.all()

    # --- SELLER SCOPE ---

    @staticmethod
    async def seller_has_lines(db: AsyncSession, order_id: str, seller_id: str) -> bool:
        result = await db.execute(
            select(OrderLine.id)
            .where(OrderLine.order_id == order_id, OrderLine.seller_id == seller_id)
            .limit(1)
        )
        return result.first() is not None

    @staticmethod
    async def seller_order_ids(db: AsyncSession, seller_id: str, limit: int, offset: int) -> list[str]:
        """One page of distinct order ids holding at least one of the seller's lines."""
        result = await db.execute(
            select(Order.id, Order.created_at)
            .join(OrderLine, OrderLine.order_id == Order.id)
            .where(OrderLine.seller_id == seller_id)
            .group_by(Order.id, Order.created_at)
            .order_by(desc(Order.created_at), desc(Order.id))
            .limit(limit)
            .offset(offset)
        )
        return [row.id for row in result.all()]

    @staticmethod
    async def count_seller_orders(db: AsyncSession, seller_id: str) -> int:
        result = await db.execute(
            select(func.count(distinct(OrderLine.order_id)))
            .where(OrderLine.seller_id == seller_id)
        )
        return result.scalar_one()

    @staticmethod
    async def get_orders_with_customer(db: AsyncSession, order_ids: list[str]):
        if not order_ids:
            return []
        result = await db.execute(
            select(Order, Customer)
            .outerjoin(Customer, Order.buyer_id == Customer.id)
            .where(Order.id.in_(order_ids))
            .execution_options(populate_existing=True)
        )
        return result.all()

    # --- FILTERED LISTINGS ---

    @staticmethod
    async def list_orders(db: AsyncSession, spec: OrderFilterSpec, limit: int, offset: int):
        """Rows of (Order, Customer, line_count), newest order first."""
        result = await db.execute(
            select(Order, Customer, _line_count)
            .outerjoin(Customer, Order.buyer_id == Customer.id)
            .where(*spec.predicates())
            .order_by(desc(Order.created_at), desc(Order.id))
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        return result.all()

    @staticmethod
    async def count_orders(db: AsyncSession, spec: OrderFilterSpec) -> int:
        result = await db.execute(
            select(func.count(Order.id)).where(*spec.predicates())
        )
        return result.scalar_one()

    # --- STATS ---

    @staticmethod
    async def order_stats(db: AsyncSession, spec: OrderFilterSpec):
        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        result = await db.execute(
            select(
                func.count(Order.id).label("total_orders"),
                func.coalesce(func.sum(Order.total), 0).label("total_spent"),
                func.coalesce(
                    func.sum(case((Order.payment_status == PaymentStatus.PAID.value, Order.total), else_=0)), 0
                ).label("paid_revenue"),
                count_where(Order.status == OrderStatus.PENDING.value).label("pending_orders"),
                count_where(Order.status == OrderStatus.COMPLETED.value).label("completed_orders"),
                count_where(Order.status == OrderStatus.CANCELLED.value).label("cancelled_orders"),
                count_where(Order.payment_status == PaymentStatus.PAID.value).label("paid_orders"),
            ).where(*spec.predicates())
        )
        return result.one()

    # --- STATE CHANGES ---

    @staticmethod
    async def transition(db: AsyncSession, order_id: str, column: str, from_value: str, to_value: str) -> int:
        """Compare-and-set on status or payment_status. Returns rows changed (0 or 1)."""
        field = getattr(Order, column)
        result = await db.execute(
            update(Order)
            .where(Order.id == order_id, field == from_value)
            .values({column: to_value})
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def settle_payment(db: AsyncSession, order_id: str, reference: str) -> int:
        """pending -> paid for the order carrying this reference. 0 rows if already settled."""
        result = await db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.payment_reference == reference,
                Order.payment_status == PaymentStatus.PENDING.value,
            )
            .values(payment_status=PaymentStatus.PAID.value)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: str) -> int:
        # Lines go with it through ON DELETE CASCADE.
        result = await db.execute(
            delete(Order).where(Order.id == order_id).execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount
