from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, desc, func, select, update

from services.order_service.models import Order, OrderLine, PaymentStatus
from services.user_service.models import User
from .models import Review


class ReviewRepository:

    @staticmethod
    async def get_review(db: AsyncSession, review_id: str):
        result = await db.execute(
            select(Review).where(Review.id == review_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_user_review(db: AsyncSession, user_id: str, product_id: str):
        result = await db.execute(
            select(Review).where(Review.user_id == user_id, Review.product_id == product_id)
        )
        return result.scalars().first()

    @staticmethod
    async def has_paid_purchase(db: AsyncSession, user_id: str, product_id: str) -> bool:
        result = await db.execute(
            select(OrderLine.id)
            .join(Order, OrderLine.order_id == Order.id)
            .where(
                Order.buyer_id == user_id,
                Order.payment_status == PaymentStatus.PAID.value,
                OrderLine.product_id == product_id,
            )
            .limit(1)
        )
        return result.first() is not None

    @staticmethod
    async def create_review(db: AsyncSession, review: Review):
        db.add(review)
        await db.commit()
        await db.refresh(review)
        return review

    @staticmethod
    async def update_review(db: AsyncSession, review: Review, **values):
        for key, value in values.items():
            setattr(review, key, value)
        await db.commit()
        await db.refresh(review)
        return review

    @staticmethod
    async def delete_review(db: AsyncSession, review_id: str) -> int:
        result = await db.execute(delete(Review).where(Review.id == review_id))
        await db.commit()
        return result.rowcount

    @staticmethod
    async def increment_helpful(db: AsyncSession, review_id: str) -> int:
        result = await db.execute(
            update(Review)
            .where(Review.id == review_id)
            .values(helpful=Review.helpful + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def list_for_product(db: AsyncSession, product_id: str, limit: int, offset: int):
        """Rows of (Review, User), newest review first."""
        result = await db.execute(
            select(Review, User)
            .outerjoin(User, Review.user_id == User.id)
            .where(Review.product_id == product_id)
            .order_by(desc(Review.created_at), desc(Review.id))
            .limit(limit)
            .offset(offset)
        )
        return result.all()

    @staticmethod
    async def count_for_product(db: AsyncSession, product_id: str) -> int:
        result = await db.execute(
            select(func.count(Review.id)).where(Review.product_id == product_id)
        )
        return result.scalar_one()

    @staticmethod
    async def rating_aggregate(db: AsyncSession, product_id: str):
        """(average rating or None, review count) over every review of the product."""
        result = await db.execute(
            select(func.avg(Review.rating).label("average"), func.count(Review.id).label("count"))
            .where(Review.product_id == product_id)
        )
        return result.one()
