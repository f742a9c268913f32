from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import and_, delete, desc, func, or_, select, update
from .models import Product, ProductImage, SavedProduct

class CatalogRepository:

    @staticmethod
    async def find_listed_pairs(db: AsyncSession, pairs: set[tuple[str, str]]):
        """Returns the (product, seller) pairs that exist in the catalog.

        All pairs are checked in one round trip with an OR of
        `(id = p AND seller_id = s)` predicates.
        """
        if not pairs:
            return []
        conditions = [
            and_(Product.id == product_id, Product.seller_id == seller_id)
            for product_id, seller_id in sorted(pairs)
        ]
        result = await db.execute(
            select(Product.id, Product.name, Product.sku, Product.seller_id)
            .where(or_(*conditions))
        )
        return result.all()

    @staticmethod
    async def get_product(db: AsyncSession, product_id: str):
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def update_rating(db: AsyncSession, product_id: str, rating, review_count: int) -> int:
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(rating=rating, review_count=review_count)
        )
        await db.commit()
        return result.rowcount


class SavedProductRepository:

    @staticmethod
    async def get(db: AsyncSession, user_id: str, product_id: str):
        result = await db.execute(
            select(SavedProduct)
            .where(SavedProduct.user_id == user_id)
            .where(SavedProduct.product_id == product_id)
        )
        return result.scalars().first()

    @staticmethod
    async def create(db: AsyncSession, saved: SavedProduct):
        db.add(saved)
        await db.commit()
        await db.refresh(saved)
        return saved

    @staticmethod
    async def remove(db: AsyncSession, user_id: str, product_id: str) -> int:
        result = await db.execute(
            delete(SavedProduct).where(
                SavedProduct.user_id == user_id,
                SavedProduct.product_id == product_id,
            )
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def list_product_ids(db: AsyncSession, user_id: str):
        result = await db.execute(
            select(SavedProduct.product_id)
            .where(SavedProduct.user_id == user_id)
            .order_by(desc(SavedProduct.created_at))
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_with_products(db: AsyncSession, user_id: str, limit: int, offset: int):
        result = await db.execute(
            select(Product, ProductImage.url, SavedProduct.created_at)
            .select_from(SavedProduct)
            .join(Product, SavedProduct.product_id == Product.id)
            .outerjoin(
                ProductImage,
                and_(ProductImage.product_id == Product.id, ProductImage.is_primary.is_(True)),
            )
            .where(SavedProduct.user_id == user_id)
            .order_by(desc(SavedProduct.created_at))
            .limit(limit)
            .offset(offset)
        )
        return result.all()

    @staticmethod
    async def count(db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            select(func.count(SavedProduct.id)).where(SavedProduct.user_id == user_id)
        )
        return result.scalar_one()
