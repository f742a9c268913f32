import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.user_service.repository import UserRepository
from shared.exceptions import Conflict, NotFound, UnknownAccount
from shared.pagination import PageParams, total_pages
from .models import SavedProduct
from .repository import CatalogRepository, SavedProductRepository
from .schemas import SavedProductItem, SavedProductPage

logger = structlog.get_logger(__name__)


class SavedProductService:

    @staticmethod
    async def save(db: AsyncSession, user_id: str, product_id: str) -> SavedProduct:
        if not await UserRepository.exists(db, user_id):
            raise UnknownAccount()

        product = await CatalogRepository.get_product(db, product_id)
        if not product:
            raise NotFound("Product not found")

        if await SavedProductRepository.get(db, user_id, product_id):
            raise Conflict("Product already saved")

        try:
            return await SavedProductRepository.create(
                db, SavedProduct(user_id=user_id, product_id=product_id)
            )
        except IntegrityError:
            await db.rollback()
            # A concurrent save won the race; any other violation is not a duplicate.
            if await SavedProductRepository.get(db, user_id, product_id):
                raise Conflict("Product already saved")
            raise

    @staticmethod
    async def unsave(db: AsyncSession, user_id: str, product_id: str) -> bool:
        removed = await SavedProductRepository.remove(db, user_id, product_id)
        logger.info("product_unsaved", user_id=user_id, product_id=product_id, removed=removed)
        return removed > 0

    @staticmethod
    async def is_saved(db: AsyncSession, user_id: str, product_id: str) -> bool:
        return await SavedProductRepository.get(db, user_id, product_id) is not None

    @staticmethod
    async def saved_ids(db: AsyncSession, user_id: str) -> list[str]:
        return await SavedProductRepository.list_product_ids(db, user_id)

    @staticmethod
    async def list_saved(db: AsyncSession, user_id: str, page: PageParams) -> SavedProductPage:
        rows = await SavedProductRepository.list_with_products(db, user_id, page.limit, page.offset)
        count = await SavedProductRepository.count(db, user_id)

        items = [
            SavedProductItem(
                id=product.id,
                name=product.name,
                description=product.description,
                price=product.price,
                unit=product.unit,
                brand=product.brand,
                in_stock=product.in_stock,
                rating=product.rating,
                review_count=product.review_count,
                seller_id=product.seller_id,
                image=image,
                saved_at=saved_at,
            )
            for product, image, saved_at in rows
        ]
        return SavedProductPage(
            items=items,
            total_count=count,
            total_pages=total_pages(count, page.limit),
            current_page=page.page,
        )
