"""
Review writes and the product rating they feed.

Every create, update or delete is followed by a full recompute of the
product's rating and review_count from the reviews table. The recompute is
a separate statement from the review write: if it fails the review stands,
the failure is logged and counted, and the next write repairs the aggregate.
"""
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.catalog_service.repository import CatalogRepository
from shared.exceptions import Conflict, InvalidInput, NotFound
from shared.observability import ecomm_review_aggregate_failures_total
from shared.pagination import PageParams, total_pages
from shared.security import CallerIdentity
from .models import Review
from .repository import ReviewRepository
from .schemas import ReviewCreate, ReviewEligibility, ReviewPage, ReviewUpdate, ReviewView, ReviewerRef

logger = structlog.get_logger(__name__)

MUST_PURCHASE = "Must purchase product to review"
ALREADY_REVIEWED = "Already reviewed this product"
MUST_LOG_IN = "Must be logged in"


def average_rating(average, count: int) -> Decimal:
    """Mean rating rounded half-up to two places; 0 when there are no reviews."""
    if not count or average is None:
        return Decimal("0.00")
    return Decimal(str(average)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


async def recompute_product_rating(db: AsyncSession, product_id: str) -> bool:
    try:
        aggregate = await ReviewRepository.rating_aggregate(db, product_id)
        rating = average_rating(aggregate.average, aggregate.count)
        await CatalogRepository.update_rating(db, product_id, rating, aggregate.count)
    except SQLAlchemyError as e:
        await db.rollback()
        ecomm_review_aggregate_failures_total.inc()
        logger.error("product_rating_recompute_failed", product_id=product_id, error=str(e))
        return False

    logger.info("product_rating_recomputed", product_id=product_id, rating=str(rating), review_count=aggregate.count)
    return True


def _view(review: Review, user=None) -> ReviewView:
    view = ReviewView.model_validate(review)
    if user is not None:
        view.user = ReviewerRef(id=user.id, name=user.name)
    return view


class ReviewService:

    @staticmethod
    async def eligibility(db: AsyncSession, caller: CallerIdentity | None, product_id: str) -> ReviewEligibility:
        if caller is None:
            return ReviewEligibility(can_review=False, reason=MUST_LOG_IN, has_review=False)

        has_review = await ReviewRepository.get_user_review(db, caller.id, product_id) is not None
        if not await ReviewRepository.has_paid_purchase(db, caller.id, product_id):
            return ReviewEligibility(can_review=False, reason=MUST_PURCHASE, has_review=has_review)
        if has_review:
            return ReviewEligibility(can_review=False, reason=ALREADY_REVIEWED, has_review=True)
        return ReviewEligibility(can_review=True, has_review=False)

    @staticmethod
    async def create(db: AsyncSession, caller: CallerIdentity, data: ReviewCreate) -> ReviewView:
        if not await CatalogRepository.get_product(db, data.product_id):
            raise NotFound("Product not found")
        if not await ReviewRepository.has_paid_purchase(db, caller.id, data.product_id):
            raise InvalidInput(MUST_PURCHASE)
        if await ReviewRepository.get_user_review(db, caller.id, data.product_id):
            raise Conflict(ALREADY_REVIEWED)

        try:
            review = await ReviewRepository.create_review(
                db,
                Review(
                    product_id=data.product_id,
                    user_id=caller.id,
                    rating=data.rating,
                    title=data.title,
                    content=data.content,
                    verified=True,
                ),
            )
        except IntegrityError:
            await db.rollback()
            # Only the (user, product) unique constraint is a duplicate.
            if await ReviewRepository.get_user_review(db, caller.id, data.product_id):
                raise Conflict(ALREADY_REVIEWED)
            raise

        logger.info("review_created", review_id=review.id, product_id=review.product_id, rating=review.rating)
        # Built before the recompute: a failed recompute rolls back and expires the session.
        view = _view(review)
        await recompute_product_rating(db, data.product_id)
        return view

    @staticmethod
    async def update(db: AsyncSession, caller: CallerIdentity, review_id: str, data: ReviewUpdate) -> ReviewView:
        review = await ReviewRepository.get_review(db, review_id)
        if not review or review.user_id != caller.id:
            raise NotFound("Review not found")

        changes = data.model_dump(exclude_unset=True)
        if changes.get("rating") is None:
            changes.pop("rating", None)
        if changes.get("content") is None:
            changes.pop("content", None)

        product_id = review.product_id
        review = await ReviewRepository.update_review(db, review, **changes)
        logger.info("review_updated", review_id=review_id, fields=sorted(changes))
        view = _view(review)
        await recompute_product_rating(db, product_id)
        return view

    @staticmethod
    async def delete(db: AsyncSession, caller: CallerIdentity, review_id: str):
        review = await ReviewRepository.get_review(db, review_id)
        if not review or review.user_id != caller.id:
            raise NotFound("Review not found")

        product_id = review.product_id
        await ReviewRepository.delete_review(db, review_id)
        logger.info("review_deleted", review_id=review_id, product_id=product_id)
        await recompute_product_rating(db, product_id)

    @staticmethod
    async def mark_helpful(db: AsyncSession, review_id: str) -> ReviewView:
        if not await ReviewRepository.increment_helpful(db, review_id):
            raise NotFound("Review not found")
        return _view(await ReviewRepository.get_review(db, review_id))

    @staticmethod
    async def user_review(db: AsyncSession, caller: CallerIdentity, product_id: str) -> ReviewView:
        review = await ReviewRepository.get_user_review(db, caller.id, product_id)
        if not review:
            raise NotFound("Review not found")
        return _view(review)

    @staticmethod
    async def product_reviews(db: AsyncSession, product_id: str, page: PageParams) -> ReviewPage:
        rows = await ReviewRepository.list_for_product(db, product_id, page.limit, page.offset)
        count = await ReviewRepository.count_for_product(db, product_id)
        return ReviewPage(
            reviews=[_view(review, user) for review, user in rows],
            total_count=count,
            total_pages=total_pages(count, page.limit),
            current_page=page.page,
        )
