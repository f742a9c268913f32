from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.pagination import PageParams
from shared.security import CallerIdentity, get_current_user, get_optional_user
from .schemas import ReviewCreate, ReviewEligibility, ReviewPage, ReviewUpdate, ReviewView
from .service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("/products/{product_id}", response_model=ReviewPage)
async def product_reviews(
    product_id: str,
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await ReviewService.product_reviews(db, product_id, page)


@router.get("/products/{product_id}/eligibility", response_model=ReviewEligibility)
async def review_eligibility(
    product_id: str,
    caller: CallerIdentity | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReviewService.eligibility(db, caller, product_id)


@router.get("/products/{product_id}/mine", response_model=ReviewView)
async def my_review(
    product_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReviewService.user_review(db, caller, product_id)


@router.post("", response_model=ReviewView, status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReviewService.create(db, caller, payload)


@router.patch("/{review_id}", response_model=ReviewView)
async def update_review(
    review_id: str,
    payload: ReviewUpdate,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReviewService.update(db, caller, review_id, payload)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await ReviewService.delete(db, caller, review_id)


@router.post("/{review_id}/helpful", response_model=ReviewView)
async def mark_review_helpful(
    review_id: str,
    _caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReviewService.mark_helpful(db, review_id)
