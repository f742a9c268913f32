from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.pagination import PageParams
from shared.security import CallerIdentity, get_current_user
from .schemas import SavedProductPage, SavedStatus
from .service import SavedProductService

router = APIRouter(prefix="/saved", tags=["Saved Products"])


@router.get("", response_model=SavedProductPage)
async def list_saved_products(
    page: PageParams = Depends(),
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SavedProductService.list_saved(db, caller.id, page)


@router.get("/ids", response_model=list[str])
async def saved_product_ids(
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SavedProductService.saved_ids(db, caller.id)


@router.get("/{product_id}", response_model=SavedStatus)
async def is_product_saved(
    product_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    saved = await SavedProductService.is_saved(db, caller.id, product_id)
    return SavedStatus(product_id=product_id, saved=saved)


@router.post("/{product_id}", response_model=SavedStatus, status_code=status.HTTP_201_CREATED)
async def save_product(
    product_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await SavedProductService.save(db, caller.id, product_id)
    return SavedStatus(product_id=product_id, saved=True)


@router.delete("/{product_id}", response_model=SavedStatus)
async def unsave_product(
    product_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await SavedProductService.unsave(db, caller.id, product_id)
    return SavedStatus(product_id=product_id, saved=False)
