from datetime import datetime
from decimal import Decimal

from shared.schemas import CamelModel


class SavedProductItem(CamelModel):
    id: str
    name: str
    description: str
    price: Decimal
    unit: str
    brand: str | None = None
    in_stock: bool
    rating: Decimal
    review_count: int
    seller_id: str
    image: str | None = None
    saved_at: datetime


class SavedProductPage(CamelModel):
    items: list[SavedProductItem]
    total_count: int
    total_pages: int
    current_page: int


class SavedStatus(CamelModel):
    product_id: str
    saved: bool
