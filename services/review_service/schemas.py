from datetime import datetime

from pydantic import Field

from shared.schemas import CamelModel


class ReviewCreate(CamelModel):
    product_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    title: str | None = Field(default=None, max_length=255)
    content: str = Field(min_length=5)


class ReviewUpdate(CamelModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    title: str | None = Field(default=None, max_length=255)
    content: str | None = Field(default=None, min_length=5)


class ReviewerRef(CamelModel):
    id: str
    name: str


class ReviewView(CamelModel):
    id: str
    product_id: str
    user_id: str
    rating: int
    title: str | None = None
    content: str
    helpful: int
    verified: bool
    created_at: datetime
    updated_at: datetime
    user: ReviewerRef | None = None


class ReviewPage(CamelModel):
    reviews: list[ReviewView]
    total_count: int
    total_pages: int
    current_page: int


class ReviewEligibility(CamelModel):
    can_review: bool
    reason: str | None = None
    has_review: bool
