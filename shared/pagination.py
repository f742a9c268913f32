import math

from fastapi import Query

from shared.config.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


class PageParams:
    """Query-string pagination shared by every list endpoint."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    ):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def total_pages(total_count: int, limit: int) -> int:
    return math.ceil(total_count / limit) if limit else 0
