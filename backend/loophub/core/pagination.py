"""Pagination: page/limit normalization and the listing envelope."""

import math
from dataclasses import dataclass


MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    limit: int = 20

    def __post_init__(self):
        object.__setattr__(self, "page", max(1, self.page))
        object.__setattr__(self, "limit", min(MAX_PAGE_SIZE, max(1, self.limit)))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def build_pagination(page: int, limit: int, total: int) -> dict:
    params = PageParams(page, limit)
    return {
        "page": params.page,
        "limit": params.limit,
        "total": total,
        "totalPages": math.ceil(total / params.limit) if total else 0,
        "hasMore": params.offset + params.limit < total,
    }
