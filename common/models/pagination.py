"""Pagination envelope shared by listing endpoints."""

import math
from typing import Generic, List, TypeVar

from pydantic import BaseModel, computed_field

ItemType = TypeVar("ItemType")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class Page(BaseModel, Generic[ItemType]):
    """One page of results plus the counts needed to navigate the rest."""

    data: List[ItemType]
    total: int
    page: int
    limit: int

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
