"""Paging request and page result models."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PagingParams(BaseModel):
    """Which slice of a result set to return.

    skip and take may be None (not requested).  total asks the persistence
    to fill DataPage.total.
    """

    model_config = ConfigDict(frozen=True)

    skip: int | None = None
    take: int | None = None
    total: bool = False

    def get_skip(self, min_skip: int) -> int:
        if self.skip is None or self.skip < min_skip:
            return min_skip
        return self.skip

    def get_take(self, max_take: int) -> int:
        if self.take is None:
            return max_take
        if self.take < 0:
            return 0
        return min(self.take, max_take)


class DataPage(BaseModel, Generic[T]):
    """One page of records.

    total is None unless the caller asked for it via PagingParams.total.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    total: int | None = None
    data: list[T] = Field(default_factory=list)
