"""Generic repository interfaces.

Repository[T] is the filter/query contract every persistence offers;
IdentifiableRepository[T, K] adds operations keyed by a record's identity.
Concrete implementations live in bucketstore/infrastructure/persistence/.

Design notes:
  - All methods are async to accommodate the asyncio Couchbase driver.
  - T is the caller's record type (a pydantic model or a plain dict).
  - Filter, sort and select arguments are raw N1QL fragments placed after
    WHERE, ORDER BY and SELECT respectively.
  - Lookups of a missing key return None rather than raising.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from bucketstore.domain.models.paging import DataPage, PagingParams

T = TypeVar("T")
K = TypeVar("K")


class Repository(ABC, Generic[T]):
    """Query and insert interface over one bucket."""

    @abstractmethod
    async def get_page_by_filter(
        self,
        trace_id: str | None,
        filter_expr: str | None = None,
        paging: PagingParams | None = None,
        sort: str | None = None,
        select: str | None = None,
    ) -> DataPage[T]:
        """Return one page of records matching the filter."""

    @abstractmethod
    async def get_list_by_filter(
        self,
        trace_id: str | None,
        filter_expr: str | None = None,
        sort: str | None = None,
        select: str | None = None,
    ) -> list[T]:
        """Return every record matching the filter."""

    @abstractmethod
    async def get_one_random(self, trace_id: str | None, filter_expr: str | None = None) -> T | None:
        """Return a uniformly chosen matching record, or None if nothing matches."""

    @abstractmethod
    async def delete_by_filter(self, trace_id: str | None, filter_expr: str | None = None) -> None:
        """Remove every record matching the filter."""

    @abstractmethod
    async def create(self, trace_id: str | None, item: T | None) -> T | None:
        """Insert a new record under a freshly generated key."""


class IdentifiableRepository(Repository[T], Generic[T, K]):
    """Repository for records that carry a unique id."""

    @abstractmethod
    async def get_one_by_id(self, trace_id: str | None, id: K | None) -> T | None:
        """Return the record with the given id, or None."""

    @abstractmethod
    async def get_list_by_ids(self, trace_id: str | None, ids: Sequence[K] | None) -> list[T]:
        """Return the records that exist among ids; missing ones are skipped."""

    @abstractmethod
    async def set(self, trace_id: str | None, item: T | None) -> T | None:
        """Insert the record or replace an existing one with the same id."""

    @abstractmethod
    async def update(self, trace_id: str | None, item: T | None) -> T | None:
        """Replace an existing record.  Raises if it does not exist."""

    @abstractmethod
    async def update_partially(
        self, trace_id: str | None, id: K | None, data: Mapping[str, Any] | None
    ) -> T | None:
        """Overwrite only the named fields of an existing record."""

    @abstractmethod
    async def delete_by_id(self, trace_id: str | None, id: K | None) -> T | None:
        """Remove the record and return it, or None if it did not exist."""

    @abstractmethod
    async def delete_by_ids(self, trace_id: str | None, ids: Sequence[K]) -> None:
        """Remove every listed record; missing ids are ignored."""
