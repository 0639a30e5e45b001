"""Shared test doubles: Dummy records, Dummy persistences and SDK fakes.

FakeCollection keeps documents in memory with CAS values and raises the same
couchbase exceptions the driver does.  FakeCluster records every statement
and answers queries from a queue of canned row lists.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from itertools import count
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from couchbase.exceptions import (
    CasMismatchException,
    DocumentExistsException,
    DocumentNotFoundException,
)
from pydantic import BaseModel

from bucketstore.domain.models.paging import DataPage, PagingParams
from bucketstore.infrastructure.connection import CouchbaseConnection
from bucketstore.infrastructure.persistence import IdentifiableCouchbasePersistence


class Dummy(BaseModel):
    id: str | None = None
    key: str
    content: str


class DummyPersistence(IdentifiableCouchbasePersistence[Dummy, str]):
    def __init__(self) -> None:
        super().__init__(Dummy, "test", "dummies")

    async def get_page_by_params(
        self,
        trace_id: str | None,
        params: Mapping[str, Any] | None = None,
        paging: PagingParams | None = None,
    ) -> DataPage[Dummy]:
        key = (params or {}).get("key")
        filter_expr = f"key='{key}'" if key else None
        return await self.get_page_by_filter(trace_id, filter_expr, paging, "key DESC")


class DummyMapPersistence(IdentifiableCouchbasePersistence[dict, str]):
    def __init__(self) -> None:
        super().__init__(dict, "test", "dummies_map")


# --- SDK fakes ---


class FakeCollection:
    def __init__(self) -> None:
        self.documents: dict[str, tuple[dict[str, Any], int]] = {}
        self.failures: dict[str, Exception] = {}
        self._cas = count(1)

    def stored(self, key: str) -> dict[str, Any]:
        return self.documents[key][0]

    def _check(self, key: str) -> None:
        if key in self.failures:
            raise self.failures[key]

    def _put(self, key: str, value: dict[str, Any]) -> SimpleNamespace:
        cas = next(self._cas)
        self.documents[key] = (copy.deepcopy(value), cas)
        return SimpleNamespace(cas=cas)

    async def get(self, key: str, *options: Any) -> SimpleNamespace:
        self._check(key)
        if key not in self.documents:
            raise DocumentNotFoundException(message=f"{key} not found")
        value, cas = self.documents[key]
        return SimpleNamespace(content_as={dict: copy.deepcopy(value)}, cas=cas)

    async def insert(self, key: str, value: dict[str, Any], *options: Any) -> SimpleNamespace:
        self._check(key)
        if key in self.documents:
            raise DocumentExistsException(message=f"{key} exists")
        return self._put(key, value)

    async def upsert(self, key: str, value: dict[str, Any], *options: Any) -> SimpleNamespace:
        self._check(key)
        return self._put(key, value)

    async def replace(self, key: str, value: dict[str, Any], *options: Any) -> SimpleNamespace:
        self._check(key)
        if key not in self.documents:
            raise DocumentNotFoundException(message=f"{key} not found")
        expected = next((o.get("cas") for o in options if o.get("cas")), None)
        if expected is not None and expected != self.documents[key][1]:
            raise CasMismatchException(message=f"{key} changed")
        return self._put(key, value)

    async def remove(self, key: str, *options: Any) -> SimpleNamespace:
        self._check(key)
        if key not in self.documents:
            raise DocumentNotFoundException(message=f"{key} not found")
        del self.documents[key]
        return SimpleNamespace(cas=next(self._cas))


class FakeQueryResult:
    def __init__(
        self, rows: list[dict[str, Any]], mutation_count: int = 0, metadata: Any = None
    ) -> None:
        self._rows = rows
        self._mutation_count = mutation_count
        self._metadata = metadata

    async def _iterate(self):
        for row in self._rows:
            yield row

    def rows(self):
        return self._iterate()

    def metadata(self) -> Any:
        if self._metadata is not None:
            return self._metadata
        metrics = SimpleNamespace(mutation_count=lambda: self._mutation_count)
        return SimpleNamespace(metrics=lambda: metrics)


class FakeCluster:
    def __init__(self) -> None:
        self.statements: list[str] = []
        self.query_options: list[tuple[Any, ...]] = []
        self._responses: list[FakeQueryResult] = []

    def respond(
        self, rows: list[dict[str, Any]], mutation_count: int = 0, metadata: Any = None
    ) -> None:
        """Queue the result of the next query."""
        self._responses.append(FakeQueryResult(rows, mutation_count, metadata))

    def query(self, statement: str, *options: Any) -> FakeQueryResult:
        self.statements.append(statement)
        self.query_options.append(options)
        if self._responses:
            return self._responses.pop(0)
        return FakeQueryResult([])


def shared_connection(
    cluster: Any, collection: Any, bucket: str = "test", opened: bool = True
) -> MagicMock:
    """A CouchbaseConnection stand-in that is already open."""
    connection = MagicMock(spec=CouchbaseConnection)
    connection.is_open.return_value = opened
    connection.cluster = cluster
    connection.collection = collection
    connection.bucket_name = bucket
    connection.open = AsyncMock()
    connection.close = AsyncMock()
    connection.clear = AsyncMock()
    return connection
