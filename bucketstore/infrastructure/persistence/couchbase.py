"""Generic Couchbase persistence.

CouchbasePersistence[T] stores records of one shape in a bucket and builds
N1QL statements for paging, listing, random sampling and bulk deletes.
Records are converted through a RecordMapper built from the prototype
passed at construction.

The persistence works over a CouchbaseConnection that is either owned
(created from the persistence's own configuration and opened/closed with
it) or shared (injected through set_references and managed elsewhere).

Example:

    class NotePersistence(CouchbasePersistence[Note]):
        def __init__(self) -> None:
            super().__init__(Note, "notes")

        async def get_page_by_author(self, trace_id, author, paging=None):
            return await self.get_page_by_filter(trace_id, f"author='{author}'", paging)

    persistence = NotePersistence()
    persistence.configure({"connection.host": "localhost", "connection.port": 8091})
    async with persistence:
        await persistence.create(None, Note(author="ann", text="hi"))
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Self, TypeVar

from couchbase.n1ql import QueryScanConsistency
from couchbase.options import QueryOptions

from bucketstore.domain.errors import ConnectionFailedError, InvalidStateError
from bucketstore.domain.models.paging import DataPage, PagingParams
from bucketstore.domain.repositories.base import Repository
from bucketstore.infrastructure.config import CouchbaseConfig, CouchbaseOptions, ensure_config
from bucketstore.infrastructure.connect.resolver import CredentialStore, Discovery
from bucketstore.infrastructure.connection import CouchbaseConnection
from bucketstore.infrastructure.persistence.records import (
    COLLECTION_FIELD,
    RecordMapper,
    generate_id,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Seeded once; sampling only, not for anything security related.
_random = random.Random()

PAGE_CONSISTENCY = {
    "request_plus": QueryScanConsistency.REQUEST_PLUS,
    "not_bounded": QueryScanConsistency.NOT_BOUNDED,
}


@dataclass(frozen=True)
class OwnedConnection:
    """A connection created by the persistence; opened and closed with it."""

    connection: CouchbaseConnection


@dataclass(frozen=True)
class SharedConnection:
    """A connection injected from outside; its owner manages the lifecycle."""

    connection: CouchbaseConnection


ConnectionBinding = OwnedConnection | SharedConnection


class CouchbasePersistence(Repository[T], Generic[T]):
    def __init__(
        self,
        prototype: type[T],
        bucket: str | None = None,
        collection: str | None = None,
        *,
        id_field: str = "id",
        id_generator: Callable[[], Any] = generate_id,
    ) -> None:
        self.mapper: RecordMapper[T] = RecordMapper(prototype, id_field)
        self.bucket_name = bucket
        self.collection_name = collection
        self.max_page_size = 100
        self.options = CouchbaseOptions()
        self.id_generator = id_generator
        self._config: CouchbaseConfig | None = None
        self._discovery: Discovery | None = None
        self._credential_store: CredentialStore | None = None
        self._binding: ConnectionBinding | None = None
        self._opened = False
        self._cluster: Any = None
        self._collection: Any = None

    # --- lifecycle ---

    def configure(self, config: CouchbaseConfig | Mapping[str, Any]) -> None:
        config = ensure_config(config)
        self._config = config
        self.bucket_name = config.bucket or self.bucket_name
        self.collection_name = config.collection or self.collection_name
        self.options = config.options
        if "max_page_size" in config.options.model_fields_set:
            self.max_page_size = config.options.max_page_size

    def set_references(
        self,
        connection: CouchbaseConnection | None = None,
        discovery: Discovery | None = None,
        credential_store: CredentialStore | None = None,
    ) -> None:
        self._discovery = discovery
        self._credential_store = credential_store
        if connection is not None:
            self._binding = SharedConnection(connection)
        else:
            self._binding = OwnedConnection(self._create_connection())

    def unset_references(self) -> None:
        self._binding = None

    def _create_connection(self) -> CouchbaseConnection:
        connection = CouchbaseConnection(self.bucket_name)
        if self._config is not None:
            connection.configure(self._config)
        connection.set_references(discovery=self._discovery, credential_store=self._credential_store)
        return connection

    @property
    def connection(self) -> CouchbaseConnection | None:
        return self._binding.connection if self._binding is not None else None

    def is_open(self) -> bool:
        return self._opened

    async def open(self, trace_id: str | None = None) -> None:
        if self._opened:
            return

        if self._binding is None:
            self._binding = OwnedConnection(self._create_connection())

        match self._binding:
            case OwnedConnection(connection):
                await connection.open(trace_id)
            case SharedConnection(connection):
                pass

        if not connection.is_open():
            raise ConnectionFailedError(
                "Couchbase connection is not opened", code="CONNECT_FAILED", trace_id=trace_id
            )

        self._cluster = connection.cluster
        self._collection = connection.collection
        self.bucket_name = connection.bucket_name
        self._opened = True

    async def close(self, trace_id: str | None = None) -> None:
        if not self._opened:
            return
        if self._binding is None:
            raise InvalidStateError("Couchbase connection is missing", code="NO_CONNECTION", trace_id=trace_id)

        self._opened = False
        self._cluster = None
        self._collection = None
        if isinstance(self._binding, OwnedConnection):
            await self._binding.connection.close(trace_id)

    async def clear(self, trace_id: str | None = None) -> None:
        if self._binding is None:
            raise InvalidStateError("Couchbase connection is missing", code="NO_CONNECTION", trace_id=trace_id)
        await self._binding.connection.clear(trace_id)

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # --- conversion ---

    def generate_bucket_id(self, id: Any) -> str:
        """Bucket key for an id: the collection name followed by the id."""
        if id is None or id == "":
            return ""
        return f"{self.collection_name or ''}{id}"

    def generate_bucket_ids(self, ids: Sequence[Any] | None) -> list[str] | None:
        if ids is None:
            return None
        return [self.generate_bucket_id(id) for id in ids]

    def _to_document(self, item: Any) -> dict[str, Any]:
        document = self.mapper.to_document(item)
        if self.collection_name:
            document[COLLECTION_FIELD] = self.collection_name
        return document

    def _from_document(self, document: Mapping[str, Any]) -> T:
        return self.mapper.from_document(document)

    def _row_to_item(self, row: Mapping[str, Any], select: str | None) -> T:
        # SELECT * wraps each document in an object keyed by the bucket name
        if not select or select == "*":
            return self._from_document(row[self.bucket_name])
        return self._from_document(row)

    # --- statements ---

    def _compose_filter(self, filter_expr: str | None) -> str | None:
        return filter_expr or None

    def _select_statement(self, select: str | None, where: str | None, sort: str | None = None) -> str:
        statement = f"SELECT {select or '*'} FROM `{self.bucket_name}`"
        if where:
            statement += f" WHERE {where}"
        if sort:
            statement += f" ORDER BY {sort}"
        return statement

    def _require_open(self, trace_id: str | None) -> None:
        if not self._opened:
            raise InvalidStateError("Couchbase persistence is not opened", code="NOT_OPENED", trace_id=trace_id)

    async def _query(
        self, statement: str, consistency: QueryScanConsistency = QueryScanConsistency.REQUEST_PLUS
    ) -> list[dict[str, Any]]:
        result = self._cluster.query(statement, QueryOptions(scan_consistency=consistency))
        return [row async for row in result.rows()]

    async def _count(self, where: str | None) -> int:
        statement = f"SELECT COUNT(*) AS total FROM `{self.bucket_name}`"
        if where:
            statement += f" WHERE {where}"
        rows = await self._query(statement)
        return int(rows[0]["total"]) if rows else 0

    # --- operations ---

    async def get_page_by_filter(
        self,
        trace_id: str | None,
        filter_expr: str | None = None,
        paging: PagingParams | None = None,
        sort: str | None = None,
        select: str | None = None,
    ) -> DataPage[T]:
        """Return one page of records.

        take defaults to (and is capped at) max_page_size; without an
        explicit skip no OFFSET is emitted.  total is the size of the
        returned page unless options.count_total asks for a COUNT(*).
        """
        self._require_open(trace_id)
        paging = paging or PagingParams()
        skip = paging.get_skip(-1)
        take = paging.get_take(self.max_page_size)
        where = self._compose_filter(filter_expr)

        statement = self._select_statement(select, where, sort)
        if skip >= 0:
            statement += f" OFFSET {skip}"
        statement += f" LIMIT {take}"

        rows = await self._query(statement, PAGE_CONSISTENCY[self.options.page_consistency])
        items = [self._row_to_item(row, select) for row in rows]
        if items:
            logger.debug("[%s] Retrieved %d from %s", trace_id, len(items), self.bucket_name)

        total = None
        if paging.total:
            total = await self._count(where) if self.options.count_total else len(items)
        return DataPage(total=total, data=items)

    async def get_list_by_filter(
        self,
        trace_id: str | None,
        filter_expr: str | None = None,
        sort: str | None = None,
        select: str | None = None,
    ) -> list[T]:
        self._require_open(trace_id)
        statement = self._select_statement(select, self._compose_filter(filter_expr), sort)
        rows = await self._query(statement, QueryScanConsistency.REQUEST_PLUS)
        items = [self._row_to_item(row, select) for row in rows]
        if items:
            logger.debug("[%s] Retrieved %d from %s", trace_id, len(items), self.bucket_name)
        return items

    async def get_one_random(self, trace_id: str | None, filter_expr: str | None = None) -> T | None:
        self._require_open(trace_id)
        where = self._compose_filter(filter_expr)
        count = await self._count(where)
        if count == 0:
            return None

        skip = _random.randrange(count)
        statement = self._select_statement(None, where) + f" OFFSET {skip} LIMIT 1"
        rows = await self._query(statement)
        if not rows:
            return None
        logger.debug("[%s] Retrieved random item from %s", trace_id, self.bucket_name)
        return self._row_to_item(rows[0], None)

    async def delete_by_filter(self, trace_id: str | None, filter_expr: str | None = None) -> None:
        self._require_open(trace_id)
        statement = f"DELETE FROM `{self.bucket_name}`"
        where = self._compose_filter(filter_expr)
        if where:
            statement += f" WHERE {where}"

        result = self._cluster.query(statement, QueryOptions(metrics=True))
        async for _ in result.rows():
            pass
        metrics = result.metadata().metrics()
        count = metrics.mutation_count() if metrics is not None else 0
        logger.debug("[%s] Deleted %d items from %s", trace_id, count, self.bucket_name)

    async def create(self, trace_id: str | None, item: T | None) -> T | None:
        """Insert a copy of item under a newly generated key.

        The record itself is stored as given; the key is not written back
        into it.  Raises DocumentExistsException if the key is taken.
        """
        self._require_open(trace_id)
        if item is None:
            return None

        document = self._to_document(self.mapper.clone(item))
        id = self.id_generator()
        await self._collection.insert(self.generate_bucket_id(id), document)
        logger.debug("[%s] Created in %s with id = %s", trace_id, self.bucket_name, id)
        return self._from_document(document)
