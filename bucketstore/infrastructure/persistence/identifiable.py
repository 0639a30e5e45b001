"""Couchbase persistence for records with unique ids.

Several logical collections can share one bucket.  Each document is stored
under ``<collection><id>`` and tagged with ``_c = <collection>``; every
statement this class issues filters on that tag, and every read strips it
again before the record reaches the caller.

In basic scenarios child classes only add typed filter helpers on top of
get_page_by_filter / get_list_by_filter; everything else works as is.

Example:

    class DummyPersistence(IdentifiableCouchbasePersistence[Dummy, str]):
        def __init__(self) -> None:
            super().__init__(Dummy, "test", "dummies")

        async def get_page_by_key(self, trace_id, key, paging=None):
            return await self.get_page_by_filter(trace_id, f"key='{key}'", paging)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Generic, TypeVar

from couchbase.exceptions import DocumentNotFoundException
from couchbase.options import ReplaceOptions

from bucketstore.domain.repositories.base import IdentifiableRepository
from bucketstore.infrastructure.persistence.couchbase import CouchbasePersistence
from bucketstore.infrastructure.persistence.records import COLLECTION_FIELD, generate_id

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")


class IdentifiableCouchbasePersistence(
    CouchbasePersistence[T], IdentifiableRepository[T, K], Generic[T, K]
):
    def __init__(
        self,
        prototype: type[T],
        bucket: str,
        collection: str,
        *,
        id_field: str = "id",
        id_generator: Callable[[], Any] = generate_id,
    ) -> None:
        if not bucket:
            raise ValueError("Bucket name could not be empty")
        if not collection:
            raise ValueError("Collection name could not be empty")
        super().__init__(
            prototype, bucket, collection, id_field=id_field, id_generator=id_generator
        )

    def _compose_filter(self, filter_expr: str | None) -> str:
        collection_filter = f"{COLLECTION_FIELD}='{self.collection_name}'"
        if filter_expr:
            return f"{collection_filter} AND ({filter_expr})"
        return collection_filter

    def _prepare(self, item: T) -> tuple[Any, str, dict[str, Any]]:
        """Copy item, give it an id if it has none, and build its document."""
        new_item = self.mapper.clone(item)
        id = self.mapper.get_id(new_item)
        if id is None or id == "":
            id = self.id_generator()
            new_item = self.mapper.with_id(new_item, id)
        return id, self.generate_bucket_id(id), self._to_document(new_item)

    # --- reads ---

    async def get_one_by_id(self, trace_id: str | None, id: K | None) -> T | None:
        self._require_open(trace_id)
        key = self.generate_bucket_id(id)
        if not key:
            return None
        try:
            result = await self._collection.get(key)
        except DocumentNotFoundException:
            return None
        logger.debug("[%s] Retrieved from %s by id = %s", trace_id, self.bucket_name, key)
        return self._from_document(result.content_as[dict])

    async def get_list_by_ids(self, trace_id: str | None, ids: Sequence[K] | None) -> list[T]:
        """Fetch all ids concurrently; failed or missing entries are left out."""
        self._require_open(trace_id)
        if not ids:
            return []
        keys = [key for key in self.generate_bucket_ids(ids) if key]
        results = await asyncio.gather(
            *(self._collection.get(key) for key in keys), return_exceptions=True
        )
        items = [
            self._from_document(result.content_as[dict])
            for result in results
            if not isinstance(result, BaseException)
        ]
        logger.debug("[%s] Retrieved %d from %s", trace_id, len(items), self.bucket_name)
        return items

    # --- writes ---

    async def create(self, trace_id: str | None, item: T | None) -> T | None:
        """Insert a new record.  Raises DocumentExistsException if the id is taken."""
        self._require_open(trace_id)
        if item is None:
            return None
        id, key, document = self._prepare(item)
        await self._collection.insert(key, document)
        logger.debug("[%s] Created in %s with id = %s", trace_id, self.bucket_name, id)
        return self._from_document(document)

    async def set(self, trace_id: str | None, item: T | None) -> T | None:
        """Insert the record, or replace the stored one with the same id."""
        self._require_open(trace_id)
        if item is None:
            return None
        id, key, document = self._prepare(item)
        await self._collection.upsert(key, document)
        logger.debug("[%s] Set in %s with id = %s", trace_id, self.bucket_name, id)
        return self._from_document(document)

    async def update(self, trace_id: str | None, item: T | None) -> T | None:
        """Replace an existing record.  Raises DocumentNotFoundException if absent."""
        self._require_open(trace_id)
        if item is None:
            return None
        id, key, document = self._prepare(item)
        await self._collection.replace(key, document)
        logger.debug("[%s] Updated in %s with id = %s", trace_id, self.bucket_name, id)
        return self._from_document(document)

    async def update_partially(
        self, trace_id: str | None, id: K | None, data: Mapping[str, Any] | None
    ) -> T | None:
        """Overwrite the fields named in data and leave the rest alone.

        The write is conditional on the CAS value read, so a concurrent
        change makes it fail with CasMismatchException instead of being
        silently overwritten.
        """
        self._require_open(trace_id)
        if id is None or data is None:
            return None
        key = self.generate_bucket_id(id)
        if not key:
            return None
        try:
            current = await self._collection.get(key)
        except DocumentNotFoundException:
            return None

        item = self.mapper.merge(self._from_document(current.content_as[dict]), data)
        document = self._to_document(item)
        await self._collection.replace(key, document, ReplaceOptions(cas=current.cas))
        logger.debug("[%s] Updated partially in %s with id = %s", trace_id, self.bucket_name, id)
        return self._from_document(document)

    # --- deletes ---

    async def delete_by_id(self, trace_id: str | None, id: K | None) -> T | None:
        self._require_open(trace_id)
        key = self.generate_bucket_id(id)
        if not key:
            return None
        try:
            current = await self._collection.get(key)
            await self._collection.remove(key)
        except DocumentNotFoundException:
            return None
        logger.debug("[%s] Deleted from %s with id = %s", trace_id, self.bucket_name, id)
        return self._from_document(current.content_as[dict])

    async def delete_by_ids(self, trace_id: str | None, ids: Sequence[K]) -> None:
        """Remove all ids concurrently.

        Missing and empty ids are ignored.  Every removal runs to completion; if any
        failed, the error of the last failing id is raised afterwards.
        """
        self._require_open(trace_id)
        keys = [key for key in self.generate_bucket_ids(ids) or [] if key]
        results = await asyncio.gather(*(self._remove(key) for key in keys), return_exceptions=True)

        count = sum(1 for result in results if result is True)
        logger.debug("[%s] Deleted %d items from %s", trace_id, count, self.bucket_name)

        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            raise errors[-1]

    async def _remove(self, key: str) -> bool:
        try:
            await self._collection.remove(key)
        except DocumentNotFoundException:
            return False
        return True
