"""Couchbase cluster connection with bucket lifecycle management.

One CouchbaseConnection owns one cluster handle and one opened bucket.
Opening runs: resolve -> connect -> [create bucket] -> open bucket ->
[create primary index].  A failure at any step, cancellation included,
leaves the component closed.  The cluster requires a password login, so a
resolved connection without a username fails with NO_CREDENTIAL.

Configuration (see CouchbaseConfig):
  - bucket                       bucket name
  - connection(s).*              endpoints, resolved by CouchbaseConnectionResolver
  - credential(s).*              username / password
  - options.auto_create          create the bucket when missing (default: false)
  - options.auto_index           create the primary index (default: true)
  - options.flush_enabled        allow bucket flush on create (default: true)
  - options.bucket_type          couchbase | memcached | ephemeral (default: couchbase)
  - options.ram_quota            RAM quota in MB for a created bucket (default: 100)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from acouchbase.cluster import Cluster
from couchbase.auth import PasswordAuthenticator
from couchbase.exceptions import BucketAlreadyExistsException, CouchbaseException
from couchbase.management.buckets import BucketType, CreateBucketSettings
from couchbase.management.options import CreatePrimaryQueryIndexOptions
from couchbase.options import ClusterOptions

from bucketstore.domain.errors import (
    ApplicationError,
    ConfigError,
    ConnectionFailedError,
    InvalidStateError,
)
from bucketstore.domain.models.connection import ConnectionParams
from bucketstore.infrastructure.config import CouchbaseConfig, CouchbaseOptions, ensure_config
from bucketstore.infrastructure.connect.resolver import (
    CouchbaseConnectionResolver,
    CredentialStore,
    Discovery,
)

if TYPE_CHECKING:
    from acouchbase.bucket import AsyncBucket
    from acouchbase.collection import AsyncCollection

logger = logging.getLogger(__name__)

BUCKET_TYPES = {
    "couchbase": BucketType.COUCHBASE,
    "memcached": BucketType.MEMCACHED,
    "ephemeral": BucketType.EPHEMERAL,
}

# Seconds to wait after creating a bucket; opening it earlier fails.
BUCKET_SETTLE_DELAY = 2.0


class CouchbaseConnection:
    def __init__(self, bucket_name: str | None = None) -> None:
        self.bucket_name = bucket_name
        self.options = CouchbaseOptions()
        self.resolver = CouchbaseConnectionResolver()
        self.bucket_settle_delay = BUCKET_SETTLE_DELAY
        self._cluster: Cluster | None = None
        self._bucket: AsyncBucket | None = None

    def configure(self, config: CouchbaseConfig | Mapping[str, Any]) -> None:
        config = ensure_config(config)
        self.resolver.configure(config)
        self.bucket_name = config.bucket or self.bucket_name
        self.options = config.options

    def set_references(
        self,
        discovery: Discovery | None = None,
        credential_store: CredentialStore | None = None,
    ) -> None:
        self.resolver.set_references(discovery=discovery, credential_store=credential_store)

    @property
    def cluster(self) -> Cluster | None:
        return self._cluster

    @property
    def bucket(self) -> AsyncBucket | None:
        return self._bucket

    @property
    def collection(self) -> AsyncCollection | None:
        return self._bucket.default_collection() if self._bucket is not None else None

    def is_open(self) -> bool:
        return self._cluster is not None

    async def open(self, trace_id: str | None = None) -> None:
        if self.is_open():
            return

        try:
            params = await self.resolver.resolve(trace_id)
        except ApplicationError:
            logger.error("[%s] Failed to resolve Couchbase connection", trace_id)
            raise

        if not params.username:
            raise ConfigError(
                "Couchbase credentials are not set", code="NO_CREDENTIAL", trace_id=trace_id
            )

        logger.debug("[%s] Connecting to couchbase", trace_id)
        cluster = await self._connect(params)

        try:
            new_bucket = False
            if self.options.auto_create:
                new_bucket = await self._create_bucket(cluster, trace_id)
                await asyncio.sleep(self.bucket_settle_delay)

            bucket = await self._open_bucket(cluster, trace_id)

            if new_bucket or self.options.auto_index:
                await cluster.query_indexes().create_primary_index(
                    self.bucket_name,
                    CreatePrimaryQueryIndexOptions(ignore_if_exists=True),
                )
        except BaseException:
            await cluster.close()
            raise

        self._cluster = cluster
        self._bucket = bucket
        logger.debug("[%s] Connected to couchbase bucket %s", trace_id, self.bucket_name)

    async def _connect(self, params: ConnectionParams) -> Cluster:
        options = ClusterOptions(PasswordAuthenticator(params.username, params.password))
        return await Cluster.connect(params.uri, options)

    async def _create_bucket(self, cluster: Cluster, trace_id: str | None) -> bool:
        settings = CreateBucketSettings(
            name=self.bucket_name,
            bucket_type=BUCKET_TYPES[self.options.bucket_type],
            ram_quota_mb=self.options.ram_quota,
            flush_enabled=self.options.flush_enabled,
            num_replicas=1,
        )
        try:
            await cluster.buckets().create_bucket(settings)
        except BucketAlreadyExistsException:
            return False
        logger.debug("[%s] Created couchbase bucket %s", trace_id, self.bucket_name)
        return True

    async def _open_bucket(self, cluster: Cluster, trace_id: str | None) -> AsyncBucket:
        try:
            bucket = cluster.bucket(self.bucket_name)
            await bucket.on_connect()
        except CouchbaseException as exc:
            logger.error("[%s] Failed to open bucket %s", trace_id, self.bucket_name)
            raise ConnectionFailedError(
                "Connection to couchbase failed",
                code="CONNECT_FAILED",
                trace_id=trace_id,
                cause=exc,
            ) from exc
        return bucket

    async def close(self, trace_id: str | None = None) -> None:
        cluster = self._cluster
        self._cluster = None
        self._bucket = None
        if cluster is not None:
            await cluster.close()
        logger.debug("[%s] Disconnected from couchbase bucket %s", trace_id, self.bucket_name)

    async def clear(self, trace_id: str | None = None) -> None:
        """Flush every document in the bucket.  Requires flush to be enabled."""
        if not self.bucket_name:
            raise ApplicationError("Bucket name is not defined", code="NO_BUCKET", trace_id=trace_id)
        if self._cluster is None:
            raise InvalidStateError("Couchbase connection is not opened", code="NOT_OPENED", trace_id=trace_id)

        try:
            await self._cluster.buckets().flush_bucket(self.bucket_name)
        except CouchbaseException as exc:
            raise ConnectionFailedError(
                "Couchbase bucket flush failed",
                code="FLUSH_FAILED",
                trace_id=trace_id,
                cause=exc,
            ) from exc
