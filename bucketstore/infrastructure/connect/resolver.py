"""Resolves configured endpoints and credentials into one connection string.

Several endpoints are joined into a multi-host Couchbase URI:

    couchbase://host1:8091,host2:8091/database?operation_timeout=2

An endpoint that already carries ``uri`` wins and is returned verbatim.
Resolution never touches the network except through the optional
Discovery and CredentialStore collaborators.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Protocol

from bucketstore.domain.errors import ConfigError
from bucketstore.domain.models.connection import (
    ConnectionConfig,
    ConnectionParams,
    CredentialConfig,
)
from bucketstore.infrastructure.config import CouchbaseConfig, ensure_config


SCHEME = "couchbase"


class Discovery(Protocol):
    async def resolve_all(self, trace_id: str | None, key: str) -> list[ConnectionConfig]:
        ...


class CredentialStore(Protocol):
    async def lookup(self, trace_id: str | None, key: str) -> CredentialConfig | None:
        ...


class CouchbaseConnectionResolver:
    def __init__(self) -> None:
        self._connections: list[ConnectionConfig] = []
        self._credentials: list[CredentialConfig] = []
        self._discovery: Discovery | None = None
        self._credential_store: CredentialStore | None = None

    def configure(self, config: CouchbaseConfig | Mapping[str, Any]) -> None:
        config = ensure_config(config)
        self._connections = list(config.connections)
        self._credentials = list(config.credentials)

    def set_references(
        self,
        discovery: Discovery | None = None,
        credential_store: CredentialStore | None = None,
    ) -> None:
        self._discovery = discovery
        self._credential_store = credential_store

    async def resolve(self, trace_id: str | None) -> ConnectionParams:
        """Resolve endpoints and credentials concurrently, then compose.

        Raises ConfigError when no endpoint is configured or one of them has
        neither a uri nor a host and port.
        """
        connections, credential = await asyncio.gather(
            self._resolve_connections(trace_id),
            self._lookup_credential(trace_id),
        )
        return compose_connection(connections, credential)

    async def _resolve_connections(self, trace_id: str | None) -> list[ConnectionConfig]:
        resolved: list[ConnectionConfig] = []
        for connection in self._connections:
            if not connection.discovery_key:
                resolved.append(connection)
                continue
            if self._discovery is None:
                raise ConfigError(
                    f"Discovery reference is not set to resolve {connection.discovery_key}",
                    code="CANNOT_RESOLVE",
                    trace_id=trace_id,
                )
            discovered = await self._discovery.resolve_all(trace_id, connection.discovery_key)
            if not discovered:
                raise ConfigError(
                    f"Connection {connection.discovery_key} was not found in discovery",
                    code="CANNOT_RESOLVE",
                    trace_id=trace_id,
                )
            resolved.extend(discovered)

        validate_connections(trace_id, resolved)
        return resolved

    async def _lookup_credential(self, trace_id: str | None) -> CredentialConfig | None:
        for credential in self._credentials:
            if not credential.store_key:
                return credential
            if self._credential_store is None:
                raise ConfigError(
                    f"Credential store is not set to resolve {credential.store_key}",
                    code="CANNOT_RESOLVE",
                    trace_id=trace_id,
                )
            found = await self._credential_store.lookup(trace_id, credential.store_key)
            if found is not None:
                return found
        if any(c.store_key for c in self._credentials):
            raise ConfigError("Credentials were not found in the store", code="CANNOT_RESOLVE", trace_id=trace_id)
        return None


def validate_connections(trace_id: str | None, connections: list[ConnectionConfig]) -> None:
    if not connections:
        raise ConfigError("Database connection is not set", code="NO_CONNECTION", trace_id=trace_id)

    for connection in connections:
        if connection.uri:
            continue
        if not connection.host:
            raise ConfigError("Connection host is not set", code="NO_HOST", trace_id=trace_id)
        if not connection.port:
            raise ConfigError("Connection port is not set", code="NO_PORT", trace_id=trace_id)


def compose_connection(
    connections: list[ConnectionConfig], credential: CredentialConfig | None
) -> ConnectionParams:
    username = (credential.username or "") if credential is not None else ""
    password = (credential.password or "") if username else ""

    for connection in connections:
        if connection.uri:
            return ConnectionParams(uri=connection.uri, username=username, password=password)

    hosts = ",".join(
        f"{c.host}:{c.port}" if c.port else f"{c.host}" for c in connections
    )
    database = next((c.database for c in connections if c.database), "")

    options: dict[str, Any] = {}
    for connection in connections:
        options.update(connection.options)
    query = "&".join(
        f"{key}={_to_string(value)}" if _to_string(value) else key
        for key, value in options.items()
    )

    uri = f"{SCHEME}://{hosts}"
    if database:
        uri += f"/{database}"
    if query:
        uri += f"?{query}"
    return ConnectionParams(uri=uri, username=username, password=password)


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
