"""Connection, credential and resolved-connection models.

These are plain value objects; resolution logic lives in
bucketstore.infrastructure.connect.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

# Keys with a fixed meaning; everything else on an endpoint is a driver option.
RESERVED_CONNECTION_KEYS = frozenset(
    {"uri", "host", "port", "database", "username", "password", "discovery_key"}
)


class ConnectionConfig(BaseModel):
    """One configured cluster endpoint.

    Either ``uri`` is set, or ``host`` and ``port`` are.  Unknown keys
    (e.g. ``operation_timeout``) are kept in order and later rendered into
    the connection-string query.
    """

    model_config = ConfigDict(extra="allow")

    uri: str | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None
    discovery_key: str | None = None

    @property
    def options(self) -> dict[str, Any]:
        """Extra driver options in configuration order."""
        return {
            key: value
            for key, value in (self.model_extra or {}).items()
            if key not in RESERVED_CONNECTION_KEYS
        }


class CredentialConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    username: str | None = None
    password: str | None = None
    store_key: str | None = None


class ConnectionParams(BaseModel):
    """A fully resolved connection: one URI plus optional credentials."""

    model_config = ConfigDict(frozen=True)

    uri: str
    username: str = ""
    password: str = ""
