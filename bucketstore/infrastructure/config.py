"""Typed configuration for connections and persistences.

Two entry points:
  - CouchbaseConfig.from_params() parses the flat dotted-key form
    (``connection.host``, ``connections.1.port``, ``options.auto_create``).
  - CouchbaseSettings reads the same values from COUCHBASE_* environment
    variables (or a .env file) and renders a CouchbaseConfig.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bucketstore.domain.models.connection import ConnectionConfig, CredentialConfig


class CouchbaseOptions(BaseModel):
    auto_create: bool = False
    auto_index: bool = True
    flush_enabled: bool = True
    bucket_type: Literal["couchbase", "memcached", "ephemeral"] = "couchbase"
    ram_quota: int = 100
    max_page_size: int = 100
    # Page totals from a separate COUNT(*) instead of the size of the page.
    count_total: bool = False
    page_consistency: Literal["request_plus", "not_bounded"] = "request_plus"


class CouchbaseConfig(BaseModel):
    bucket: str | None = None
    collection: str | None = None
    connections: list[ConnectionConfig] = Field(default_factory=list)
    credentials: list[CredentialConfig] = Field(default_factory=list)
    options: CouchbaseOptions = Field(default_factory=CouchbaseOptions)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> CouchbaseConfig:
        """Build a config from dotted keys.

        ``connection.*`` describes a single endpoint, ``connections.<name>.*``
        any number of them (kept in first-seen order).  ``credential(s)``
        follows the same rule.  Nested mappings are flattened first.
        """
        flat = _flatten(params)
        options = {k[len("options."):]: v for k, v in flat.items() if k.startswith("options.")}
        return cls(
            bucket=flat.get("bucket") or None,
            collection=flat.get("collection") or None,
            connections=[ConnectionConfig(**s) for s in _sections(flat, "connection")],
            credentials=[CredentialConfig(**s) for s in _sections(flat, "credential")],
            options=CouchbaseOptions(**options),
        )


def _flatten(params: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in params.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, f"{name}."))
        else:
            flat[name] = value
    return flat


def _sections(flat: Mapping[str, Any], singular: str) -> list[dict[str, Any]]:
    plural = f"{singular}s."
    many: dict[str, dict[str, Any]] = {}
    for key, value in flat.items():
        if key.startswith(plural):
            name, _, field = key[len(plural):].partition(".")
            if field:
                many.setdefault(name, {})[field] = value
    if many:
        return list(many.values())

    single = {
        key[len(singular) + 1:]: value
        for key, value in flat.items()
        if key.startswith(f"{singular}.")
    }
    return [single] if single else []


def ensure_config(config: CouchbaseConfig | Mapping[str, Any]) -> CouchbaseConfig:
    if isinstance(config, CouchbaseConfig):
        return config
    return CouchbaseConfig.from_params(config)


class CouchbaseSettings(BaseSettings):
    """Environment-driven connection settings (COUCHBASE_URI, COUCHBASE_HOST, ...)."""

    model_config = SettingsConfigDict(env_prefix="COUCHBASE_", env_file=".env", extra="ignore")

    uri: str | None = None
    host: str | None = None
    port: int = 8091
    user: str = "Administrator"
    password: str = "password"
    bucket: str = "test"

    @property
    def is_configured(self) -> bool:
        return bool(self.uri or self.host)

    def to_config(self, **options: Any) -> CouchbaseConfig:
        connection = ConnectionConfig(uri=self.uri) if self.uri else ConnectionConfig(host=self.host, port=self.port)
        return CouchbaseConfig(
            bucket=self.bucket,
            connections=[connection],
            credentials=[CredentialConfig(username=self.user, password=self.password)],
            options=CouchbaseOptions(**options),
        )
