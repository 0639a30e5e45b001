"""Creates Couchbase components by name.

Intended for wiring at the application boundary:

    factory = DefaultCouchbaseFactory()
    connection = factory.create("connection")
    connection.configure(settings.to_config())
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from bucketstore.infrastructure.connection import CouchbaseConnection


class DefaultCouchbaseFactory:
    def __init__(self) -> None:
        self._registrations: dict[str, Callable[[], Any]] = {}
        self.register("connection", CouchbaseConnection)

    def register(self, name: str, constructor: Callable[[], Any]) -> None:
        self._registrations[name] = constructor

    def can_create(self, name: str) -> bool:
        return name in self._registrations

    def create(self, name: str) -> Any:
        try:
            constructor = self._registrations[name]
        except KeyError:
            raise ValueError(f"No component registered as {name!r}") from None
        return constructor()
