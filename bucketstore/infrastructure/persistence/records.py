"""Conversion between caller records and bucket documents.

A record is either a pydantic model (the prototype is the model class) or a
plain dict (the prototype is ``dict``).  Documents are JSON-ready dicts;
the collection tag ``_c`` is added by the persistence on write and removed
here on read.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Generic, TypeVar
from uuid import uuid4

from pydantic import BaseModel

T = TypeVar("T")

COLLECTION_FIELD = "_c"


def generate_id() -> str:
    """Return a fresh 32-character hex id."""
    return uuid4().hex


class RecordMapper(Generic[T]):
    def __init__(self, prototype: type[T], id_field: str = "id") -> None:
        if not (issubclass(prototype, BaseModel) or issubclass(prototype, Mapping)):
            raise TypeError(f"Record prototype must be a pydantic model or a mapping, got {prototype!r}")
        self.prototype = prototype
        self.id_field = id_field
        self._is_model = issubclass(prototype, BaseModel)

    def to_document(self, item: Any) -> dict[str, Any]:
        if isinstance(item, BaseModel):
            return item.model_dump(mode="json")
        if isinstance(item, Mapping):
            return copy.deepcopy(dict(item))
        raise TypeError(f"Cannot convert {type(item).__name__} to a document")

    def from_document(self, document: Mapping[str, Any]) -> T:
        fields = {k: v for k, v in document.items() if k != COLLECTION_FIELD}
        if self._is_model:
            return self.prototype.model_validate(fields)  # type: ignore[attr-defined]
        return fields  # type: ignore[return-value]

    def clone(self, item: T) -> T:
        if isinstance(item, BaseModel):
            return item.model_copy(deep=True)  # type: ignore[return-value]
        if isinstance(item, Mapping):
            return copy.deepcopy(dict(item))  # type: ignore[return-value]
        raise TypeError(f"Cannot clone {type(item).__name__}")

    def get_id(self, item: T) -> Any:
        if isinstance(item, Mapping):
            return item.get(self.id_field)
        return getattr(item, self.id_field, None)

    def with_id(self, item: T, id: Any) -> T:
        if isinstance(item, BaseModel):
            return item.model_copy(update={self.id_field: id})  # type: ignore[return-value]
        return {**item, self.id_field: id}  # type: ignore[dict-item]

    def merge(self, item: T, data: Mapping[str, Any]) -> T:
        """Overwrite the named top-level fields; the id field is never touched.

        For models, names that are not fields of the prototype are dropped
        by validation.
        """
        updates = {k: v for k, v in data.items() if k != self.id_field}
        merged = {**self.to_document(item), **updates}
        return self.from_document(merged)
