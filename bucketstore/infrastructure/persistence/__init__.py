"""Persistence package.

Exports the generic and identifiable Couchbase persistences and the record
mapper they share.
"""

from .couchbase import (
    ConnectionBinding,
    CouchbasePersistence,
    OwnedConnection,
    SharedConnection,
)
from .identifiable import IdentifiableCouchbasePersistence
from .records import COLLECTION_FIELD, RecordMapper, generate_id

__all__ = [
    "COLLECTION_FIELD",
    "ConnectionBinding",
    "CouchbasePersistence",
    "IdentifiableCouchbasePersistence",
    "OwnedConnection",
    "RecordMapper",
    "SharedConnection",
    "generate_id",
]
