"""Connection resolution: configured endpoints and credentials -> ConnectionParams."""

from .resolver import (
    CouchbaseConnectionResolver,
    CredentialStore,
    Discovery,
    compose_connection,
    validate_connections,
)

__all__ = [
    "CouchbaseConnectionResolver",
    "CredentialStore",
    "Discovery",
    "compose_connection",
    "validate_connections",
]
