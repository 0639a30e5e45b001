"""Domain model package.

Pure value objects with no driver dependencies.  Import from this package to
avoid coupling application code to individual module paths.
"""

from .connection import ConnectionConfig, ConnectionParams, CredentialConfig
from .paging import DataPage, PagingParams

__all__ = [
    "ConnectionConfig",
    "ConnectionParams",
    "CredentialConfig",
    "DataPage",
    "PagingParams",
]
