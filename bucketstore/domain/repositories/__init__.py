"""Domain repository interfaces.

Concrete implementations live in bucketstore/infrastructure/persistence/ and
are wired at the application boundary.
"""

from .base import IdentifiableRepository, Repository

__all__ = [
    "Repository",
    "IdentifiableRepository",
]
