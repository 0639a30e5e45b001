"""Error taxonomy for the persistence layer.

Callers catch ApplicationError (or one of its subclasses) and inspect
``code`` to tell configuration problems from runtime connection failures.
Driver exceptions that are not wrapped here reach the caller unchanged.
"""

from __future__ import annotations


class ApplicationError(Exception):
    """Base exception for all errors raised by this package.

    Attributes:
        code: A stable, upper-case error code (e.g. ``"NO_HOST"``).
        trace_id: The trace id of the call that failed, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "UNKNOWN",
        trace_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.code = code
        self.trace_id = trace_id
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__


class ConfigError(ApplicationError):
    """Raised when required configuration is missing or invalid."""


class InvalidStateError(ApplicationError):
    """Raised when an operation runs without a required collaborator."""


class ConnectionFailedError(ApplicationError):
    """Raised when connecting, opening a bucket or flushing fails."""
