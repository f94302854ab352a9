"""Error types raised by the entity store."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every error the store raises.

    ``reason`` keeps the root-cause message when the error has been
    re-wrapped by a public operation.
    """

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason if reason is not None else message


class ValidationError(StoreError):
    """Missing or mistyped field, unknown kind, malformed input."""


class ConflictError(StoreError):
    """A record with the same id already exists."""


class NotFoundError(StoreError):
    """No record with the given id."""


class DependencyError(StoreError):
    """Deleting the record would leave dangling references."""


class StorageError(StoreError):
    """Reading, writing or parsing a file failed."""


def wrap_error(prefix: str, exc: BaseException) -> StoreError:
    """Return ``exc`` re-wrapped as ``"<prefix>: <message>"``.

    Store errors keep their class so callers can still catch e.g.
    ``ConflictError``; anything else becomes a ``StorageError``.
    """
    cls = type(exc) if isinstance(exc, StoreError) else StorageError
    reason = str(exc)
    return cls(f"{prefix}: {reason}", reason=reason)
