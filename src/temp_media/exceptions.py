"""Domain level exceptions and helpers for repository layers."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator

from sqlalchemy import exc as sa_exc

__all__ = [
    "TempMediaError",
    "InvalidFileError",
    "InvalidOrExpiredIdsError",
    "StorageFaultError",
    "TransferItemFailure",
    "handle_sqlalchemy_errors",
]


class TempMediaError(Exception):
    """Base class for temp media errors."""


class InvalidFileError(TempMediaError):
    """Raised when an upload is missing, oversized or of a disallowed type."""


class InvalidOrExpiredIdsError(TempMediaError):
    """Raised when requested ids do not all resolve to active records."""

    def __init__(self, missing_ids: Iterable[str]) -> None:
        self.missing_ids = list(missing_ids)
        super().__init__("Invalid or expired temp media IDs: " + ", ".join(self.missing_ids))


class StorageFaultError(TempMediaError):
    """Raised when the record or blob store fails and the operation must abort."""


class TransferItemFailure(TempMediaError):
    """Non-fatal failure of a single transfer item."""

    def __init__(self, temp_media_id: str, reason: str) -> None:
        self.temp_media_id = temp_media_id
        self.reason = reason
        super().__init__(f"{temp_media_id}: {reason}")


@dataclass(slots=True)
class _EntityContext:
    entity: str | None = None

    def format(self, message: str) -> str:
        if self.entity:
            return f"{self.entity}: {message}"
        return message


def _translate_sqlalchemy_error(exc: Exception, *, context: _EntityContext) -> StorageFaultError:
    if isinstance(exc, sa_exc.IntegrityError):
        return StorageFaultError(context.format("integrity constraint violated"))
    if isinstance(exc, sa_exc.DBAPIError):
        return StorageFaultError(context.format("database operation failed"))
    return StorageFaultError(context.format(str(exc)))


@contextmanager
def handle_sqlalchemy_errors(*, entity: str | None = None) -> Iterator[None]:
    """Translate SQLAlchemy errors into :class:`StorageFaultError`."""

    context = _EntityContext(entity)
    try:
        yield
    except sa_exc.SQLAlchemyError as exc:
        raise _translate_sqlalchemy_error(exc, context=context) from exc
