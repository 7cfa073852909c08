"""Temp media data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, BinaryIO, Iterable, Mapping


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RecordStatus(str, Enum):
    """Storage status of a temp media record.

    ``active`` rows are visible to lookups (subject to TTL and the processed
    flag), ``soft_deleted`` rows were discarded by their owner and wait for the
    next sweep. ``purged`` never appears in the table: it marks the snapshot
    returned once reclamation removed the row and its blob.
    """

    ACTIVE = "active"
    SOFT_DELETED = "soft_deleted"
    PURGED = "purged"


class PurgeScope(str, Enum):
    """Which rows a reclamation pass is allowed to remove."""

    EXPIRED = "expired"
    PROCESSED = "processed"
    DISCARDED = "discarded"
    ANY = "any"


@dataclass(slots=True)
class TempMedia:
    id: str
    session_id: str | None
    user_id: str | None
    original_name: str
    file_name: str
    mime_type: str
    size: int
    expires_at: datetime
    is_processed: bool
    status: RecordStatus
    created_at: datetime
    deleted_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_active(self, now: datetime) -> bool:
        return (
            self.status is RecordStatus.ACTIVE
            and not self.is_processed
            and not self.is_expired(now)
        )


@dataclass(slots=True)
class IncomingFile:
    """Upload handed to the lifecycle manager by a transport adapter."""

    filename: str | None
    content_type: str | None
    stream: BinaryIO | None


@dataclass(slots=True)
class UploadedTempMedia:
    id: str
    url: str
    original_name: str
    mime_type: str
    size: int
    expires_at: datetime
    session_id: str | None = None
    is_temporary: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "original_name": self.original_name,
            "mime_type": self.mime_type,
            "size": self.size,
            "expires_at": self.expires_at.isoformat(),
            "session_id": self.session_id,
            "is_temporary": self.is_temporary,
        }

    def to_public_dict(self) -> dict[str, Any]:
        payload = self.to_dict()
        payload.pop("session_id")
        return payload


@dataclass(slots=True)
class StoredMedia:
    """Item of a permanent owner collection."""

    id: str
    owner_type: str
    owner_id: str
    collection_name: str
    name: str
    file_name: str
    mime_type: str
    size: int
    disk_key: str
    order_column: int | None = None
    custom_properties: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TransferItem:
    temp_media_id: str
    order_column: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransferItem":
        order = data.get("order_column")
        return cls(temp_media_id=str(data["id"]), order_column=int(order) if order is not None else None)


@dataclass(frozen=True, slots=True)
class TransferRequest:
    items: tuple[TransferItem, ...] = ()

    @classmethod
    def from_list(cls, items: Iterable[Mapping[str, Any]]) -> "TransferRequest":
        return cls(tuple(TransferItem.from_dict(item) for item in items))

    @classmethod
    def of(cls, *temp_media_ids: str) -> "TransferRequest":
        return cls(tuple(TransferItem(temp_media_id) for temp_media_id in temp_media_ids))

    @property
    def temp_media_ids(self) -> list[str]:
        return [item.temp_media_id for item in self.items]

    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True, slots=True)
class TransferredMedia:
    id: str
    temp_media_id: str
    url: str
    collection: str
    original_name: str
    size: int
    mime_type: str
    order: int | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "temp_media_id": self.temp_media_id,
            "url": self.url,
            "collection": self.collection,
            "original_name": self.original_name,
            "size": self.size,
            "mime_type": self.mime_type,
            "order": self.order,
        }


@dataclass(frozen=True, slots=True)
class FailedTransfer:
    temp_media_id: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"temp_media_id": self.temp_media_id, "error": self.error}


@dataclass(slots=True)
class TransferResult:
    """Outcome of one transfer call."""

    transferred: list[TransferredMedia]
    failed: list[FailedTransfer]
    target_type: str
    target_id: str
    collection_name: str

    @property
    def transferred_count(self) -> int:
        return len(self.transferred)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def is_fully_successful(self) -> bool:
        return not self.failed

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    @property
    def transferred_ids(self) -> list[str]:
        return [media.id for media in self.transferred]

    @property
    def failed_ids(self) -> list[str]:
        return [failure.temp_media_id for failure in self.failed]

    def media_urls(self) -> list[dict[str, Any]]:
        return [
            {"id": media.id, "url": media.url, "original_name": media.original_name, "order": media.order}
            for media in self.transferred
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "transferred_media": [media.to_dict() for media in self.transferred],
            "transferred_count": self.transferred_count,
            "failed_transfers": [failure.to_dict() for failure in self.failed],
            "failed_count": self.failed_count,
            "target_model_type": self.target_type,
            "target_model_id": self.target_id,
            "collection_name": self.collection_name,
        }


@dataclass(frozen=True, slots=True)
class TransferStats:
    total: int
    active: int
    processed: int
    expired: int
    discarded: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total_temp_media": self.total,
            "active_temp_media": self.active,
            "processed_temp_media": self.processed,
            "expired_temp_media": self.expired,
            "discarded_temp_media": self.discarded,
        }


@dataclass(frozen=True, slots=True)
class SweepOptions:
    expired_only: bool = False
    processed_only: bool = False
    dry_run: bool = False

    @property
    def is_full(self) -> bool:
        return not self.expired_only and not self.processed_only


@dataclass(slots=True)
class SweepReport:
    expired_removed: int = 0
    processed_removed: int = 0
    discarded_removed: int = 0
    dry_run: bool = False
    skipped: bool = False
    timed_out: bool = False

    @property
    def total_removed(self) -> int:
        return self.expired_removed + self.processed_removed + self.discarded_removed
