"""Lifecycle of temporary uploads: create, look up, discard, delete."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from ..events import EventDispatcher, TempMediaUploaded
from ..exceptions import InvalidFileError, StorageFaultError
from ..repositories.temp_media_repository import TempMediaRepository
from .blob_store import BlobStore, derive_filename, temp_media_key, temp_media_prefix
from .conversions import ConversionGenerator
from .media_cleanup import TempMediaReclaimer
from .media_models import IncomingFile, RecordStatus, TempMedia, UploadedTempMedia, utcnow


@dataclass(slots=True)
class UploadPolicy:
    default_ttl_hours: int
    max_file_size: int
    allowed_mime_types: Sequence[str]
    chunk_size_bytes: int = 1 * 1024 * 1024


@dataclass(slots=True)
class TempMediaService:
    """Owns creation, expiry, lookups and deletion of temp media records."""

    repo: TempMediaRepository
    blob_store: BlobStore
    policy: UploadPolicy
    events: EventDispatcher
    reclaimer: TempMediaReclaimer
    conversions: ConversionGenerator | None = None
    clock: Callable[[], datetime] = utcnow
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def upload(
        self,
        file: IncomingFile | None,
        session_id: str | None = None,
        ttl_hours: int | None = None,
        *,
        user_id: str | None = None,
    ) -> UploadedTempMedia:
        """Validate and store an upload as a new active record.

        The row and the blob commit together: if writing the blob fails the
        row insert is rolled back, and if the commit fails the blob is removed.
        """
        size = self._validate(file)
        ttl = self.policy.default_ttl_hours if ttl_hours is None else ttl_hours
        if ttl <= 0:
            raise ValueError("ttl_hours must be positive")

        now = self.clock()
        record = TempMedia(
            id=uuid.uuid4().hex,
            session_id=session_id,
            user_id=user_id,
            original_name=file.filename or "upload",
            file_name=derive_filename(file.filename),
            mime_type=file.content_type or "application/octet-stream",
            size=size,
            expires_at=now + timedelta(hours=ttl),
            is_processed=False,
            status=RecordStatus.ACTIVE,
            created_at=now,
        )
        key = temp_media_key(record.id, record.file_name)

        with self.repo.unit_of_work() as uow:
            self.repo.add(record, session=uow.session)
            try:
                self.blob_store.put(key, file.stream)
            except OSError as exc:
                self.log.error(
                    "temp_media.upload.blob_failed",
                    extra={"media_id": record.id, "key": key},
                    exc_info=True,
                )
                raise StorageFaultError("failed to store uploaded file") from exc
            try:
                uow.commit()
            except StorageFaultError:
                self.blob_store.remove_tree(temp_media_prefix(record.id))
                raise

        if self.conversions is not None:
            self.conversions.generate(record)

        uploaded = UploadedTempMedia(
            id=record.id,
            url=self.blob_store.url(key),
            original_name=record.original_name,
            mime_type=record.mime_type,
            size=record.size,
            expires_at=record.expires_at,
            session_id=record.session_id,
        )
        self.log.info(
            "temp_media.upload.stored",
            extra={
                "media_id": record.id,
                "size_bytes": record.size,
                "mime_type": record.mime_type,
                "expires_at": record.expires_at.isoformat(),
            },
        )
        self.events.publish(TempMediaUploaded(record=record, url=uploaded.url))
        return uploaded

    def get(self, media_id: str) -> TempMedia | None:
        """Return the record only while it is active."""
        return self.repo.get_active(media_id, self.clock())

    def delete(self, media_id: str) -> bool:
        """Hard-delete the record and its blob regardless of state."""
        record = self.reclaimer.purge_one(media_id)
        if record is None:
            return False
        self.log.info("temp_media.deleted", extra={"media_id": media_id})
        return True

    def discard(self, media_id: str) -> bool:
        """Soft-delete an active record; the next sweep purges it."""
        discarded = self.repo.soft_delete(media_id, self.clock())
        if discarded:
            self.log.info("temp_media.discarded", extra={"media_id": media_id})
        return discarded

    def mark_processed(self, media_ids: Collection[str]) -> list[str]:
        """Idempotently flag records as processed; unknown ids are ignored."""
        flipped = self.repo.mark_processed(list(dict.fromkeys(media_ids)), self.clock())
        if flipped:
            self.log.info("temp_media.marked_processed", extra={"media_ids": flipped})
        return flipped

    def cleanup_expired(self) -> int:
        return len(self.reclaimer.purge_expired(self.clock()))

    def url(self, record: TempMedia) -> str:
        return self.blob_store.url(temp_media_key(record.id, record.file_name))

    def thumb_url(self, record: TempMedia) -> str | None:
        if self.conversions is None:
            return None
        return self.conversions.url(record, "thumb")

    def public_view(self, record: TempMedia) -> dict[str, Any]:
        return {
            "id": record.id,
            "url": self.url(record),
            "thumb_url": self.thumb_url(record),
            "original_name": record.original_name,
            "size": record.size,
            "mime_type": record.mime_type,
            "expires_at": record.expires_at.isoformat(),
        }

    def _validate(self, file: IncomingFile | None) -> int:
        if file is None or file.stream is None:
            raise InvalidFileError("Invalid file upload")

        allowed = set(self.policy.allowed_mime_types)
        if allowed and file.content_type not in allowed:
            self.log.warning(
                "temp_media.upload.unsupported_media",
                extra={"content_type": file.content_type},
            )
            raise InvalidFileError("File type not allowed")

        size = 0
        try:
            while True:
                chunk = file.stream.read(self.policy.chunk_size_bytes)
                if not chunk:
                    break
                size += len(chunk)
                if size > self.policy.max_file_size:
                    self.log.warning(
                        "temp_media.upload.payload_too_large",
                        extra={"size_bytes": size, "limit_bytes": self.policy.max_file_size},
                    )
                    raise InvalidFileError("File size exceeds maximum allowed size")
            file.stream.seek(0)
        except OSError as exc:
            self.log.error("temp_media.upload.read_failed", exc_info=exc)
            raise InvalidFileError("Invalid file upload") from exc

        if size == 0:
            raise InvalidFileError("Invalid file upload")
        return size
