"""Move validated temp media into an owner's permanent collection."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from ..events import EventDispatcher, MediaTransferred
from ..exceptions import TransferItemFailure
from ..repositories.temp_media_repository import TempMediaRepository
from .blob_store import BlobStore, temp_media_key
from .media_cleanup import TempMediaReclaimer
from .media_library import HasMedia, MediaLibrary
from .media_models import (
    FailedTransfer,
    StoredMedia,
    TempMedia,
    TransferItem,
    TransferRequest,
    TransferResult,
    TransferStats,
    TransferredMedia,
    utcnow,
)
from .ownership import OwnershipGate

logger = structlog.get_logger(__name__)

NOT_FOUND_REASON = "Media item not found or already processed"
MISSING_BLOB_REASON = "Media file not found"
DUPLICATE_REASON = "Duplicate temp media id in request"
CLAIMED_REASON = "Media item was processed or removed during transfer"


@dataclass(slots=True)
class _Copied:
    position: int
    item: TransferItem
    record: TempMedia
    stored: StoredMedia


@dataclass(slots=True)
class MediaTransferService:
    """Transfer engine.

    Blobs are copied first, outside any transaction. The finalising
    transaction then flips ``is_processed`` with a guarded update that returns
    the ids it actually claimed, and stages the new collection rows for those
    ids only. An item whose record was consumed by a racing transfer, delete
    or sweep between the copy and the claim is reported as failed and its
    copy is removed.
    """

    repo: TempMediaRepository
    gate: OwnershipGate
    library: MediaLibrary
    blob_store: BlobStore
    reclaimer: TempMediaReclaimer
    events: EventDispatcher
    clock: Callable[[], datetime] = utcnow
    default_collection: str = "default"

    def transfer(
        self,
        target: HasMedia,
        request: TransferRequest | Sequence[TransferItem],
        collection_name: str | None = None,
        custom_properties: Mapping[str, Any] | None = None,
    ) -> TransferResult:
        collection_name = collection_name or self.default_collection
        items = request.items if isinstance(request, TransferRequest) else tuple(request)
        if not items:
            return self._result(target, collection_name, [], [])

        self.gate.validate_ids([item.temp_media_id for item in items])

        copied: list[_Copied] = []
        failed: list[tuple[int, FailedTransfer]] = []
        seen: set[str] = set()
        try:
            for position, item in enumerate(items):
                if item.temp_media_id in seen:
                    failed.append((position, FailedTransfer(item.temp_media_id, DUPLICATE_REASON)))
                    continue
                seen.add(item.temp_media_id)
                try:
                    record, stored = self._copy_item(target, item, collection_name, custom_properties)
                except TransferItemFailure as exc:
                    failed.append((position, FailedTransfer(exc.temp_media_id, exc.reason)))
                    logger.warning("temp_media.transfer.item_failed", temp_media_id=exc.temp_media_id, reason=exc.reason)
                    continue
                except (OSError, ValueError) as exc:
                    failed.append((position, FailedTransfer(item.temp_media_id, str(exc))))
                    logger.warning(
                        "temp_media.transfer.item_failed",
                        temp_media_id=item.temp_media_id,
                        reason="storage_error",
                        exc_info=True,
                    )
                    continue
                copied.append(_Copied(position, item, record, stored))

            winners = self._finalize(copied, failed) if copied else []
        except Exception:
            for entry in copied:
                self.library.discard(entry.stored)
            logger.error("temp_media.transfer.aborted", target_id=target.media_owner_id, exc_info=True)
            raise

        transferred = [
            (
                entry.position,
                TransferredMedia(
                    id=entry.stored.id,
                    temp_media_id=entry.record.id,
                    url=self.library.url(entry.stored),
                    collection=collection_name,
                    original_name=entry.record.original_name,
                    size=entry.record.size,
                    mime_type=entry.record.mime_type,
                    order=entry.stored.order_column,
                ),
            )
            for entry in winners
        ]
        result = self._result(
            target,
            collection_name,
            [media for _, media in sorted(transferred, key=lambda pair: pair[0])],
            [failure for _, failure in sorted(failed, key=lambda pair: pair[0])],
        )
        logger.info(
            "temp_media.transfer.completed",
            target_type=result.target_type,
            target_id=result.target_id,
            collection=collection_name,
            transferred=result.transferred_count,
            failed=result.failed_count,
        )
        self.events.publish(
            MediaTransferred(owner_type=result.target_type, owner_id=result.target_id, result=result)
        )
        return result

    def cleanup_processed(self) -> int:
        return len(self.reclaimer.purge_processed(self.clock()))

    def get_transfer_stats(self) -> TransferStats:
        return self.repo.stats(self.clock())

    def _copy_item(
        self,
        target: HasMedia,
        item: TransferItem,
        collection_name: str,
        custom_properties: Mapping[str, Any] | None,
    ) -> tuple[TempMedia, StoredMedia]:
        # validation may be stale by now
        record = self.repo.get_active(item.temp_media_id, self.clock())
        if record is None:
            raise TransferItemFailure(item.temp_media_id, NOT_FOUND_REASON)
        if not self.blob_store.exists(temp_media_key(record.id, record.file_name)):
            raise TransferItemFailure(item.temp_media_id, MISSING_BLOB_REASON)
        stored = self.library.copy_from_temp(
            target,
            record,
            collection_name,
            order_column=item.order_column,
            custom_properties=custom_properties,
        )
        return record, stored

    def _finalize(
        self,
        copied: list[_Copied],
        failed: list[tuple[int, FailedTransfer]],
    ) -> list[_Copied]:
        with self.repo.unit_of_work() as uow:
            claimed = set(
                self.repo.mark_processed(
                    [entry.record.id for entry in copied],
                    self.clock(),
                    require_active=True,
                    session=uow.session,
                )
            )
            winners = [entry for entry in copied if entry.record.id in claimed]
            self.library.persist([entry.stored for entry in winners], session=uow.session)
            uow.commit()

        for entry in copied:
            if entry.record.id in claimed:
                continue
            self.library.discard(entry.stored)
            failed.append((entry.position, FailedTransfer(entry.record.id, CLAIMED_REASON)))
            logger.warning("temp_media.transfer.item_failed", temp_media_id=entry.record.id, reason="claimed")
        return winners

    @staticmethod
    def _result(
        target: HasMedia,
        collection_name: str,
        transferred: list[TransferredMedia],
        failed: list[FailedTransfer],
    ) -> TransferResult:
        return TransferResult(
            transferred=transferred,
            failed=failed,
            target_type=target.media_owner_type,
            target_id=str(target.media_owner_id),
            collection_name=collection_name,
        )
