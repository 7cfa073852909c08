"""Reclamation of expired, processed and discarded temp media."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from ..events import EventDispatcher, TempMediaExpired
from ..repositories.temp_media_repository import TempMediaRepository
from .blob_store import BlobStore, temp_media_prefix
from .media_models import PurgeScope, SweepOptions, SweepReport, TempMedia, utcnow

logger = structlog.get_logger(__name__)

StopCheck = Callable[[], bool]


@dataclass(slots=True)
class TempMediaReclaimer:
    """Remove rows and their blobs, one guarded delete per record.

    The row delete commits first and the blob goes afterwards, so a row never
    points at a missing blob. A record that another actor already consumed
    (racing transfer, concurrent sweep, explicit delete) is skipped silently.
    """

    repo: TempMediaRepository
    blob_store: BlobStore
    events: EventDispatcher

    def purge_expired(self, now: datetime, *, should_stop: StopCheck | None = None) -> list[TempMedia]:
        return self._purge(PurgeScope.EXPIRED, now, should_stop, notify=True)

    def purge_processed(self, now: datetime, *, should_stop: StopCheck | None = None) -> list[TempMedia]:
        return self._purge(PurgeScope.PROCESSED, now, should_stop, notify=False)

    def purge_discarded(self, now: datetime, *, should_stop: StopCheck | None = None) -> list[TempMedia]:
        return self._purge(PurgeScope.DISCARDED, now, should_stop, notify=False)

    def purge_one(self, media_id: str) -> TempMedia | None:
        """Unconditionally remove a single record and its blob."""
        record = self.repo.purge(media_id, PurgeScope.ANY, utcnow())
        if record is not None:
            self.blob_store.remove_tree(temp_media_prefix(record.id))
        return record

    def pending_ids(self, scope: PurgeScope, now: datetime) -> list[str]:
        return self.repo.list_ids(scope, now)

    def _purge(
        self,
        scope: PurgeScope,
        now: datetime,
        should_stop: StopCheck | None,
        *,
        notify: bool,
    ) -> list[TempMedia]:
        purged: list[TempMedia] = []
        for media_id in self.repo.list_ids(scope, now):
            if should_stop is not None and should_stop():
                break
            record = self.repo.purge(media_id, scope, now)
            if record is None:
                continue
            self.blob_store.remove_tree(temp_media_prefix(record.id))
            if notify:
                self.events.publish(TempMediaExpired(record))
            purged.append(record)
            logger.info("temp_media.cleanup.removed", media_id=record.id, scope=scope.value)
        return purged


class _Deadline:
    def __init__(self, seconds: float | None, monotonic: Callable[[], float]) -> None:
        self._monotonic = monotonic
        self._until = monotonic() + seconds if seconds else None
        self.hit = False

    def __call__(self) -> bool:
        if self._until is not None and self._monotonic() >= self._until:
            self.hit = True
        return self.hit


@dataclass
class CleanupEngine:
    """Sweep expired and processed temp media, safe to run beside live traffic."""

    reclaimer: TempMediaReclaimer
    timeout_seconds: float | None = 300
    prevent_overlap: bool = True
    clock: Callable[[], datetime] = utcnow
    monotonic: Callable[[], float] = time.monotonic
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def sweep(self, options: SweepOptions | None = None) -> SweepReport:
        """Run one reclamation pass.

        An invocation that overlaps a running sweep returns immediately with
        ``skipped=True``. A sweep that exceeds ``timeout_seconds`` stops
        between records and reports ``timed_out=True``; records purged before
        the deadline stay purged.
        """
        opts = options or SweepOptions()
        if opts.expired_only and opts.processed_only:
            raise ValueError("expired_only and processed_only are mutually exclusive")

        acquired = self._lock.acquire(blocking=False)
        if not acquired and self.prevent_overlap:
            logger.info("temp_media.cleanup.skipped", reason="sweep_in_progress")
            return SweepReport(dry_run=opts.dry_run, skipped=True)
        try:
            if opts.dry_run:
                return self._count(opts, self.clock())
            return self._sweep(opts, self.clock())
        finally:
            if acquired:
                self._lock.release()

    def _sweep(self, opts: SweepOptions, now: datetime) -> SweepReport:
        deadline = _Deadline(self.timeout_seconds, self.monotonic)
        report = SweepReport()
        if not opts.processed_only:
            report.expired_removed = len(self.reclaimer.purge_expired(now, should_stop=deadline))
        if not opts.expired_only and not deadline.hit:
            report.processed_removed = len(self.reclaimer.purge_processed(now, should_stop=deadline))
        if opts.is_full and not deadline.hit:
            report.discarded_removed = len(self.reclaimer.purge_discarded(now, should_stop=deadline))
        report.timed_out = deadline.hit
        if report.timed_out:
            logger.warning(
                "temp_media.cleanup.timed_out",
                timeout_seconds=self.timeout_seconds,
                removed=report.total_removed,
            )
        else:
            logger.info(
                "temp_media.cleanup.completed",
                expired=report.expired_removed,
                processed=report.processed_removed,
                discarded=report.discarded_removed,
            )
        return report

    def _count(self, opts: SweepOptions, now: datetime) -> SweepReport:
        # Mirror the ordering of _sweep: a row matching several scopes is
        # removed (and counted) by the first pass that reaches it.
        claimed: set[str] = set()
        report = SweepReport(dry_run=True)
        if not opts.processed_only:
            expired = set(self.reclaimer.pending_ids(PurgeScope.EXPIRED, now))
            report.expired_removed = len(expired)
            claimed |= expired
        if not opts.expired_only:
            processed = set(self.reclaimer.pending_ids(PurgeScope.PROCESSED, now)) - claimed
            report.processed_removed = len(processed)
            claimed |= processed
        if opts.is_full:
            discarded = set(self.reclaimer.pending_ids(PurgeScope.DISCARDED, now)) - claimed
            report.discarded_removed = len(discarded)
        logger.info(
            "temp_media.cleanup.dry_run",
            expired=report.expired_removed,
            processed=report.processed_removed,
            discarded=report.discarded_removed,
        )
        return report
