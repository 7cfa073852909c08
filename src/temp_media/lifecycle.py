"""Lifecycle helpers wiring background tasks for FastAPI startup."""

from __future__ import annotations

import asyncio
import logging

from .events import EventDispatcher
from .media.media_cleanup import CleanupEngine
from .media.media_models import SweepReport


logger = logging.getLogger(__name__)


def cleanup_once(engine: CleanupEngine) -> SweepReport:
    """Run a single full sweep and return its report."""
    return engine.sweep()


async def run_periodic_cleanup(
    *,
    engine: CleanupEngine,
    shutdown_event: asyncio.Event,
    interval_seconds: float = 3600.0,
    run_in_background: bool = True,
) -> None:
    """Sweep temp media until ``shutdown_event`` is signalled.

    With ``run_in_background`` the sweep runs in a worker thread so the
    event loop keeps serving requests.
    """
    interval = max(1.0, float(interval_seconds))
    while not shutdown_event.is_set():
        try:
            if run_in_background:
                report = await asyncio.to_thread(cleanup_once, engine)
            else:
                report = cleanup_once(engine)
        except Exception:  # pragma: no cover - defensive logging
            logger.exception("temp_media.cleanup.iteration_failed")
        else:
            if report.total_removed:
                logger.info(
                    "temp_media.cleanup.periodic",
                    extra={"removed": report.total_removed, "timed_out": report.timed_out},
                )
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue


async def run_event_delivery(
    *,
    events: EventDispatcher,
    shutdown_event: asyncio.Event,
    interval_seconds: float = 1.0,
) -> None:
    """Deliver queued events to listeners until shutdown, then flush."""
    while not shutdown_event.is_set():
        events.deliver_pending()
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue
    events.deliver_pending()


__all__ = [
    "cleanup_once",
    "run_event_delivery",
    "run_periodic_cleanup",
]
