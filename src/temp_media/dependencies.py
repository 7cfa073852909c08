"""Dependency wiring helpers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .api.rate_limit import UploadRateLimiter
from .api.temp_media_api import build_temp_media_router
from .config import AppConfig
from .events import EventDispatcher
from .media.blob_store import LocalBlobStore
from .media.conversions import ConversionGenerator
from .media.media_cleanup import CleanupEngine, TempMediaReclaimer
from .media.media_library import MediaLibrary
from .media.media_models import utcnow
from .media.ownership import OwnershipGate
from .media.temp_media_service import TempMediaService, UploadPolicy
from .media.transfer_service import MediaTransferService
from .repositories.media_item_repository import MediaItemRepository
from .repositories.temp_media_repository import TempMediaRepository


@dataclass(slots=True)
class TempMediaServices:
    temp_media_repo: TempMediaRepository
    media_item_repo: MediaItemRepository
    blob_store: LocalBlobStore
    events: EventDispatcher
    reclaimer: TempMediaReclaimer
    temp_media: TempMediaService
    gate: OwnershipGate
    library: MediaLibrary
    transfer: MediaTransferService
    cleanup: CleanupEngine
    rate_limiter: UploadRateLimiter


def build_services(config: AppConfig, *, clock: Callable[[], datetime] = utcnow) -> TempMediaServices:
    """Wire repositories and services from a loaded configuration."""
    settings = config.settings
    temp_media_repo = TempMediaRepository(config.session_factory)
    media_item_repo = MediaItemRepository(config.session_factory)
    blob_store = LocalBlobStore(
        root=config.media_paths.root,
        url_prefix=settings.public_url_prefix,
        chunk_size=settings.upload_chunk_size,
    )
    events = EventDispatcher(
        enabled=settings.dispatch_events,
        queue_name=settings.queue_name,
        max_pending=settings.event_queue_size,
    )
    reclaimer = TempMediaReclaimer(repo=temp_media_repo, blob_store=blob_store, events=events)
    gate = OwnershipGate(repo=temp_media_repo, clock=clock)
    library = MediaLibrary(repo=media_item_repo, blob_store=blob_store)

    temp_media = TempMediaService(
        repo=temp_media_repo,
        blob_store=blob_store,
        policy=UploadPolicy(
            default_ttl_hours=settings.default_ttl_hours,
            max_file_size=settings.max_file_size,
            allowed_mime_types=settings.allowed_mime_types,
            chunk_size_bytes=settings.upload_chunk_size,
        ),
        events=events,
        reclaimer=reclaimer,
        conversions=ConversionGenerator(blob_store, enabled=settings.generate_conversions),
        clock=clock,
    )
    transfer = MediaTransferService(
        repo=temp_media_repo,
        gate=gate,
        library=library,
        blob_store=blob_store,
        reclaimer=reclaimer,
        events=events,
        clock=clock,
        default_collection=settings.default_collection,
    )
    cleanup = CleanupEngine(
        reclaimer=reclaimer,
        timeout_seconds=settings.cleanup_timeout_seconds or None,
        prevent_overlap=settings.cleanup_without_overlapping,
        clock=clock,
    )
    rate_limiter = UploadRateLimiter(
        max_attempts=settings.rate_limit_max_attempts,
        window_seconds=settings.rate_limit_decay_minutes * 60,
        enabled=settings.rate_limit_enabled,
        clock=clock,
    )
    return TempMediaServices(
        temp_media_repo=temp_media_repo,
        media_item_repo=media_item_repo,
        blob_store=blob_store,
        events=events,
        reclaimer=reclaimer,
        temp_media=temp_media,
        gate=gate,
        library=library,
        transfer=transfer,
        cleanup=cleanup,
        rate_limiter=rate_limiter,
    )


def include_routers(app: FastAPI, config: AppConfig, services: TempMediaServices) -> None:
    """Mount the temp media router and the public disk, attach services."""
    settings = config.settings
    app.state.config = config
    app.state.services = services

    app.include_router(
        build_temp_media_router(
            service=services.temp_media,
            gate=services.gate,
            rate_limiter=services.rate_limiter,
            prefix=settings.route_prefix,
            validate_session=settings.validate_session,
            max_validate_ids=settings.max_validate_ids,
        )
    )
    app.mount(
        settings.public_url_prefix,
        StaticFiles(directory=config.media_paths.root),
        name="media",
    )
