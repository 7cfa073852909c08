"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from fastapi import FastAPI

from .api.errors import register_error_handlers
from .config import AppConfig, load_config
from .dependencies import TempMediaServices, build_services, include_routers
from .lifecycle import run_event_delivery, run_periodic_cleanup
from .logging import configure_logging


def create_app(config: AppConfig | None = None, services: TempMediaServices | None = None) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    configure_logging()
    cfg = config or load_config()
    wired = services or build_services(cfg)
    settings = cfg.settings

    @contextlib.asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        shutdown_event = asyncio.Event()
        tasks: list[asyncio.Task[None]] = []
        if settings.enable_auto_cleanup:
            tasks.append(
                asyncio.create_task(
                    run_periodic_cleanup(
                        engine=wired.cleanup,
                        shutdown_event=shutdown_event,
                        interval_seconds=settings.cleanup_interval_seconds,
                        run_in_background=settings.cleanup_run_in_background,
                    )
                )
            )
        if settings.dispatch_events:
            tasks.append(
                asyncio.create_task(
                    run_event_delivery(
                        events=wired.events,
                        shutdown_event=shutdown_event,
                        interval_seconds=settings.event_delivery_interval_seconds,
                    )
                )
            )
        try:
            yield
        finally:
            shutdown_event.set()
            await asyncio.gather(*tasks, return_exceptions=True)

    app = FastAPI(title="Temp Media", lifespan=lifespan)
    register_error_handlers(app)
    include_routers(app, cfg, wired)
    return app
