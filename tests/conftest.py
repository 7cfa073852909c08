from __future__ import annotations

import io
from datetime import datetime, timedelta
from typing import Callable

import pytest
from PIL import Image

from temp_media.config import AppConfig, TempMediaSettings, load_config
from temp_media.dependencies import TempMediaServices, build_services
from temp_media.media.media_models import IncomingFile, UploadedTempMedia


class FrozenClock:
    """Manually advanced clock shared by every service under test."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture
def settings(tmp_path) -> TempMediaSettings:
    return TempMediaSettings(
        database_url=f"sqlite:///{tmp_path / 'temp_media.db'}",
        media_root=tmp_path / "media",
        enable_auto_cleanup=False,
        dispatch_events=True,
    )


@pytest.fixture
def config(settings: TempMediaSettings) -> AppConfig:
    cfg = load_config(settings)
    yield cfg
    cfg.engine.dispose()


@pytest.fixture
def services(config: AppConfig, clock: FrozenClock) -> TempMediaServices:
    return build_services(config, clock=clock)


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (640, 480), (200, 40, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


def make_file(data: bytes = b"fake-image-bytes", filename: str = "photo.png", content_type: str = "image/png") -> IncomingFile:
    return IncomingFile(filename=filename, content_type=content_type, stream=io.BytesIO(data))


@pytest.fixture
def upload(services: TempMediaServices) -> Callable[..., UploadedTempMedia]:
    def _upload(
        session_id: str | None = "session-1",
        *,
        data: bytes = b"fake-image-bytes",
        filename: str = "photo.png",
        content_type: str = "image/png",
        ttl_hours: int | None = None,
        user_id: str | None = None,
    ) -> UploadedTempMedia:
        return services.temp_media.upload(
            make_file(data, filename, content_type),
            session_id=session_id,
            ttl_hours=ttl_hours,
            user_id=user_id,
        )

    return _upload


@pytest.fixture
def file_factory() -> Callable[..., IncomingFile]:
    return make_file
