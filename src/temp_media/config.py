"""Application configuration builder."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db

CLEANUP_FREQUENCIES: dict[str, int] = {
    "everyMinute": 60,
    "everyFiveMinutes": 5 * 60,
    "everyTenMinutes": 10 * 60,
    "everyFifteenMinutes": 15 * 60,
    "everyThirtyMinutes": 30 * 60,
    "hourly": 60 * 60,
    "everyTwoHours": 2 * 60 * 60,
    "everyThreeHours": 3 * 60 * 60,
    "everySixHours": 6 * 60 * 60,
    "daily": 24 * 60 * 60,
    "weekly": 7 * 24 * 60 * 60,
    "monthly": 30 * 24 * 60 * 60,
}


class TempMediaSettings(BaseSettings):
    """Settings consumed read-only by the temp media services."""

    model_config = SettingsConfigDict(env_prefix="TEMP_MEDIA_")

    database_url: str = Field(
        default="sqlite:///temp_media.db",
        description="SQLAlchemy URL of the record store.",
    )
    media_root: Path = Field(
        default=Path("media"),
        description="Filesystem root holding every configured disk.",
    )
    disk: str = Field(default="public", min_length=1, description="Disk (sub-directory) for blobs.")
    public_url_prefix: str = Field(
        default="/media",
        description="URL prefix under which the disk is served.",
    )
    default_ttl_hours: int = Field(default=24, ge=1)
    max_file_size: int = Field(default=10 * 1024 * 1024, ge=1, description="Upload cap in bytes.")
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/webp", "image/gif"],
        description="Accepted upload MIME types; empty list accepts everything.",
    )
    upload_chunk_size: int = Field(default=1 * 1024 * 1024, ge=1)
    default_collection: str = Field(
        default="default",
        min_length=1,
        description="Collection used when a transfer names none.",
    )
    generate_conversions: bool = False
    validate_session: bool = True
    max_validate_ids: int = Field(default=50, ge=1)
    route_prefix: str = Field(default="/api/v1/temp-media")

    enable_auto_cleanup: bool = True
    cleanup_frequency: str = Field(default="hourly")
    cleanup_without_overlapping: bool = True
    cleanup_run_in_background: bool = True
    cleanup_timeout_seconds: int = Field(default=300, ge=0, description="0 disables the timeout.")

    dispatch_events: bool = True
    queue_name: str = Field(default="default")
    event_queue_size: int = Field(default=1_000, ge=1)
    event_delivery_interval_seconds: float = Field(default=1.0, gt=0)

    rate_limit_enabled: bool = True
    rate_limit_max_attempts: int = Field(default=60, ge=1)
    rate_limit_decay_minutes: int = Field(default=1, ge=1)

    @field_validator("cleanup_frequency")
    @classmethod
    def _known_frequency(cls, value: str) -> str:
        if value not in CLEANUP_FREQUENCIES:
            known = ", ".join(sorted(CLEANUP_FREQUENCIES))
            raise ValueError(f"unknown cleanup frequency '{value}', expected one of: {known}")
        return value

    @property
    def cleanup_interval_seconds(self) -> int:
        return CLEANUP_FREQUENCIES[self.cleanup_frequency]


@dataclass(slots=True)
class MediaPaths:
    root: Path
    temp: Path
    library: Path


@dataclass(slots=True)
class AppConfig:
    settings: TempMediaSettings
    media_paths: MediaPaths
    database_url: str
    engine: Engine
    session_factory: sessionmaker[Session]


def _ensure_media_paths(paths: MediaPaths) -> None:
    paths.root.mkdir(parents=True, exist_ok=True)
    paths.temp.mkdir(parents=True, exist_ok=True)
    paths.library.mkdir(parents=True, exist_ok=True)


def load_config(settings: TempMediaSettings | None = None) -> AppConfig:
    """Load configuration from environment (SQLite by default)."""
    cfg = settings or TempMediaSettings()
    root = cfg.media_root / cfg.disk
    media_paths = MediaPaths(root=root, temp=root / "temp-media", library=root / "library")
    _ensure_media_paths(media_paths)

    connect_args: dict[str, object] = {}
    if cfg.database_url.startswith("sqlite"):
        # request handlers run in a threadpool
        connect_args["check_same_thread"] = False
    engine = create_engine(cfg.database_url, future=True, connect_args=connect_args)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)

    init_db(engine)

    return AppConfig(
        settings=cfg,
        media_paths=media_paths,
        database_url=cfg.database_url,
        engine=engine,
        session_factory=session_factory,
    )
