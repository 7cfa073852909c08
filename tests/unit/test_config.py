import pytest
from pydantic import ValidationError

from temp_media.config import TempMediaSettings, load_config


def test_defaults() -> None:
    settings = TempMediaSettings()

    assert settings.default_ttl_hours == 24
    assert settings.max_file_size == 10 * 1024 * 1024
    assert settings.cleanup_frequency == "hourly"
    assert settings.cleanup_interval_seconds == 3600
    assert settings.cleanup_timeout_seconds == 300
    assert "image/png" in settings.allowed_mime_types


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("TEMP_MEDIA_DEFAULT_TTL_HOURS", "2")
    monkeypatch.setenv("TEMP_MEDIA_CLEANUP_FREQUENCY", "everyFiveMinutes")

    settings = TempMediaSettings()

    assert settings.default_ttl_hours == 2
    assert settings.cleanup_interval_seconds == 300


def test_unknown_frequency_is_rejected() -> None:
    with pytest.raises(ValidationError):
        TempMediaSettings(cleanup_frequency="fortnightly")


def test_non_positive_ttl_is_rejected() -> None:
    with pytest.raises(ValidationError):
        TempMediaSettings(default_ttl_hours=0)


def test_load_config_prepares_disk(tmp_path) -> None:
    settings = TempMediaSettings(
        database_url=f"sqlite:///{tmp_path / 'db.sqlite'}",
        media_root=tmp_path / "media",
        disk="local",
    )

    config = load_config(settings)
    try:
        assert config.media_paths.root == tmp_path / "media" / "local"
        assert config.media_paths.temp.is_dir()
        assert config.media_paths.library.is_dir()
        assert config.database_url == settings.database_url
    finally:
        config.engine.dispose()
