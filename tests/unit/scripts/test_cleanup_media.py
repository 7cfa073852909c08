import importlib.util
import sys
from pathlib import Path

import pytest

from temp_media.media.media_models import SweepReport, TransferStats


PROJECT_ROOT = Path(__file__).resolve().parents[3]
MODULE_PATH = PROJECT_ROOT / "scripts" / "cleanup_media.py"
SPEC = importlib.util.spec_from_file_location("cleanup_media_module", MODULE_PATH)
cleanup_media = importlib.util.module_from_spec(SPEC)
assert SPEC and SPEC.loader
sys.modules["cleanup_media_module"] = cleanup_media
SPEC.loader.exec_module(cleanup_media)


@pytest.fixture
def wired(monkeypatch, config, services):
    monkeypatch.setattr(cleanup_media, "load_config", lambda: config)
    monkeypatch.setattr(cleanup_media, "build_services", lambda cfg: services)
    return services


def _summary(**report) -> object:
    return cleanup_media.CleanupSummary(
        report=SweepReport(**report),
        stats=TransferStats(total=3, active=1, processed=1, expired=1, discarded=0),
    )


def test_perform_cleanup_dry_run(wired, upload, clock) -> None:
    upload()
    upload()
    clock.advance(hours=25)

    summary = cleanup_media.perform_cleanup(dry_run=True)

    assert summary.report.dry_run is True
    assert summary.report.expired_removed == 2
    assert summary.stats.total == 2
    assert wired.transfer.get_transfer_stats().total == 2


def test_perform_cleanup_executes_sweep(wired, upload, clock) -> None:
    processed = upload(ttl_hours=72)
    wired.temp_media.mark_processed([processed.id])
    upload()
    clock.advance(hours=25)

    summary = cleanup_media.perform_cleanup(processed_only=True)

    assert summary.report.processed_removed == 1
    assert summary.report.expired_removed == 0
    assert summary.stats.processed == 1
    assert wired.transfer.get_transfer_stats().total == 1


def test_main_prints_table(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cleanup_media, "perform_cleanup", lambda **kwargs: _summary(expired_removed=2))

    exit_code = cleanup_media.main(["--expired-only"])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert "Total temp media" in captured.out
    assert "expired=2" in captured.out


def test_main_reports_timeout(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cleanup_media, "perform_cleanup", lambda **kwargs: _summary(timed_out=True))

    assert cleanup_media.main([]) == 1
    assert "timed out" in capsys.readouterr().err


def test_main_treats_skipped_sweep_as_success(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cleanup_media, "perform_cleanup", lambda **kwargs: _summary(skipped=True))

    assert cleanup_media.main([]) == 0
    assert "skipped" in capsys.readouterr().out


def test_main_handles_errors(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cleanup_media, "perform_cleanup", lambda **kwargs: (_ for _ in ()).throw(RuntimeError("boom")))

    exit_code = cleanup_media.main([])

    captured = capsys.readouterr()
    assert exit_code == 2
    assert "cleanup failed" in captured.err
    assert "boom" in captured.err


def test_scope_flags_are_mutually_exclusive() -> None:
    with pytest.raises(SystemExit):
        cleanup_media.parse_args(["--expired-only", "--processed-only"])
