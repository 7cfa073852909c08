from datetime import timedelta

import pytest

from temp_media.events import TempMediaExpired, TempMediaUploaded
from temp_media.exceptions import InvalidFileError, StorageFaultError
from temp_media.media.blob_store import LocalBlobStore, temp_media_key
from temp_media.media.media_models import RecordStatus


def test_upload_stores_record_and_blob(services, upload, clock) -> None:
    uploaded = upload(session_id="s1", data=b"abc")

    record = services.temp_media_repo.get(uploaded.id)
    assert record is not None
    assert record.session_id == "s1"
    assert record.size == 3
    assert record.is_processed is False
    assert record.status is RecordStatus.ACTIVE
    assert uploaded.expires_at == clock.now + timedelta(hours=24)
    assert uploaded.url == f"/media/temp-media/{uploaded.id}/photo.png"
    assert services.blob_store.path(temp_media_key(uploaded.id, "photo.png")).read_bytes() == b"abc"
    assert uploaded.is_temporary is True


def test_upload_publishes_event(services, upload) -> None:
    uploaded = upload()

    events = services.events.drain()

    assert len(events) == 1
    assert isinstance(events[0], TempMediaUploaded)
    assert events[0].record.id == uploaded.id
    assert events[0].url == uploaded.url


def test_upload_honours_custom_ttl(upload, clock) -> None:
    uploaded = upload(ttl_hours=2)

    assert uploaded.expires_at == clock.now + timedelta(hours=2)


def test_upload_rejects_non_positive_ttl(upload) -> None:
    with pytest.raises(ValueError):
        upload(ttl_hours=0)


def test_upload_keeps_only_basename_of_client_filename(services, upload) -> None:
    uploaded = upload(filename="../../etc/evil.png")

    record = services.temp_media_repo.get(uploaded.id)
    assert record.file_name == "evil.png"
    assert record.original_name == "../../etc/evil.png"
    assert services.blob_store.exists(temp_media_key(uploaded.id, "evil.png"))


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"content_type": "application/pdf"}, "File type not allowed"),
        ({"data": b""}, "Invalid file upload"),
    ],
)
def test_invalid_upload_leaves_no_trace(services, upload, config, kwargs, message) -> None:
    with pytest.raises(InvalidFileError, match=message):
        upload(**kwargs)

    assert services.temp_media_repo.stats(services.temp_media.clock()).total == 0
    assert list(config.media_paths.temp.iterdir()) == []


def test_upload_rejects_oversized_file(services, upload) -> None:
    services.temp_media.policy.max_file_size = 4

    with pytest.raises(InvalidFileError, match="File size exceeds maximum allowed size"):
        upload(data=b"12345")


def test_upload_rejects_missing_file(services) -> None:
    with pytest.raises(InvalidFileError, match="Invalid file upload"):
        services.temp_media.upload(None)


def test_blob_failure_rolls_back_record(services, upload, monkeypatch) -> None:
    def _failing_put(self, key, stream):
        raise OSError("disk full")

    monkeypatch.setattr(LocalBlobStore, "put", _failing_put)

    with pytest.raises(StorageFaultError):
        upload()

    assert services.temp_media_repo.stats(services.temp_media.clock()).total == 0
    assert services.events.pending() == 0


def test_get_hides_expired_records(services, upload, clock) -> None:
    uploaded = upload()
    assert services.temp_media.get(uploaded.id) is not None

    clock.advance(hours=24)

    assert services.temp_media.get(uploaded.id) is None
    assert services.temp_media_repo.get(uploaded.id) is not None


def test_delete_removes_row_and_blob(services, upload) -> None:
    uploaded = upload()

    assert services.temp_media.delete(uploaded.id) is True
    assert services.temp_media_repo.get(uploaded.id) is None
    assert not services.blob_store.exists(temp_media_key(uploaded.id, "photo.png"))
    assert services.temp_media.delete(uploaded.id) is False


def test_discard_soft_deletes_until_next_sweep(services, upload) -> None:
    uploaded = upload()

    assert services.temp_media.discard(uploaded.id) is True
    assert services.temp_media.discard(uploaded.id) is False
    assert services.temp_media.get(uploaded.id) is None
    assert services.temp_media_repo.get(uploaded.id).status is RecordStatus.SOFT_DELETED
    assert services.blob_store.exists(temp_media_key(uploaded.id, "photo.png"))


def test_mark_processed_is_idempotent(services, upload) -> None:
    uploaded = upload()

    assert services.temp_media.mark_processed([uploaded.id, uploaded.id, "unknown"]) == [uploaded.id]
    assert services.temp_media.mark_processed([uploaded.id]) == []
    assert services.temp_media.get(uploaded.id) is None


def test_cleanup_expired_removes_and_notifies(services, upload, clock) -> None:
    kept = upload(ttl_hours=48)
    expired = upload()
    services.events.drain()
    clock.advance(hours=25)

    assert services.temp_media.cleanup_expired() == 1

    assert services.temp_media_repo.get(expired.id) is None
    assert services.temp_media_repo.get(kept.id) is not None
    events = services.events.drain()
    assert [type(event) for event in events] == [TempMediaExpired]
    assert events[0].record.id == expired.id


def test_public_view_hides_owner(services, upload) -> None:
    uploaded = upload(session_id="secret-session")
    record = services.temp_media.get(uploaded.id)

    view = services.temp_media.public_view(record)

    assert view["id"] == uploaded.id
    assert view["url"] == uploaded.url
    assert view["thumb_url"] is None
    assert "session_id" not in view
