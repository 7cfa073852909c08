from datetime import datetime

from temp_media.events import EventDispatcher, TempMediaExpired
from temp_media.media.media_models import RecordStatus, TempMedia


def _record() -> TempMedia:
    now = datetime(2026, 1, 1)
    return TempMedia(
        id="a1",
        session_id=None,
        user_id=None,
        original_name="a.png",
        file_name="a.png",
        mime_type="image/png",
        size=1,
        expires_at=now,
        is_processed=False,
        status=RecordStatus.PURGED,
        created_at=now,
    )


def test_publish_only_enqueues() -> None:
    dispatcher = EventDispatcher()
    received = []
    dispatcher.subscribe(received.append)

    assert dispatcher.publish(TempMediaExpired(_record())) is True

    assert received == []
    assert dispatcher.pending() == 1
    assert dispatcher.deliver_pending() == 1
    assert len(received) == 1
    assert dispatcher.pending() == 0


def test_disabled_dispatcher_drops_events() -> None:
    dispatcher = EventDispatcher(enabled=False)

    assert dispatcher.publish(TempMediaExpired(_record())) is False
    assert dispatcher.pending() == 0


def test_full_queue_drops_instead_of_blocking() -> None:
    dispatcher = EventDispatcher(max_pending=1)

    assert dispatcher.publish(TempMediaExpired(_record())) is True
    assert dispatcher.publish(TempMediaExpired(_record())) is False
    assert dispatcher.pending() == 1


def test_failing_listener_does_not_stop_delivery() -> None:
    dispatcher = EventDispatcher()
    received = []

    def _broken(event) -> None:
        raise RuntimeError("listener down")

    dispatcher.subscribe(_broken)
    dispatcher.subscribe(received.append)
    dispatcher.publish(TempMediaExpired(_record()))
    dispatcher.publish(TempMediaExpired(_record()))

    assert dispatcher.deliver_pending() == 2
    assert len(received) == 2
