import pytest

from temp_media.exceptions import InvalidOrExpiredIdsError


def test_validate_ids_returns_records_in_request_order(services, upload) -> None:
    first = upload()
    second = upload()

    records = services.gate.validate_ids([second.id, first.id, second.id])

    assert [record.id for record in records] == [second.id, first.id]


def test_validate_ids_names_every_missing_id(services, upload) -> None:
    live = upload()

    with pytest.raises(InvalidOrExpiredIdsError) as excinfo:
        services.gate.validate_ids([live.id, "nope-1", "nope-2"])

    assert excinfo.value.missing_ids == ["nope-1", "nope-2"]
    assert str(excinfo.value) == "Invalid or expired temp media IDs: nope-1, nope-2"


def test_validate_ids_rejects_expired_and_processed(services, upload, clock) -> None:
    processed = upload()
    services.temp_media.mark_processed([processed.id])
    expiring = upload(ttl_hours=1)
    clock.advance(hours=1)

    with pytest.raises(InvalidOrExpiredIdsError) as excinfo:
        services.gate.validate_ids([processed.id, expiring.id])

    assert excinfo.value.missing_ids == [processed.id, expiring.id]


def test_validate_ids_accepts_empty_input(services) -> None:
    assert services.gate.validate_ids([]) == []


def test_validate_ownership(services, upload) -> None:
    mine = upload(session_id="s1", user_id="u1")
    also_mine = upload(session_id="s1", user_id="u2")
    theirs = upload(session_id="s2")

    gate = services.gate
    assert gate.validate_ownership([mine.id, also_mine.id], session_id="s1") is True
    assert gate.validate_ownership([mine.id, theirs.id], session_id="s1") is False
    assert gate.validate_ownership([mine.id], user_id="u1") is True
    assert gate.validate_ownership([also_mine.id], session_id="s1", user_id="u1") is False
    assert gate.validate_ownership([mine.id, "unknown"], session_id="s1") is False
    assert gate.validate_ownership([], session_id="s1") is True
