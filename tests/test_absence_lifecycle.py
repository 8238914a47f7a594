from __future__ import annotations

from datetime import date, datetime, timedelta, UTC

import pytest

from services.absence_service import (
    END_BEFORE_START_MESSAGE,
    INVALID_DATE_MESSAGE,
    STATUS_AWAY,
    STATUS_SCHEDULED,
    absence_status,
    create_absence,
    deactivate_absence_by_id,
    parse_absence_date,
    sweep_expired_absences,
    terminate_active_absence,
)


async def _absence(repo, user_id: int, start: date, end: date, *, created_offset: int = 0):
    return await repo.create_absence(
        user_id=user_id,
        display_name=f"user-{user_id}",
        reason="Urlaub",
        start_date=start,
        end_date=end,
        created_at=datetime(2024, 12, 1, 12, 0, tzinfo=UTC) + timedelta(minutes=created_offset),
    )


def test_parse_absence_date_accepts_german_format():
    assert parse_absence_date("25.12.2024") == date(2024, 12, 25)
    assert parse_absence_date(" 1.2.2025 ") == date(2025, 2, 1)


def test_parse_absence_date_rejects_iso_unless_allowed():
    with pytest.raises(ValueError, match=INVALID_DATE_MESSAGE):
        parse_absence_date("2024-12-25")
    assert parse_absence_date("2024-12-25", allow_iso=True) == date(2024, 12, 25)


@pytest.mark.parametrize("raw", ["", "31.02.2024", "morgen", "12/24/2024"])
def test_parse_absence_date_rejects_garbage(raw):
    with pytest.raises(ValueError, match=INVALID_DATE_MESSAGE):
        parse_absence_date(raw)


@pytest.mark.asyncio
async def test_create_absence_rejects_end_before_start_without_writing(repo):
    with pytest.raises(ValueError, match=END_BEFORE_START_MESSAGE):
        await create_absence(
            repo,
            user_id=1,
            display_name="Kai",
            reason="Urlaub",
            start_raw="25.12.2024",
            end_raw="20.12.2024",
        )

    assert await repo.list_active_absences() == []


@pytest.mark.asyncio
async def test_create_absence_rejects_bad_date_without_writing(repo):
    with pytest.raises(ValueError, match=INVALID_DATE_MESSAGE):
        await create_absence(
            repo,
            user_id=1,
            display_name="Kai",
            reason="Urlaub",
            start_raw="heute",
            end_raw="20.12.2024",
        )

    assert await repo.count_active_absences(1) == 0


@pytest.mark.asyncio
async def test_create_absence_persists_active_record(repo):
    record = await create_absence(
        repo,
        user_id=7,
        display_name="Kai",
        reason="  Urlaub  ",
        start_raw="20.12.2024",
        end_raw="25.12.2024",
    )

    stored = await repo.get_absence(record.id)
    assert stored is not None
    assert stored.active is True
    assert stored.reason == "Urlaub"
    assert (stored.start_date, stored.end_date) == (date(2024, 12, 20), date(2024, 12, 25))


def test_absence_status_uses_calendar_days():
    class _Record:
        start_date = date(2024, 12, 20)
        end_date = date(2024, 12, 25)

    record = _Record()

    assert absence_status(record, date(2024, 12, 19)) == STATUS_SCHEDULED
    assert absence_status(record, date(2024, 12, 20)) == STATUS_AWAY
    assert absence_status(record, date(2024, 12, 22)) == STATUS_AWAY
    assert absence_status(record, date(2024, 12, 25)) == STATUS_AWAY
    assert absence_status(record, date(2024, 12, 26)) == STATUS_SCHEDULED


@pytest.mark.asyncio
async def test_sweep_deactivates_only_past_absences_and_is_idempotent(repo):
    ended = await _absence(repo, 1, date(2024, 12, 20), date(2024, 12, 25))
    ends_today = await _absence(repo, 2, date(2024, 12, 20), date(2024, 12, 26))
    future = await _absence(repo, 3, date(2025, 1, 2), date(2025, 1, 5))

    first = await sweep_expired_absences(repo, date(2024, 12, 26))
    second = await sweep_expired_absences(repo, date(2024, 12, 26))

    assert first == 1
    assert second == 0
    assert (await repo.get_absence(ended.id)).active is False
    assert (await repo.get_absence(ends_today.id)).active is True
    assert (await repo.get_absence(future.id)).active is True


@pytest.mark.asyncio
async def test_sweep_accepts_datetime_in_berlin_time(repo):
    record = await _absence(repo, 1, date(2024, 12, 20), date(2024, 12, 25))

    # 23:30 UTC on the 25th is already the 26th in Berlin.
    changed = await sweep_expired_absences(repo, datetime(2024, 12, 25, 23, 30, tzinfo=UTC))

    assert changed == 1
    assert (await repo.get_absence(record.id)).active is False


@pytest.mark.asyncio
async def test_sweep_rejects_naive_datetime(repo):
    record = await _absence(repo, 1, date(2024, 12, 20), date(2024, 12, 25))

    with pytest.raises(ValueError):
        await sweep_expired_absences(repo, datetime(2024, 12, 25, 23, 30))

    assert (await repo.get_absence(record.id)).active is True


@pytest.mark.asyncio
async def test_terminate_only_touches_newest_active_record(repo):
    user_id = 42
    await _absence(repo, 10, date(2024, 12, 1), date(2024, 12, 31), created_offset=0)
    await _absence(repo, 11, date(2024, 12, 1), date(2024, 12, 31), created_offset=1)
    older = await _absence(repo, user_id, date(2024, 12, 1), date(2024, 12, 2), created_offset=2)
    await _absence(repo, 12, date(2024, 12, 1), date(2024, 12, 31), created_offset=3)
    newer = await _absence(repo, user_id, date(2024, 12, 20), date(2024, 12, 25), created_offset=4)
    assert (older.id, newer.id) == (3, 5)
    await repo.deactivate_absence(older.id)

    ended = await terminate_active_absence(repo, user_id)

    assert ended is not None and ended.id == 5
    assert (await repo.get_absence(5)).active is False
    assert (await repo.get_absence(3)).active is False
    assert [record.id for record in await repo.list_active_absences()] == [1, 2, 4]


@pytest.mark.asyncio
async def test_terminate_without_active_record_returns_none(repo):
    assert await terminate_active_absence(repo, 99) is None


@pytest.mark.asyncio
async def test_deactivate_by_id_checks_owner_and_admin(repo):
    record = await _absence(repo, 1, date(2024, 12, 20), date(2024, 12, 25))

    missing = await deactivate_absence_by_id(repo, absence_id=999, actor_id=1, actor_is_admin=False)
    forbidden = await deactivate_absence_by_id(repo, absence_id=record.id, actor_id=2, actor_is_admin=False)
    by_admin = await deactivate_absence_by_id(repo, absence_id=record.id, actor_id=2, actor_is_admin=True)
    again = await deactivate_absence_by_id(repo, absence_id=record.id, actor_id=1, actor_is_admin=False)

    assert (missing.success, missing.reason) == (False, "not_found")
    assert (forbidden.success, forbidden.reason) == (False, "forbidden")
    assert (by_admin.success, by_admin.reason) == (True, None)
    assert (again.success, again.reason) == (False, "already_inactive")
