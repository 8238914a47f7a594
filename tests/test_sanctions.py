from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from services.sanction_service import (
    KIND_DEMOTION_SUSPENSION,
    KIND_SUSPENSION_1_DAY,
    KIND_SUSPENSION_2_DAYS,
    KIND_TERMINATION,
    KIND_WARN_1,
    SANCTION_KIND_CHOICES,
    compute_expires_at,
    issue_sanction,
    list_sanctions_for_display,
    revoke_sanction,
)
from services.userinfo_service import build_user_summary
from utils.text import format_money
from utils.time_utils import as_utc


ISSUED_AT = datetime(2024, 12, 20, 18, 30, tzinfo=UTC)


async def _issue(repo, kind: str, *, user_id: int = 5, fine: int = 0, offset: int = 0):
    return await issue_sanction(
        repo,
        user_id=user_id,
        display_name=f"user-{user_id}",
        kind=kind,
        reason="Zu spaet zur Schicht",
        fine_amount=fine,
        issuer_id=1,
        issuer_name="Chef",
        now=ISSUED_AT + timedelta(minutes=offset),
    )


def test_suspension_durations():
    assert compute_expires_at(KIND_SUSPENSION_1_DAY, ISSUED_AT) == ISSUED_AT + timedelta(days=1)
    assert compute_expires_at(KIND_DEMOTION_SUSPENSION, ISSUED_AT) == ISSUED_AT + timedelta(days=1)
    assert compute_expires_at(KIND_SUSPENSION_2_DAYS, ISSUED_AT) == ISSUED_AT + timedelta(days=2)
    assert compute_expires_at(KIND_WARN_1, ISSUED_AT) is None
    assert compute_expires_at(KIND_TERMINATION, ISSUED_AT) is None


def test_choices_cover_seven_kinds():
    assert len(SANCTION_KIND_CHOICES) == 7
    assert len({value for value, _label in SANCTION_KIND_CHOICES}) == 7


@pytest.mark.asyncio
async def test_issued_suspension_persists_expiry(repo):
    one_day = await _issue(repo, KIND_SUSPENSION_1_DAY, fine=5000)
    two_days = await _issue(repo, KIND_SUSPENSION_2_DAYS)
    warn = await _issue(repo, KIND_WARN_1)

    stored_one = await repo.get_sanction(one_day.id)
    stored_two = await repo.get_sanction(two_days.id)
    stored_warn = await repo.get_sanction(warn.id)

    assert as_utc(stored_one.expires_at) - as_utc(stored_one.created_at) == timedelta(days=1)
    assert as_utc(stored_two.expires_at) - as_utc(stored_two.created_at) == timedelta(days=2)
    assert stored_warn.expires_at is None
    assert stored_one.fine_amount == 5000
    assert stored_one.active is True


@pytest.mark.asyncio
async def test_negative_fine_is_rejected_without_writing(repo):
    with pytest.raises(ValueError):
        await _issue(repo, KIND_WARN_1, fine=-1)

    assert await repo.count_sanctions(5) == 0


@pytest.mark.asyncio
async def test_unknown_kind_is_rejected(repo):
    with pytest.raises(ValueError):
        await _issue(repo, "Verwarnung 3")


@pytest.mark.asyncio
async def test_revoke_marks_inactive_and_reports_missing(repo):
    record = await _issue(repo, KIND_WARN_1)

    missing = await revoke_sanction(repo, sanction_id=999, actor_id=1)
    revoked = await revoke_sanction(repo, sanction_id=record.id, actor_id=1)

    assert (missing.success, missing.reason) == (False, "not_found")
    assert revoked.success is True
    assert (await repo.get_sanction(record.id)).active is False


@pytest.mark.asyncio
async def test_display_listing_filters_by_user_and_activity(repo):
    first = await _issue(repo, KIND_WARN_1, user_id=5, offset=0)
    second = await _issue(repo, KIND_SUSPENSION_1_DAY, user_id=5, offset=1)
    other = await _issue(repo, KIND_WARN_1, user_id=6, offset=2)
    await revoke_sanction(repo, sanction_id=first.id, actor_id=1)

    history = await list_sanctions_for_display(repo, user_id=5)
    overview = await list_sanctions_for_display(repo, user_id=None)

    assert [item.id for item in history] == [second.id, first.id]
    assert [item.id for item in overview] == [other.id, second.id]


@pytest.mark.asyncio
async def test_user_summary_counts(repo):
    first = await _issue(repo, KIND_WARN_1, user_id=5)
    await _issue(repo, KIND_SUSPENSION_2_DAYS, user_id=5, offset=1)
    await revoke_sanction(repo, sanction_id=first.id, actor_id=1)

    summary = await build_user_summary(repo, 5)

    assert (summary.active_sanctions, summary.total_sanctions, summary.active_absences) == (1, 2, 0)


def test_format_money_uses_german_grouping():
    assert format_money(1500000) == "$1.500.000"
    assert format_money(None) == "$0"
