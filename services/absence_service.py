from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime

from db.repository import AbsenceRecord, Repository
from utils.time_utils import calendar_day


log = logging.getLogger("werkstatt.absences")

INVALID_DATE_MESSAGE = "Ungueltiges Datumsformat. Bitte verwende TT.MM.JJJJ"
END_BEFORE_START_MESSAGE = "Das Enddatum muss nach dem Startdatum liegen."
MISSING_REASON_MESSAGE = "Bitte gib einen Grund fuer die Abmeldung an."
REASON_MAX_LENGTH = 500

STATUS_AWAY = "away"
STATUS_SCHEDULED = "scheduled"

_GERMAN_DATE_PATTERN = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
_ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


@dataclass(slots=True)
class AbsenceDeactivateResult:
    success: bool
    reason: str | None
    absence: AbsenceRecord | None


def parse_absence_date(raw: str, *, allow_iso: bool = False) -> date:
    text = (raw or "").strip()
    match = _GERMAN_DATE_PATTERN.match(text)
    if match is not None:
        day, month, year = (int(part) for part in match.groups())
    else:
        iso_match = _ISO_DATE_PATTERN.match(text) if allow_iso else None
        if iso_match is None:
            raise ValueError(INVALID_DATE_MESSAGE)
        year, month, day = (int(part) for part in iso_match.groups())

    try:
        return date(year, month, day)
    except ValueError as exc:
        raise ValueError(INVALID_DATE_MESSAGE) from exc


def parse_absence_period(start_raw: str, end_raw: str, *, allow_iso: bool = False) -> tuple[date, date]:
    start_date = parse_absence_date(start_raw, allow_iso=allow_iso)
    end_date = parse_absence_date(end_raw, allow_iso=allow_iso)
    if end_date < start_date:
        raise ValueError(END_BEFORE_START_MESSAGE)
    return start_date, end_date


def absence_status(record: AbsenceRecord, today: date) -> str:
    if record.start_date <= today <= record.end_date:
        return STATUS_AWAY
    return STATUS_SCHEDULED


async def create_absence(
    repo: Repository,
    *,
    user_id: int,
    display_name: str,
    reason: str,
    start_raw: str,
    end_raw: str,
    allow_iso: bool = False,
) -> AbsenceRecord:
    """Validate the submitted period and persist a new active absence.

    Raises ``ValueError`` with a user-facing message when the dates do not
    parse or the end lies before the start; nothing is written then.
    """
    cleaned_reason = (reason or "").strip()
    if not cleaned_reason:
        raise ValueError(MISSING_REASON_MESSAGE)

    start_date, end_date = parse_absence_period(start_raw, end_raw, allow_iso=allow_iso)
    record = await repo.create_absence(
        user_id=user_id,
        display_name=display_name,
        reason=cleaned_reason[:REASON_MAX_LENGTH],
        start_date=start_date,
        end_date=end_date,
    )
    log.info(
        "Absence created id=%s user_id=%s period=%s..%s",
        record.id,
        user_id,
        start_date.isoformat(),
        end_date.isoformat(),
    )
    return record


async def sweep_expired_absences(repo: Repository, as_of: date | datetime) -> int:
    if isinstance(as_of, datetime) and as_of.tzinfo is None:
        raise ValueError("as_of must be timezone-aware")
    cutoff = calendar_day(as_of)
    changed = await repo.deactivate_absences_ending_before(cutoff)
    if changed:
        log.info("%s abgelaufene Abmeldung(en) deaktiviert", changed)
    return changed


async def terminate_active_absence(repo: Repository, user_id: int) -> AbsenceRecord | None:
    record = await repo.latest_active_absence(user_id)
    if record is None:
        return None
    await repo.deactivate_absence(record.id)
    record.active = False
    log.info("Absence ended id=%s user_id=%s", record.id, user_id)
    return record


async def deactivate_absence_by_id(
    repo: Repository,
    *,
    absence_id: int,
    actor_id: int,
    actor_is_admin: bool,
) -> AbsenceDeactivateResult:
    record = await repo.get_absence(absence_id)
    if record is None:
        return AbsenceDeactivateResult(success=False, reason="not_found", absence=None)
    if record.user_id != int(actor_id) and not actor_is_admin:
        return AbsenceDeactivateResult(success=False, reason="forbidden", absence=record)

    changed = await repo.deactivate_absence(record.id)
    record.active = False
    if not changed:
        return AbsenceDeactivateResult(success=False, reason="already_inactive", absence=record)
    log.info("Absence deactivated id=%s by actor_id=%s", record.id, actor_id)
    return AbsenceDeactivateResult(success=True, reason=None, absence=record)
