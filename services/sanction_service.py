from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from db.repository import Repository, SanctionRecord
from utils.time_utils import berlin_now_utc


log = logging.getLogger("werkstatt.sanctions")

KIND_WARN_1 = "Warn 1"
KIND_WARN_2 = "Warn 2"
KIND_SUSPENSION_1_DAY = "Suspendierung 1 Tag"
KIND_SUSPENSION_2_DAYS = "Suspendierung 2 Tage"
KIND_DEMOTION = "Degradierung"
KIND_DEMOTION_SUSPENSION = "Degradierung + 1 Tag Suspendierung"
KIND_TERMINATION = "Kuendigung"

# (value, label shown in the slash command choice)
SANCTION_KIND_CHOICES: tuple[tuple[str, str], ...] = (
    (KIND_WARN_1, "Warn 1"),
    (KIND_WARN_2, "Warn 2"),
    (KIND_SUSPENSION_1_DAY, "Suspendierung (1 Tag)"),
    (KIND_SUSPENSION_2_DAYS, "Suspendierung (2 Tage)"),
    (KIND_DEMOTION, "Degradierung"),
    (KIND_DEMOTION_SUSPENSION, "Degradierung + 1 Tag Suspendierung"),
    (KIND_TERMINATION, "Kuendigung"),
)
SANCTION_KINDS = frozenset(value for value, _label in SANCTION_KIND_CHOICES)

SUSPENSION_DURATIONS: dict[str, timedelta] = {
    KIND_SUSPENSION_1_DAY: timedelta(days=1),
    KIND_DEMOTION_SUSPENSION: timedelta(days=1),
    KIND_SUSPENSION_2_DAYS: timedelta(days=2),
}


@dataclass(slots=True)
class SanctionRevokeResult:
    success: bool
    reason: str | None
    sanction: SanctionRecord | None


def compute_expires_at(kind: str, issued_at: datetime) -> datetime | None:
    duration = SUSPENSION_DURATIONS.get(kind)
    if duration is None:
        return None
    return issued_at + duration


async def issue_sanction(
    repo: Repository,
    *,
    user_id: int,
    display_name: str,
    kind: str,
    reason: str,
    fine_amount: int,
    issuer_id: int,
    issuer_name: str,
    now: datetime | None = None,
) -> SanctionRecord:
    if kind not in SANCTION_KINDS:
        raise ValueError(f"Unbekannter Sanktionstyp: {kind}")
    if int(fine_amount) < 0:
        raise ValueError("Die Geldstrafe darf nicht negativ sein.")
    cleaned_reason = (reason or "").strip()
    if not cleaned_reason:
        raise ValueError("Bitte gib einen Grund fuer die Sanktion an.")

    issued_at = now or berlin_now_utc()
    record = await repo.create_sanction(
        user_id=user_id,
        display_name=display_name,
        kind=kind,
        reason=cleaned_reason,
        fine_amount=int(fine_amount),
        issuer_id=issuer_id,
        issuer_name=issuer_name,
        created_at=issued_at,
        expires_at=compute_expires_at(kind, issued_at),
    )
    log.info("Sanction issued id=%s kind=%s user_id=%s issuer_id=%s", record.id, kind, user_id, issuer_id)
    return record


async def revoke_sanction(repo: Repository, *, sanction_id: int, actor_id: int) -> SanctionRevokeResult:
    record = await repo.get_sanction(sanction_id)
    if record is None:
        return SanctionRevokeResult(success=False, reason="not_found", sanction=None)

    await repo.deactivate_sanction(record.id)
    record.active = False
    log.info("Sanction revoked id=%s by actor_id=%s", record.id, actor_id)
    return SanctionRevokeResult(success=True, reason=None, sanction=record)


async def list_sanctions_for_display(repo: Repository, *, user_id: int | None, limit: int = 15) -> list[SanctionRecord]:
    # A specific user sees the full history, the overview only active ones.
    if user_id is not None:
        return await repo.list_sanctions(user_id=user_id, limit=limit)
    return await repo.list_sanctions(active_only=True, limit=limit)
