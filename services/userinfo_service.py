from __future__ import annotations

from dataclasses import dataclass

from db.repository import Repository


@dataclass(slots=True)
class UserSummary:
    user_id: int
    active_absences: int
    active_sanctions: int
    total_sanctions: int


async def build_user_summary(repo: Repository, user_id: int) -> UserSummary:
    return UserSummary(
        user_id=int(user_id),
        active_absences=await repo.count_active_absences(user_id),
        active_sanctions=await repo.count_sanctions(user_id, active_only=True),
        total_sanctions=await repo.count_sanctions(user_id),
    )
