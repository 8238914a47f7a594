from __future__ import annotations

from datetime import date, datetime

from utils.time_utils import to_berlin


PLATE_MAX_LENGTH = 8
EMBED_FIELD_VALUE_LIMIT = 1024


def normalize_plate(raw: str) -> str:
    return (raw or "").strip().upper()


def format_date_de(value: date | datetime | None) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = to_berlin(value).date()
    return value.strftime("%d.%m.%Y")


def format_money(amount: int | None) -> str:
    # German thousands separator, whole dollars only.
    value = int(amount or 0)
    return "$" + f"{value:,}".replace(",", ".")


def truncate(text: str, *, limit: int = EMBED_FIELD_VALUE_LIMIT) -> str:
    value = text or ""
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."

