from utils.text import PLATE_MAX_LENGTH, format_date_de, format_money, normalize_plate, truncate
from utils.time_utils import berlin_now, berlin_today, calendar_day, to_berlin

__all__ = [
    "PLATE_MAX_LENGTH",
    "berlin_now",
    "berlin_today",
    "calendar_day",
    "format_date_de",
    "format_money",
    "normalize_plate",
    "to_berlin",
    "truncate",
]
