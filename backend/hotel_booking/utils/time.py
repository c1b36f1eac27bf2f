from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from ..config import get_settings


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def hotel_today() -> date:
    """Current calendar date in the hotel's timezone."""
    return datetime.now(ZoneInfo(get_settings().hotel_timezone)).date()
