from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Return an ISO 8601 string for the current UTC time."""
    return utc_now().isoformat()


def local_today(tz_name: str) -> date:
    """Current calendar date in `tz_name` (e.g. "Europe/Paris")."""
    return utc_now().astimezone(ZoneInfo(tz_name)).date()
