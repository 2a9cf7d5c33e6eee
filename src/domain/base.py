from datetime import UTC, datetime
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns round-trip through SQLite."""
    return datetime.now(UTC).replace(tzinfo=None)


def local_today(timezone: str):
    """Calendar date in the given IANA timezone."""
    return datetime.now(ZoneInfo(timezone)).date()
