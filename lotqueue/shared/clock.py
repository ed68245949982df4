"""Wall-clock access, injectable so tests can pin time."""

from datetime import datetime, timezone, tzinfo
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def resolve_timezone(name: str) -> tzinfo:
    """Return the tzinfo for an IANA zone name ("UTC" maps to timezone.utc)."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)
