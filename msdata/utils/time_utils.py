"""
Timezone helpers.

Timestamps are stored and compared in UTC. Rendering into a local zone is
always done with an explicit ``tzinfo``; nothing here touches process-wide
timezone state.
"""
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_timezone(name: str) -> tzinfo:
    """
    Look up an IANA timezone.

    Raises:
        ValueError: If the name is not a known zone.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def to_timezone(value: Optional[datetime], tz: tzinfo) -> Optional[datetime]:
    """Render a stored timestamp in ``tz``."""
    if value is None:
        return None
    return ensure_utc(value).astimezone(tz)
