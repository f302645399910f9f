"""UTC datetime utilities."""

from datetime import datetime, timezone

SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def start_of_cycle(timestamp: int, period: int) -> int:
    """Align a unix timestamp down to the start of its cycle: t - t % period."""
    return timestamp - timestamp % period

