"""Local-time helpers for the persona's home timezone."""

from datetime import datetime
from zoneinfo import ZoneInfo

USER_TZ = ZoneInfo("Asia/Kolkata")


def local_now(tz: ZoneInfo = USER_TZ, now: float = None) -> datetime:
    """Current wall time in ``tz``; ``now`` is an optional epoch override."""
    if now is None:
        return datetime.now(tz)
    return datetime.fromtimestamp(now, tz)


def is_late_night(hour: int) -> bool:
    return 0 <= hour < 6
