# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Time source for every expiry comparison (session tokens, verification
tokens, account locks).

Services take a clock in their constructor instead of calling
``datetime.now`` directly, so tests can freeze and advance time.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


class SystemClock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """Manually driven clock for tests and scripted scenarios."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = as_utc(start) if start else datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> datetime:
        self._now = self._now + delta
        return self._now


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a stored timestamp to aware UTC.

    SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
    columns; values we write are always UTC, so a naive value is UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
