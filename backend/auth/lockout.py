# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Failed-login lockout policy.

Per-account state machine with two states:

* ``OPEN``   – ``locked_until`` unset or already in the past.
* ``LOCKED`` – ``now < locked_until``; login is refused without checking the
  password.

A lock that has run out is released lazily by :meth:`release_expired` at the
next login attempt; nothing sweeps expired locks in the background.  The
counter update is a plain read-then-write on the row, so two concurrent
failures may count as one.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from core.clock import as_utc


class LockState(str, Enum):
    OPEN = "open"
    LOCKED = "locked"


@dataclass(frozen=True)
class FailureOutcome:
    attempts: int
    attempts_remaining: int
    locked_until: Optional[datetime] = None

    @property
    def locked(self) -> bool:
        return self.locked_until is not None


class LockoutPolicy:
    def __init__(self, max_attempts: int = 5, lock_duration: timedelta = timedelta(minutes=15)):
        self.max_attempts = max_attempts
        self.lock_duration = lock_duration

    @property
    def lock_minutes(self) -> int:
        return math.ceil(self.lock_duration.total_seconds() / 60)

    def state(self, user, now: datetime) -> LockState:
        locked_until = as_utc(user.locked_until)
        if locked_until is not None and now < locked_until:
            return LockState.LOCKED
        return LockState.OPEN

    def minutes_remaining(self, user, now: datetime) -> int:
        """Whole minutes (rounded up) until the lock lifts; 0 when open."""
        locked_until = as_utc(user.locked_until)
        if locked_until is None or now >= locked_until:
            return 0
        return math.ceil((locked_until - now).total_seconds() / 60)

    def release_expired(self, user, now: datetime) -> bool:
        """Clear a lock whose time has passed.  Returns True if one was cleared."""
        if user.locked_until is None or self.state(user, now) is LockState.LOCKED:
            return False
        self.reset(user)
        return True

    def record_failure(self, user, now: datetime) -> FailureOutcome:
        attempts = (user.failed_login_attempts or 0) + 1
        user.failed_login_attempts = attempts

        if attempts >= self.max_attempts:
            user.locked_until = now + self.lock_duration
            return FailureOutcome(attempts=attempts, attempts_remaining=0, locked_until=user.locked_until)

        return FailureOutcome(attempts=attempts, attempts_remaining=self.max_attempts - attempts)

    def reset(self, user) -> None:
        """Successful login or explicit unlock."""
        user.failed_login_attempts = 0
        user.locked_until = None
