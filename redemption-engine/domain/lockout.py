"""
Domain: Verification attempt counters and lockouts.

Counters are keyed by (business_id, identifier fingerprint), so repeated use
of a member ID at one terminal is throttled while the same member keeps
working everywhere else.

Transitions are pure; stores apply them atomically.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class LockoutKey:
    business_id: UUID
    identifier_hash: str

    def __str__(self) -> str:
        return f"verify:{self.business_id}:{self.identifier_hash}"


@dataclass(frozen=True, slots=True)
class LockoutPolicy:
    threshold: int = 5
    window: timedelta = timedelta(minutes=15)
    duration: timedelta = timedelta(minutes=30)

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise ValueError("threshold must be >= 1")
        if self.window <= timedelta(0) or self.duration <= timedelta(0):
            raise ValueError("window and duration must be positive")


@dataclass(frozen=True, slots=True)
class LockoutCounter:
    """Stored state for one key."""

    failed_count: int
    window_started_at: datetime
    locked_until: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("window_started_at", self.window_started_at)
        if self.locked_until is not None:
            require_utc_timestamp("locked_until", self.locked_until)

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and now < self.locked_until

    def is_stale(self, now: datetime, policy: LockoutPolicy) -> bool:
        """True once nothing in this counter can affect a future decision."""

        if self.is_locked(now):
            return False
        if self.locked_until is not None:
            return True
        return now >= self.window_started_at + policy.window


def register_failure(
    counter: Optional[LockoutCounter],
    now: datetime,
    policy: LockoutPolicy,
) -> LockoutCounter:
    """
    Apply one failed verification to a counter.

    - No counter, an elapsed window, or an elapsed lockout starts a fresh count.
    - Reaching the threshold sets locked_until = now + duration.
    - Failures while locked leave the counter unchanged (the gate rejects them
      before they are counted, this only guards concurrent callers).
    """

    require_utc_timestamp("now", now)

    if counter is not None and counter.is_locked(now):
        return counter

    if counter is None or counter.is_stale(now, policy):
        count = 1
        window_started_at = now
    else:
        count = counter.failed_count + 1
        window_started_at = counter.window_started_at

    locked_until = now + policy.duration if count >= policy.threshold else None
    return LockoutCounter(
        failed_count=count,
        window_started_at=window_started_at,
        locked_until=locked_until,
    )


@dataclass(frozen=True, slots=True)
class LockoutDecision:
    """Outcome of consulting the tracker for one attempt."""

    allowed: bool
    remaining_attempts: int
    lockout_expires_at: Optional[datetime] = None

    def remaining_minutes(self, now: datetime) -> Optional[int]:
        """Whole minutes left on the lockout, rounded up (never below 1)."""

        if self.lockout_expires_at is None:
            return None
        seconds = (self.lockout_expires_at - now).total_seconds()
        return max(1, math.ceil(seconds / 60))


def decide(counter: Optional[LockoutCounter], now: datetime, policy: LockoutPolicy) -> LockoutDecision:
    """Map stored state to a decision without changing it."""

    require_utc_timestamp("now", now)

    if counter is None or counter.is_stale(now, policy):
        return LockoutDecision(allowed=True, remaining_attempts=policy.threshold)
    if counter.is_locked(now):
        return LockoutDecision(
            allowed=False,
            remaining_attempts=0,
            lockout_expires_at=counter.locked_until,
        )
    return LockoutDecision(
        allowed=True,
        remaining_attempts=max(policy.threshold - counter.failed_count, 0),
    )


__all__ = [
    "LockoutCounter",
    "LockoutDecision",
    "LockoutKey",
    "LockoutPolicy",
    "decide",
    "register_failure",
]
