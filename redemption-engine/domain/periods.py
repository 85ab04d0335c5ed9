"""
Domain: Redemption frequencies and period boundaries.

Frequency semantics:
- one_time: a single redemption ever; the period starts at the Unix epoch.
- daily: calendar day in the business timezone.
- weekly: ISO week starting Monday 00:00 in the business timezone.
- monthly: calendar month starting on the 1st 00:00 in the business timezone.
- unlimited: no period; redemptions never block each other.

period_start() is pure and is the single source of truth for both the
eligibility pre-check and the ledger's uniqueness key.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional

from .time import require_utc_timestamp

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class RedemptionFrequency(str, Enum):
    ONE_TIME = "one_time"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    UNLIMITED = "unlimited"

    @property
    def period_noun(self) -> str:
        return {
            RedemptionFrequency.DAILY: "day",
            RedemptionFrequency.WEEKLY: "week",
            RedemptionFrequency.MONTHLY: "month",
        }.get(self, "")


def _local_midnight(local: datetime) -> datetime:
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def period_start(
    frequency: RedemptionFrequency,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> Optional[datetime]:
    """
    Start (UTC) of the frequency window containing `now`.

    Boundaries are computed on the local wall clock of `tz` and converted back
    to UTC, so a Monday 00:30 in Europe/Nicosia belongs to that Monday's week
    even though it is still Sunday in UTC.

    Returns None for UNLIMITED (no window applies).
    """

    require_utc_timestamp("now", now)

    if frequency is RedemptionFrequency.UNLIMITED:
        return None
    if frequency is RedemptionFrequency.ONE_TIME:
        return EPOCH

    local = now.astimezone(tz)
    if frequency is RedemptionFrequency.DAILY:
        start = _local_midnight(local)
    elif frequency is RedemptionFrequency.WEEKLY:
        start = _local_midnight(local) - timedelta(days=local.weekday())
    elif frequency is RedemptionFrequency.MONTHLY:
        start = _local_midnight(local).replace(day=1)
    else:
        raise ValueError(f"Unsupported redemption frequency: {frequency!r}")

    # ZoneInfo resolves the offset from the boundary's own wall time (DST safe).
    return start.astimezone(timezone.utc)


def falls_in_current_period(
    frequency: RedemptionFrequency,
    redeemed_at: datetime,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> bool:
    """True when a redemption at `redeemed_at` blocks another one at `now`."""

    start = period_start(frequency, now, tz)
    if start is None:
        return False
    return redeemed_at >= start


__all__ = [
    "EPOCH",
    "RedemptionFrequency",
    "falls_in_current_period",
    "period_start",
]
