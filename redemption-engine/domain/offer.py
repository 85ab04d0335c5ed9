"""
Domain: Offers published by partner businesses.

Rules implemented here:
- An Offer belongs to exactly one Business.
- An Offer with is_active = False is never eligible.
- valid_from / valid_until bound the offer in absolute time (inclusive).
- valid_days / valid_hours restrict the offer to a recurring weekly schedule on
  the business's local wall clock. Day numbers follow the dashboard's storage
  convention: 0 = Sunday ... 6 = Saturday.
- is_limited_time and limited_time_label are marketing-only and never affect
  eligibility.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Optional
from uuid import UUID

from .periods import RedemptionFrequency
from .time import require_utc_timestamp


class RedemptionScope(str, Enum):
    PER_MEMBER = "per_member"
    PER_PET = "per_pet"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"

    @classmethod
    def parse(cls, value: Optional[str]) -> "DiscountType":
        if value == cls.PERCENTAGE.value:
            return cls.PERCENTAGE
        return cls.FIXED


def format_amount(value: Decimal) -> str:
    """Render 10, 10.5 and 10.50 as "10", "10.5" and "10.5"."""

    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")


def format_discount(
    discount_type: DiscountType,
    discount_value: Optional[Decimal],
    currency_symbol: str = "€",
) -> str:
    """Short discount text shown on the terminal and in notifications ("10%", "€5")."""

    if discount_value is None:
        return ""
    amount = format_amount(discount_value)
    if discount_type is DiscountType.PERCENTAGE:
        return f"{amount}%"
    return f"{currency_symbol}{amount}"


def _weekday_sunday_zero(moment: datetime) -> int:
    # datetime.weekday(): Monday = 0 ... Sunday = 6
    return (moment.weekday() + 1) % 7


@dataclass(frozen=True, slots=True)
class Offer:
    offer_id: UUID
    business_id: UUID
    title: str
    discount_type: DiscountType
    discount_value: Optional[Decimal]
    scope: RedemptionScope = RedemptionScope.PER_MEMBER
    frequency: RedemptionFrequency = RedemptionFrequency.ONE_TIME
    is_active: bool = True
    description: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_limited_time: bool = False
    limited_time_label: Optional[str] = None
    valid_days: Optional[FrozenSet[int]] = None
    valid_hours_start: Optional[time] = None
    valid_hours_end: Optional[time] = None
    pet_type: Optional[str] = None
    max_redemptions: Optional[int] = None

    def __post_init__(self) -> None:
        if self.valid_from is not None:
            require_utc_timestamp("valid_from", self.valid_from)
        if self.valid_until is not None:
            require_utc_timestamp("valid_until", self.valid_until)
        if self.valid_days is not None and any(d < 0 or d > 6 for d in self.valid_days):
            raise ValueError("valid_days entries must be in 0..6 (0 = Sunday)")
        if self.max_redemptions is not None and self.max_redemptions < 0:
            raise ValueError("max_redemptions must be >= 0")

    def belongs_to(self, business_id: UUID) -> bool:
        return self.business_id == business_id

    def is_within_validity_window(self, now: datetime) -> bool:
        require_utc_timestamp("now", now)
        if self.valid_from is not None and now < self.valid_from:
            return False
        if self.valid_until is not None and now > self.valid_until:
            return False
        return True

    def is_on_schedule(self, local_now: datetime) -> bool:
        """
        Check the recurring weekly schedule against a local wall-clock time.

        An hours range whose start is after its end wraps past midnight
        (e.g. 22:00-02:00). The end bound is exclusive. Equal bounds mean the
        whole day. When only one bound is set, the other is open.
        """

        if self.valid_days:
            if _weekday_sunday_zero(local_now) not in self.valid_days:
                return False

        start, end = self.valid_hours_start, self.valid_hours_end
        if start is None and end is None:
            return True

        clock = local_now.time().replace(tzinfo=None)
        if start is not None and end is not None:
            if start == end:
                return True
            if start < end:
                return start <= clock < end
            return clock >= start or clock < end
        if start is not None:
            return clock >= start
        return clock < end  # type: ignore[operator]

    def discount_text(self, currency_symbol: str = "€") -> str:
        return format_discount(self.discount_type, self.discount_value, currency_symbol)

    def discount_label(self, currency_symbol: str = "€") -> str:
        """Operator-facing label: "10% - Grooming discount"."""

        text = self.discount_text(currency_symbol)
        if not text:
            return self.title
        return f"{text} - {self.title}"


__all__ = [
    "DiscountType",
    "Offer",
    "RedemptionScope",
    "format_amount",
    "format_discount",
]
