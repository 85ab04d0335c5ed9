"""
Domain: Birthday offer grants.

A grant is a pre-issued, pet-specific, time-boxed discount sent by a business
for a pet's birthday. It is redeemed through its own path, not the offer
catalog, but follows the same at-most-once discipline: a grant is redeemed by
exactly one business, exactly once, ever.

A grant without a business_id is open to every partner business.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from .offer import DiscountType, format_discount
from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class BirthdayOfferGrant:
    grant_id: UUID
    pet_id: UUID
    pet_name: str
    membership_id: Optional[UUID]
    owner_user_id: UUID
    business_id: Optional[UUID]
    discount_type: DiscountType
    discount_value: Decimal
    message: str
    sent_at: datetime
    expires_at: datetime
    owner_name: Optional[str] = None
    redeemed_at: Optional[datetime] = None
    redeemed_by_business_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("sent_at", self.sent_at)
        require_utc_timestamp("expires_at", self.expires_at)
        if self.expires_at < self.sent_at:
            raise ValueError("expires_at must be >= sent_at")
        if self.redeemed_at is not None:
            require_utc_timestamp("redeemed_at", self.redeemed_at)

    @property
    def is_redeemed(self) -> bool:
        return self.redeemed_at is not None

    def is_expired(self, now: datetime) -> bool:
        require_utc_timestamp("now", now)
        return now >= self.expires_at

    def accepts_business(self, business_id: UUID) -> bool:
        """Open grants accept any business; bound grants only their own."""
        return self.business_id is None or self.business_id == business_id

    def is_redeemable_by(self, business_id: UUID, now: datetime) -> bool:
        return (
            not self.is_redeemed
            and not self.is_expired(now)
            and self.accepts_business(business_id)
        )

    def discount_text(self, currency_symbol: str = "€") -> str:
        return format_discount(self.discount_type, self.discount_value, currency_symbol)

    def redeemed(self, *, business_id: UUID, redeemed_at: datetime) -> "BirthdayOfferGrant":
        """Return a copy marked as redeemed. Raises if already redeemed."""

        require_utc_timestamp("redeemed_at", redeemed_at)
        if self.is_redeemed:
            raise ValueError("Birthday offer grant is already redeemed")
        return replace(self, redeemed_at=redeemed_at, redeemed_by_business_id=business_id)


__all__ = ["BirthdayOfferGrant"]
