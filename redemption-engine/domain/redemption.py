"""
Domain: Redemption events (the ledger).

Rules implemented here:
- A Redemption is an immutable fact; it is never updated after being written.
- Display fields (member name, pet names, member number) are snapshotted at
  write time so the record stays meaningful after the membership, pet or offer
  is renamed or removed.
- Uniqueness key: (offer_id, membership_id, scope_key, period_start). scope_key
  is "member" for per-member offers and the pet id for per-pet offers;
  period_start is None for unlimited offers, which are never unique.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from .offer import RedemptionScope
from .time import require_utc_timestamp

MEMBER_SCOPE_KEY = "member"


def scope_key_for(scope: RedemptionScope, pet_id: Optional[UUID]) -> str:
    if scope is RedemptionScope.PER_PET:
        if pet_id is None:
            raise ValueError("per_pet redemptions require a pet_id")
        return str(pet_id)
    return MEMBER_SCOPE_KEY


@dataclass(frozen=True, slots=True)
class RedemptionSnapshot:
    """Denormalized display values copied onto the ledger row."""

    member_name: str
    pet_names: str
    member_number: str


@dataclass(frozen=True, slots=True)
class RedemptionDraft:
    """A redemption that has passed eligibility and is about to be written."""

    offer_id: UUID
    membership_id: UUID
    business_id: UUID
    pet_id: Optional[UUID]
    redeemed_at: datetime
    scope_key: str
    period_start: Optional[datetime]
    snapshot: RedemptionSnapshot
    redeemed_by_user_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("redeemed_at", self.redeemed_at)
        if self.period_start is not None:
            require_utc_timestamp("period_start", self.period_start)

    @property
    def uniqueness_key(self) -> Optional[tuple[UUID, UUID, str, datetime]]:
        if self.period_start is None:
            return None
        return (self.offer_id, self.membership_id, self.scope_key, self.period_start)


@dataclass(frozen=True, slots=True)
class RedemptionRecord:
    """Immutable record of a confirmed redemption."""

    redemption_id: UUID
    offer_id: UUID
    membership_id: UUID
    business_id: UUID
    pet_id: Optional[UUID]
    redeemed_at: datetime
    snapshot: RedemptionSnapshot
    scope_key: str = MEMBER_SCOPE_KEY
    period_start: Optional[datetime] = None
    redeemed_by_user_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("redeemed_at", self.redeemed_at)
        if self.period_start is not None:
            require_utc_timestamp("period_start", self.period_start)

    @classmethod
    def from_draft(cls, redemption_id: UUID, draft: RedemptionDraft) -> "RedemptionRecord":
        return cls(
            redemption_id=redemption_id,
            offer_id=draft.offer_id,
            membership_id=draft.membership_id,
            business_id=draft.business_id,
            pet_id=draft.pet_id,
            redeemed_at=draft.redeemed_at,
            snapshot=draft.snapshot,
            scope_key=draft.scope_key,
            period_start=draft.period_start,
            redeemed_by_user_id=draft.redeemed_by_user_id,
        )


__all__ = [
    "MEMBER_SCOPE_KEY",
    "RedemptionDraft",
    "RedemptionRecord",
    "RedemptionSnapshot",
    "scope_key_for",
]
