"""
Repository interfaces shared by the Supabase and in-memory backends.

Repositories only persist and fetch; they do not decide eligibility. The one
rule they *do* enforce is ledger uniqueness, because only the write itself can
arbitrate between two concurrent confirmations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence
from uuid import UUID

from domain.birthday import BirthdayOfferGrant
from domain.lockout import LockoutCounter, LockoutKey, LockoutPolicy
from domain.membership import MemberDirectoryEntry
from domain.offer import Offer
from domain.redemption import RedemptionDraft, RedemptionRecord


class RedemptionConflictError(Exception):
    """A redemption with the same uniqueness key already exists."""


class RedemptionLimitError(Exception):
    """The offer's max_redemptions cap was exhausted at write time."""


class MembershipRepository(Protocol):
    def get_by_member_number(self, member_number: str) -> Optional[MemberDirectoryEntry]: ...

    def get_by_id(self, membership_id: UUID) -> Optional[MemberDirectoryEntry]: ...


class OfferRepository(Protocol):
    def get_offer(self, offer_id: UUID) -> Optional[Offer]: ...


class RedemptionRepository(Protocol):
    def count_for_offer(self, offer_id: UUID) -> int: ...

    def list_for_membership(
        self,
        offer_id: UUID,
        membership_id: UUID,
        since: Optional[datetime] = None,
    ) -> list[RedemptionRecord]: ...

    def record(self, draft: RedemptionDraft, *, max_redemptions: Optional[int] = None) -> RedemptionRecord:
        """
        Atomically insert a redemption.

        Raises:
            RedemptionConflictError: uniqueness key already taken
            RedemptionLimitError: cap already reached
        """
        ...

    def list_for_business(self, business_id: UUID, limit: int = 50) -> list[RedemptionRecord]: ...


class BirthdayOfferRepository(Protocol):
    def get_grant(self, grant_id: UUID) -> Optional[BirthdayOfferGrant]: ...

    def list_unredeemed_for_pets(self, pet_ids: Sequence[UUID]) -> list[BirthdayOfferGrant]: ...

    def mark_redeemed(
        self,
        grant_id: UUID,
        *,
        business_id: UUID,
        redeemed_at: datetime,
    ) -> Optional[BirthdayOfferGrant]:
        """Conditionally mark a grant redeemed; None when it was already redeemed."""
        ...


class LockoutStore(Protocol):
    def get(self, key: LockoutKey) -> Optional[LockoutCounter]: ...

    def register_failure(self, key: LockoutKey, now: datetime, policy: LockoutPolicy) -> LockoutCounter:
        """Atomically apply domain.lockout.register_failure and return the new state."""
        ...

    def clear(self, key: LockoutKey) -> None: ...


class NotificationRepository(Protocol):
    def create(
        self,
        *,
        user_id: UUID,
        type: str,
        title: str,
        message: str,
        data: Mapping[str, Any],
    ) -> None: ...

    def create_rating_prompt(
        self,
        *,
        user_id: UUID,
        business_id: UUID,
        redemption_id: UUID,
        prompt_after: datetime,
    ) -> None: ...


__all__ = [
    "BirthdayOfferRepository",
    "LockoutStore",
    "MembershipRepository",
    "NotificationRepository",
    "OfferRepository",
    "RedemptionConflictError",
    "RedemptionLimitError",
    "RedemptionRepository",
]
