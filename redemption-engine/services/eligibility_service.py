"""
Offer eligibility evaluator.

Decides whether a membership may redeem an offer at a business right now.
Checks run cheapest and most certain first and short-circuit:

1. Membership exists                         -> invalid (member_not_found)
2. Membership active and not expired         -> expired
3. Offer exists, belongs to the business,
   is active and inside valid_from/until     -> invalid
4. Weekly schedule (valid_days / valid_hours) -> invalid (outside_schedule)
5. Pet species filter                        -> invalid (pet_type_mismatch)
6. Global cap (max_redemptions)              -> limit_reached
7. Ledger history in the current period      -> already_redeemed
8. Otherwise                                 -> valid

Static checks come before the ledger queries so obviously invalid attempts
never touch the ledger.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Optional
from uuid import UUID

from domain.membership import MemberDirectoryEntry
from domain.offer import Offer, RedemptionScope
from domain.periods import RedemptionFrequency, period_start
from domain.results import (
    AlreadyRedeemed,
    Expired,
    Invalid,
    InvalidReason,
    LimitReached,
    MemberSummary,
    OfferSummary,
    PetOption,
    Valid,
    VerificationResult,
)
from domain.time import require_utc_timestamp
from repositories.base import RedemptionRepository


def summarize_member(entry: MemberDirectoryEntry) -> MemberSummary:
    return MemberSummary(
        membership_id=entry.membership.membership_id,
        member_number=entry.membership.member_number,
        member_name=entry.owner_name,
        pet_names=entry.pet_names,
        expires_at=entry.membership.expires_at,
    )


def already_redeemed_message(frequency: RedemptionFrequency, scope: RedemptionScope) -> str:
    subject = "All pets have" if scope is RedemptionScope.PER_PET else "This member has"
    if frequency is RedemptionFrequency.ONE_TIME:
        return f"{subject} already used this offer."
    return f"{subject} already used this offer this {frequency.period_noun}."


class OfferEligibilityEvaluator:
    def __init__(
        self,
        redemptions: RedemptionRepository,
        *,
        tz: tzinfo = timezone.utc,
        currency_symbol: str = "€",
    ) -> None:
        self._redemptions = redemptions
        self._tz = tz
        self._currency_symbol = currency_symbol

    @property
    def timezone(self) -> tzinfo:
        return self._tz

    def evaluate(
        self,
        entry: Optional[MemberDirectoryEntry],
        offer: Optional[Offer],
        business_id: UUID,
        now: datetime,
    ) -> VerificationResult:
        """
        Evaluate one (membership, offer, business) triple at `now`.

        Args:
            entry: Resolved membership or None if the identifier was unknown
            offer: Offer from the catalog or None if it does not exist
            business_id: Authenticated business presenting the membership
            now: UTC evaluation time

        Returns:
            One VerificationResult variant (never RateLimited; that is the gate's)
        """

        require_utc_timestamp("now", now)

        # 1. existence
        if entry is None:
            return Invalid(reason=InvalidReason.MEMBER_NOT_FOUND)
        member = summarize_member(entry)

        # 2. membership state
        if not entry.membership.is_current(now):
            return Expired(member=member)

        # 3. offer availability
        if offer is None:
            return Invalid(reason=InvalidReason.OFFER_NOT_FOUND, member=member)
        reason = self._offer_unavailable_reason(offer, business_id, now)
        if reason is not None:
            return Invalid(reason=reason, member=member, offer_title=offer.title)

        # 5. species filter
        eligible_pets = entry.pets_of_type(offer.pet_type)
        if offer.pet_type and not eligible_pets:
            return Invalid(reason=InvalidReason.PET_TYPE_MISMATCH, member=member, offer_title=offer.title)
        if offer.scope is RedemptionScope.PER_PET and not eligible_pets:
            return Invalid(reason=InvalidReason.NO_ELIGIBLE_PETS, member=member, offer_title=offer.title)

        # 6. global cap
        if offer.max_redemptions is not None:
            if self._redemptions.count_for_offer(offer.offer_id) >= offer.max_redemptions:
                return LimitReached(member=member, offer_title=offer.title)

        # 7. per-entity history
        since = period_start(offer.frequency, now, self._tz)
        history = (
            []
            if since is None
            else self._redemptions.list_for_membership(
                offer.offer_id, entry.membership.membership_id, since
            )
        )

        summary = OfferSummary(
            offer_id=offer.offer_id,
            title=offer.title,
            discount=offer.discount_label(self._currency_symbol),
            scope=offer.scope,
        )

        if offer.scope is RedemptionScope.PER_MEMBER:
            if history:
                return AlreadyRedeemed(
                    member=member,
                    offer_title=offer.title,
                    message=already_redeemed_message(offer.frequency, offer.scope),
                )
            return Valid(member=member, offer=summary)

        redeemed_pet_ids = {r.pet_id for r in history if r.pet_id is not None}
        redeemed_count = sum(1 for pet in entry.pets if pet.pet_id in redeemed_pet_ids)
        available = tuple(
            PetOption(pet_id=pet.pet_id, name=pet.name)
            for pet in eligible_pets
            if pet.pet_id not in redeemed_pet_ids
        )
        if not available:
            return AlreadyRedeemed(
                member=member,
                offer_title=offer.title,
                message=already_redeemed_message(offer.frequency, offer.scope),
                total_pets=len(entry.pets),
                redeemed_pets_count=redeemed_count,
            )
        return Valid(
            member=member,
            offer=summary,
            available_pets=available,
            total_pets=len(entry.pets),
            redeemed_pets_count=redeemed_count,
        )

    def _offer_unavailable_reason(
        self,
        offer: Offer,
        business_id: UUID,
        now: datetime,
    ) -> Optional[InvalidReason]:
        if not offer.belongs_to(business_id):
            return InvalidReason.OFFER_NOT_AT_BUSINESS
        if not offer.is_active:
            return InvalidReason.OFFER_INACTIVE
        if not offer.is_within_validity_window(now):
            return InvalidReason.OUTSIDE_VALIDITY_WINDOW
        # 4. recurring schedule on the business's wall clock
        if not offer.is_on_schedule(now.astimezone(self._tz)):
            return InvalidReason.OUTSIDE_SCHEDULE
        return None


__all__ = [
    "OfferEligibilityEvaluator",
    "already_redeemed_message",
    "summarize_member",
]
