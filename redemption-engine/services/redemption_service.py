"""
Redemption engine: verify, confirm, birthday redemption and history.

Handles:
- Lockout gate before any directory lookup
- Failure accounting (unknown or non-current memberships count as failures)
- Full re-evaluation at confirm time, followed by one atomic ledger write
- Translation of write conflicts into ALREADY_REDEEMED / LIMIT_REACHED
- Post-commit member notifications (best effort)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union, assert_never
from uuid import UUID

from domain.lockout import LockoutPolicy
from domain.membership import MemberDirectoryEntry, Pet, normalize_member_identifier
from domain.offer import Offer, RedemptionScope
from domain.periods import period_start
from domain.redemption import RedemptionDraft, RedemptionRecord, RedemptionSnapshot, scope_key_for
from domain.results import (
    AlreadyRedeemed,
    BirthdayRedemptionResult,
    Expired,
    Invalid,
    InvalidReason,
    LimitReached,
    RateLimited,
    RedemptionConfirmed,
    RedemptionRejected,
    RedemptionResult,
    RejectionCode,
    Valid,
    VerificationOutcome,
)
from repositories.base import (
    BirthdayOfferRepository,
    LockoutStore,
    MembershipRepository,
    NotificationRepository,
    OfferRepository,
    RedemptionConflictError,
    RedemptionLimitError,
    RedemptionRepository,
)
from services.birthday_offer_service import BirthdayOfferRedeemer
from services.eligibility_service import OfferEligibilityEvaluator
from services.lockout_service import LockoutTracker
from services.member_lookup_service import MemberDirectory
from services.notification_service import RedemptionNotifier

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


def _rejection_for(
    result: Union[Expired, Invalid, AlreadyRedeemed, LimitReached, RateLimited],
) -> RedemptionRejected:
    """Map a non-valid evaluation to the rejection confirm returns."""

    if isinstance(result, Expired):
        return RedemptionRejected(RejectionCode.MEMBERSHIP_EXPIRED, "Membership is expired or inactive")
    if isinstance(result, Invalid):
        if result.reason is InvalidReason.MEMBER_NOT_FOUND:
            return RedemptionRejected(RejectionCode.MEMBER_NOT_FOUND, "Membership not found")
        if result.reason is InvalidReason.PET_TYPE_MISMATCH:
            return RedemptionRejected(
                RejectionCode.PET_TYPE_MISMATCH,
                "This offer is not valid for the member's pets",
            )
        return RedemptionRejected(RejectionCode.OFFER_UNAVAILABLE, "Offer is not available")
    if isinstance(result, AlreadyRedeemed):
        return RedemptionRejected(RejectionCode.ALREADY_REDEEMED, result.message)
    if isinstance(result, LimitReached):
        return RedemptionRejected(RejectionCode.LIMIT_REACHED, result.message)
    if isinstance(result, RateLimited):
        return RedemptionRejected(RejectionCode.OFFER_UNAVAILABLE, result.message)
    assert_never(result)


class RedemptionEngine:
    """
    Entry point used by the API and scripts.

    All collaborators are injected so the same engine runs against Supabase or
    the in-memory stores.
    """

    def __init__(
        self,
        *,
        memberships: MembershipRepository,
        offers: OfferRepository,
        redemptions: RedemptionRepository,
        birthday_offers: BirthdayOfferRepository,
        lockouts: LockoutStore,
        notifications: Optional[NotificationRepository] = None,
        lockout_policy: Optional[LockoutPolicy] = None,
        tz=timezone.utc,
        currency_symbol: str = "€",
        clock: Clock = utc_clock,
    ) -> None:
        notifier = (
            RedemptionNotifier(notifications, currency_symbol=currency_symbol)
            if notifications is not None
            else None
        )
        self._offers = offers
        self._redemptions = redemptions
        self._directory = MemberDirectory(memberships)
        self._lockout = LockoutTracker(lockouts, lockout_policy)
        self._evaluator = OfferEligibilityEvaluator(redemptions, tz=tz, currency_symbol=currency_symbol)
        self._birthday = BirthdayOfferRedeemer(birthday_offers, notifier, currency_symbol=currency_symbol)
        self._notifier = notifier
        self._tz = tz
        self._currency_symbol = currency_symbol
        self._clock = clock

    @property
    def lockout(self) -> LockoutTracker:
        return self._lockout

    @property
    def currency_symbol(self) -> str:
        return self._currency_symbol

    # ------------------------------------------------------------------
    # verify
    # ------------------------------------------------------------------

    def verify(self, member_identifier: str, offer_id: UUID, business_id: UUID) -> VerificationOutcome:
        """
        Verify a presented member identifier against an offer.

        Raises:
            InvalidMemberIdentifierError: malformed identifier (before any lookup)
        """

        normalized = normalize_member_identifier(member_identifier)
        now = self._clock()

        gate = self._lockout.check(business_id, normalized, now)
        if not gate.allowed:
            return VerificationOutcome(
                result=RateLimited(
                    lockout_expires_at=gate.lockout_expires_at,
                    remaining_minutes=gate.remaining_minutes(now),
                )
            )

        entry = self._directory.resolve(normalized)
        offer = self._offers.get_offer(offer_id) if entry is not None else None
        result = self._evaluator.evaluate(entry, offer, business_id, now)

        if entry is None or not entry.membership.is_current(now):
            failure = self._lockout.record_failure(business_id, normalized, now)
            if isinstance(result, Invalid):
                result = Invalid(
                    reason=result.reason,
                    member=result.member,
                    offer_title=result.offer_title,
                    attempts_remaining=failure.remaining_attempts,
                )
            return VerificationOutcome(result=result)

        self._lockout.record_success(business_id, normalized)
        pending = self._birthday.pending_for(entry, business_id, now)
        return VerificationOutcome(result=result, pending_birthday_offers=pending)

    # ------------------------------------------------------------------
    # confirm
    # ------------------------------------------------------------------

    def confirm(
        self,
        membership_id: UUID,
        offer_id: UUID,
        business_id: UUID,
        pet_id: Optional[UUID] = None,
        *,
        redeemed_by_user_id: Optional[UUID] = None,
    ) -> RedemptionResult:
        """
        Re-validate eligibility and record the redemption exactly once.

        Returns RedemptionConfirmed, or RedemptionRejected with a RejectionCode.
        Concurrent confirmations for the same member/pet and period resolve to
        one success; every other caller gets ALREADY_REDEEMED.
        """

        now = self._clock()
        entry = self._directory.resolve_by_id(membership_id)
        offer = self._offers.get_offer(offer_id) if entry is not None else None

        result = self._evaluator.evaluate(entry, offer, business_id, now)
        if not isinstance(result, Valid):
            return _rejection_for(result)
        if entry is None or offer is None:
            raise RuntimeError("Failed to confirm redemption: valid result without member or offer")

        pet, rejection = self._select_pet(entry, offer, result, pet_id)
        if rejection is not None:
            return rejection

        draft = RedemptionDraft(
            offer_id=offer.offer_id,
            membership_id=entry.membership.membership_id,
            business_id=business_id,
            pet_id=pet.pet_id if pet is not None else None,
            redeemed_at=now,
            scope_key=scope_key_for(offer.scope, pet.pet_id if pet is not None else None),
            period_start=period_start(offer.frequency, now, self._tz),
            snapshot=RedemptionSnapshot(
                member_name=entry.owner_name,
                pet_names=pet.name if pet is not None else entry.pet_names,
                member_number=entry.membership.member_number,
            ),
            redeemed_by_user_id=redeemed_by_user_id,
        )

        try:
            record = self._redemptions.record(draft, max_redemptions=offer.max_redemptions)
        except RedemptionConflictError:
            logger.info(
                "Redemption write conflict",
                extra={
                    "offer_id": str(offer.offer_id),
                    "membership_id": str(entry.membership.membership_id),
                    "scope_key": draft.scope_key,
                },
            )
            return RedemptionRejected(RejectionCode.ALREADY_REDEEMED, "Offer already redeemed")
        except RedemptionLimitError:
            logger.info(
                "Redemption rejected at write time: limit reached",
                extra={"offer_id": str(offer.offer_id)},
            )
            return RedemptionRejected(
                RejectionCode.LIMIT_REACHED,
                "This offer has reached its maximum redemption limit.",
            )

        pet_name = pet.name if pet is not None else None
        if self._notifier is not None:
            self._notifier.offer_redeemed(entry.membership.user_id, record, offer, pet_name)
            self._notifier.review_requested(entry.membership.user_id, record, offer)

        return RedemptionConfirmed(
            record=record,
            offer_title=offer.title,
            discount=offer.discount_text(self._currency_symbol),
            pet_name=pet_name,
        )

    def _select_pet(
        self,
        entry: MemberDirectoryEntry,
        offer: Offer,
        result: Valid,
        pet_id: Optional[UUID],
    ) -> tuple[Optional[Pet], Optional[RedemptionRejected]]:
        if pet_id is None:
            if offer.scope is RedemptionScope.PER_PET:
                return None, RedemptionRejected(
                    RejectionCode.PET_REQUIRED,
                    "Please select a pet for this per-pet offer",
                )
            return None, None

        pet = entry.find_pet(pet_id)
        if pet is None:
            return None, RedemptionRejected(
                RejectionCode.PET_NOT_FOUND,
                "Pet not found or does not belong to this member",
            )
        if not pet.is_species(offer.pet_type):
            return None, RedemptionRejected(
                RejectionCode.PET_TYPE_MISMATCH,
                f"This offer is only valid for {offer.pet_type}s",
            )
        if offer.scope is RedemptionScope.PER_PET:
            if all(option.pet_id != pet.pet_id for option in result.available_pets):
                return None, RedemptionRejected(
                    RejectionCode.ALREADY_REDEEMED,
                    f"This offer has already been redeemed for {pet.name}",
                )
        return pet, None

    # ------------------------------------------------------------------
    # birthday offers and history
    # ------------------------------------------------------------------

    def redeem_birthday_grant(self, grant_id: UUID, business_id: UUID) -> BirthdayRedemptionResult:
        return self._birthday.redeem(grant_id, business_id, self._clock())

    def list_business_redemptions(self, business_id: UUID, limit: int = 50) -> List[RedemptionRecord]:
        """Most recent ledger rows for a business, newest first."""

        if limit < 1:
            raise ValueError("limit must be >= 1")
        return self._redemptions.list_for_business(business_id, limit=limit)


__all__ = ["Clock", "RedemptionEngine", "utc_clock"]
