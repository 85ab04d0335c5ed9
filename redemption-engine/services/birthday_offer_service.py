"""
Birthday offer redemption.

Grants are redeemed by grant id rather than through the offer catalog, but
under the same at-most-once discipline as the ledger: the write is a
conditional update that only succeeds while the grant is still unredeemed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID

from domain.birthday import BirthdayOfferGrant
from domain.membership import MemberDirectoryEntry
from domain.results import (
    BirthdayRedemptionConfirmed,
    BirthdayRedemptionResult,
    RedemptionRejected,
    RejectionCode,
)
from domain.time import require_utc_timestamp
from repositories.base import BirthdayOfferRepository
from services.notification_service import RedemptionNotifier

logger = logging.getLogger(__name__)


class BirthdayOfferRedeemer:
    def __init__(
        self,
        grants: BirthdayOfferRepository,
        notifier: Optional[RedemptionNotifier] = None,
        *,
        currency_symbol: str = "€",
    ) -> None:
        self._grants = grants
        self._notifier = notifier
        self._currency_symbol = currency_symbol

    def pending_for(
        self,
        entry: MemberDirectoryEntry,
        business_id: UUID,
        now: datetime,
    ) -> Tuple[BirthdayOfferGrant, ...]:
        """Unredeemed, unexpired grants for the member's pets that this business may redeem."""

        if not entry.pets:
            return ()
        grants = self._grants.list_unredeemed_for_pets([pet.pet_id for pet in entry.pets])
        return tuple(g for g in grants if g.is_redeemable_by(business_id, now))

    def redeem(self, grant_id: UUID, business_id: UUID, now: datetime) -> BirthdayRedemptionResult:
        """
        Redeem one birthday grant at a business.

        Rejections:
            NOT_FOUND: no such grant
            BUSINESS_MISMATCH: grant is bound to another business
            GRANT_EXPIRED: now >= expires_at
            ALREADY_REDEEMED: redeemed earlier or by a concurrent request
        """

        require_utc_timestamp("now", now)

        grant = self._grants.get_grant(grant_id)
        if grant is None:
            return RedemptionRejected(RejectionCode.NOT_FOUND, "Birthday offer not found")
        if not grant.accepts_business(business_id):
            return RedemptionRejected(
                RejectionCode.BUSINESS_MISMATCH,
                "This birthday offer is not valid at your business",
            )
        if grant.is_redeemed:
            return RedemptionRejected(
                RejectionCode.ALREADY_REDEEMED,
                "This birthday offer has already been redeemed",
            )
        if grant.is_expired(now):
            return RedemptionRejected(RejectionCode.GRANT_EXPIRED, "This birthday offer has expired")

        redeemed = self._grants.mark_redeemed(grant_id, business_id=business_id, redeemed_at=now)
        if redeemed is None:
            logger.info(
                "Birthday offer redemption lost a concurrent race",
                extra={"grant_id": str(grant_id), "business_id": str(business_id)},
            )
            return RedemptionRejected(
                RejectionCode.ALREADY_REDEEMED,
                "This birthday offer has already been redeemed",
            )

        logger.info(
            "Birthday offer redeemed",
            extra={
                "grant_id": str(grant_id),
                "business_id": str(business_id),
                "pet_id": str(redeemed.pet_id),
            },
        )

        if self._notifier is not None:
            self._notifier.birthday_offer_redeemed(redeemed)

        return BirthdayRedemptionConfirmed(
            grant=redeemed,
            discount=redeemed.discount_text(self._currency_symbol),
        )


__all__ = ["BirthdayOfferRedeemer"]
