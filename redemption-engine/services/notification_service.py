"""
Member notifications for confirmed redemptions.

Notifications are written after the ledger commit and are best effort: a
failure is logged and never undoes the redemption.

Each confirmed offer redemption also schedules a review request: a
rating_prompts row due REVIEW_PROMPT_DELAY after the visit, plus a
review_request notification linking to the business page.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from domain.birthday import BirthdayOfferGrant
from domain.offer import Offer
from domain.redemption import RedemptionRecord
from repositories.base import NotificationRepository

logger = logging.getLogger(__name__)

REDEMPTION_NOTIFICATION_TYPE = "redemption"
REVIEW_REQUEST_NOTIFICATION_TYPE = "review_request"
REVIEW_PROMPT_DELAY = timedelta(hours=24)


class RedemptionNotifier:
    def __init__(self, notifications: NotificationRepository, *, currency_symbol: str = "€") -> None:
        self._notifications = notifications
        self._currency_symbol = currency_symbol

    def offer_redeemed(
        self,
        owner_user_id,
        record: RedemptionRecord,
        offer: Offer,
        pet_name: str | None = None,
    ) -> bool:
        discount = offer.discount_text(self._currency_symbol)
        subject = f"{pet_name} saved" if pet_name else "You saved"
        data = {
            "redemption_id": str(record.redemption_id),
            "offer_id": str(offer.offer_id),
            "offer_title": offer.title,
            "business_id": str(record.business_id),
            "discount_value": str(offer.discount_value) if offer.discount_value is not None else None,
            "discount_type": offer.discount_type.value,
        }
        if record.pet_id is not None:
            data["pet_id"] = str(record.pet_id)
            data["pet_name"] = pet_name

        return self._send(
            owner_user_id,
            title="Offer Redeemed!",
            message=f'{subject} {discount} with "{offer.title}"!',
            data=data,
            context={"redemption_id": str(record.redemption_id)},
        )

    def review_requested(self, owner_user_id, record: RedemptionRecord, offer: Offer) -> bool:
        """Schedule the next-day rating prompt and send the review request."""

        context = {"redemption_id": str(record.redemption_id)}
        try:
            self._notifications.create_rating_prompt(
                user_id=owner_user_id,
                business_id=record.business_id,
                redemption_id=record.redemption_id,
                prompt_after=record.redeemed_at + REVIEW_PROMPT_DELAY,
            )
            prompted = True
        except Exception:
            logger.exception("Failed to create rating prompt", extra=context)
            prompted = False

        notified = self._send(
            owner_user_id,
            title="How was your visit?",
            message=f'You recently used "{offer.title}". Tap here to leave a review and help other pet parents!',
            data={
                "business_id": str(record.business_id),
                "redemption_id": str(record.redemption_id),
                "action_url": f"/business/{record.business_id}",
            },
            context=context,
            type=REVIEW_REQUEST_NOTIFICATION_TYPE,
        )
        return prompted and notified

    def birthday_offer_redeemed(self, grant: BirthdayOfferGrant) -> bool:
        discount = grant.discount_text(self._currency_symbol)
        return self._send(
            grant.owner_user_id,
            title="Birthday Offer Redeemed!",
            message=f"Your birthday offer for {grant.pet_name} was redeemed. You saved {discount}!",
            data={
                "birthday_offer_id": str(grant.grant_id),
                "business_id": str(grant.redeemed_by_business_id) if grant.redeemed_by_business_id else None,
                "pet_id": str(grant.pet_id),
                "pet_name": grant.pet_name,
            },
            context={"grant_id": str(grant.grant_id)},
        )

    def _send(
        self,
        user_id,
        *,
        title: str,
        message: str,
        data: dict,
        context: dict,
        type: str = REDEMPTION_NOTIFICATION_TYPE,
    ) -> bool:
        try:
            self._notifications.create(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                data=data,
            )
        except Exception:
            logger.exception(f"Failed to create {type} notification", extra=context)
            return False
        return True


__all__ = [
    "REDEMPTION_NOTIFICATION_TYPE",
    "REVIEW_PROMPT_DELAY",
    "REVIEW_REQUEST_NOTIFICATION_TYPE",
    "RedemptionNotifier",
]
