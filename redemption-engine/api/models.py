"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses. The
business dashboard speaks camelCase JSON; models accept both camelCase and
snake_case on input and emit camelCase.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from domain.birthday import BirthdayOfferGrant
from domain.redemption import RedemptionRecord
from domain.results import (
    AlreadyRedeemed,
    BirthdayRedemptionConfirmed,
    Expired,
    Invalid,
    LimitReached,
    RateLimited,
    RedemptionConfirmed,
    Valid,
    VerificationOutcome,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


# ============================================================================
# Verification Models
# ============================================================================

class VerificationRequest(_CamelModel):
    """Member identifier presented at the counter, plus the offer being used."""
    member_id: str = Field(..., min_length=1, description="Member number as typed or scanned")
    offer_id: UUID
    business_id: UUID

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "memberId": "WF-2024-000123",
                "offerId": "123e4567-e89b-12d3-a456-426614174000",
                "businessId": "123e4567-e89b-12d3-a456-426614174001",
            }
        }
    )


class PetOptionResponse(_CamelModel):
    id: UUID
    name: str


class PendingBirthdayOfferResponse(_CamelModel):
    """Birthday grant the operator may redeem alongside the offer."""
    id: UUID
    pet_id: UUID
    pet_name: str
    discount_value: Decimal
    discount_type: str
    discount: str
    message: str
    business_id: Optional[UUID] = None
    sent_at: datetime
    expires_at: datetime

    @classmethod
    def from_grant(cls, grant: BirthdayOfferGrant, currency_symbol: str) -> "PendingBirthdayOfferResponse":
        return cls(
            id=grant.grant_id,
            pet_id=grant.pet_id,
            pet_name=grant.pet_name,
            discount_value=grant.discount_value,
            discount_type=grant.discount_type.value,
            discount=grant.discount_text(currency_symbol),
            message=grant.message,
            business_id=grant.business_id,
            sent_at=grant.sent_at,
            expires_at=grant.expires_at,
        )


class VerificationResponse(_CamelModel):
    """
    Verification outcome.

    `status` is one of valid, expired, invalid, already_redeemed,
    limit_reached, rate_limited. Other fields are present only when they apply.
    """
    status: str
    reason: Optional[str] = None
    message: Optional[str] = None
    member_name: Optional[str] = None
    pet_name: Optional[str] = None
    member_id: Optional[str] = None
    membership_id: Optional[UUID] = None
    expiry_date: Optional[datetime] = None
    discount: Optional[str] = None
    offer_id: Optional[UUID] = None
    offer_title: Optional[str] = None
    offer_type: Optional[str] = None
    available_pets: Optional[List[PetOptionResponse]] = None
    total_pets: Optional[int] = None
    redeemed_pets_count: Optional[int] = None
    attempts_remaining: Optional[int] = None
    lockout_expires_at: Optional[datetime] = None
    remaining_minutes: Optional[int] = None
    pending_birthday_offers: Optional[List[PendingBirthdayOfferResponse]] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "valid",
                "memberName": "Maria Papadopoulou",
                "petName": "Rex, Luna",
                "memberId": "WF-2024-000123",
                "membershipId": "123e4567-e89b-12d3-a456-426614174002",
                "expiryDate": "2026-12-31T00:00:00Z",
                "discount": "10% - Grooming discount",
                "offerId": "123e4567-e89b-12d3-a456-426614174000",
                "offerTitle": "Grooming discount",
                "offerType": "per_member",
            }
        }
    )

    @classmethod
    def from_outcome(cls, outcome: VerificationOutcome, currency_symbol: str = "€") -> "VerificationResponse":
        result = outcome.result
        fields: dict = {"status": result.status.value}

        member = getattr(result, "member", None)
        if member is not None:
            fields.update(
                member_name=member.member_name,
                pet_name=member.pet_names,
                member_id=member.member_number,
                membership_id=member.membership_id,
                expiry_date=member.expires_at,
            )

        if isinstance(result, Valid):
            fields.update(
                discount=result.offer.discount,
                offer_id=result.offer.offer_id,
                offer_title=result.offer.title,
                offer_type=result.offer.scope.value,
                total_pets=result.total_pets,
                redeemed_pets_count=result.redeemed_pets_count,
            )
            if result.available_pets:
                fields["available_pets"] = [
                    PetOptionResponse(id=p.pet_id, name=p.name) for p in result.available_pets
                ]
        elif isinstance(result, Invalid):
            fields.update(
                reason=result.reason.value,
                offer_title=result.offer_title,
                attempts_remaining=result.attempts_remaining,
            )
        elif isinstance(result, AlreadyRedeemed):
            fields.update(
                offer_title=result.offer_title,
                message=result.message,
                total_pets=result.total_pets,
                redeemed_pets_count=result.redeemed_pets_count,
            )
        elif isinstance(result, LimitReached):
            fields.update(offer_title=result.offer_title, message=result.message)
        elif isinstance(result, RateLimited):
            fields.update(
                message=result.message,
                lockout_expires_at=result.lockout_expires_at,
                remaining_minutes=result.remaining_minutes,
            )
        elif isinstance(result, Expired):
            fields["message"] = "Membership is expired or inactive"

        if outcome.pending_birthday_offers:
            fields["pending_birthday_offers"] = [
                PendingBirthdayOfferResponse.from_grant(g, currency_symbol)
                for g in outcome.pending_birthday_offers
            ]
        return cls(**fields)


# ============================================================================
# Redemption Models
# ============================================================================

class ConfirmRedemptionRequest(_CamelModel):
    """Confirm a previously verified redemption."""
    membership_id: UUID
    offer_id: UUID
    business_id: UUID
    pet_id: Optional[UUID] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "membershipId": "123e4567-e89b-12d3-a456-426614174002",
                "offerId": "123e4567-e89b-12d3-a456-426614174000",
                "businessId": "123e4567-e89b-12d3-a456-426614174001",
                "petId": "123e4567-e89b-12d3-a456-426614174003",
            }
        }
    )


class ConfirmedRedemption(_CamelModel):
    id: UUID
    discount: str
    offer_title: str
    pet_name: Optional[str] = None
    member_name: str
    member_number: str
    redeemed_at: datetime


class ConfirmRedemptionResponse(_CamelModel):
    redemption: ConfirmedRedemption

    @classmethod
    def from_result(cls, result: RedemptionConfirmed) -> "ConfirmRedemptionResponse":
        record = result.record
        return cls(
            redemption=ConfirmedRedemption(
                id=record.redemption_id,
                discount=result.discount,
                offer_title=result.offer_title,
                pet_name=result.pet_name,
                member_name=record.snapshot.member_name,
                member_number=record.snapshot.member_number,
                redeemed_at=record.redeemed_at,
            )
        )


class RejectionResponse(BaseModel):
    """Business-rule rejection: `code` is machine-readable, `error` is for the operator."""
    error: str
    code: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"error": "Offer already redeemed", "code": "ALREADY_REDEEMED"}
        }
    )


class RedemptionHistoryItem(_CamelModel):
    id: UUID
    offer_id: UUID
    membership_id: UUID
    pet_id: Optional[UUID] = None
    member_name: str
    pet_names: str
    member_number: str
    redeemed_at: datetime

    @classmethod
    def from_record(cls, record: RedemptionRecord) -> "RedemptionHistoryItem":
        return cls(
            id=record.redemption_id,
            offer_id=record.offer_id,
            membership_id=record.membership_id,
            pet_id=record.pet_id,
            member_name=record.snapshot.member_name,
            pet_names=record.snapshot.pet_names,
            member_number=record.snapshot.member_number,
            redeemed_at=record.redeemed_at,
        )


class RedemptionHistoryResponse(_CamelModel):
    items: List[RedemptionHistoryItem]
    total_count: int


# ============================================================================
# Birthday Offer Models
# ============================================================================

class RedeemBirthdayOfferRequest(_CamelModel):
    grant_id: UUID
    business_id: UUID

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "grantId": "123e4567-e89b-12d3-a456-426614174004",
                "businessId": "123e4567-e89b-12d3-a456-426614174001",
            }
        }
    )


class RedeemedBirthdayOffer(_CamelModel):
    id: UUID
    pet_name: str
    discount: str
    redeemed_at: datetime


class RedeemBirthdayOfferResponse(_CamelModel):
    redemption: RedeemedBirthdayOffer

    @classmethod
    def from_result(cls, result: BirthdayRedemptionConfirmed) -> "RedeemBirthdayOfferResponse":
        grant = result.grant
        return cls(
            redemption=RedeemedBirthdayOffer(
                id=grant.grant_id,
                pet_name=grant.pet_name,
                discount=result.discount,
                redeemed_at=grant.redeemed_at,
            )
        )
