"""
Domain: Verification and redemption outcomes.

Every outcome is one variant of a closed union, discriminated by `status`
(verification) or by the variant type itself (redemption). Callers dispatch on
the variant; no outcome is ever signalled by a None field or by an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union
from uuid import UUID

from .birthday import BirthdayOfferGrant
from .offer import RedemptionScope
from .redemption import RedemptionRecord


class VerificationStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"
    ALREADY_REDEEMED = "already_redeemed"
    LIMIT_REACHED = "limit_reached"
    RATE_LIMITED = "rate_limited"


class InvalidReason(str, Enum):
    """Why an attempt is `invalid`; lets the terminal show a specific message."""

    MEMBER_NOT_FOUND = "member_not_found"
    OFFER_NOT_FOUND = "offer_not_found"
    OFFER_NOT_AT_BUSINESS = "offer_not_at_business"
    OFFER_INACTIVE = "offer_inactive"
    OUTSIDE_VALIDITY_WINDOW = "outside_validity_window"
    OUTSIDE_SCHEDULE = "outside_schedule"
    PET_TYPE_MISMATCH = "pet_type_mismatch"
    NO_ELIGIBLE_PETS = "no_eligible_pets"


class RejectionCode(str, Enum):
    ALREADY_REDEEMED = "ALREADY_REDEEMED"
    LIMIT_REACHED = "LIMIT_REACHED"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    MEMBERSHIP_EXPIRED = "MEMBERSHIP_EXPIRED"
    OFFER_UNAVAILABLE = "OFFER_UNAVAILABLE"
    PET_REQUIRED = "PET_REQUIRED"
    PET_NOT_FOUND = "PET_NOT_FOUND"
    PET_TYPE_MISMATCH = "PET_TYPE_MISMATCH"
    NOT_FOUND = "NOT_FOUND"
    BUSINESS_MISMATCH = "BUSINESS_MISMATCH"
    GRANT_EXPIRED = "GRANT_EXPIRED"


@dataclass(frozen=True, slots=True)
class MemberSummary:
    membership_id: UUID
    member_number: str
    member_name: str
    pet_names: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class OfferSummary:
    offer_id: UUID
    title: str
    discount: str
    scope: RedemptionScope


@dataclass(frozen=True, slots=True)
class PetOption:
    pet_id: UUID
    name: str


# ---------------------------------------------------------------------------
# Verification variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Valid:
    member: MemberSummary
    offer: OfferSummary
    available_pets: Tuple[PetOption, ...] = ()
    total_pets: Optional[int] = None
    redeemed_pets_count: Optional[int] = None

    status: ClassVar[VerificationStatus] = VerificationStatus.VALID


@dataclass(frozen=True, slots=True)
class Expired:
    member: MemberSummary

    status: ClassVar[VerificationStatus] = VerificationStatus.EXPIRED


@dataclass(frozen=True, slots=True)
class Invalid:
    reason: InvalidReason
    member: Optional[MemberSummary] = None
    offer_title: Optional[str] = None
    attempts_remaining: Optional[int] = None

    status: ClassVar[VerificationStatus] = VerificationStatus.INVALID


@dataclass(frozen=True, slots=True)
class AlreadyRedeemed:
    member: MemberSummary
    offer_title: str
    message: str
    total_pets: Optional[int] = None
    redeemed_pets_count: Optional[int] = None

    status: ClassVar[VerificationStatus] = VerificationStatus.ALREADY_REDEEMED


@dataclass(frozen=True, slots=True)
class LimitReached:
    member: MemberSummary
    offer_title: str
    message: str = "This offer has reached its maximum redemption limit."

    status: ClassVar[VerificationStatus] = VerificationStatus.LIMIT_REACHED


@dataclass(frozen=True, slots=True)
class RateLimited:
    lockout_expires_at: datetime
    remaining_minutes: int
    message: str = "Too many failed attempts. Please try again later."

    status: ClassVar[VerificationStatus] = VerificationStatus.RATE_LIMITED


VerificationResult = Union[Valid, Expired, Invalid, AlreadyRedeemed, LimitReached, RateLimited]


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    """A verification result plus birthday grants the operator may also redeem."""

    result: VerificationResult
    pending_birthday_offers: Tuple[BirthdayOfferGrant, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Redemption variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RedemptionConfirmed:
    record: RedemptionRecord
    offer_title: str
    discount: str
    pet_name: Optional[str]


@dataclass(frozen=True, slots=True)
class BirthdayRedemptionConfirmed:
    grant: BirthdayOfferGrant
    discount: str


@dataclass(frozen=True, slots=True)
class RedemptionRejected:
    code: RejectionCode
    message: str


RedemptionResult = Union[RedemptionConfirmed, RedemptionRejected]
BirthdayRedemptionResult = Union[BirthdayRedemptionConfirmed, RedemptionRejected]


__all__ = [
    "AlreadyRedeemed",
    "BirthdayRedemptionConfirmed",
    "BirthdayRedemptionResult",
    "Expired",
    "Invalid",
    "InvalidReason",
    "LimitReached",
    "MemberSummary",
    "OfferSummary",
    "PetOption",
    "RateLimited",
    "RedemptionConfirmed",
    "RedemptionRejected",
    "RedemptionResult",
    "RejectionCode",
    "Valid",
    "VerificationOutcome",
    "VerificationResult",
    "VerificationStatus",
]
