"""
Domain: Memberships, pets and member identifiers.

Rules implemented here:
- A Membership is the identity anchor for a pet owner account and is presented
  at the counter by its external member number (e.g. WF-2024-000123).
- A Pet belongs to exactly one Membership.
- Directory lookups never decide eligibility. Whether a membership is current
  is answered here, but acting on it is the evaluator's job, so that
  "not found" and "found but expired" remain distinguishable.

This module contains only pure domain entities/value objects: no I/O.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple
from uuid import UUID

from .time import require_utc_timestamp

MEMBER_ID_MAX_LENGTH = 50
DEFAULT_MEMBER_NAME = "Member"

# Operators type a space where the printed card shows a dash.
_SEGMENT_SEPARATOR = re.compile(r"[\s-]+")


class InvalidMemberIdentifierError(ValueError):
    """Raised when a presented member identifier is malformed."""


def normalize_member_identifier(raw: str) -> str:
    """
    Normalize a typed or QR-scanned member identifier.

    Leading/trailing whitespace is removed, every run of internal whitespace
    and dashes between segments becomes a single "-", and the result is
    upper-cased, so "wf-2024 000123 " and "WF - 2024-000123" both resolve to
    "WF-2024-000123".

    Raises:
        InvalidMemberIdentifierError: empty after normalization or too long
    """

    if not isinstance(raw, str):
        raise InvalidMemberIdentifierError("Member ID must be a string")

    normalized = _SEGMENT_SEPARATOR.sub("-", raw.strip()).strip("-").upper()
    if not normalized:
        raise InvalidMemberIdentifierError("Member ID is required")
    if len(normalized) > MEMBER_ID_MAX_LENGTH:
        raise InvalidMemberIdentifierError(
            f"Member ID must be at most {MEMBER_ID_MAX_LENGTH} characters"
        )
    return normalized


def member_identifier_fingerprint(normalized: str) -> str:
    """SHA-256 hex digest used to key attempt counters without storing raw IDs."""

    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class Pet:
    pet_id: UUID
    membership_id: UUID
    name: str
    pet_type: str  # dog, cat, ...
    birthday: Optional[date] = None

    def is_species(self, pet_type: Optional[str]) -> bool:
        """True when no species filter applies or the species matches it."""
        if not pet_type:
            return True
        return self.pet_type.strip().lower() == pet_type.strip().lower()


@dataclass(frozen=True, slots=True)
class Membership:
    """
    Membership account presented at partner businesses.

    expires_at is authoritative for validity together with is_active.
    """

    membership_id: UUID
    member_number: str
    user_id: UUID
    is_active: bool
    expires_at: datetime
    max_pets: int = 1
    plan_type: str = "standard"

    def __post_init__(self) -> None:
        require_utc_timestamp("expires_at", self.expires_at)

    def is_current(self, now: datetime) -> bool:
        """Active and not yet expired at `now`."""
        require_utc_timestamp("now", now)
        return self.is_active and self.expires_at > now


@dataclass(frozen=True, slots=True)
class MemberDirectoryEntry:
    """A resolved membership with its owner's display name and its pets."""

    membership: Membership
    owner_name: str
    pets: Tuple[Pet, ...] = ()

    @property
    def pet_names(self) -> str:
        if not self.pets:
            return "Not specified"
        return ", ".join(pet.name for pet in self.pets)

    def find_pet(self, pet_id: UUID) -> Optional[Pet]:
        for pet in self.pets:
            if pet.pet_id == pet_id:
                return pet
        return None

    def pets_of_type(self, pet_type: Optional[str]) -> Tuple[Pet, ...]:
        return tuple(pet for pet in self.pets if pet.is_species(pet_type))


__all__ = [
    "DEFAULT_MEMBER_NAME",
    "InvalidMemberIdentifierError",
    "MEMBER_ID_MAX_LENGTH",
    "MemberDirectoryEntry",
    "Membership",
    "Pet",
    "member_identifier_fingerprint",
    "normalize_member_identifier",
]
