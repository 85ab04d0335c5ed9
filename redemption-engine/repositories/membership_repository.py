"""
Membership directory repository (persistence).

Resolves memberships together with the owner's display name (profiles table)
and the membership's pets. It does not check expiry or activity.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional
from uuid import UUID

from domain.membership import DEFAULT_MEMBER_NAME, MemberDirectoryEntry, Membership, Pet
from domain.time import parse_utc_datetime
from repositories.client import execute, rows_of

_MEMBERSHIPS_TABLE: str = "memberships"
_PROFILES_TABLE: str = "profiles"
_PETS_TABLE: str = "pets"

_MEMBERSHIP_COLUMNS = "id, user_id, member_number, is_active, expires_at, max_pets, plan_type"
_PET_COLUMNS = "id, membership_id, pet_name, pet_type, birthday"


def _row_to_membership(row: Mapping[str, Any]) -> Membership:
    return Membership(
        membership_id=UUID(str(row["id"])),
        member_number=str(row["member_number"]),
        user_id=UUID(str(row["user_id"])),
        is_active=bool(row.get("is_active", False)),
        expires_at=parse_utc_datetime(row["expires_at"]),
        max_pets=int(row.get("max_pets") or 1),
        plan_type=str(row.get("plan_type") or "standard"),
    )


def _row_to_pet(row: Mapping[str, Any]) -> Pet:
    birthday = row.get("birthday")
    return Pet(
        pet_id=UUID(str(row["id"])),
        membership_id=UUID(str(row["membership_id"])),
        name=str(row.get("pet_name") or "Pet"),
        pet_type=str(row.get("pet_type") or ""),
        birthday=date.fromisoformat(str(birthday)[:10]) if birthday else None,
    )


class SupabaseMembershipRepository:
    """Member directory backed by the memberships, profiles and pets tables."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def get_by_member_number(self, member_number: str) -> Optional[MemberDirectoryEntry]:
        """
        Look up a membership by its external member number.

        Args:
            member_number: Normalized member number (see normalize_member_identifier)

        Returns:
            MemberDirectoryEntry or None if no membership carries that number
        """

        response = execute(
            self._client.table(_MEMBERSHIPS_TABLE)
            .select(_MEMBERSHIP_COLUMNS)
            .eq("member_number", member_number)
            .limit(1),
            operation="fetch membership",
        )
        rows = rows_of(response)
        if not rows:
            return None
        return self._build_entry(_row_to_membership(rows[0]))

    def get_by_id(self, membership_id: UUID) -> Optional[MemberDirectoryEntry]:
        response = execute(
            self._client.table(_MEMBERSHIPS_TABLE)
            .select(_MEMBERSHIP_COLUMNS)
            .eq("id", str(membership_id))
            .limit(1),
            operation="fetch membership",
        )
        rows = rows_of(response)
        if not rows:
            return None
        return self._build_entry(_row_to_membership(rows[0]))

    def _build_entry(self, membership: Membership) -> MemberDirectoryEntry:
        profile_rows = rows_of(
            execute(
                self._client.table(_PROFILES_TABLE)
                .select("full_name")
                .eq("user_id", str(membership.user_id))
                .limit(1),
                operation="fetch member profile",
            )
        )
        owner_name = DEFAULT_MEMBER_NAME
        if profile_rows and profile_rows[0].get("full_name"):
            owner_name = str(profile_rows[0]["full_name"])

        pet_rows = rows_of(
            execute(
                self._client.table(_PETS_TABLE)
                .select(_PET_COLUMNS)
                .eq("membership_id", str(membership.membership_id))
                .order("created_at"),
                operation="fetch membership pets",
            )
        )

        return MemberDirectoryEntry(
            membership=membership,
            owner_name=owner_name,
            pets=tuple(_row_to_pet(row) for row in pet_rows),
        )


__all__ = ["SupabaseMembershipRepository"]
