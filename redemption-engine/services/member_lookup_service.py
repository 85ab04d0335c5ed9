"""Member directory lookup: identifier normalization plus repository access."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from domain.membership import MemberDirectoryEntry, normalize_member_identifier
from repositories.base import MembershipRepository


class MemberDirectory:
    def __init__(self, memberships: MembershipRepository) -> None:
        self._memberships = memberships

    def resolve(self, member_identifier: str) -> Optional[MemberDirectoryEntry]:
        """
        Resolve a presented identifier to a membership, owner name and pets.

        Expiry and activity are *not* checked here.

        Raises:
            InvalidMemberIdentifierError: malformed identifier
        """

        return self._memberships.get_by_member_number(normalize_member_identifier(member_identifier))

    def resolve_by_id(self, membership_id: UUID) -> Optional[MemberDirectoryEntry]:
        return self._memberships.get_by_id(membership_id)


__all__ = ["MemberDirectory"]
