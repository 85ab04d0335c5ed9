"""
Birthday offer grant repository (persistence).

Grants live in sent_birthday_offers. Redemption is a conditional update
(`WHERE id = ? AND redeemed_at IS NULL`); PostgREST returns the updated rows,
so an empty result means another terminal redeemed the grant first.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence
from uuid import UUID

from domain.birthday import BirthdayOfferGrant
from domain.offer import DiscountType
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc
from repositories.client import execute, rows_of

_GRANTS_TABLE: str = "sent_birthday_offers"


def _optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def _row_to_grant(row: Mapping[str, Any], default_validity: timedelta) -> BirthdayOfferGrant:
    sent_at = parse_utc_datetime(row["sent_at"])
    expires_at = parse_optional_utc_datetime(row.get("expires_at")) or sent_at + default_validity

    return BirthdayOfferGrant(
        grant_id=UUID(str(row["id"])),
        pet_id=UUID(str(row["pet_id"])),
        pet_name=str(row.get("pet_name") or "Pet"),
        membership_id=_optional_uuid(row.get("membership_id")),
        owner_user_id=UUID(str(row["owner_user_id"])),
        owner_name=row.get("owner_name"),
        business_id=_optional_uuid(row.get("business_id")),
        discount_type=DiscountType.parse(row.get("discount_type")),
        discount_value=Decimal(str(row.get("discount_value") or 0)),
        message=str(row.get("message") or ""),
        sent_at=sent_at,
        expires_at=expires_at,
        redeemed_at=parse_optional_utc_datetime(row.get("redeemed_at")),
        redeemed_by_business_id=_optional_uuid(row.get("redeemed_by_business_id")),
    )


class SupabaseBirthdayOfferRepository:
    def __init__(self, client: Any, *, default_validity: timedelta = timedelta(days=30)) -> None:
        self._client = client
        self._default_validity = default_validity

    def get_grant(self, grant_id: UUID) -> Optional[BirthdayOfferGrant]:
        response = execute(
            self._client.table(_GRANTS_TABLE).select("*").eq("id", str(grant_id)).limit(1),
            operation="fetch birthday offer",
        )
        rows = rows_of(response)
        if not rows:
            return None
        return _row_to_grant(rows[0], self._default_validity)

    def list_unredeemed_for_pets(self, pet_ids: Sequence[UUID]) -> list[BirthdayOfferGrant]:
        """Unredeemed grants for any of the given pets, newest first."""

        if not pet_ids:
            return []
        response = execute(
            self._client.table(_GRANTS_TABLE)
            .select("*")
            .in_("pet_id", [str(pet_id) for pet_id in pet_ids])
            .is_("redeemed_at", "null")
            .order("sent_at", desc=True),
            operation="list birthday offers",
        )
        return [_row_to_grant(row, self._default_validity) for row in rows_of(response)]

    def mark_redeemed(
        self,
        grant_id: UUID,
        *,
        business_id: UUID,
        redeemed_at: datetime,
    ) -> Optional[BirthdayOfferGrant]:
        """
        Mark a grant redeemed if, and only if, it is still unredeemed.

        Returns:
            The updated grant, or None when the grant was already redeemed
        """

        response = execute(
            self._client.table(_GRANTS_TABLE)
            .update(
                {
                    "redeemed_at": to_iso_utc(redeemed_at, name="redeemed_at"),
                    "redeemed_by_business_id": str(business_id),
                }
            )
            .eq("id", str(grant_id))
            .is_("redeemed_at", "null"),
            operation="redeem birthday offer",
            idempotent=False,
        )
        rows = rows_of(response)
        if not rows:
            return None
        return _row_to_grant(rows[0], self._default_validity)


__all__ = ["SupabaseBirthdayOfferRepository"]
