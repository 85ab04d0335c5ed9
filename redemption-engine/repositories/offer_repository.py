"""
Offer catalog repository (persistence).

Read-only: offers are created and edited by the business dashboard.
"""

from __future__ import annotations

from datetime import time
from decimal import Decimal
from typing import Any, Mapping, Optional
from uuid import UUID

from domain.offer import DiscountType, Offer, RedemptionScope
from domain.periods import RedemptionFrequency
from domain.time import parse_optional_utc_datetime
from repositories.client import execute, rows_of

_OFFERS_TABLE: str = "offers"


def _parse_time(value: Any) -> Optional[time]:
    """Postgres `time` columns arrive as "HH:MM" or "HH:MM:SS"."""

    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def _row_to_offer(row: Mapping[str, Any]) -> Offer:
    # redemption_scope supersedes the legacy offer_type column.
    scope = row.get("redemption_scope") or row.get("offer_type") or RedemptionScope.PER_MEMBER.value
    frequency = row.get("redemption_frequency") or RedemptionFrequency.ONE_TIME.value
    valid_days = row.get("valid_days")
    discount_value = row.get("discount_value")
    max_redemptions = row.get("max_redemptions")

    return Offer(
        offer_id=UUID(str(row["id"])),
        business_id=UUID(str(row["business_id"])),
        title=str(row.get("title") or ""),
        description=row.get("description"),
        discount_type=DiscountType.parse(row.get("discount_type")),
        discount_value=Decimal(str(discount_value)) if discount_value is not None else None,
        scope=RedemptionScope(str(scope)),
        frequency=RedemptionFrequency(str(frequency)),
        is_active=bool(row.get("is_active", False)),
        valid_from=parse_optional_utc_datetime(row.get("valid_from")),
        valid_until=parse_optional_utc_datetime(row.get("valid_until")),
        is_limited_time=bool(row.get("is_limited_time") or False),
        limited_time_label=row.get("limited_time_label"),
        valid_days=frozenset(int(d) for d in valid_days) if valid_days else None,
        valid_hours_start=_parse_time(row.get("valid_hours_start")),
        valid_hours_end=_parse_time(row.get("valid_hours_end")),
        pet_type=row.get("pet_type") or None,
        max_redemptions=int(max_redemptions) if max_redemptions is not None else None,
    )


class SupabaseOfferRepository:
    def __init__(self, client: Any) -> None:
        self._client = client

    def get_offer(self, offer_id: UUID) -> Optional[Offer]:
        """
        Retrieve a single offer by its ID.

        Returns:
            Offer or None if not found
        """

        response = execute(
            self._client.table(_OFFERS_TABLE).select("*").eq("id", str(offer_id)).limit(1),
            operation="fetch offer",
        )
        rows = rows_of(response)
        if not rows:
            return None
        return _row_to_offer(rows[0])


__all__ = ["SupabaseOfferRepository"]
