"""
Redemption ledger repository (persistence).

Reads query the offer_redemptions table directly. The write goes through the
record_offer_redemption() PostgreSQL function (sql/001_redemption_engine.sql),
which in one transaction:
- Locks the offer row (FOR UPDATE) so cap checks are serialized per offer
- Rejects the insert when max_redemptions is already reached
- Inserts the ledger row; the unique index on
  (offer_id, membership_id, scope_key, period_start) rejects duplicates

This module does not evaluate eligibility; it only guarantees that the write
itself is the arbiter of uniqueness.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional
from uuid import UUID

from postgrest.exceptions import APIError

from domain.redemption import (
    MEMBER_SCOPE_KEY,
    RedemptionDraft,
    RedemptionRecord,
    RedemptionSnapshot,
)
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc
from repositories.base import RedemptionConflictError, RedemptionLimitError
from repositories.client import UNIQUE_VIOLATION, execute, rows_of

logger = logging.getLogger(__name__)

# Supabase table name for ledger rows.
# Keep this aligned with your database schema.
_REDEMPTIONS_TABLE: str = "offer_redemptions"
_RECORD_FUNCTION: str = "record_offer_redemption"

_ALREADY_REDEEMED = "ALREADY_REDEEMED"
_LIMIT_REACHED = "LIMIT_REACHED"


def _optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def _row_to_redemption(row: Mapping[str, Any]) -> RedemptionRecord:
    """Convert a Supabase row into a RedemptionRecord."""

    return RedemptionRecord(
        redemption_id=UUID(str(row["id"])),
        offer_id=UUID(str(row["offer_id"])),
        membership_id=UUID(str(row["membership_id"])),
        business_id=UUID(str(row["business_id"])),
        pet_id=_optional_uuid(row.get("pet_id")),
        redeemed_at=parse_utc_datetime(row["redeemed_at"]),
        snapshot=RedemptionSnapshot(
            member_name=str(row.get("member_name") or ""),
            pet_names=str(row.get("pet_names") or ""),
            member_number=str(row.get("member_number") or ""),
        ),
        scope_key=str(row.get("scope_key") or MEMBER_SCOPE_KEY),
        period_start=parse_optional_utc_datetime(row.get("period_start")),
        redeemed_by_user_id=_optional_uuid(row.get("redeemed_by_user_id")),
    )


def _rpc_payload(draft: RedemptionDraft, max_redemptions: Optional[int]) -> dict[str, Any]:
    return {
        "p_offer_id": str(draft.offer_id),
        "p_membership_id": str(draft.membership_id),
        "p_business_id": str(draft.business_id),
        "p_pet_id": str(draft.pet_id) if draft.pet_id else None,
        "p_redeemed_at": to_iso_utc(draft.redeemed_at, name="redeemed_at"),
        "p_scope_key": draft.scope_key,
        "p_period_start": (
            to_iso_utc(draft.period_start, name="period_start") if draft.period_start else None
        ),
        "p_max_redemptions": max_redemptions,
        "p_member_name": draft.snapshot.member_name,
        "p_pet_names": draft.snapshot.pet_names,
        "p_member_number": draft.snapshot.member_number,
        "p_redeemed_by_user_id": (
            str(draft.redeemed_by_user_id) if draft.redeemed_by_user_id else None
        ),
    }


def _raise_for_rejection(code: Optional[str], message: Optional[str]) -> None:
    if code == _ALREADY_REDEEMED:
        raise RedemptionConflictError(message or "Redemption already recorded for this period")
    if code == _LIMIT_REACHED:
        raise RedemptionLimitError(message or "Offer redemption limit reached")
    raise RuntimeError(f"Failed to record redemption: {code}: {message}")


class SupabaseRedemptionRepository:
    def __init__(self, client: Any) -> None:
        self._client = client

    def count_for_offer(self, offer_id: UUID) -> int:
        response = execute(
            self._client.table(_REDEMPTIONS_TABLE)
            .select("id", count="exact", head=True)
            .eq("offer_id", str(offer_id)),
            operation="count redemptions",
        )
        return int(getattr(response, "count", None) or 0)

    def list_for_membership(
        self,
        offer_id: UUID,
        membership_id: UUID,
        since: Optional[datetime] = None,
    ) -> list[RedemptionRecord]:
        """
        Retrieve this membership's redemptions of an offer.

        Args:
            since: Only rows with redeemed_at >= since (the current period start)

        Returns:
            List[RedemptionRecord] (possibly empty)
        """

        query = (
            self._client.table(_REDEMPTIONS_TABLE)
            .select("*")
            .eq("offer_id", str(offer_id))
            .eq("membership_id", str(membership_id))
        )
        if since is not None:
            query = query.gte("redeemed_at", to_iso_utc(since, name="since"))

        response = execute(query, operation="list redemptions")
        return [_row_to_redemption(row) for row in rows_of(response)]

    def list_for_business(self, business_id: UUID, limit: int = 50) -> list[RedemptionRecord]:
        response = execute(
            self._client.table(_REDEMPTIONS_TABLE)
            .select("*")
            .eq("business_id", str(business_id))
            .order("redeemed_at", desc=True)
            .limit(limit),
            operation="list business redemptions",
        )
        return [_row_to_redemption(row) for row in rows_of(response)]

    def record(self, draft: RedemptionDraft, *, max_redemptions: Optional[int] = None) -> RedemptionRecord:
        """
        Insert a ledger row via record_offer_redemption().

        Returns:
            RedemptionRecord with the id assigned by the database

        Raises:
            RedemptionConflictError: unique key (offer, membership, scope, period) taken
            RedemptionLimitError: max_redemptions reached under the offer row lock
        """

        try:
            response = execute(
                self._client.rpc(_RECORD_FUNCTION, _rpc_payload(draft, max_redemptions)),
                operation="record redemption",
                idempotent=False,
            )
            result = response.data or {}
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise RedemptionConflictError(str(e.message)) from e

            # supabase-py raises APIError when the function's JSON body is not a
            # row set; unwrap it before treating it as a failure.
            try:
                result = e.json() if callable(getattr(e, "json", None)) else {}
            except (TypeError, ValueError):
                result = {}
            if not result:
                raise

        if not result.get("success"):
            _raise_for_rejection(result.get("error"), result.get("message"))

        record = RedemptionRecord.from_draft(UUID(str(result["redemption_id"])), draft)
        logger.info(
            "Redemption recorded",
            extra={
                "redemption_id": str(record.redemption_id),
                "offer_id": str(record.offer_id),
                "business_id": str(record.business_id),
            },
        )
        return record


__all__ = ["SupabaseRedemptionRepository"]
