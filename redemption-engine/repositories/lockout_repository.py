"""
Verification lockout store backed by Supabase.

Counters live in verification_lockouts, keyed by (business_id,
identifier_hash). The increment-and-compare runs inside the
register_verification_failure() PostgreSQL function so two simultaneous
failures cannot both read the old count.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from domain.lockout import LockoutCounter, LockoutKey, LockoutPolicy
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc
from repositories.client import execute, rows_of

_LOCKOUTS_TABLE: str = "verification_lockouts"
_REGISTER_FUNCTION: str = "register_verification_failure"


def _row_to_counter(row: Mapping[str, Any]) -> LockoutCounter:
    return LockoutCounter(
        failed_count=int(row["failed_count"]),
        window_started_at=parse_utc_datetime(row["window_started_at"]),
        locked_until=parse_optional_utc_datetime(row.get("locked_until")),
    )


class SupabaseLockoutStore:
    def __init__(self, client: Any) -> None:
        self._client = client

    def get(self, key: LockoutKey) -> Optional[LockoutCounter]:
        response = execute(
            self._client.table(_LOCKOUTS_TABLE)
            .select("failed_count, window_started_at, locked_until")
            .eq("business_id", str(key.business_id))
            .eq("identifier_hash", key.identifier_hash)
            .limit(1),
            operation="fetch verification lockout",
        )
        rows = rows_of(response)
        if not rows:
            return None
        return _row_to_counter(rows[0])

    def register_failure(self, key: LockoutKey, now: datetime, policy: LockoutPolicy) -> LockoutCounter:
        response = execute(
            self._client.rpc(
                _REGISTER_FUNCTION,
                {
                    "p_business_id": str(key.business_id),
                    "p_identifier_hash": key.identifier_hash,
                    "p_now": to_iso_utc(now, name="now"),
                    "p_threshold": policy.threshold,
                    "p_window_seconds": int(policy.window.total_seconds()),
                    "p_lockout_seconds": int(policy.duration.total_seconds()),
                },
            ),
            operation="register verification failure",
            idempotent=False,
        )
        data = response.data
        row = data[0] if isinstance(data, list) else data
        if not row:
            raise RuntimeError("Failed to register verification failure: empty response")
        return _row_to_counter(row)

    def clear(self, key: LockoutKey) -> None:
        execute(
            self._client.table(_LOCKOUTS_TABLE)
            .delete()
            .eq("business_id", str(key.business_id))
            .eq("identifier_hash", key.identifier_hash),
            operation="clear verification lockout",
        )


__all__ = ["SupabaseLockoutStore"]
