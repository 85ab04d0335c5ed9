"""
Lockout tracker for member verification.

Consulted before any directory lookup so that a locked-out terminal is
rejected without touching the membership tables. Counters are keyed by
(business_id, SHA-256 of the normalized identifier).
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from domain.lockout import LockoutDecision, LockoutKey, LockoutPolicy, decide
from domain.membership import member_identifier_fingerprint
from repositories.base import LockoutStore

logger = logging.getLogger(__name__)


class LockoutTracker:
    """Per-(business, identifier) failed-attempt counters and timed lockouts."""

    def __init__(self, store: LockoutStore, policy: LockoutPolicy | None = None) -> None:
        self._store = store
        self._policy = policy or LockoutPolicy()

    @property
    def policy(self) -> LockoutPolicy:
        return self._policy

    @staticmethod
    def key_for(business_id: UUID, normalized_identifier: str) -> LockoutKey:
        return LockoutKey(
            business_id=business_id,
            identifier_hash=member_identifier_fingerprint(normalized_identifier),
        )

    def check(self, business_id: UUID, normalized_identifier: str, now: datetime) -> LockoutDecision:
        """Return whether an attempt may proceed; never changes stored state."""

        key = self.key_for(business_id, normalized_identifier)
        decision = decide(self._store.get(key), now, self._policy)
        if not decision.allowed:
            logger.info(
                "Verification attempt rejected by lockout",
                extra={
                    "business_id": str(business_id),
                    "identifier_hash": key.identifier_hash[:12],
                    "lockout_expires_at": decision.lockout_expires_at.isoformat()
                    if decision.lockout_expires_at
                    else None,
                },
            )
        return decision

    def record_failure(self, business_id: UUID, normalized_identifier: str, now: datetime) -> LockoutDecision:
        """Count one failed verification; may engage a lockout."""

        key = self.key_for(business_id, normalized_identifier)
        counter = self._store.register_failure(key, now, self._policy)

        if counter.is_locked(now):
            logger.warning(
                "Verification lockout engaged",
                extra={
                    "business_id": str(business_id),
                    "identifier_hash": key.identifier_hash[:12],
                    "failed_count": counter.failed_count,
                    "locked_until": counter.locked_until.isoformat() if counter.locked_until else None,
                },
            )
            return LockoutDecision(
                allowed=False,
                remaining_attempts=0,
                lockout_expires_at=counter.locked_until,
            )

        return LockoutDecision(
            allowed=True,
            remaining_attempts=max(self._policy.threshold - counter.failed_count, 0),
        )

    def record_success(self, business_id: UUID, normalized_identifier: str) -> None:
        self._store.clear(self.key_for(business_id, normalized_identifier))


__all__ = ["LockoutTracker"]
