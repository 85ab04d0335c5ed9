"""
Member notification repository (persistence).

Only inserts rows into the notifications and rating_prompts tables; delivery
(email, push) and the delayed review prompt are handled elsewhere.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from domain.time import to_iso_utc
from repositories.client import execute

_NOTIFICATIONS_TABLE: str = "notifications"
_RATING_PROMPTS_TABLE: str = "rating_prompts"


class SupabaseNotificationRepository:
    def __init__(self, client: Any) -> None:
        self._client = client

    def create(
        self,
        *,
        user_id: UUID,
        type: str,
        title: str,
        message: str,
        data: Mapping[str, Any],
    ) -> None:
        payload: dict[str, Any] = {
            "user_id": str(user_id),
            "type": type,
            "title": title,
            "message": message,
            "data": dict(data),
        }
        execute(
            self._client.table(_NOTIFICATIONS_TABLE).insert(payload),
            operation="create notification",
            idempotent=False,
        )

    def create_rating_prompt(
        self,
        *,
        user_id: UUID,
        business_id: UUID,
        redemption_id: UUID,
        prompt_after: datetime,
    ) -> None:
        execute(
            self._client.table(_RATING_PROMPTS_TABLE).insert(
                {
                    "user_id": str(user_id),
                    "business_id": str(business_id),
                    "redemption_id": str(redemption_id),
                    "prompt_after": to_iso_utc(prompt_after, name="prompt_after"),
                }
            ),
            operation="create rating prompt",
            idempotent=False,
        )


__all__ = ["SupabaseNotificationRepository"]
