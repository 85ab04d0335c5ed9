"""
Engine wiring for the API and scripts.

DATA_BACKEND selects the repositories: "supabase" talks to the shared
Supabase project, "memory" keeps everything in one in-process store (local
demos and tests).
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from config import Settings, get_settings
from repositories.memory import (
    InMemoryBirthdayOfferRepository,
    InMemoryLockoutStore,
    InMemoryMembershipRepository,
    InMemoryNotificationRepository,
    InMemoryOfferRepository,
    InMemoryRedemptionRepository,
    InMemoryStore,
)
from services.redemption_service import Clock, RedemptionEngine, utc_clock

logger = logging.getLogger(__name__)


def build_memory_engine(
    store: InMemoryStore,
    settings: Optional[Settings] = None,
    *,
    clock: Clock = utc_clock,
) -> RedemptionEngine:
    settings = settings or Settings(data_backend="memory")
    return RedemptionEngine(
        memberships=InMemoryMembershipRepository(store),
        offers=InMemoryOfferRepository(store),
        redemptions=InMemoryRedemptionRepository(store),
        birthday_offers=InMemoryBirthdayOfferRepository(store),
        lockouts=InMemoryLockoutStore(store),
        notifications=InMemoryNotificationRepository(store),
        lockout_policy=settings.lockout_policy,
        tz=settings.timezone,
        currency_symbol=settings.currency_symbol,
        clock=clock,
    )


def build_supabase_engine(settings: Settings, *, clock: Clock = utc_clock) -> RedemptionEngine:
    from repositories.birthday_offer_repository import SupabaseBirthdayOfferRepository
    from repositories.client import get_supabase
    from repositories.lockout_repository import SupabaseLockoutStore
    from repositories.membership_repository import SupabaseMembershipRepository
    from repositories.notification_repository import SupabaseNotificationRepository
    from repositories.offer_repository import SupabaseOfferRepository
    from repositories.redemption_repository import SupabaseRedemptionRepository

    client = get_supabase()
    return RedemptionEngine(
        memberships=SupabaseMembershipRepository(client),
        offers=SupabaseOfferRepository(client),
        redemptions=SupabaseRedemptionRepository(client),
        birthday_offers=SupabaseBirthdayOfferRepository(
            client, default_validity=settings.birthday_grant_validity
        ),
        lockouts=SupabaseLockoutStore(client),
        notifications=SupabaseNotificationRepository(client),
        lockout_policy=settings.lockout_policy,
        tz=settings.timezone,
        currency_symbol=settings.currency_symbol,
        clock=clock,
    )


def build_engine(settings: Settings) -> RedemptionEngine:
    if settings.data_backend == "memory":
        logger.info("Using in-memory data backend")
        return build_memory_engine(InMemoryStore(), settings)
    return build_supabase_engine(settings)


@lru_cache(maxsize=1)
def get_engine() -> RedemptionEngine:
    """FastAPI dependency; overridden in tests via app.dependency_overrides."""

    return build_engine(get_settings())


__all__ = ["build_engine", "build_memory_engine", "build_supabase_engine", "get_engine"]
