"""
In-process repositories (DATA_BACKEND=memory).

Used for local development, demos and the test-suite. All state lives in one
InMemoryStore guarded by a single lock, so every write that the Supabase
backend makes atomic (ledger insert, lockout increment, grant redemption) is
atomic here as well.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence
from uuid import UUID, uuid4

from domain.birthday import BirthdayOfferGrant
from domain.lockout import LockoutCounter, LockoutKey, LockoutPolicy, register_failure
from domain.membership import DEFAULT_MEMBER_NAME, MemberDirectoryEntry, Membership, Pet
from domain.offer import Offer
from domain.redemption import RedemptionDraft, RedemptionRecord
from repositories.base import RedemptionConflictError, RedemptionLimitError


@dataclass
class InMemoryStore:
    memberships: dict[UUID, Membership] = field(default_factory=dict)
    owner_names: dict[UUID, str] = field(default_factory=dict)
    pets: dict[UUID, Pet] = field(default_factory=dict)
    offers: dict[UUID, Offer] = field(default_factory=dict)
    redemptions: dict[UUID, RedemptionRecord] = field(default_factory=dict)
    redemption_keys: set[tuple[UUID, UUID, str, datetime]] = field(default_factory=set)
    grants: dict[UUID, BirthdayOfferGrant] = field(default_factory=dict)
    lockouts: dict[LockoutKey, LockoutCounter] = field(default_factory=dict)
    notifications: list[dict[str, Any]] = field(default_factory=list)
    rating_prompts: list[dict[str, Any]] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock)

    def add_membership(
        self,
        membership: Membership,
        *,
        owner_name: str = DEFAULT_MEMBER_NAME,
        pets: Iterable[Pet] = (),
    ) -> None:
        with self.lock:
            self.memberships[membership.membership_id] = membership
            self.owner_names[membership.user_id] = owner_name
            for pet in pets:
                self.pets[pet.pet_id] = pet

    def add_offer(self, offer: Offer) -> None:
        with self.lock:
            self.offers[offer.offer_id] = offer

    def add_grant(self, grant: BirthdayOfferGrant) -> None:
        with self.lock:
            self.grants[grant.grant_id] = grant

    def add_redemption(self, record: RedemptionRecord) -> None:
        """Seed a historical ledger row (enforces the same uniqueness key)."""

        with self.lock:
            if record.period_start is not None:
                key = (record.offer_id, record.membership_id, record.scope_key, record.period_start)
                if key in self.redemption_keys:
                    raise RedemptionConflictError("Redemption already recorded for this period")
                self.redemption_keys.add(key)
            self.redemptions[record.redemption_id] = record


class InMemoryMembershipRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def _entry(self, membership: Membership) -> MemberDirectoryEntry:
        pets = tuple(
            pet for pet in self._store.pets.values() if pet.membership_id == membership.membership_id
        )
        return MemberDirectoryEntry(
            membership=membership,
            owner_name=self._store.owner_names.get(membership.user_id, DEFAULT_MEMBER_NAME),
            pets=pets,
        )

    def get_by_member_number(self, member_number: str) -> Optional[MemberDirectoryEntry]:
        with self._store.lock:
            for membership in self._store.memberships.values():
                if membership.member_number == member_number:
                    return self._entry(membership)
        return None

    def get_by_id(self, membership_id: UUID) -> Optional[MemberDirectoryEntry]:
        with self._store.lock:
            membership = self._store.memberships.get(membership_id)
            return self._entry(membership) if membership is not None else None


class InMemoryOfferRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get_offer(self, offer_id: UUID) -> Optional[Offer]:
        return self._store.offers.get(offer_id)


class InMemoryRedemptionRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def count_for_offer(self, offer_id: UUID) -> int:
        with self._store.lock:
            return sum(1 for r in self._store.redemptions.values() if r.offer_id == offer_id)

    def list_for_membership(
        self,
        offer_id: UUID,
        membership_id: UUID,
        since: Optional[datetime] = None,
    ) -> list[RedemptionRecord]:
        with self._store.lock:
            return [
                r
                for r in self._store.redemptions.values()
                if r.offer_id == offer_id
                and r.membership_id == membership_id
                and (since is None or r.redeemed_at >= since)
            ]

    def list_for_business(self, business_id: UUID, limit: int = 50) -> list[RedemptionRecord]:
        with self._store.lock:
            rows = [r for r in self._store.redemptions.values() if r.business_id == business_id]
        rows.sort(key=lambda r: r.redeemed_at, reverse=True)
        return rows[:limit]

    def record(self, draft: RedemptionDraft, *, max_redemptions: Optional[int] = None) -> RedemptionRecord:
        with self._store.lock:
            key = draft.uniqueness_key
            if key is not None and key in self._store.redemption_keys:
                raise RedemptionConflictError("Redemption already recorded for this period")
            if max_redemptions is not None and self.count_for_offer(draft.offer_id) >= max_redemptions:
                raise RedemptionLimitError("Offer redemption limit reached")

            record = RedemptionRecord.from_draft(uuid4(), draft)
            if key is not None:
                self._store.redemption_keys.add(key)
            self._store.redemptions[record.redemption_id] = record
            return record


class InMemoryBirthdayOfferRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get_grant(self, grant_id: UUID) -> Optional[BirthdayOfferGrant]:
        return self._store.grants.get(grant_id)

    def list_unredeemed_for_pets(self, pet_ids: Sequence[UUID]) -> list[BirthdayOfferGrant]:
        wanted = set(pet_ids)
        with self._store.lock:
            grants = [
                g for g in self._store.grants.values() if g.pet_id in wanted and not g.is_redeemed
            ]
        grants.sort(key=lambda g: g.sent_at, reverse=True)
        return grants

    def mark_redeemed(
        self,
        grant_id: UUID,
        *,
        business_id: UUID,
        redeemed_at: datetime,
    ) -> Optional[BirthdayOfferGrant]:
        with self._store.lock:
            grant = self._store.grants.get(grant_id)
            if grant is None or grant.is_redeemed:
                return None
            updated = grant.redeemed(business_id=business_id, redeemed_at=redeemed_at)
            self._store.grants[grant_id] = updated
            return updated


class InMemoryLockoutStore:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, key: LockoutKey) -> Optional[LockoutCounter]:
        return self._store.lockouts.get(key)

    def register_failure(self, key: LockoutKey, now: datetime, policy: LockoutPolicy) -> LockoutCounter:
        with self._store.lock:
            counter = register_failure(self._store.lockouts.get(key), now, policy)
            self._store.lockouts[key] = counter
            return counter

    def clear(self, key: LockoutKey) -> None:
        with self._store.lock:
            self._store.lockouts.pop(key, None)


class InMemoryNotificationRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def create(
        self,
        *,
        user_id: UUID,
        type: str,
        title: str,
        message: str,
        data: Mapping[str, Any],
    ) -> None:
        with self._store.lock:
            self._store.notifications.append(
                {
                    "user_id": user_id,
                    "type": type,
                    "title": title,
                    "message": message,
                    "data": dict(data),
                }
            )

    def create_rating_prompt(
        self,
        *,
        user_id: UUID,
        business_id: UUID,
        redemption_id: UUID,
        prompt_after: datetime,
    ) -> None:
        with self._store.lock:
            self._store.rating_prompts.append(
                {
                    "user_id": user_id,
                    "business_id": business_id,
                    "redemption_id": redemption_id,
                    "prompt_after": prompt_after,
                }
            )


__all__ = [
    "InMemoryBirthdayOfferRepository",
    "InMemoryLockoutStore",
    "InMemoryMembershipRepository",
    "InMemoryNotificationRepository",
    "InMemoryOfferRepository",
    "InMemoryRedemptionRepository",
    "InMemoryStore",
]
