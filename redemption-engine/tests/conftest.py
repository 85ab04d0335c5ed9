"""
Pytest configuration and shared fixtures.

Adds the redemption-engine directory to the Python path so tests can import
domain, repositories, services and api, and provides an in-memory engine
driven by a controllable clock.
"""

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

import pytest

# Add the redemption-engine directory to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.dependencies import build_memory_engine  # noqa: E402
from domain.membership import Membership, Pet  # noqa: E402
from domain.offer import DiscountType, Offer  # noqa: E402
from repositories.memory import InMemoryStore  # noqa: E402

BUSINESS_ID = UUID("00000000-0000-0000-0000-0000000000b1")
OTHER_BUSINESS_ID = UUID("00000000-0000-0000-0000-0000000000b2")

# Wednesday
START = datetime(2026, 3, 18, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def business_id() -> UUID:
    return BUSINESS_ID


@pytest.fixture
def other_business_id() -> UUID:
    return OTHER_BUSINESS_ID


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(START)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def engine(store, clock):
    return build_memory_engine(store, clock=clock)


@pytest.fixture
def add_membership(store):
    """Factory: add a membership (and pets) to the store and return it."""

    counter = {"n": 0}

    def _add(
        *,
        member_number: str | None = None,
        owner_name: str = "Maria Papadopoulou",
        pets: tuple[tuple[str, str], ...] = (("Rex", "dog"),),
        is_active: bool = True,
        expires_at: datetime = datetime(2027, 1, 1, tzinfo=timezone.utc),
    ) -> tuple[Membership, tuple[Pet, ...]]:
        counter["n"] += 1
        membership = Membership(
            membership_id=uuid4(),
            member_number=member_number or f"WF-2026-{counter['n']:06d}",
            user_id=uuid4(),
            is_active=is_active,
            expires_at=expires_at,
            max_pets=max(len(pets), 1),
        )
        pet_objects = tuple(
            Pet(pet_id=uuid4(), membership_id=membership.membership_id, name=name, pet_type=pet_type)
            for name, pet_type in pets
        )
        store.add_membership(membership, owner_name=owner_name, pets=pet_objects)
        return membership, pet_objects

    return _add


@pytest.fixture
def add_offer(store):
    """Factory: add an offer for BUSINESS_ID (any field can be overridden)."""

    def _add(**overrides) -> Offer:
        fields = {
            "offer_id": uuid4(),
            "business_id": BUSINESS_ID,
            "title": "Grooming discount",
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("10"),
        }
        fields.update(overrides)
        offer = Offer(**fields)
        store.add_offer(offer)
        return offer

    return _add
