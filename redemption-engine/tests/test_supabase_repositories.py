"""
Tests for the Supabase repositories against fake PostgREST query builders.

Covers contract rules:
- Rows map to domain entities (legacy offer columns, UTC timestamps).
- record_offer_redemption() results map to RedemptionConflictError /
  RedemptionLimitError, including the APIError-wrapped JSON body quirk.
- Birthday grant redemption is a conditional update on redeemed_at IS NULL.
- Transport errors are retried for reads; writes only retry connection
  failures; exhausted retries raise DataStoreUnavailableError.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4

import httpx
import pytest
from postgrest.exceptions import APIError

from domain.offer import DiscountType, RedemptionScope
from domain.periods import EPOCH, RedemptionFrequency
from domain.redemption import RedemptionDraft, RedemptionSnapshot
from repositories import client as client_module
from repositories.base import RedemptionConflictError, RedemptionLimitError
from repositories.birthday_offer_repository import SupabaseBirthdayOfferRepository
from repositories.client import DataStoreUnavailableError, execute
from repositories.membership_repository import SupabaseMembershipRepository
from repositories.notification_repository import SupabaseNotificationRepository
from repositories.offer_repository import SupabaseOfferRepository
from repositories.redemption_repository import SupabaseRedemptionRepository

UTC = timezone.utc
NOW = datetime(2026, 3, 18, 12, 0, tzinfo=UTC)


class FakeQuery:
    """Chainable stand-in for a PostgREST request builder."""

    def __init__(self, *outcomes: Any) -> None:
        self.calls: list[tuple[str, tuple, dict]] = []
        self._outcomes = list(outcomes)

    def __getattr__(self, name: str):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self):
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def called(self, name: str) -> list[tuple]:
        return [args for n, args, _ in self.calls if n == name]


class FakeClient:
    def __init__(self, tables: dict[str, FakeQuery] | None = None, rpc: FakeQuery | None = None) -> None:
        self.tables = tables or {}
        self.rpc_query = rpc
        self.rpc_calls: list[tuple[str, dict]] = []

    def table(self, name: str) -> FakeQuery:
        return self.tables[name]

    def rpc(self, name: str, params: dict) -> FakeQuery:
        self.rpc_calls.append((name, params))
        return self.rpc_query


def _response(data: Any = None, count: int | None = None) -> SimpleNamespace:
    return SimpleNamespace(data=data, count=count, error=None)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch) -> None:
    monkeypatch.setattr(client_module.time, "sleep", lambda seconds: None)


def _draft(**overrides) -> RedemptionDraft:
    fields = {
        "offer_id": uuid4(),
        "membership_id": uuid4(),
        "business_id": uuid4(),
        "pet_id": None,
        "redeemed_at": NOW,
        "scope_key": "member",
        "period_start": EPOCH,
        "snapshot": RedemptionSnapshot("Maria", "Rex", "WF-2024-000123"),
    }
    fields.update(overrides)
    return RedemptionDraft(**fields)


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def test_offer_row_mapping_with_legacy_columns() -> None:
    offer_id, business_id = uuid4(), uuid4()
    query = FakeQuery(
        _response(
            [
                {
                    "id": str(offer_id),
                    "business_id": str(business_id),
                    "title": "Cat grooming",
                    "discount_type": "percentage",
                    "discount_value": 15,
                    "offer_type": "per_pet",
                    "redemption_frequency": None,
                    "is_active": True,
                    "valid_until": "2026-12-31T23:59:59Z",
                    "valid_days": [1, 2, 3],
                    "valid_hours_start": "09:00:00",
                    "valid_hours_end": "17:30",
                    "pet_type": "cat",
                    "max_redemptions": 100,
                }
            ]
        )
    )
    repo = SupabaseOfferRepository(FakeClient({"offers": query}))

    offer = repo.get_offer(offer_id)

    assert offer is not None
    assert offer.scope is RedemptionScope.PER_PET
    assert offer.frequency is RedemptionFrequency.ONE_TIME
    assert offer.discount_type is DiscountType.PERCENTAGE
    assert offer.discount_value == Decimal("15")
    assert offer.valid_until == datetime(2026, 12, 31, 23, 59, 59, tzinfo=UTC)
    assert offer.valid_days == frozenset({1, 2, 3})
    assert offer.valid_hours_start == time(9, 0)
    assert offer.valid_hours_end == time(17, 30)
    assert offer.max_redemptions == 100


def test_offer_not_found() -> None:
    repo = SupabaseOfferRepository(FakeClient({"offers": FakeQuery(_response([]))}))

    assert repo.get_offer(uuid4()) is None


def test_membership_lookup_joins_profile_and_pets() -> None:
    membership_id, user_id, pet_id = uuid4(), uuid4(), uuid4()
    memberships = FakeQuery(
        _response(
            [
                {
                    "id": str(membership_id),
                    "user_id": str(user_id),
                    "member_number": "WF-2024-000123",
                    "is_active": True,
                    "expires_at": "2027-01-01T00:00:00+00:00",
                    "max_pets": 2,
                    "plan_type": "family",
                }
            ]
        )
    )
    profiles = FakeQuery(_response([{"full_name": "Maria Papadopoulou"}]))
    pets = FakeQuery(
        _response(
            [
                {
                    "id": str(pet_id),
                    "membership_id": str(membership_id),
                    "pet_name": "Rex",
                    "pet_type": "dog",
                    "birthday": "2020-05-04",
                }
            ]
        )
    )
    repo = SupabaseMembershipRepository(FakeClient({"memberships": memberships, "profiles": profiles, "pets": pets}))

    entry = repo.get_by_member_number("WF-2024-000123")

    assert entry is not None
    assert entry.owner_name == "Maria Papadopoulou"
    assert entry.membership.plan_type == "family"
    assert entry.pets[0].name == "Rex"
    assert entry.pets[0].birthday.year == 2020
    assert ("member_number", "WF-2024-000123") in memberships.called("eq")


def test_membership_lookup_not_found() -> None:
    repo = SupabaseMembershipRepository(FakeClient({"memberships": FakeQuery(_response([]))}))

    assert repo.get_by_member_number("WF-0000-000000") is None


# ---------------------------------------------------------------------------
# Ledger writes
# ---------------------------------------------------------------------------


def test_record_redemption_success() -> None:
    redemption_id = uuid4()
    client = FakeClient(rpc=FakeQuery(_response({"success": True, "redemption_id": str(redemption_id)})))
    draft = _draft()

    record = SupabaseRedemptionRepository(client).record(draft, max_redemptions=10)

    assert record.redemption_id == redemption_id
    assert record.snapshot == draft.snapshot
    ((name, params),) = client.rpc_calls
    assert name == "record_offer_redemption"
    assert params["p_scope_key"] == "member"
    assert params["p_period_start"] == EPOCH.isoformat()
    assert params["p_max_redemptions"] == 10
    assert params["p_pet_id"] is None


@pytest.mark.parametrize(
    "payload, error",
    [
        ({"success": False, "error": "ALREADY_REDEEMED", "message": "Offer already redeemed"}, RedemptionConflictError),
        ({"success": False, "error": "LIMIT_REACHED", "message": "Limit reached"}, RedemptionLimitError),
    ],
)
def test_record_redemption_rejections(payload, error) -> None:
    client = FakeClient(rpc=FakeQuery(_response(payload)))

    with pytest.raises(error):
        SupabaseRedemptionRepository(client).record(_draft())


def test_record_redemption_unique_violation() -> None:
    client = FakeClient(rpc=FakeQuery(APIError({"code": "23505", "message": "duplicate key value"})))

    with pytest.raises(RedemptionConflictError):
        SupabaseRedemptionRepository(client).record(_draft())


def test_record_redemption_unwraps_api_error_body() -> None:
    redemption_id = uuid4()
    wrapped = APIError({"success": True, "redemption_id": str(redemption_id)})
    client = FakeClient(rpc=FakeQuery(wrapped))

    record = SupabaseRedemptionRepository(client).record(_draft())

    assert record.redemption_id == redemption_id


def test_count_and_history_queries() -> None:
    offer_id, membership_id, business_id = uuid4(), uuid4(), uuid4()
    row = {
        "id": str(uuid4()),
        "offer_id": str(offer_id),
        "membership_id": str(membership_id),
        "business_id": str(business_id),
        "pet_id": None,
        "redeemed_at": "2026-03-18T11:00:00Z",
        "member_name": "Maria",
        "pet_names": "Rex",
        "member_number": "WF-2024-000123",
        "scope_key": "member",
        "period_start": "2026-03-01T00:00:00Z",
    }
    query = FakeQuery(_response(count=7), _response([row]))
    repo = SupabaseRedemptionRepository(FakeClient({"offer_redemptions": query}))

    assert repo.count_for_offer(offer_id) == 7
    (record,) = repo.list_for_membership(offer_id, membership_id, since=datetime(2026, 3, 1, tzinfo=UTC))

    assert record.period_start == datetime(2026, 3, 1, tzinfo=UTC)
    assert record.snapshot.member_number == "WF-2024-000123"
    assert ("redeemed_at", "2026-03-01T00:00:00+00:00") in query.called("gte")


# ---------------------------------------------------------------------------
# Birthday grants
# ---------------------------------------------------------------------------


def _grant_row(**overrides) -> dict:
    row = {
        "id": str(uuid4()),
        "pet_id": str(uuid4()),
        "pet_name": "Rex",
        "owner_user_id": str(uuid4()),
        "discount_type": "fixed",
        "discount_value": "5.00",
        "message": "Happy birthday!",
        "sent_at": "2026-03-10T08:00:00Z",
    }
    row.update(overrides)
    return row


def test_grant_expiry_defaults_to_validity() -> None:
    query = FakeQuery(_response([_grant_row()]))
    repo = SupabaseBirthdayOfferRepository(
        FakeClient({"sent_birthday_offers": query}), default_validity=timedelta(days=30)
    )

    grant = repo.get_grant(uuid4())

    assert grant.expires_at == datetime(2026, 4, 9, 8, 0, tzinfo=UTC)
    assert grant.business_id is None
    assert grant.discount_text() == "€5"


def test_mark_redeemed_is_conditional() -> None:
    business_id = uuid4()
    row = _grant_row(redeemed_at="2026-03-18T12:00:00Z", redeemed_by_business_id=str(business_id))
    query = FakeQuery(_response([row]))
    repo = SupabaseBirthdayOfferRepository(FakeClient({"sent_birthday_offers": query}))

    grant = repo.mark_redeemed(UUID(row["id"]), business_id=business_id, redeemed_at=NOW)

    assert grant.redeemed_by_business_id == business_id
    assert ("redeemed_at", "null") in query.called("is_")


def test_mark_redeemed_lost_race() -> None:
    repo = SupabaseBirthdayOfferRepository(FakeClient({"sent_birthday_offers": FakeQuery(_response([]))}))

    assert repo.mark_redeemed(uuid4(), business_id=uuid4(), redeemed_at=NOW) is None


# ---------------------------------------------------------------------------
# Review requests
# ---------------------------------------------------------------------------


def test_rating_prompt_insert() -> None:
    user_id, business_id, redemption_id = uuid4(), uuid4(), uuid4()
    query = FakeQuery(_response([{"id": str(uuid4())}]))
    repo = SupabaseNotificationRepository(FakeClient({"rating_prompts": query}))

    repo.create_rating_prompt(
        user_id=user_id,
        business_id=business_id,
        redemption_id=redemption_id,
        prompt_after=NOW + timedelta(hours=24),
    )

    ((payload,),) = query.called("insert")
    assert payload == {
        "user_id": str(user_id),
        "business_id": str(business_id),
        "redemption_id": str(redemption_id),
        "prompt_after": "2026-03-19T12:00:00+00:00",
    }


# ---------------------------------------------------------------------------
# Transport retries
# ---------------------------------------------------------------------------


def test_read_retries_transport_errors() -> None:
    query = FakeQuery(httpx.ReadTimeout("slow"), _response([1]))

    response = execute(query, operation="read", max_retries=2)

    assert response.data == [1]


def test_write_does_not_retry_after_request_was_sent() -> None:
    query = FakeQuery(httpx.ReadTimeout("slow"), _response([1]))

    with pytest.raises(DataStoreUnavailableError):
        execute(query, operation="write", idempotent=False, max_retries=2)


def test_write_retries_connection_failures() -> None:
    query = FakeQuery(httpx.ConnectError("refused"), _response([1]))

    assert execute(query, operation="write", idempotent=False, max_retries=1).data == [1]


def test_retries_exhausted() -> None:
    query = FakeQuery(httpx.ConnectError("refused"))

    with pytest.raises(DataStoreUnavailableError):
        execute(query, operation="read", max_retries=2)


def test_error_payload_raises_runtime_error() -> None:
    query = FakeQuery(SimpleNamespace(data=None, error="permission denied"))

    with pytest.raises(RuntimeError, match="Failed to read"):
        execute(query, operation="read", max_retries=0)
