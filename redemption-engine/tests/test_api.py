"""
Tests for the FastAPI application (`api/`).

Covers contract rules:
- Verification responses use camelCase fields and omit absent ones.
- rate_limited is returned with HTTP 429 and the same body shape.
- Malformed member IDs are 400; malformed UUIDs are 422.
- Confirm/birthday rejections return {error, code} with the mapped status.
- Data store outages are 503.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_engine
from api.main import app
from domain.birthday import BirthdayOfferGrant
from domain.offer import DiscountType, RedemptionScope
from repositories.client import DataStoreUnavailableError


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _verify(client, member_id, offer_id, business_id):
    return client.post(
        "/api/v1/verifications",
        json={"memberId": member_id, "offerId": str(offer_id), "businessId": str(business_id)},
    )


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert client.get("/").json()["health"] == "/health"


def test_verify_valid(client, add_membership, add_offer, business_id) -> None:
    membership, _ = add_membership(member_number="WF-2024-000123")
    offer = add_offer()

    response = _verify(client, " wf-2024-000123 ", offer.offer_id, business_id)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "valid"
    assert body["memberName"] == "Maria Papadopoulou"
    assert body["memberId"] == "WF-2024-000123"
    assert body["membershipId"] == str(membership.membership_id)
    assert body["discount"] == "10% - Grooming discount"
    assert body["offerType"] == "per_member"
    assert "reason" not in body
    assert "attemptsRemaining" not in body


def test_verify_per_pet_lists_available_pets(client, add_membership, add_offer, business_id) -> None:
    _, (rex, luna) = add_membership(member_number="WF-2024-000123", pets=(("Rex", "dog"), ("Luna", "cat")))
    offer = add_offer(scope=RedemptionScope.PER_PET)

    body = _verify(client, "WF-2024-000123", offer.offer_id, business_id).json()

    assert body["availablePets"] == [
        {"id": str(rex.pet_id), "name": "Rex"},
        {"id": str(luna.pet_id), "name": "Luna"},
    ]
    assert body["totalPets"] == 2
    assert body["redeemedPetsCount"] == 0


def test_verify_lists_pending_birthday_offers(client, store, add_membership, add_offer, business_id, clock) -> None:
    membership, (rex,) = add_membership(member_number="WF-2024-000123")
    grant = BirthdayOfferGrant(
        grant_id=uuid4(),
        pet_id=rex.pet_id,
        pet_name="Rex",
        membership_id=membership.membership_id,
        owner_user_id=membership.user_id,
        business_id=business_id,
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("20"),
        message="Happy birthday Rex!",
        sent_at=clock() - timedelta(days=1),
        expires_at=clock() + timedelta(days=29),
    )
    store.add_grant(grant)

    body = _verify(client, "WF-2024-000123", add_offer().offer_id, business_id).json()

    (item,) = body["pendingBirthdayOffers"]
    assert {"id", "petName", "discountValue", "discountType", "message", "businessId", "sentAt"} <= set(item)
    assert item["id"] == str(grant.grant_id)
    assert Decimal(str(item["discountValue"])) == Decimal("20")
    assert item["discountType"] == "percentage"
    assert item["discount"] == "20%"
    assert item["businessId"] == str(business_id)


def test_verify_invalid_then_rate_limited(client, add_offer, business_id) -> None:
    offer = add_offer()

    for remaining in (4, 3, 2, 1, 0):
        response = _verify(client, "WF-0000-000000", offer.offer_id, business_id)
        assert response.status_code == 200
        assert response.json() == {
            "status": "invalid",
            "reason": "member_not_found",
            "attemptsRemaining": remaining,
        }

    response = _verify(client, "WF-0000-000000", offer.offer_id, business_id)

    assert response.status_code == 429
    body = response.json()
    assert body["status"] == "rate_limited"
    assert body["remainingMinutes"] == 30
    assert "lockoutExpiresAt" in body


def test_verify_malformed_member_id(client, add_offer, business_id) -> None:
    response = _verify(client, "   ", add_offer().offer_id, business_id)

    assert response.status_code == 400


def test_verify_malformed_uuid(client) -> None:
    response = client.post(
        "/api/v1/verifications",
        json={"memberId": "WF-2024-000123", "offerId": "not-a-uuid", "businessId": str(uuid4())},
    )

    assert response.status_code == 422


def test_confirm_and_history(client, add_membership, add_offer, business_id) -> None:
    membership, _ = add_membership(member_number="WF-2024-000123")
    offer = add_offer()
    payload = {
        "membershipId": str(membership.membership_id),
        "offerId": str(offer.offer_id),
        "businessId": str(business_id),
    }

    response = client.post("/api/v1/redemptions/confirm", json=payload)

    assert response.status_code == 200
    redemption = response.json()["redemption"]
    assert redemption["discount"] == "10%"
    assert redemption["offerTitle"] == "Grooming discount"
    assert redemption["memberName"] == "Maria Papadopoulou"
    assert redemption["memberNumber"] == "WF-2024-000123"
    assert "petName" not in redemption

    again = client.post("/api/v1/redemptions/confirm", json=payload)
    assert again.status_code == 409
    assert again.json()["code"] == "ALREADY_REDEEMED"

    history = client.get(f"/api/v1/businesses/{business_id}/redemptions", params={"limit": 10})
    assert history.status_code == 200
    body = history.json()
    assert body["totalCount"] == 1
    assert body["items"][0]["id"] == redemption["id"]
    assert body["items"][0]["memberNumber"] == "WF-2024-000123"


def test_confirm_rejection_statuses(client, add_membership, add_offer, business_id) -> None:
    membership, _ = add_membership()
    per_pet = add_offer(scope=RedemptionScope.PER_PET)

    missing = client.post(
        "/api/v1/redemptions/confirm",
        json={"membershipId": str(uuid4()), "offerId": str(per_pet.offer_id), "businessId": str(business_id)},
    )
    assert missing.status_code == 404
    assert missing.json() == {"error": "Membership not found", "code": "MEMBER_NOT_FOUND"}

    no_pet = client.post(
        "/api/v1/redemptions/confirm",
        json={
            "membershipId": str(membership.membership_id),
            "offerId": str(per_pet.offer_id),
            "businessId": str(business_id),
        },
    )
    assert no_pet.status_code == 400
    assert no_pet.json()["code"] == "PET_REQUIRED"


def test_redeem_birthday_offer(client, store, add_membership, business_id, clock) -> None:
    membership, (rex,) = add_membership()
    grant = BirthdayOfferGrant(
        grant_id=uuid4(),
        pet_id=rex.pet_id,
        pet_name="Rex",
        membership_id=membership.membership_id,
        owner_user_id=membership.user_id,
        business_id=None,
        discount_type=DiscountType.FIXED,
        discount_value=Decimal("5"),
        message="Happy birthday!",
        sent_at=clock() - timedelta(days=1),
        expires_at=clock() + timedelta(days=29),
    )
    store.add_grant(grant)
    payload = {"grantId": str(grant.grant_id), "businessId": str(business_id)}

    response = client.post("/api/v1/birthday-offers/redeem", json=payload)

    assert response.status_code == 200
    assert response.json()["redemption"]["petName"] == "Rex"
    assert response.json()["redemption"]["discount"] == "€5"

    again = client.post("/api/v1/birthday-offers/redeem", json=payload)
    assert again.status_code == 409
    assert again.json()["code"] == "ALREADY_REDEEMED"

    unknown = client.post(
        "/api/v1/birthday-offers/redeem",
        json={"grantId": str(uuid4()), "businessId": str(business_id)},
    )
    assert unknown.status_code == 404


def test_data_store_unavailable_is_503(client, engine, add_offer, business_id, monkeypatch) -> None:
    def unavailable(*args, **kwargs):
        raise DataStoreUnavailableError("Failed to fetch membership after 3 attempts")

    monkeypatch.setattr(engine, "verify", unavailable)

    response = _verify(client, "WF-2024-000123", add_offer().offer_id, business_id)

    assert response.status_code == 503


def test_unexpected_error_is_500(client, engine, business_id, monkeypatch) -> None:
    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(engine, "list_business_redemptions", broken)

    response = client.get(f"/api/v1/businesses/{business_id}/redemptions")

    assert response.status_code == 500
    assert "boom" in response.json()["detail"]
