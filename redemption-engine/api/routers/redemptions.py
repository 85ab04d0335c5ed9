"""
Redemptions API Endpoints.

Endpoints for confirming a verified redemption and listing a business's
redemption history.
"""

from typing import assert_never
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_engine
from api.errors import rejection_response, unexpected_error
from api.models import (
    ConfirmRedemptionRequest,
    ConfirmRedemptionResponse,
    RedemptionHistoryItem,
    RedemptionHistoryResponse,
    RejectionResponse,
)
from domain.results import RedemptionConfirmed, RedemptionRejected
from services.redemption_service import RedemptionEngine

router = APIRouter()


@router.post(
    "/redemptions/confirm",
    response_model=ConfirmRedemptionResponse,
    response_model_exclude_none=True,
    summary="Confirm Redemption",
    description="Re-validate eligibility and record the redemption exactly once.",
    responses={
        400: {"model": RejectionResponse},
        403: {"model": RejectionResponse},
        404: {"model": RejectionResponse},
        409: {"model": RejectionResponse},
    },
)
def confirm_redemption(request: ConfirmRedemptionRequest, engine: RedemptionEngine = Depends(get_engine)):
    """
    Confirm a redemption after a successful verification.

    Eligibility is evaluated again at confirm time. The ledger write is atomic:
    if two terminals confirm the same member (or pet) for the same period, one
    succeeds and the other receives `ALREADY_REDEEMED` (HTTP 409).

    **Per-pet offers** require `petId`; the pet must belong to the membership
    and match the offer's pet type.

    **Success response:**
    ```json
    {
      "redemption": {
        "id": "123e4567-e89b-12d3-a456-426614174005",
        "discount": "10%",
        "offerTitle": "Grooming discount",
        "petName": "Rex",
        "memberName": "Maria Papadopoulou",
        "memberNumber": "WF-2024-000123",
        "redeemedAt": "2026-01-01T12:00:00Z"
      }
    }
    ```

    **Rejection response:**
    ```json
    {"error": "Offer already redeemed", "code": "ALREADY_REDEEMED"}
    ```
    """
    try:
        result = engine.confirm(
            request.membership_id,
            request.offer_id,
            request.business_id,
            request.pet_id,
        )
    except Exception as e:
        raise unexpected_error("confirm redemption", e)

    if isinstance(result, RedemptionConfirmed):
        return ConfirmRedemptionResponse.from_result(result)
    if isinstance(result, RedemptionRejected):
        return rejection_response(result)
    assert_never(result)


@router.get(
    "/businesses/{business_id}/redemptions",
    response_model=RedemptionHistoryResponse,
    response_model_exclude_none=True,
    summary="Redemption History",
    description="Most recent redemptions recorded at a business, newest first.",
)
def list_redemptions(
    business_id: UUID,
    limit: int = Query(50, ge=1, le=500, description="Maximum rows to return"),
    engine: RedemptionEngine = Depends(get_engine),
):
    """
    List recent redemptions for the business dashboard.

    Member and pet names come from the snapshot stored with each redemption,
    so rows stay readable after a membership or pet is renamed or removed.
    """
    try:
        records = engine.list_business_redemptions(business_id, limit=limit)
    except Exception as e:
        raise unexpected_error("list redemptions", e)

    items = [RedemptionHistoryItem.from_record(r) for r in records]
    return RedemptionHistoryResponse(items=items, total_count=len(items))
