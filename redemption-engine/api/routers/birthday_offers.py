"""
Birthday Offers API Endpoints.
"""

from typing import assert_never

from fastapi import APIRouter, Depends

from api.dependencies import get_engine
from api.errors import rejection_response, unexpected_error
from api.models import RedeemBirthdayOfferRequest, RedeemBirthdayOfferResponse, RejectionResponse
from domain.results import BirthdayRedemptionConfirmed, RedemptionRejected
from services.redemption_service import RedemptionEngine

router = APIRouter()


@router.post(
    "/birthday-offers/redeem",
    response_model=RedeemBirthdayOfferResponse,
    summary="Redeem Birthday Offer",
    description="Redeem a pre-issued birthday offer grant exactly once.",
    responses={
        400: {"model": RejectionResponse},
        403: {"model": RejectionResponse},
        404: {"model": RejectionResponse},
        409: {"model": RejectionResponse},
    },
)
def redeem_birthday_offer(request: RedeemBirthdayOfferRequest, engine: RedemptionEngine = Depends(get_engine)):
    """
    Redeem a birthday offer grant shown in a verification response.

    **Rejection codes:** `NOT_FOUND` (404), `BUSINESS_MISMATCH` (403),
    `GRANT_EXPIRED` (400), `ALREADY_REDEEMED` (409).
    """
    try:
        result = engine.redeem_birthday_grant(request.grant_id, request.business_id)
    except Exception as e:
        raise unexpected_error("redeem birthday offer", e)

    if isinstance(result, BirthdayRedemptionConfirmed):
        return RedeemBirthdayOfferResponse.from_result(result)
    if isinstance(result, RedemptionRejected):
        return rejection_response(result)
    assert_never(result)
