"""
Verification API Endpoints.

Endpoint a partner business calls when a member presents their ID.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from api.dependencies import get_engine
from api.errors import unexpected_error
from api.models import VerificationRequest, VerificationResponse
from domain.membership import InvalidMemberIdentifierError
from domain.results import RateLimited
from services.redemption_service import RedemptionEngine

router = APIRouter()


@router.post(
    "/verifications",
    response_model=VerificationResponse,
    response_model_exclude_none=True,
    summary="Verify Member",
    description="Verify a member ID against an offer at the calling business.",
    responses={429: {"model": VerificationResponse, "description": "Too many failed attempts"}},
)
def verify_member(request: VerificationRequest, engine: RedemptionEngine = Depends(get_engine)):
    """
    Verify a presented member ID.

    **Process:**
    1. Normalizes the member ID (whitespace removed, upper-cased)
    2. Rejects immediately if this business is locked out for that ID
    3. Resolves the membership and evaluates the offer
    4. Counts unknown or expired memberships as failed attempts

    **Statuses:** `valid`, `expired`, `invalid`, `already_redeemed`,
    `limit_reached`, `rate_limited`. All are returned with HTTP 200 except
    `rate_limited`, which uses HTTP 429 with the same body shape. Clients must
    wait `remainingMinutes` before trying again.

    **Example request:**
    ```json
    {
      "memberId": "WF-2024-000123",
      "offerId": "123e4567-e89b-12d3-a456-426614174000",
      "businessId": "123e4567-e89b-12d3-a456-426614174001"
    }
    ```

    **Rate-limited response:**
    ```json
    {
      "status": "rate_limited",
      "message": "Too many failed attempts. Please try again later.",
      "lockoutExpiresAt": "2026-01-01T12:30:00Z",
      "remainingMinutes": 30
    }
    ```
    """
    try:
        outcome = engine.verify(request.member_id, request.offer_id, request.business_id)
    except InvalidMemberIdentifierError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise unexpected_error("verify member", e)

    response = VerificationResponse.from_outcome(outcome, engine.currency_symbol)
    if isinstance(outcome.result, RateLimited):
        return JSONResponse(
            status_code=429,
            content=response.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
    return response
