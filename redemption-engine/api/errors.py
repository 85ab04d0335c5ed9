"""
HTTP mapping for business-rule rejections and infrastructure failures.
"""

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from domain.results import RedemptionRejected, RejectionCode
from repositories.client import DataStoreUnavailableError

REJECTION_STATUS = {
    RejectionCode.ALREADY_REDEEMED: 409,
    RejectionCode.LIMIT_REACHED: 409,
    RejectionCode.MEMBER_NOT_FOUND: 404,
    RejectionCode.NOT_FOUND: 404,
    RejectionCode.PET_NOT_FOUND: 404,
    RejectionCode.BUSINESS_MISMATCH: 403,
    RejectionCode.MEMBERSHIP_EXPIRED: 400,
    RejectionCode.OFFER_UNAVAILABLE: 400,
    RejectionCode.PET_REQUIRED: 400,
    RejectionCode.PET_TYPE_MISMATCH: 400,
    RejectionCode.GRANT_EXPIRED: 400,
}


def rejection_response(rejection: RedemptionRejected) -> JSONResponse:
    return JSONResponse(
        status_code=REJECTION_STATUS.get(rejection.code, 400),
        content={"error": rejection.message, "code": rejection.code.value},
    )


def unexpected_error(action: str, exc: Exception) -> HTTPException:
    """Translate an unexpected exception raised while handling a request."""

    if isinstance(exc, DataStoreUnavailableError):
        return HTTPException(status_code=503, detail=f"Data store unavailable: {str(exc)}")
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(exc)}")
