"""
Redemption Engine API - Main Application.

Point-of-sale terminals and the business dashboard call the /api/v1 routes;
CORS origins come from CORS_ORIGINS.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.routers import birthday_offers, redemptions, verification
from config import get_settings

SERVICE_NAME = "redemption-engine-api"

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Pet Membership Redemption API",
    description="Member verification and offer redemption for partner businesses",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Browsers reject credentialed requests against a wildcard origin.
_origins = settings.cors_origin_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials="*" not in _origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(verification.router, prefix="/api/v1", tags=["Verification"])
app.include_router(redemptions.router, prefix="/api/v1", tags=["Redemptions"])
app.include_router(birthday_offers.router, prefix="/api/v1", tags=["Birthday Offers"])


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness probe for the load balancer; does not touch the data store."""
    return {"status": "healthy", "version": __version__, "service": SERVICE_NAME}


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Pet Membership Redemption API",
        "service": SERVICE_NAME,
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
