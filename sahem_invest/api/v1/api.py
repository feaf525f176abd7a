"""
V1 API router aggregation.

``main.py`` mounts this router at ``/api/v1``.
"""

from fastapi import APIRouter

from sahem_invest.api.v1.endpoints import deals, distribution_requests, investments, investors

api_router = APIRouter()

api_router.include_router(deals.router, prefix="/deals", tags=["Deals"])
api_router.include_router(investors.router, prefix="/investors", tags=["Investors"])

# Defines its own full paths (/deals/{deal_id}/investments).
api_router.include_router(investments.router, tags=["Investments"])

api_router.include_router(
    distribution_requests.router,
    prefix="/distribution-requests",
    tags=["Distribution requests"],
)
