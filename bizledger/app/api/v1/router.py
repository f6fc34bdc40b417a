"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from bizledger.app.api.v1.endpoints import ledger

router = APIRouter()

router.include_router(ledger.router)
