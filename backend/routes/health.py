"""
Health check endpoint.
"""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from database import LedgerStore, check_connection
from deps import get_ledger_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(store: LedgerStore = Depends(get_ledger_store)):
    """Health check: verifies database connectivity."""
    if await check_connection(store):
        return {"status": "ok", "db": "healthy"}

    logger.error("Health check failed: database unreachable")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "error", "db": "unhealthy"},
    )
