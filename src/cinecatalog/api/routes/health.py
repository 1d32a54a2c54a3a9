"""Liveness endpoint."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns:
        Simple status message indicating the API is running. Scraper health
        lives under /api/admin/health.
    """
    return {"status": "ok"}
