"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from daily_brief import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Report that the service is up."""
    return {"status": "ok", "version": __version__}
