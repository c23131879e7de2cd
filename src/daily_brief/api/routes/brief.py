"""Brief API endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from daily_brief.brief.formatting import format_brief_summary
from daily_brief.brief.orchestrator import BriefOrchestrator
from daily_brief.core.errors import SourceFetchError
from daily_brief.schemas.brief import BriefData, BriefSettings

router = APIRouter(prefix="/brief", tags=["brief"])
logger = structlog.get_logger(__name__)

RETRY_AFTER_SECONDS = 60

# Orchestrator dependency - set during app startup
_orchestrator: BriefOrchestrator | None = None


def set_orchestrator(orchestrator: BriefOrchestrator | None) -> None:
    """Set the orchestrator used by the brief endpoints.

    Args:
        orchestrator: Orchestrator to use, or None to unset.
    """
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> BriefOrchestrator:
    """Get the orchestrator.

    Raises:
        HTTPException: If the orchestrator is not configured.
    """
    if _orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Brief service not configured",
        )
    return _orchestrator


OrchestratorDep = Annotated[BriefOrchestrator, Depends(get_orchestrator)]


def _settings(
    orchestrator: BriefOrchestrator,
    email_window: int | None,
    calendar_window: int | None,
) -> BriefSettings:
    defaults = orchestrator.settings
    try:
        return BriefSettings(
            email_window_hours=(
                email_window if email_window is not None else defaults.email_window_hours
            ),
            calendar_window_hours=(
                calendar_window if calendar_window is not None else defaults.calendar_window_hours
            ),
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[f"{err['loc'][0]}: {err['msg']}" for err in e.errors()],
        ) from e


async def _generate(
    orchestrator: BriefOrchestrator,
    settings: BriefSettings,
    refresh: bool,
) -> BriefData:
    try:
        return await orchestrator.generate_brief(settings, force_refresh=refresh)
    except SourceFetchError as e:
        await logger.awarning(
            "brief_unavailable",
            source=e.source,
            account_id=e.account_id,
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": f"Failed to fetch {e.source or 'source'} data", "retryable": True},
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        ) from e


@router.get("", response_model=BriefData)
async def get_brief(
    orchestrator: OrchestratorDep,
    email_window: int | None = Query(None, description="Hours of email history (1-168)"),
    calendar_window: int | None = Query(None, description="Hours of upcoming events (1-168)"),
    refresh: bool = Query(False, description="Regenerate instead of using the cache"),
) -> BriefData:
    """Get the brief.

    Served from cache while fresh. When sources fail, the last generated
    brief is returned with ``is_stale`` set; with none available the
    response is 503.
    """
    settings = _settings(orchestrator, email_window, calendar_window)
    return await _generate(orchestrator, settings, refresh)


@router.get("/summary", response_class=PlainTextResponse)
async def get_brief_summary(
    orchestrator: OrchestratorDep,
    email_window: int | None = Query(None, description="Hours of email history (1-168)"),
    calendar_window: int | None = Query(None, description="Hours of upcoming events (1-168)"),
) -> str:
    """Get the brief as plain text."""
    settings = _settings(orchestrator, email_window, calendar_window)
    brief = await _generate(orchestrator, settings, refresh=False)
    return format_brief_summary(brief)


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def invalidate_brief_cache(orchestrator: OrchestratorDep) -> Response:
    """Discard the cached brief for the current windows."""
    await orchestrator.invalidate_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
