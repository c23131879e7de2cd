"""API route modules."""

from daily_brief.api.routes.brief import router as brief_router
from daily_brief.api.routes.brief import set_orchestrator
from daily_brief.api.routes.health import router as health_router

__all__ = [
    "brief_router",
    "health_router",
    "set_orchestrator",
]
