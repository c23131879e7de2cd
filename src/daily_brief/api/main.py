"""FastAPI application factory and lifespan management."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from daily_brief import __version__
from daily_brief.api.routes import brief_router, health_router, set_orchestrator
from daily_brief.bootstrap import build_orchestrator
from daily_brief.brief.orchestrator import BriefOrchestrator
from daily_brief.core.config import Config
from daily_brief.core.logging import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        Control to the application after startup is complete.
    """
    config: Config = app.state.config
    store = None

    # Startup
    orchestrator: BriefOrchestrator | None = app.state.orchestrator
    if orchestrator is None:
        orchestrator, store = await build_orchestrator(config)
        app.state.orchestrator = orchestrator
    set_orchestrator(orchestrator)

    await logger.ainfo(
        "application_starting",
        accounts=len(orchestrator.registry),
        persistent_cache=orchestrator.cache.persistent,
    )

    yield

    # Shutdown
    await logger.ainfo("application_shutting_down")
    set_orchestrator(None)
    if store is not None:
        await store.close()
    await logger.ainfo("application_shutdown_complete")


def create_app(
    config: Config | None = None,
    orchestrator: BriefOrchestrator | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Optional configuration. If not provided, configuration is
                loaded from environment variables.
        orchestrator: Optional prebuilt orchestrator. If not provided, one
                      is built from the configuration at startup.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = Config.from_env()

    app = FastAPI(
        title="daily-brief API",
        description="Ranked daily brief of email threads and calendar events",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.orchestrator = orchestrator

    app.include_router(health_router)
    app.include_router(brief_router)

    return app


def run_server(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Run the API server using uvicorn.

    Args:
        host: Interface to bind.
        port: Port to listen on.
    """
    import uvicorn

    config = Config.from_env()
    configure_logging(config.log_level, json_output=config.log_json)

    uvicorn.run(
        "daily_brief.api.main:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=config.log_level.lower(),
    )
