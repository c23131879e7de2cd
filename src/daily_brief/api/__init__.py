"""FastAPI surface for the daily brief."""

from daily_brief.api.main import create_app

__all__ = ["create_app"]
