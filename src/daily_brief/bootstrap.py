"""Wire configuration into a ready-to-use orchestrator."""

from __future__ import annotations

from datetime import timedelta

import structlog

from daily_brief.brief.cache import BriefCache
from daily_brief.brief.orchestrator import BriefOrchestrator
from daily_brief.brief.scoring import ImportanceClassifier, ThreadAnnotator, UrgencyScorer
from daily_brief.core.clock import Clock, utcnow
from daily_brief.core.config import Config
from daily_brief.core.errors import CacheStorageError
from daily_brief.sources.base import AccountIdentity, LinkedAccount
from daily_brief.sources.google import GmailEmailSource, GoogleCalendarSource
from daily_brief.sources.registry import AccountRegistry
from daily_brief.storage.base import PersistentStore
from daily_brief.storage.memory import MemoryStore
from daily_brief.storage.sql import SqlStore

logger = structlog.get_logger(__name__)


def build_registry(config: Config, clock: Clock = utcnow) -> AccountRegistry:
    """Register a Gmail and Calendar source for every configured account.

    The account email doubles as the account id; the first account is primary.
    """
    registry = AccountRegistry()
    for index, credentials in enumerate(config.google_accounts):
        identity = AccountIdentity(
            account_id=credentials.email,
            email=credentials.email,
            is_primary=index == 0,
        )
        registry.register(
            LinkedAccount(
                identity,
                email_source=GmailEmailSource(
                    credentials.access_token, identity.account_id, clock=clock
                ),
                calendar_source=GoogleCalendarSource(
                    credentials.access_token, identity.account_id, clock=clock
                ),
            )
        )
    return registry


async def build_store(config: Config) -> PersistentStore:
    """Open the configured store, falling back to memory when unavailable."""
    if not config.has_database():
        return MemoryStore()

    store = SqlStore.from_url(str(config.database_url))
    try:
        await store.initialize()
    except CacheStorageError as e:
        await logger.awarning("brief_store_unavailable", error=str(e))
        await store.close()
        return MemoryStore()
    return store


async def build_orchestrator(
    config: Config,
    clock: Clock = utcnow,
) -> tuple[BriefOrchestrator, PersistentStore]:
    """Build an orchestrator for the configuration.

    Returns:
        The orchestrator and the store it persists to; the caller closes
        the store.

    Raises:
        pydantic.ValidationError: If a configured window is out of range.
    """
    settings = config.default_settings()
    store = await build_store(config)
    annotator = ThreadAnnotator(
        scorer=UrgencyScorer(clock=clock),
        classifier=ImportanceClassifier(config.vip_domains),
    )
    orchestrator = BriefOrchestrator(
        build_registry(config, clock=clock),
        BriefCache(store, ttl=timedelta(seconds=config.cache_ttl_seconds), clock=clock),
        settings=settings,
        annotator=annotator,
        clock=clock,
    )
    return orchestrator, store
