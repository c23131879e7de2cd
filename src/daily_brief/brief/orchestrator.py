"""Brief generation pipeline."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from datetime import datetime
from functools import partial
from typing import Any

import structlog

from daily_brief.brief.cache import BriefCache
from daily_brief.brief.conflicts import ConflictDetector
from daily_brief.brief.dedup import Deduplicator
from daily_brief.brief.parsing import parse_events, parse_threads
from daily_brief.brief.ranking import RankingEngine, RationaleGenerator
from daily_brief.brief.scoring import ThreadAnnotator, UrgencyScorer
from daily_brief.core.clock import Clock, utcnow
from daily_brief.core.errors import SourceFetchError
from daily_brief.schemas.brief import BriefData, BriefSettings, CalendarEvent
from daily_brief.sources.base import SourceKind
from daily_brief.sources.registry import AccountRegistry

logger = structlog.get_logger(__name__)


class BriefOrchestrator:
    """Fetches, scores, deduplicates and ranks items into a cached brief.

    Pipeline per generation:
        fetch (all accounts, concurrently) -> parse -> score/classify/detect
        -> dedupe -> conflict detection -> rank -> rationale -> assemble

    When a source fails, the last brief ever generated is served with
    ``is_stale=True``; with nothing to fall back on the error propagates.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        cache: BriefCache,
        *,
        settings: BriefSettings | None = None,
        annotator: ThreadAnnotator | None = None,
        deduplicator: Deduplicator | None = None,
        conflict_detector: ConflictDetector | None = None,
        ranking_engine: RankingEngine | None = None,
        rationale_generator: RationaleGenerator | None = None,
        clock: Clock = utcnow,
    ) -> None:
        """Initialize orchestrator.

        Args:
            registry: Linked accounts to read from.
            cache: Brief cache.
            settings: Default windows, used when a call passes none.
            annotator: Thread scorer/classifier. Defaults use ``clock``.
            deduplicator: Cross-account deduplicator.
            conflict_detector: Calendar conflict detector.
            ranking_engine: Thread ranking.
            rationale_generator: Rationale builder. Defaults use ``clock``.
            clock: Returns the current time.
        """
        self.registry = registry
        self.cache = cache
        self.settings = settings or BriefSettings()
        self._annotator = annotator or ThreadAnnotator(scorer=UrgencyScorer(clock=clock))
        self._deduplicator = deduplicator or Deduplicator()
        self._conflict_detector = conflict_detector or ConflictDetector()
        self._ranking_engine = ranking_engine or RankingEngine()
        self._rationale_generator = rationale_generator or RationaleGenerator(clock=clock)
        self._clock = clock

    async def generate_brief(
        self,
        settings: BriefSettings | None = None,
        *,
        force_refresh: bool = False,
    ) -> BriefData:
        """Return the brief for the given windows.

        Args:
            settings: Fetch windows. None uses the orchestrator's settings.
            force_refresh: Discard the cached brief first.

        Returns:
            Cached or newly generated brief; a stale copy if sources failed.

        Raises:
            SourceFetchError: If a source failed and no brief was ever generated.
        """
        settings = settings or self.settings
        key = settings.cache_key
        if force_refresh:
            await self.cache.invalidate(key)

        try:
            return await self.cache.get_or_generate(key, partial(self._build_brief, settings))
        except SourceFetchError as e:
            fallback = self.cache.last_known(key) or self.cache.last_known()
            if fallback is None:
                await logger.aerror(
                    "brief_generation_failed",
                    key=key,
                    source=e.source,
                    account_id=e.account_id,
                    error=str(e),
                )
                raise
            await logger.awarning(
                "brief_served_stale",
                key=key,
                brief_id=fallback.id,
                generated_at=fallback.timestamp.isoformat(),
                error=str(e),
            )
            return fallback.model_copy(update={"is_stale": True})

    async def invalidate_cache(self, settings: BriefSettings | None = None) -> None:
        """Discard the cached brief for the given (or current) windows."""
        await self.cache.invalidate((settings or self.settings).cache_key)

    async def update_settings(self, settings: BriefSettings) -> None:
        """Replace the default windows, invalidating the old entry if they changed."""
        if settings.cache_key != self.settings.cache_key:
            await self.cache.invalidate(self.settings.cache_key)
            await logger.ainfo(
                "brief_settings_updated",
                email_window_hours=settings.email_window_hours,
                calendar_window_hours=settings.calendar_window_hours,
            )
        self.settings = settings

    def last_brief_timestamp(self) -> datetime | None:
        """Generation time of the most recent brief, if any."""
        return self.cache.last_generated_at()

    async def _build_brief(self, settings: BriefSettings) -> BriefData:
        raw_threads, raw_events = await self._fetch_all(settings)

        records = [
            record
            for account_id, threads in raw_threads
            for record in parse_threads(threads, account_id)
        ]
        events: list[CalendarEvent] = [
            event
            for account_id, account_events in raw_events
            for event in parse_events(account_events, account_id)
        ]

        threads = self._deduplicator.dedupe_threads(self._annotator.annotate_all(records))
        events = self._conflict_detector.detect(self._deduplicator.dedupe_events(events))
        ranked = self._rationale_generator.annotate(self._ranking_engine.rank(threads))

        now = self._clock()
        brief = BriefData.assemble(
            brief_id=f"brief_{int(now.timestamp() * 1000)}",
            timestamp=now,
            calendar_events=events,
            ranked_emails=ranked,
        )

        await logger.ainfo(
            "brief_generated",
            brief_id=brief.id,
            accounts=len(self.registry),
            threads=len(brief.all_emails),
            events=len(brief.calendar_events),
            conflicts=sum(1 for e in brief.calendar_events if e.conflicts),
        )
        return brief

    async def _fetch_all(
        self, settings: BriefSettings
    ) -> tuple[list[tuple[str, list[Any]]], list[tuple[str, list[Any]]]]:
        """Fetch threads and events from every account concurrently.

        Returns:
            ``(account_id, raw items)`` pairs for threads and for events, in
            account order (primary first).

        Raises:
            SourceFetchError: If any source call failed.
        """
        jobs: list[tuple[str, SourceKind, Coroutine[Any, Any, list[Any]]]] = []
        for account in self.registry.list_accounts():
            if account.email_source is not None:
                jobs.append(
                    (
                        account.account_id,
                        SourceKind.EMAIL,
                        account.email_source.fetch_threads(settings.email_window_hours),
                    )
                )
            if account.calendar_source is not None:
                jobs.append(
                    (
                        account.account_id,
                        SourceKind.CALENDAR,
                        account.calendar_source.fetch_events(settings.calendar_window_hours),
                    )
                )

        results = await asyncio.gather(*(job for _, _, job in jobs), return_exceptions=True)

        threads: list[tuple[str, list[Any]]] = []
        events: list[tuple[str, list[Any]]] = []
        failure: SourceFetchError | None = None
        for (account_id, kind, _), result in zip(jobs, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                error = (
                    result
                    if isinstance(result, SourceFetchError)
                    else SourceFetchError(str(result), source=kind.value, account_id=account_id)
                )
                if error is not result:
                    error.__cause__ = result
                await logger.awarning(
                    "source_fetch_failed",
                    account_id=account_id,
                    source=kind.value,
                    error=str(result),
                )
                failure = failure or error
                continue
            if kind is SourceKind.EMAIL:
                threads.append((account_id, result))
            else:
                events.append((account_id, result))

        if failure is not None:
            raise failure
        return threads, events
