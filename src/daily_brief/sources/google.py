"""Google Gmail and Calendar sources."""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from daily_brief.core.clock import Clock, utcnow
from daily_brief.core.errors import SourceFetchError
from daily_brief.integrations.google.client import (
    CalendarClient,
    GmailClient,
    GoogleApiError,
)
from daily_brief.sources.base import CalendarSource, EmailSource, SourceKind

if TYPE_CHECKING:
    from daily_brief.core.types import RawEvent, RawThread

logger = structlog.get_logger(__name__)


class GmailEmailSource(EmailSource):
    """Reads inbox threads for one account from the Gmail API."""

    def __init__(
        self,
        access_token: str,
        account_id: str,
        *,
        clock: Clock = utcnow,
        client_factory: Callable[[str], GmailClient] = GmailClient,
    ) -> None:
        """Initialize Gmail source.

        Args:
            access_token: OAuth2 access token for the account.
            account_id: Linked account this source reads from.
            clock: Returns the current time; used to compute the window start.
            client_factory: Builds a Gmail client from an access token.
        """
        self._access_token = access_token
        self._account_id = account_id
        self._clock = clock
        self._client_factory = client_factory

    async def fetch_threads(self, hours_back: int) -> list[RawThread]:
        """Fetch inbox threads with messages in the last ``hours_back`` hours.

        Threads whose detail request fails are logged and skipped; a failed
        listing fails the whole fetch.

        Raises:
            SourceFetchError: If the thread listing fails.
        """
        after = int((self._clock() - timedelta(hours=hours_back)).timestamp())
        query = f"in:inbox after:{after}"

        async with self._client_factory(self._access_token) as client:
            try:
                thread_ids = await client.list_thread_ids(query=query)
            except GoogleApiError as e:
                raise SourceFetchError(
                    f"Failed to list Gmail threads: {e}",
                    source=SourceKind.EMAIL.value,
                    account_id=self._account_id,
                ) from e

            results = await client.batch_get_threads(thread_ids)

        threads: list[RawThread] = []
        for thread_id, result in zip(thread_ids, results, strict=True):
            if isinstance(result, GoogleApiError):
                await logger.awarning(
                    "gmail_thread_fetch_failed",
                    account_id=self._account_id,
                    thread_id=thread_id,
                    status_code=result.status_code,
                    error=result.message,
                )
                continue
            threads.append(result)

        await logger.ainfo(
            "gmail_threads_fetched",
            account_id=self._account_id,
            listed=len(thread_ids),
            fetched=len(threads),
            hours_back=hours_back,
        )
        return threads


class GoogleCalendarSource(CalendarSource):
    """Reads upcoming events from an account's primary Google calendar."""

    def __init__(
        self,
        access_token: str,
        account_id: str,
        *,
        calendar_id: str = "primary",
        clock: Clock = utcnow,
        client_factory: Callable[[str], CalendarClient] = CalendarClient,
    ) -> None:
        """Initialize calendar source.

        Args:
            access_token: OAuth2 access token for the account.
            account_id: Linked account this source reads from.
            calendar_id: Calendar to read.
            clock: Returns the current time; used as the window start.
            client_factory: Builds a Calendar client from an access token.
        """
        self._access_token = access_token
        self._account_id = account_id
        self._calendar_id = calendar_id
        self._clock = clock
        self._client_factory = client_factory

    async def fetch_events(self, hours_ahead: int) -> list[RawEvent]:
        """Fetch events in ``[now, now + hours_ahead)``.

        Raises:
            SourceFetchError: If the events request fails.
        """
        now = self._clock()
        async with self._client_factory(self._access_token) as client:
            try:
                events = await client.list_events(
                    time_min=now,
                    time_max=now + timedelta(hours=hours_ahead),
                    calendar_id=self._calendar_id,
                )
            except GoogleApiError as e:
                raise SourceFetchError(
                    f"Failed to list calendar events: {e}",
                    source=SourceKind.CALENDAR.value,
                    account_id=self._account_id,
                ) from e

        await logger.ainfo(
            "calendar_events_fetched",
            account_id=self._account_id,
            fetched=len(events),
            hours_ahead=hours_ahead,
        )
        return events
