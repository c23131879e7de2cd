"""Tests for the Google Gmail and Calendar sources."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from daily_brief.core.errors import SourceFetchError
from daily_brief.integrations.google.client import GmailClient, GoogleApiError
from daily_brief.sources.google import GmailEmailSource, GoogleCalendarSource


def _client_factory(client: MagicMock) -> Callable[[str], MagicMock]:
    """Factory returning a mock client usable as an async context manager."""
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    return MagicMock(return_value=client)


class TestGmailEmailSource:
    """Tests for GmailEmailSource."""

    @pytest.mark.asyncio
    async def test_fetch_threads(self, now: datetime) -> None:
        """Test threads are listed for the window and fetched in detail."""
        client = MagicMock()
        client.list_thread_ids = AsyncMock(return_value=["t1", "t2"])
        client.batch_get_threads = AsyncMock(return_value=[{"id": "t1"}, {"id": "t2"}])
        factory = _client_factory(client)
        source = GmailEmailSource(
            "tok", "me@example.com", clock=lambda: now, client_factory=factory
        )

        threads = await source.fetch_threads(hours_back=24)

        assert threads == [{"id": "t1"}, {"id": "t2"}]
        factory.assert_called_once_with("tok")
        expected_after = int((now - timedelta(hours=24)).timestamp())
        client.list_thread_ids.assert_awaited_once_with(query=f"in:inbox after:{expected_after}")
        client.batch_get_threads.assert_awaited_once_with(["t1", "t2"])

    @pytest.mark.asyncio
    async def test_failed_detail_fetch_is_skipped(self, now: datetime) -> None:
        """Test a thread whose detail request fails is dropped."""
        client = MagicMock()
        client.list_thread_ids = AsyncMock(return_value=["t1", "t2"])
        client.batch_get_threads = AsyncMock(
            return_value=[GoogleApiError("gone", status_code=404), {"id": "t2"}]
        )
        source = GmailEmailSource(
            "tok", "me@example.com", clock=lambda: now, client_factory=_client_factory(client)
        )

        threads = await source.fetch_threads(hours_back=24)

        assert threads == [{"id": "t2"}]

    @pytest.mark.asyncio
    async def test_html_gateway_error_on_detail_is_skipped(self, now: datetime) -> None:
        """Test a detail request answered with an HTML 502 only drops that thread."""
        client = GmailClient(access_token="tok")

        async def respond(
            method: str, url: str, params: dict[str, str] | None = None
        ) -> httpx.Response:
            if url.endswith("/threads"):
                return httpx.Response(200, json={"threads": [{"id": "a"}, {"id": "b"}]})
            if url.endswith("/threads/a"):
                return httpx.Response(502, text="<html>Bad Gateway</html>")
            return httpx.Response(200, json={"id": "b", "messages": []})

        source = GmailEmailSource(
            "tok", "me@example.com", clock=lambda: now, client_factory=lambda _: client
        )
        with patch.object(client._client, "request", side_effect=respond):
            threads = await source.fetch_threads(hours_back=24)

        assert [t["id"] for t in threads] == ["b"]

    @pytest.mark.asyncio
    async def test_list_failure_raises_source_fetch_error(self, now: datetime) -> None:
        """Test a failed listing is reported as a source failure."""
        client = MagicMock()
        client.list_thread_ids = AsyncMock(side_effect=GoogleApiError("quota", status_code=429))
        source = GmailEmailSource(
            "tok", "me@example.com", clock=lambda: now, client_factory=_client_factory(client)
        )

        with pytest.raises(SourceFetchError) as exc_info:
            await source.fetch_threads(hours_back=24)

        assert exc_info.value.source == "email"
        assert exc_info.value.account_id == "me@example.com"
        assert isinstance(exc_info.value.__cause__, GoogleApiError)


class TestGoogleCalendarSource:
    """Tests for GoogleCalendarSource."""

    @pytest.mark.asyncio
    async def test_fetch_events(self, now: datetime) -> None:
        """Test events are requested for [now, now + hours)."""
        events: list[dict[str, Any]] = [{"id": "e1"}]
        client = MagicMock()
        client.list_events = AsyncMock(return_value=events)
        source = GoogleCalendarSource(
            "tok", "me@example.com", clock=lambda: now, client_factory=_client_factory(client)
        )

        result = await source.fetch_events(hours_ahead=24)

        assert result == events
        client.list_events.assert_awaited_once_with(
            time_min=now,
            time_max=now + timedelta(hours=24),
            calendar_id="primary",
        )

    @pytest.mark.asyncio
    async def test_failure_raises_source_fetch_error(self, now: datetime) -> None:
        """Test API errors are reported as source failures."""
        client = MagicMock()
        client.list_events = AsyncMock(side_effect=GoogleApiError("unauthorized", status_code=401))
        source = GoogleCalendarSource(
            "tok", "me@example.com", clock=lambda: now, client_factory=_client_factory(client)
        )

        with pytest.raises(SourceFetchError) as exc_info:
            await source.fetch_events(hours_ahead=24)

        assert exc_info.value.source == "calendar"
        assert exc_info.value.account_id == "me@example.com"
