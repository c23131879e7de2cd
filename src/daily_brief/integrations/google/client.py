"""Google Gmail and Calendar API clients."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Any, Self

import httpx

if TYPE_CHECKING:
    from daily_brief.core.types import RawEvent, RawThread

MAX_THREADS = 100
MAX_EVENTS = 100


class GoogleApiError(Exception):
    """Exception raised for Google API errors.

    Attributes:
        status_code: HTTP status code from the API.
        error_code: Error code from the API response.
        message: Human-readable error message.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message


class GoogleApiClient:
    """Base client for Google REST APIs authenticated with a bearer token.

    Attributes:
        BASE_URL: API base URL, set by subclasses.
    """

    BASE_URL = ""

    def __init__(self, access_token: str, timeout: float = 30.0) -> None:
        """Initialize client.

        Args:
            access_token: Valid OAuth2 access token.
            timeout: Per-request timeout in seconds.
        """
        self.access_token = access_token
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager."""
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Make an API request.

        Args:
            method: HTTP method.
            path: API path relative to base URL.
            params: Query parameters.

        Returns:
            JSON response as dict.

        Raises:
            GoogleApiError: If the API returns an error or cannot be reached.
        """
        url = f"{self.BASE_URL}/{path}"
        try:
            response = await self._client.request(method, url, params=params)
        except httpx.HTTPError as e:
            raise GoogleApiError(f"Request to {url} failed: {e}") from e

        if response.status_code >= 400:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                # Proxies and front ends answer with HTML bodies
                error_data = {}
            error_info = error_data.get("error", {}) if isinstance(error_data, dict) else None
            if isinstance(error_info, dict):
                raise GoogleApiError(
                    message=str(error_info.get("message", response.text)),
                    status_code=response.status_code,
                    error_code=str(error_info.get("code", "")),
                )
            raise GoogleApiError(
                message=response.text,
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise GoogleApiError(
                f"Invalid JSON from {url}", status_code=response.status_code
            ) from e
        if not isinstance(result, dict):
            raise GoogleApiError(
                f"Unexpected response from {url}", status_code=response.status_code
            )
        return result


class GmailClient(GoogleApiClient):
    """Client for the Gmail threads API.

    Typical usage:
        async with GmailClient(access_token="...") as client:
            ids = await client.list_thread_ids(query="in:inbox")
            threads = await client.batch_get_threads(ids)
    """

    BASE_URL = "https://gmail.googleapis.com/gmail/v1/users/me"

    def __init__(
        self,
        access_token: str,
        timeout: float = 30.0,
        max_concurrency: int = 10,
    ) -> None:
        """Initialize Gmail client.

        Args:
            access_token: Valid OAuth2 access token for Gmail.
            timeout: Per-request timeout in seconds.
            max_concurrency: Maximum thread detail requests in flight.
        """
        super().__init__(access_token, timeout=timeout)
        self.max_concurrency = max_concurrency

    async def list_thread_ids(
        self,
        query: str | None = None,
        max_results: int = MAX_THREADS,
    ) -> list[str]:
        """List thread IDs matching a query (single page).

        Args:
            query: Gmail search query (e.g., "in:inbox after:1700000000").
            max_results: Maximum number of thread IDs (1-500).

        Returns:
            Thread IDs in the order Gmail returns them.

        Raises:
            GoogleApiError: If the API returns an error.
        """
        params: dict[str, str] = {"maxResults": str(min(max_results, 500))}
        if query:
            params["q"] = query

        result = await self._request("GET", "threads", params)

        thread_ids = []
        raw_threads = result.get("threads", [])
        if isinstance(raw_threads, list):
            for thread in raw_threads:
                if isinstance(thread, dict) and thread.get("id"):
                    thread_ids.append(str(thread["id"]))
        return thread_ids

    async def get_thread(self, thread_id: str) -> RawThread:
        """Get a thread with message metadata.

        Args:
            thread_id: Gmail thread ID.

        Returns:
            Raw Gmail API thread response.

        Raises:
            GoogleApiError: If the API returns an error.
        """
        params = {"format": "metadata"}
        result: RawThread = await self._request("GET", f"threads/{thread_id}", params)  # type: ignore[assignment]
        return result

    async def batch_get_threads(
        self,
        thread_ids: list[str],
    ) -> list[RawThread | GoogleApiError]:
        """Get multiple threads concurrently.

        Args:
            thread_ids: Threads to fetch.

        Returns:
            List of results in same order as input.
            Each item is either the raw thread or a GoogleApiError.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def fetch_one(thread_id: str) -> RawThread | GoogleApiError:
            async with semaphore:
                try:
                    return await self.get_thread(thread_id)
                except GoogleApiError as e:
                    return e

        results = await asyncio.gather(*[fetch_one(tid) for tid in thread_ids])
        return list(results)


class CalendarClient(GoogleApiClient):
    """Client for the Google Calendar events API."""

    BASE_URL = "https://www.googleapis.com/calendar/v3"

    async def list_events(
        self,
        time_min: datetime,
        time_max: datetime,
        calendar_id: str = "primary",
        max_results: int = MAX_EVENTS,
    ) -> list[RawEvent]:
        """List single (expanded) events in a time range, ordered by start.

        Args:
            time_min: Lower bound (inclusive) for event end times.
            time_max: Upper bound (exclusive) for event start times.
            calendar_id: Calendar to read.
            max_results: Maximum number of events.

        Returns:
            Raw event objects.

        Raises:
            GoogleApiError: If the API returns an error.
        """
        params = {
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": str(max_results),
        }
        result = await self._request("GET", f"calendars/{calendar_id}/events", params)

        items = result.get("items", [])
        if not isinstance(items, list):
            return []
        return [item for item in items if isinstance(item, dict)]
