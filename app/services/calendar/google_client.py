"""
Google Calendar API client used by the calendar sync engine.
Read-only: pages through events.list with sync-token support.
"""

import asyncio
from datetime import datetime
from urllib.parse import quote

import httpx

from app.infrastructure.observability.logging import get_logger
from app.models.domain.calendar_domain import CalendarEventPage

logger = get_logger(__name__)

# Google Calendar API configuration
CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
CALENDAR_PRIMARY = "primary"

# Request timeouts and retry configuration
REQUEST_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
BACKOFF_FACTOR = 2
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}
AUTH_STATUS_CODES = {401, 403}
GONE_STATUS_CODE = 410


class CalendarProviderError(Exception):
    """Base exception for calendar provider failures."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        response_data: dict | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.response_data = response_data or {}
        self.recoverable = recoverable


class ProviderAuthError(CalendarProviderError):
    """Token missing, expired or rejected by the provider. Aborts the sync run."""


class ProviderTransientError(CalendarProviderError):
    """Rate limiting, 5xx or network failure. The next scheduled run retries."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class SyncTokenInvalidError(CalendarProviderError):
    """The provider no longer accepts the stored sync token (HTTP 410)."""

    def __init__(self, message: str = "Sync token is no longer valid", **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class GoogleCalendarService:
    """
    Service for Google Calendar API reads.

    Handles pagination parameters, retry with exponential backoff and
    mapping of HTTP failures onto the provider error hierarchy.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, backoff_factor: float = BACKOFF_FACTOR):
        self._client = client or self._create_client()
        self._backoff_factor = backoff_factor

    def _create_client(self) -> httpx.AsyncClient:
        """Create async HTTP client for Calendar API."""
        timeout = httpx.Timeout(REQUEST_TIMEOUT)
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        return httpx.AsyncClient(timeout=timeout, limits=limits)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    backoff = self._backoff_factor * (2 ** (attempt - 1))
                    logger.debug(
                        "Calendar API retrying request",
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= MAX_RETRIES:
                    logger.warning("Calendar API network failure", attempts=attempt, error=str(e))
                    raise ProviderTransientError(f"Calendar provider unreachable: {e}") from e
                backoff = self._backoff_factor * (2 ** (attempt - 1))
                logger.debug(
                    "Calendar API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Calendar API retry loop exhausted")

    def _get_auth_headers(self, access_token: str) -> dict:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Validate a Calendar API response and map failures to provider errors.

        Raises:
            ProviderAuthError: 401/403
            SyncTokenInvalidError: 410
            ProviderTransientError: 429/5xx after retries
            CalendarProviderError: any other failure
        """
        if response.is_success:
            try:
                return response.json() if response.text else {}
            except ValueError as e:
                logger.error(f"Failed to parse Calendar API {operation} response", error=str(e))
                raise CalendarProviderError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            error_data = {}

        error_info = error_data.get("error", {}) if isinstance(error_data, dict) else {}
        error_message = error_info.get("message") or f"HTTP {response.status_code}"
        status_code = response.status_code

        logger.error(
            f"Calendar API {operation} failed",
            status_code=status_code,
            error_message=error_message,
        )

        details = {
            "error_code": str(error_info.get("code", status_code)),
            "status_code": status_code,
            "response_data": error_data,
        }

        if status_code == GONE_STATUS_CODE:
            raise SyncTokenInvalidError(**details)
        if status_code in AUTH_STATUS_CODES:
            raise ProviderAuthError(
                f"Calendar authorization rejected: {error_message}", **details
            )
        if status_code in RETRY_STATUS_CODES:
            raise ProviderTransientError(
                f"Calendar provider temporarily unavailable: {error_message}", **details
            )
        raise CalendarProviderError(f"Calendar error: {error_message}", **details)

    async def list_events(
        self,
        access_token: str,
        calendar_id: str = CALENDAR_PRIMARY,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
        page_token: str | None = None,
        sync_token: str | None = None,
        max_results: int = 50,
    ) -> CalendarEventPage:
        """
        Fetch one page of events.

        With a sync token the provider returns only changes since the token was
        issued (including cancellations), and the time range must be omitted.
        Without one, the [time_min, time_max] window is listed.

        Returns:
            CalendarEventPage with events and the next page / sync tokens
        """
        url = f"{CALENDAR_API_BASE_URL}/calendars/{quote(calendar_id, safe='@')}/events"
        headers = self._get_auth_headers(access_token)

        params: dict[str, str | int] = {
            "maxResults": max_results,
            "singleEvents": "true",
        }
        if sync_token:
            params["syncToken"] = sync_token
            params["showDeleted"] = "true"
        else:
            if time_min:
                params["timeMin"] = time_min.isoformat()
            if time_max:
                params["timeMax"] = time_max.isoformat()
        if page_token:
            params["pageToken"] = page_token

        logger.debug(
            "Listing calendar events",
            calendar_id=calendar_id,
            incremental=bool(sync_token),
            has_page_token=bool(page_token),
        )

        response = await self._request_with_retry("GET", url, headers=headers, params=params)
        data = self._handle_api_response(response, "list_events")
        page = CalendarEventPage.from_response(data)

        logger.debug(
            "Calendar events page fetched",
            calendar_id=calendar_id,
            event_count=len(page.events),
            has_next_page=bool(page.next_page_token),
        )
        return page


# Singleton instance for application use
google_calendar_service = GoogleCalendarService()
