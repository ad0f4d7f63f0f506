"""
Google Calendar REST (v3) client for free/busy lookups and event writes.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote

import pendulum
import requests
from google.oauth2.credentials import Credentials
from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError
from ..domain.models import TimeRange

logger = logging.getLogger(__name__)


class TokenProvider(Protocol):
    """What the client needs from the session store."""

    def get_access_token(self, force_refresh: bool = False) -> str:
        """Return a current access token."""

    def refresh(self) -> Credentials:
        """Refresh and return the credentials."""


class GoogleCalendarClient:
    """
    Client for Google Calendar API operations.

    Uses the /freeBusy endpoint for busy intervals and the events collection
    for inserts and listings. A 401 response triggers one token refresh
    followed by a single retry.
    """

    CALENDAR_API_ENDPOINT = "https://www.googleapis.com/calendar/v3"
    PAGE_SIZE = 250

    def __init__(self, authenticator: TokenProvider, timeout: int = 30):
        """
        Initialize the Calendar API client.

        Args:
            authenticator: Session store handing out access tokens
            timeout: Request timeout in seconds
        """
        self.authenticator = authenticator
        self.timeout = timeout

    def get_free_busy(
        self,
        identities: List[str],
        start_time: DateTime,
        end_time: DateTime,
        timezone: str = "America/New_York",
    ) -> Dict[str, List[TimeRange]]:
        """
        Get busy intervals for several calendars.

        Args:
            identities: Calendar IDs (usually email addresses)
            start_time: Start of the time range
            end_time: End of the time range
            timezone: IANA timezone identifier for the returned intervals

        Returns:
            Dictionary mapping calendar ID -> list of busy TimeRange objects

        Raises:
            CalendarAPIError: If the API call fails
        """
        payload = {
            "timeMin": start_time.to_iso8601_string(),
            "timeMax": end_time.to_iso8601_string(),
            "timeZone": timezone,
            "items": [{"id": identity} for identity in identities],
        }

        data = self._request("POST", "/freeBusy", json=payload)
        return self._parse_free_busy_response(data, timezone)

    def _parse_free_busy_response(
        self,
        response_data: Dict[str, Any],
        timezone: str,
    ) -> Dict[str, List[TimeRange]]:
        """
        Parse the freeBusy response into our domain model.

        Response format:
        {
            "calendars": {
                "user@example.com": {
                    "busy": [{"start": "...", "end": "..."}],
                    "errors": [{"domain": "global", "reason": "notFound"}]
                }
            }
        }
        """
        busy_times: Dict[str, List[TimeRange]] = {}

        for calendar_id, calendar in response_data.get("calendars", {}).items():
            for error in calendar.get("errors", []):
                logger.warning(
                    "Free/busy unavailable for %s: %s",
                    calendar_id,
                    error.get("reason", "unknown"),
                )

            busy_ranges: List[TimeRange] = []

            for item in calendar.get("busy", []):
                try:
                    start = self._parse_datetime(item["start"], timezone)
                    end = self._parse_datetime(item["end"], timezone)
                    busy_ranges.append(TimeRange(start=start, end=end))

                except (KeyError, ValueError) as e:
                    logger.warning("Could not parse busy interval for %s: %s", calendar_id, e)
                    continue

            busy_times[calendar_id] = busy_ranges

        return busy_times

    def _parse_datetime(self, datetime_str: str, timezone: str) -> DateTime:
        """Parse an RFC 3339 string into a DateTime in ``timezone``."""
        dt = pendulum.parse(datetime_str)

        if isinstance(dt, DateTime):
            return dt.in_timezone(timezone)

        raise ValueError(f"Could not parse datetime: {datetime_str}")

    def insert_event(
        self,
        calendar_id: str,
        event_payload: Dict[str, Any],
        send_notifications: bool = False,
    ) -> str:
        """
        Insert an event and return its ID.

        Args:
            calendar_id: Target calendar, e.g. ``primary``
            event_payload: Google Calendar event resource
            send_notifications: Email the attendees about the new event

        Raises:
            CalendarAPIError: If the API call fails
        """
        data = self._request(
            "POST",
            f"/calendars/{quote(calendar_id, safe='')}/events",
            params={"sendUpdates": "all" if send_notifications else "none"},
            json=event_payload,
        )
        event_id = data.get("id")
        if not event_id:
            raise CalendarAPIError("Calendar API returned an event without an id")

        logger.info("Inserted event %s into %s", event_id, calendar_id)
        return event_id

    def list_events(
        self,
        calendar_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[Dict[str, Any]]:
        """
        List events in a range, expanding recurring events, ordered by start.

        Raises:
            CalendarAPIError: If the API call fails
        """
        params: Dict[str, Any] = {
            "timeMin": start_time.to_iso8601_string(),
            "timeMax": end_time.to_iso8601_string(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": self.PAGE_SIZE,
        }
        path = f"/calendars/{quote(calendar_id, safe='')}/events"

        events: List[Dict[str, Any]] = []
        while True:
            data = self._request("GET", path, params=params)
            events.extend(data.get("items", []))

            page_token = data.get("nextPageToken")
            if not page_token:
                break
            params = {**params, "pageToken": page_token}

        return events

    def get_primary_calendar_id(self) -> str:
        """Return the primary calendar ID, which is the account's email address."""
        return self.test_connection().get("id", "")

    def test_connection(self) -> Dict[str, Any]:
        """
        Test the connection and authentication by fetching the primary calendar.

        Raises:
            CalendarAPIError: If the connection test fails
        """
        return self._request("GET", "/calendars/primary")

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send an authorized request, refreshing the token once on 401."""
        url = f"{self.CALENDAR_API_ENDPOINT}{path}"
        access_token = self.authenticator.get_access_token()

        response = self._send(method, url, access_token, params, json)

        if response.status_code == 401:
            logger.info("Access token rejected, refreshing and retrying %s %s", method, path)
            access_token = self.authenticator.refresh().token
            response = self._send(method, url, access_token, params, json)

        if not response.ok:
            raise CalendarAPIError(
                f"Calendar API request {method} {path} failed "
                f"({response.status_code}): {self._error_message(response)}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        return response.json()

    def _send(
        self,
        method: str,
        url: str,
        access_token: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
    ) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        try:
            return requests.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise CalendarAPIError(f"Failed to reach Google Calendar: {e}") from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            error = response.json().get("error")
        except ValueError:
            return response.text or response.reason

        if isinstance(error, dict):
            return error.get("message", response.reason)
        return str(error or response.reason)
