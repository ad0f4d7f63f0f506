"""
Mock Google Calendar client for running without OAuth or network access.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.models import TimeRange

MOCK_OWNER_EMAIL = "me@example.com"


class MockCalendarClient:
    """
    Mock client that simulates Google Calendar responses.

    Busy data comes from mock_calendar_data.json. Inserted events are kept in
    memory and show up in later free/busy and list calls.
    """

    def __init__(self, config=None, owner_email: str = MOCK_OWNER_EMAIL, data_file: Optional[Path] = None):
        """
        Initialize the mock client.

        Args:
            config: Optional AppConfig for calendar_id mapping
            owner_email: Email reported as the primary calendar
            data_file: Optional alternative JSON data file
        """
        self.config = config
        self.owner_email = owner_email
        self.data_file = data_file or Path(__file__).parent / "mock_calendar_data.json"
        self.inserted: List[Dict[str, Any]] = []
        self._load_calendar_data()

    def _load_calendar_data(self):
        """Load mock calendar data from JSON file."""
        if self.data_file.exists():
            with open(self.data_file, "r", encoding="utf-8") as f:
                self.calendar_events = json.load(f)
        else:
            self.calendar_events = []

    def _get_calendar_id_for_email(self, email: str) -> str:
        """Map email to calendar_id using config."""
        if email == "primary":
            return self.owner_email
        if self.config:
            colleague = self.config.find_colleague_by_email(email)
            if colleague and colleague.calendar_id:
                return colleague.calendar_id
        return email

    def get_free_busy(
        self,
        identities: List[str],
        start_time: DateTime,
        end_time: DateTime,
        timezone: str = "America/New_York",
    ) -> Dict[str, List[TimeRange]]:
        """Busy intervals per identity, from the mock data and inserted events."""
        busy_times: Dict[str, List[TimeRange]] = {}

        for identity in identities:
            calendar_id = self._get_calendar_id_for_email(identity)
            user_busy_times: List[TimeRange] = []

            for event in self.calendar_events:
                if event.get("calendarId") != calendar_id:
                    continue

                try:
                    event_start = pendulum.parse(event["start"], tz=timezone)
                    event_end = pendulum.parse(event["end"], tz=timezone)
                except (KeyError, ValueError):
                    continue

                if event_start < end_time and event_end > start_time:
                    user_busy_times.append(TimeRange(start=event_start, end=event_end))

            busy_times[identity] = user_busy_times

        return busy_times

    def insert_event(
        self,
        calendar_id: str,
        event_payload: Dict[str, Any],
        send_notifications: bool = False,
    ) -> str:
        """Record the event in memory and return a generated ID."""
        event_id = f"mock-event-{len(self.inserted) + 1}"
        owner = self._get_calendar_id_for_email(calendar_id)

        self.inserted.append(
            {
                "id": event_id,
                "calendarId": owner,
                "sendNotifications": send_notifications,
                **event_payload,
            }
        )

        start = event_payload.get("start", {})
        end = event_payload.get("end", {})
        if start.get("dateTime") and end.get("dateTime"):
            self.calendar_events.append(
                {
                    "calendarId": owner,
                    "summary": event_payload.get("summary", ""),
                    "start": start["dateTime"],
                    "end": end["dateTime"],
                }
            )

        return event_id

    def list_events(
        self,
        calendar_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[Dict[str, Any]]:
        """Events of a calendar overlapping the range, shaped like API resources."""
        owner = self._get_calendar_id_for_email(calendar_id)
        found: List[tuple] = []

        for index, event in enumerate(self.calendar_events):
            if event.get("calendarId") != owner:
                continue

            try:
                event_start = pendulum.parse(event["start"], tz=start_time.timezone_name)
                event_end = pendulum.parse(event["end"], tz=start_time.timezone_name)
            except (KeyError, ValueError):
                continue

            if event_start < end_time and event_end > start_time:
                found.append(
                    (event_start, {
                        "id": event.get("id", f"mock-{index}"),
                        "summary": event.get("summary", ""),
                        "start": {"dateTime": event_start.to_iso8601_string()},
                        "end": {"dateTime": event_end.to_iso8601_string()},
                    })
                )

        found.sort(key=lambda pair: pair[0])
        return [resource for _, resource in found]

    def get_primary_calendar_id(self) -> str:
        return self.owner_email

    def test_connection(self) -> Dict[str, Any]:
        """Mock primary calendar resource."""
        return {
            "id": self.owner_email,
            "summary": "Mock Calendar",
            "timeZone": self.config.timezone if self.config else "America/New_York",
        }
