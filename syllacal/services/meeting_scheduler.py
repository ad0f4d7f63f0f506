"""
Application service for proposing and booking meetings between two people.

The service fetches busy times through a calendar gateway and delegates the
slot search to the domain-level ``AvailabilityFinder``. The calendar
dependency is a protocol so tests can plug in a stub.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pendulum import DateTime

from ..domain.availability import AvailabilityFinder
from ..domain.models import BusyInterval, CandidateSlot, MeetingRequest, SearchWindow, TimeRange, TimeWindowPreference

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_DAYS = 14


class CalendarGatewayProtocol(Protocol):
    """Calendar operations needed by the services."""

    def get_free_busy(
        self,
        identities: List[str],
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> Dict[str, List[TimeRange]]:
        """Return busy intervals per calendar identity."""

    def insert_event(
        self,
        calendar_id: str,
        event_payload: Dict[str, Any],
        send_notifications: bool = False,
    ) -> str:
        """Insert an event and return its ID."""

    def list_events(
        self,
        calendar_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[Dict[str, Any]]:
        """Return event resources in a range."""

    def get_primary_calendar_id(self) -> str:
        """Return the signed-in user's calendar ID."""


class MeetingSchedulerService:
    """
    Orchestrates busy-time retrieval, slot search and booking.
    """

    def __init__(
        self,
        calendar_client: CalendarGatewayProtocol,
        finder: AvailabilityFinder,
    ) -> None:
        self._calendar_client = calendar_client
        self._finder = finder

    @property
    def timezone(self) -> str:
        return self._finder.timezone

    @staticmethod
    def default_window(now: DateTime, days: int = DEFAULT_SEARCH_DAYS) -> SearchWindow:
        """Search from now over the next ``days`` days."""
        return SearchWindow(start=now, end=now.add(days=days))

    def resolve_organizer(self, organizer: Optional[str]) -> str:
        """Use the given organizer, or the signed-in user's primary calendar."""
        if organizer:
            return organizer

        organizer = self._calendar_client.get_primary_calendar_id()
        if not organizer:
            raise ValueError("Could not determine the organizer's calendar")
        return organizer

    def find_slots(
        self,
        *,
        attendee: str,
        request: MeetingRequest,
        window: SearchWindow,
        organizer: Optional[str] = None,
    ) -> List[CandidateSlot]:
        """
        Fetch both participants' busy times and propose up to three slots.
        """
        organizer = self.resolve_organizer(organizer)

        busy_times = self.fetch_busy_times(
            participants=[organizer, attendee],
            window=window,
        )

        return self.calculate_slots(
            organizer_busy=busy_times[organizer],
            attendee_busy=busy_times[attendee],
            duration_minutes=request.duration_minutes,
            window=window,
            preference=request.preference,
        )

    def fetch_busy_times(
        self,
        *,
        participants: Sequence[str],
        window: SearchWindow,
    ) -> Dict[str, List[BusyInterval]]:
        """Fetch busy times for the requested participants."""
        participant_list = list(dict.fromkeys(participants))

        busy_times = self._calendar_client.get_free_busy(
            identities=participant_list,
            start_time=window.start,
            end_time=window.end,
            timezone=self.timezone,
        )

        return self._ensure_busy_time_entries(participant_list, busy_times)

    def calculate_slots(
        self,
        *,
        organizer_busy: Sequence[BusyInterval],
        attendee_busy: Sequence[BusyInterval],
        duration_minutes: int,
        window: SearchWindow,
        preference: TimeWindowPreference = TimeWindowPreference.ANY,
    ) -> List[CandidateSlot]:
        """Calculate proposed slots from busy data."""
        slots = self._finder.find_slots(
            organizer_busy=organizer_busy,
            attendee_busy=attendee_busy,
            duration_minutes=duration_minutes,
            window=window,
            preference=preference,
        )
        logger.info("Found %d slot(s) between %s and %s", len(slots), window.start, window.end)
        return slots

    def build_meeting_payload(
        self,
        attendee: str,
        slot: CandidateSlot,
        request: MeetingRequest,
    ) -> Dict[str, Any]:
        """Google Calendar event resource for a booked slot."""
        return {
            "summary": request.title,
            "description": request.event_description(),
            "start": {
                "dateTime": slot.start_time.to_iso8601_string(),
                "timeZone": self.timezone,
            },
            "end": {
                "dateTime": slot.end_time.to_iso8601_string(),
                "timeZone": self.timezone,
            },
            "attendees": [{"email": attendee}],
            "reminders": {"useDefault": True},
            "guestsCanModify": False,
            "guestsCanInviteOthers": False,
        }

    def book_meeting(
        self,
        *,
        attendee: str,
        slot: CandidateSlot,
        request: MeetingRequest,
        calendar_id: str = "primary",
    ) -> str:
        """Insert the meeting into the organizer's calendar and invite the attendee."""
        payload = self.build_meeting_payload(attendee, slot, request)

        event_id = self._calendar_client.insert_event(
            calendar_id=calendar_id,
            event_payload=payload,
            send_notifications=request.send_notifications,
        )
        logger.info("Booked '%s' with %s at %s", request.title, attendee, slot.start_time)
        return event_id

    @staticmethod
    def _ensure_busy_time_entries(
        participants: Sequence[str],
        busy_times: Dict[str, List[BusyInterval]],
    ) -> Dict[str, List[BusyInterval]]:
        """
        Ensure every requested participant appears in the busy-time map.

        Calendars the API could not read are reported without entries; we
        normalise that to an explicit empty list.
        """
        normalized: Dict[str, List[BusyInterval]] = {}

        for participant in participants:
            normalized[participant] = busy_times.get(participant, [])

        for participant, ranges in busy_times.items():
            if participant not in normalized:
                normalized[participant] = ranges

        return normalized
