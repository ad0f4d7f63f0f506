"""
Tests for the meeting scheduler service.
"""

import pendulum
import pytest

from syllacal.domain.availability import AvailabilityFinder
from syllacal.domain.models import CandidateSlot, MeetingRequest, SearchWindow, TimeRange, TimeWindowPreference
from syllacal.services.meeting_scheduler import MeetingSchedulerService

TZ = "America/New_York"


class StubCalendarClient:
    """Simple stub for the calendar gateway."""

    def __init__(self, busy_times=None, primary="me@example.com"):
        self.busy_times = busy_times or {}
        self.primary = primary
        self.free_busy_calls = []
        self.inserted = []

    def get_free_busy(self, identities, start_time, end_time, timezone):
        self.free_busy_calls.append((list(identities), start_time, end_time, timezone))
        return {identity: self.busy_times[identity] for identity in identities if identity in self.busy_times}

    def insert_event(self, calendar_id, event_payload, send_notifications=False):
        self.inserted.append((calendar_id, event_payload, send_notifications))
        return f"event-{len(self.inserted)}"

    def list_events(self, calendar_id, start_time, end_time):
        return []

    def get_primary_calendar_id(self):
        return self.primary


def make_window():
    return SearchWindow(
        start=pendulum.parse("2024-11-25 08:00", tz=TZ),
        end=pendulum.parse("2024-11-25 12:00", tz=TZ),
    )


def make_service(client):
    return MeetingSchedulerService(calendar_client=client, finder=AvailabilityFinder(timezone=TZ))


def make_slot():
    start = pendulum.parse("2024-11-25 10:00", tz=TZ)
    return CandidateSlot(start_time=start, end_time=start.add(minutes=30), date="2024-11-25")


class TestMeetingSchedulerService:
    """Tests for MeetingSchedulerService."""

    def test_fetch_busy_times_includes_missing_participants(self):
        """Participants without free/busy data map to an empty list."""
        client = StubCalendarClient(busy_times={"me@example.com": []})
        service = make_service(client)

        busy_times = service.fetch_busy_times(
            participants=["me@example.com", "alex@example.com", "me@example.com"],
            window=make_window(),
        )

        assert busy_times == {"me@example.com": [], "alex@example.com": []}
        assert client.free_busy_calls[0][0] == ["me@example.com", "alex@example.com"]
        assert client.free_busy_calls[0][3] == TZ

    def test_find_slots_uses_primary_calendar_as_organizer(self):
        busy = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz=TZ),
            end=pendulum.parse("2024-11-25 10:00", tz=TZ),
        )
        client = StubCalendarClient(busy_times={"me@example.com": [busy]})
        service = make_service(client)

        slots = service.find_slots(
            attendee="alex@example.com",
            request=MeetingRequest(title="Sync"),
            window=make_window(),
        )

        assert [slot.start_time for slot in slots] == [pendulum.parse("2024-11-25 10:00", tz=TZ)]
        assert client.free_busy_calls[0][0] == ["me@example.com", "alex@example.com"]

    def test_find_slots_respects_attendee_busy_and_preference(self):
        busy = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz=TZ),
            end=pendulum.parse("2024-11-25 11:00", tz=TZ),
        )
        client = StubCalendarClient(busy_times={"alex@example.com": [busy]})
        service = make_service(client)

        slots = service.find_slots(
            attendee="alex@example.com",
            organizer="boss@example.com",
            request=MeetingRequest(title="Sync", duration_minutes=60, preference=TimeWindowPreference.MORNING),
            window=make_window(),
        )

        assert [slot.start_time.hour for slot in slots] == [11]
        assert client.free_busy_calls[0][0] == ["boss@example.com", "alex@example.com"]

    def test_resolve_organizer_without_primary(self):
        service = make_service(StubCalendarClient(primary=""))

        with pytest.raises(ValueError, match="organizer"):
            service.resolve_organizer(None)

    def test_default_window(self):
        now = pendulum.parse("2024-11-25 08:00", tz=TZ)

        window = MeetingSchedulerService.default_window(now)

        assert window.start == now
        assert window.end == now.add(days=14)

    def test_book_meeting(self):
        client = StubCalendarClient()
        service = make_service(client)
        request = MeetingRequest(
            title="Project Sync",
            description="Agenda",
            invitation_message="Hi Alex, let's sync.",
        )

        event_id = service.book_meeting(attendee="alex@example.com", slot=make_slot(), request=request)

        assert event_id == "event-1"
        calendar_id, payload, send_notifications = client.inserted[0]
        assert calendar_id == "primary"
        assert send_notifications is True
        assert payload["summary"] == "Project Sync"
        assert payload["description"] == "Hi Alex, let's sync."
        assert payload["attendees"] == [{"email": "alex@example.com"}]
        assert payload["start"] == {"dateTime": "2024-11-25T10:00:00-05:00", "timeZone": TZ}
        assert payload["end"] == {"dateTime": "2024-11-25T10:30:00-05:00", "timeZone": TZ}
        assert payload["reminders"] == {"useDefault": True}
        assert payload["guestsCanModify"] is False
        assert payload["guestsCanInviteOthers"] is False

    def test_book_meeting_without_notifications(self):
        client = StubCalendarClient()
        service = make_service(client)

        service.book_meeting(
            attendee="alex@example.com",
            slot=make_slot(),
            request=MeetingRequest(title="Sync", description="Agenda", send_notifications=False),
        )

        _, payload, send_notifications = client.inserted[0]
        assert send_notifications is False
        assert payload["description"] == "Agenda"
