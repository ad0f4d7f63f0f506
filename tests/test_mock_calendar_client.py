"""
Tests for the mock calendar client.
"""

import json

import pendulum

from syllacal.adapters.mock_calendar_client import MockCalendarClient
from syllacal.config import AppConfig

TZ = "America/New_York"


def day_range(day):
    start = pendulum.parse(f"{day} 00:00", tz=TZ)
    return start, start.add(days=1)


class TestMockCalendarClient:
    """Tests for MockCalendarClient."""

    def test_free_busy_from_bundled_data(self):
        client = MockCalendarClient()
        start, end = day_range("2026-10-19")

        busy = client.get_free_busy(["me@example.com", "nobody@example.com"], start, end, TZ)

        assert [str(r) for r in busy["me@example.com"]] == [
            "2026-10-19 09:00 - 09:30",
            "2026-10-19 10:00 - 11:30",
            "2026-10-19 12:00 - 13:00",
        ]
        assert busy["nobody@example.com"] == []

    def test_calendar_id_mapping_from_config(self):
        config = AppConfig(colleagues=[{"name": "sam", "email": "sam@example.com", "calendar_id": "cal_sam"}])
        client = MockCalendarClient(config=config)
        start, end = day_range("2026-10-22")

        busy = client.get_free_busy(["sam@example.com"], start, end, TZ)

        assert [str(r) for r in busy["sam@example.com"]] == ["2026-10-22 17:00 - 18:00"]

    def test_primary_calendar(self):
        client = MockCalendarClient(owner_email="owner@example.com")

        assert client.get_primary_calendar_id() == "owner@example.com"
        assert client.test_connection()["id"] == "owner@example.com"

    def test_inserted_event_becomes_busy(self):
        client = MockCalendarClient()
        payload = {
            "summary": "Sync",
            "start": {"dateTime": "2026-10-21T16:00:00-04:00", "timeZone": TZ},
            "end": {"dateTime": "2026-10-21T16:30:00-04:00", "timeZone": TZ},
        }

        event_id = client.insert_event("primary", payload, send_notifications=True)

        assert event_id == "mock-event-1"
        assert client.inserted[0]["calendarId"] == "me@example.com"
        assert client.inserted[0]["sendNotifications"] is True
        start, end = day_range("2026-10-21")
        busy = client.get_free_busy(["me@example.com"], start, end, TZ)["me@example.com"]
        assert "2026-10-21 16:00 - 16:30" in [str(r) for r in busy]

    def test_list_events_sorted_by_start(self, tmp_path):
        data_file = tmp_path / "calendar.json"
        data_file.write_text(
            json.dumps(
                [
                    {"calendarId": "me@example.com", "summary": "Late", "start": "2026-10-19T15:00:00", "end": "2026-10-19T16:00:00"},
                    {"calendarId": "me@example.com", "summary": "Early", "start": "2026-10-19T08:00:00", "end": "2026-10-19T09:00:00"},
                    {"calendarId": "other@example.com", "summary": "Other", "start": "2026-10-19T10:00:00", "end": "2026-10-19T11:00:00"},
                ]
            ),
            encoding="utf-8",
        )
        client = MockCalendarClient(data_file=data_file)
        start, end = day_range("2026-10-19")

        events = client.list_events("primary", start, end)

        assert [event["summary"] for event in events] == ["Early", "Late"]
        assert events[0]["start"]["dateTime"] == "2026-10-19T08:00:00-04:00"

    def test_missing_data_file(self, tmp_path):
        client = MockCalendarClient(data_file=tmp_path / "missing.json")
        start, end = day_range("2026-10-19")

        assert client.get_free_busy(["me@example.com"], start, end, TZ) == {"me@example.com": []}
