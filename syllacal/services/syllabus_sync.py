"""
Application service that writes confirmed syllabus events into a calendar
and analyses how crowded the upcoming days are.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from pendulum import DateTime

from ..domain.exceptions import SyllacalError
from ..domain.stress import (
    HIGH_STRESS_AVERAGE,
    HIGH_STRESS_DAY_THRESHOLD,
    StressReport,
    analyze_stress,
    build_stress_marker_payload,
    clamp_total_days,
)
from ..domain.syllabus import SyllabusEvent, build_event_payload
from .meeting_scheduler import CalendarGatewayProtocol

logger = logging.getLogger(__name__)


@dataclass
class SyncedEvent:
    """A syllabus event and the calendar event created for it."""
    event_id: str
    calendar_event_id: str


@dataclass
class SyncResult:
    """Outcome of a sync run. ``error`` is set when the run stopped early."""
    synced: List[SyncedEvent] = field(default_factory=list)
    failed_event_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class SyllabusSyncService:
    """Writes syllabus events and computes calendar stress reports."""

    def __init__(
        self,
        calendar_client: CalendarGatewayProtocol,
        timezone: str,
        high_stress_day_threshold: int = HIGH_STRESS_DAY_THRESHOLD,
        high_stress_average: float = HIGH_STRESS_AVERAGE,
    ) -> None:
        self._calendar_client = calendar_client
        self.timezone = timezone
        self.high_stress_day_threshold = high_stress_day_threshold
        self.high_stress_average = high_stress_average

    def sync(self, events: Sequence[SyllabusEvent], calendar_id: str = "primary") -> SyncResult:
        """
        Insert each event in order.

        Stops at the first failure; the result lists the events already
        written so nothing is left unreported.
        """
        result = SyncResult()

        for event in events:
            try:
                calendar_event_id = self._calendar_client.insert_event(
                    calendar_id=calendar_id,
                    event_payload=build_event_payload(event, self.timezone),
                )
            except (SyllacalError, ValueError) as exc:
                logger.warning("Sync stopped at event %s: %s", event.id, exc)
                result.failed_event_id = event.id
                result.error = str(exc)
                break

            result.synced.append(SyncedEvent(event_id=event.id, calendar_event_id=calendar_event_id))

        logger.info("Synced %d of %d syllabus event(s)", len(result.synced), len(events))
        return result

    def analyze(
        self,
        now: DateTime,
        total_days: int,
        calendar_id: str = "primary",
        create_markers: bool = False,
    ) -> StressReport:
        """
        Analyse the next ``total_days`` days of the calendar.

        With ``create_markers`` a red reminder event is added to every
        high-stress day and its ID stored on the report.
        """
        days = clamp_total_days(total_days)
        events = self._calendar_client.list_events(
            calendar_id=calendar_id,
            start_time=now,
            end_time=now.add(days=days),
        )

        report = analyze_stress(
            events,
            total_days=days,
            high_stress_day_threshold=self.high_stress_day_threshold,
            high_stress_average=self.high_stress_average,
        )

        if create_markers:
            for day in report.high_stress_days:
                day.calendar_event_id = self._calendar_client.insert_event(
                    calendar_id=calendar_id,
                    event_payload=build_stress_marker_payload(day, self.timezone),
                )

        return report
