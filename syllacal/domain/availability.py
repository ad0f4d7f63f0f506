"""
Availability search across two participants' calendars.

This is pure domain logic without any external dependencies (no API calls,
no database, no I/O). The caller fetches busy intervals, this module turns
them into at most three proposed meeting slots on distinct weekdays.
"""

import logging
from enum import Enum
from typing import Iterable, List, Sequence

from pendulum import DateTime

from .models import BusyInterval, CandidateSlot, SearchWindow, TimeRange, TimeWindowPreference

logger = logging.getLogger(__name__)

# Absolute limits, independent of preference. Slots may not start before the
# floor and may not extend past the ceiling.
FLOOR_HOUR = 6
CEILING_HOUR = 22

# Where the cursor lands after snapping to a new day.
DAY_START_HOUR = 9

DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_MAX_SLOTS = 3
DEFAULT_MAX_ITERATIONS = 100_000


class Transition(Enum):
    """Cursor moves of the slot sweep."""

    SNAP_TO_NEXT_DAY = "snap_to_next_day"
    SNAP_TO_BAND_START = "snap_to_band_start"
    ADVANCE_BY_INCREMENT = "advance_by_increment"
    ACCEPT = "accept"


def scan_increment(duration_minutes: int) -> int:
    """Step between candidates: 30 minutes for short meetings, else 60."""
    return 30 if duration_minutes <= 30 else 60


def dedupe_by_day(slots: Iterable[CandidateSlot], limit: int = DEFAULT_MAX_SLOTS) -> List[CandidateSlot]:
    """
    Keep the earliest slot of each calendar day, in order, up to ``limit``.
    """
    by_day: dict[str, CandidateSlot] = {}

    for slot in sorted(slots, key=lambda s: s.start_time):
        if slot.date not in by_day:
            by_day[slot.date] = slot
            if len(by_day) >= limit:
                break

    return list(by_day.values())


class AvailabilityFinder:
    """
    Finds mutually free meeting slots for an organizer and an attendee.

    Algorithm (forward sweep with snapping):
    1. Merge both participants' busy intervals and sort them by start
    2. Place a cursor at the window start, snapped into allowed hours
    3. At each cursor position decide one transition:
       - weekend, outside [06:00, 22:00) or slot ending after 22:00
         -> SNAP_TO_NEXT_DAY (09:00 next day)
       - before the preference band -> SNAP_TO_BAND_START
       - past the preference band -> SNAP_TO_NEXT_DAY
       - overlapping a busy interval -> ADVANCE_BY_INCREMENT
       - otherwise -> ACCEPT, then advance by the increment
    4. Stop when three distinct days are found or the window is exhausted
    5. Keep the earliest slot per day, at most three, in chronological order

    Every transition moves the cursor strictly forward, and the sweep is also
    bounded by ``max_iterations``.

    The ceiling is half-open like every other boundary: a slot may end
    exactly at 22:00 (19:00 + 180 min is accepted), only later ends snap.

    Preconditions: ``window`` is a valid range (enforced by ``TimeRange``).
    A non-positive duration yields an empty result.
    """

    def __init__(
        self,
        timezone: str = DEFAULT_TIMEZONE,
        max_slots: int = DEFAULT_MAX_SLOTS,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        self.timezone = timezone
        self.max_slots = max_slots
        self.max_iterations = max_iterations

    def find_slots(
        self,
        organizer_busy: Sequence[BusyInterval],
        attendee_busy: Sequence[BusyInterval],
        duration_minutes: int,
        window: SearchWindow,
        preference: TimeWindowPreference = TimeWindowPreference.ANY,
    ) -> List[CandidateSlot]:
        """
        Find up to ``max_slots`` non-conflicting slots, one per weekday.

        Args:
            organizer_busy: Busy intervals of the organizer, any order
            attendee_busy: Busy intervals of the attendee, any order
            duration_minutes: Meeting length
            window: Span in which slots may be proposed
            preference: Daypart the meeting should start in

        Returns:
            Slots ordered by start time. Empty if nothing fits the window.
        """
        if duration_minutes <= 0:
            logger.debug("Non-positive duration %s, no slots searched", duration_minutes)
            return []

        preference = TimeWindowPreference.parse(preference)
        busy = sorted([*organizer_busy, *attendee_busy], key=lambda r: r.start)
        increment = scan_increment(duration_minutes)

        cursor = self.initial_cursor(window.start)
        found: List[CandidateSlot] = []
        iterations = 0

        while cursor.add(minutes=duration_minutes) <= window.end:
            if iterations >= self.max_iterations:
                logger.warning(
                    "Slot search stopped after %d iterations at %s",
                    iterations,
                    cursor.to_iso8601_string(),
                )
                break
            iterations += 1

            transition = self.next_transition(cursor, duration_minutes, preference, busy)

            if transition is Transition.ACCEPT:
                slot = self._make_slot(cursor, duration_minutes)
                if self._should_record(slot, found):
                    found.append(slot)
                    if len({s.date for s in found}) >= self.max_slots:
                        break

            cursor = self.apply(transition, cursor, duration_minutes, preference, increment)

        slots = dedupe_by_day(found, self.max_slots)
        logger.debug(
            "Slot search finished: %d candidate(s), %d slot(s), %d iteration(s)",
            len(found),
            len(slots),
            iterations,
        )
        return slots

    def initial_cursor(self, window_start: DateTime) -> DateTime:
        """
        Place the cursor at the window start, moved into allowed hours.

        Too early -> 09:00 the same day. Too late -> 09:00 the next day.
        """
        cursor = window_start.in_timezone(self.timezone)

        if cursor.hour < FLOOR_HOUR:
            return self._day_start(cursor)
        if cursor.hour >= CEILING_HOUR:
            return self._day_start(cursor.add(days=1))
        return cursor

    def next_transition(
        self,
        cursor: DateTime,
        duration_minutes: int,
        preference: TimeWindowPreference,
        busy: Sequence[BusyInterval],
    ) -> Transition:
        """Decide how the sweep proceeds from ``cursor``."""
        cursor = cursor.in_timezone(self.timezone)

        if cursor.isoweekday() >= 6:
            return Transition.SNAP_TO_NEXT_DAY

        if not FLOOR_HOUR <= cursor.hour < CEILING_HOUR:
            return Transition.SNAP_TO_NEXT_DAY

        band_start, band_end = preference.band
        if cursor.hour < band_start:
            return Transition.SNAP_TO_BAND_START
        if cursor.hour >= band_end:
            return Transition.SNAP_TO_NEXT_DAY

        slot_end = cursor.add(minutes=duration_minutes)
        if slot_end > self._day_ceiling(cursor):
            return Transition.SNAP_TO_NEXT_DAY

        candidate = TimeRange(start=cursor, end=slot_end)
        if any(candidate.overlaps(interval) for interval in busy):
            return Transition.ADVANCE_BY_INCREMENT

        return Transition.ACCEPT

    def apply(
        self,
        transition: Transition,
        cursor: DateTime,
        duration_minutes: int,
        preference: TimeWindowPreference,
        increment: int | None = None,
    ) -> DateTime:
        """Return the cursor position after ``transition``."""
        cursor = cursor.in_timezone(self.timezone)

        if transition is Transition.SNAP_TO_NEXT_DAY:
            return self._day_start(cursor.add(days=1))

        if transition is Transition.SNAP_TO_BAND_START:
            band_start, _ = preference.band
            return cursor.set(hour=band_start, minute=0, second=0, microsecond=0)

        step = increment if increment is not None else scan_increment(duration_minutes)
        return cursor.add(minutes=step)

    def _should_record(self, slot: CandidateSlot, found: Sequence[CandidateSlot]) -> bool:
        """
        A new day is always recorded; an extra same-day candidate only while
        fewer than ``max_slots`` are held. ``dedupe_by_day`` decides the result.
        """
        has_slot_for_day = any(existing.date == slot.date for existing in found)
        return not has_slot_for_day or len(found) < self.max_slots

    def _make_slot(self, cursor: DateTime, duration_minutes: int) -> CandidateSlot:
        return CandidateSlot(
            start_time=cursor,
            end_time=cursor.add(minutes=duration_minutes),
            date=cursor.to_date_string(),
        )

    @staticmethod
    def _day_start(day: DateTime) -> DateTime:
        return day.set(hour=DAY_START_HOUR, minute=0, second=0, microsecond=0)

    @staticmethod
    def _day_ceiling(day: DateTime) -> DateTime:
        return day.set(hour=CEILING_HOUR, minute=0, second=0, microsecond=0)
