"""
Domain models for busy intervals, search windows and proposed meeting slots.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from pendulum import DateTime


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Ranges are half-open: ``start`` is included, ``end`` is not.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching ranges do not overlap."""
        return self.start < other.end and self.end > other.start

    def contains(self, instant: DateTime) -> bool:
        """Check if an instant lies inside the range."""
        return self.start <= instant < self.end

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


# A blocked period on one calendar identity.
BusyInterval = TimeRange

# The overall span in which slots may be proposed.
SearchWindow = TimeRange


class TimeWindowPreference(str, Enum):
    """Coarse daypart filter narrowing the hours a meeting may start in."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    ANY = "any"

    @property
    def band(self) -> Tuple[int, int]:
        """Return the ``(start_hour, end_hour)`` band a slot start must fall in."""
        return _PREFERENCE_BANDS[self]

    @classmethod
    def parse(cls, value: "str | TimeWindowPreference | None") -> "TimeWindowPreference":
        """
        Parse a preference value, treating a missing value as ``any``.

        Raises:
            ValueError: If the value names an unknown time window
        """
        if value is None or value == "":
            return cls.ANY
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown time window '{value}'. Use one of: {allowed}") from None


_PREFERENCE_BANDS: Dict[TimeWindowPreference, Tuple[int, int]] = {
    TimeWindowPreference.MORNING: (9, 12),
    TimeWindowPreference.AFTERNOON: (13, 17),
    TimeWindowPreference.EVENING: (17, 20),
    # Business-default band
    TimeWindowPreference.ANY: (9, 17),
}


@dataclass(frozen=True)
class CandidateSlot:
    """
    A proposed meeting time.

    ``date`` is the ``YYYY-MM-DD`` key of ``start_time`` in the time zone the
    search ran in.
    """
    start_time: DateTime
    end_time: DateTime
    date: str

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end_time - self.start_time).total_seconds() / 60)

    def to_dict(self) -> Dict[str, str]:
        """Serialize the slot with ISO-8601 timestamps."""
        return {
            "startTime": self.start_time.to_iso8601_string(),
            "endTime": self.end_time.to_iso8601_string(),
            "date": self.date,
        }

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:mm - HH:mm (N min)
        """
        start = self.start_time
        end = self.end_time

        weekday = start.format("dddd")
        time_str = f"{start.format('HH:mm')} - {end.format('HH:mm')}"

        return f"{weekday}, {self.date} | {time_str} ({self.duration_minutes()} min)"


@dataclass
class MeetingRequest:
    """
    Structured meeting details, as produced by the meeting-request extractor
    or entered on the command line.
    """
    title: str
    duration_minutes: int = 30
    preference: TimeWindowPreference = TimeWindowPreference.ANY
    description: str = ""
    invitation_message: str = ""
    send_notifications: bool = True

    def event_description(self) -> str:
        """Text used as the calendar event body."""
        return self.invitation_message or self.description or ""
