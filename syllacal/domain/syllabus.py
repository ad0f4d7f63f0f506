"""
Syllabus events extracted from course material, and their mapping onto
Google Calendar event payloads.
"""

import json
import re
from datetime import date, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .exceptions import SyllabusFormatError


class EventType(str, Enum):
    """Kinds of calendar-worthy syllabus entries."""

    CLASS = "class"
    ASSIGNMENT = "assignment"
    EXAM = "exam"
    PROJECT = "project"
    READING = "reading"
    OFFICE_HOURS = "office_hours"

    @property
    def label(self) -> str:
        return _EVENT_LABELS[self]

    @property
    def color_id(self) -> Optional[str]:
        """Google Calendar colorId: 10=green, 5=yellow, 11=red."""
        return _EVENT_COLORS.get(self)


_EVENT_LABELS = {
    EventType.CLASS: "Regular Class",
    EventType.ASSIGNMENT: "Assignment",
    EventType.EXAM: "Exam",
    EventType.PROJECT: "Project",
    EventType.READING: "Reading",
    EventType.OFFICE_HOURS: "Office Hours",
}

_EVENT_COLORS = {
    EventType.ASSIGNMENT: "10",
    EventType.EXAM: "5",
    EventType.PROJECT: "11",
}


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"


DEFAULT_START_TIME = "09:00"
DEFAULT_END_TIME = "10:00"

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

_DAY_CODES = {
    "monday": "MO", "mon": "MO", "m": "MO",
    "tuesday": "TU", "tue": "TU", "tues": "TU", "tu": "TU", "t": "TU",
    "wednesday": "WE", "wed": "WE", "w": "WE",
    "thursday": "TH", "thu": "TH", "thur": "TH", "thurs": "TH", "th": "TH", "r": "TH",
    "friday": "FR", "fri": "FR", "f": "FR",
    "saturday": "SA", "sat": "SA", "sa": "SA",
    "sunday": "SU", "sun": "SU", "su": "SU",
}

# Compact forms such as "MWF" or "TTh"
_COMPACT_DAYS = re.compile(r"Th|Sa|Su|[MTWRF]")


class SyllabusEvent(BaseModel):
    """
    One event extracted from a syllabus.

    Accepts both snake_case and the camelCase keys produced by the extractor.
    Empty strings for optional fields are treated as missing.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    type: EventType
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: str = ""
    description: str = ""
    course_name: str = ""
    is_recurring: bool = False
    recurrence_frequency: Optional[RecurrenceFrequency] = None
    recurrence_end_date: Optional[str] = None
    recurrence_days_of_week: str = ""

    @field_validator("start_time", "end_time", "recurrence_frequency", "recurrence_end_date", mode="before")
    @classmethod
    def empty_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("location", "description", "course_name", "recurrence_days_of_week", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("date", "recurrence_end_date")
    @classmethod
    def validate_date(cls, value: Optional[str]) -> Optional[str]:
        """Dates must be YYYY-MM-DD and name a real calendar day."""
        if value is None:
            return value
        if not _DATE_PATTERN.match(value):
            raise ValueError(f"Date must use YYYY-MM-DD, got '{value}'")
        try:
            date.fromisoformat(value)
        except ValueError:
            raise ValueError(f"Date does not exist: '{value}'") from None
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _TIME_PATTERN.match(value):
            raise ValueError(f"Time must use 24-hour HH:MM, got '{value}'")
        return value

    @field_validator("recurrence_days_of_week")
    @classmethod
    def validate_days_of_week(cls, value: str) -> str:
        parse_days_of_week(value)
        return value

    @model_validator(mode="after")
    def validate_recurrence(self) -> "SyllabusEvent":
        """Recurring events need a frequency; one-off events carry no recurrence."""
        if self.is_recurring and self.recurrence_frequency is None:
            raise ValueError(f"Recurring event '{self.id}' has no recurrence frequency")
        return self

    def calendar_title(self) -> str:
        """Title shown in the calendar, e.g. ``CS 101: Homework 1``."""
        course = self.course_name.strip()
        return f"{course}: {self.title}" if course else self.title

    def calendar_description(self) -> str:
        parts = [f"Type: {self.type.label}"]

        if self.type is EventType.READING and self.description:
            parts.append(f"Reading Materials:\n{self.description}")
        elif self.description:
            parts.append(self.description)

        if self.course_name.strip():
            parts.append(f"Course: {self.course_name}")

        return "\n\n".join(parts)

    def resolved_times(self) -> tuple[str, str]:
        """
        Start and end as HH:MM. Without a start the event runs 09:00-10:00;
        without an end it lasts one hour.
        """
        if self.start_time is None:
            return DEFAULT_START_TIME, self.end_time or DEFAULT_END_TIME
        return self.start_time, self.end_time or _add_hour(self.start_time)


def _add_hour(value: str) -> str:
    hours, minutes = (int(part) for part in value.split(":"))
    return f"{(hours + 1) % 24:02d}:{minutes:02d}"


def parse_days_of_week(value: str) -> List[str]:
    """
    Convert day names to RFC 5545 BYDAY codes.

    Accepts comma or space separated names ("Monday, Wednesday") and compact
    forms ("MWF", "TTh").

    Raises:
        ValueError: If a day cannot be recognised
    """
    text = value.strip()
    if not text:
        return []

    tokens = [token for token in re.split(r"[,\s/&]+|\band\b", text) if token]
    codes: List[str] = []

    for token in tokens:
        key = token.lower().rstrip(".")
        if key.endswith("s") and key[:-1] in _DAY_CODES and len(key) > 3:
            key = key[:-1]

        if key in _DAY_CODES:
            matched = [_DAY_CODES[key]]
        elif "".join(_COMPACT_DAYS.findall(token)) == token:
            matched = [_DAY_CODES[part.lower()] for part in _COMPACT_DAYS.findall(token)]
        else:
            raise ValueError(f"Unrecognised day of week: '{token}'")

        for code in matched:
            if code not in codes:
                codes.append(code)

    return codes


def build_recurrence_rule(event: SyllabusEvent) -> Optional[str]:
    """Return the RRULE line for a recurring event, or None."""
    if not event.is_recurring or event.recurrence_frequency is None:
        return None

    if event.recurrence_frequency is RecurrenceFrequency.DAILY:
        parts = ["FREQ=DAILY"]
    else:
        parts = ["FREQ=WEEKLY"]
        if event.recurrence_frequency is RecurrenceFrequency.BIWEEKLY:
            parts.append("INTERVAL=2")
        days = parse_days_of_week(event.recurrence_days_of_week)
        if days:
            parts.append(f"BYDAY={','.join(days)}")

    if event.recurrence_end_date:
        until = date.fromisoformat(event.recurrence_end_date)
        parts.append(f"UNTIL={until.strftime('%Y%m%d')}T235959Z")

    return "RRULE:" + ";".join(parts)


def build_event_payload(event: SyllabusEvent, timezone: str) -> Dict[str, Any]:
    """
    Build a Google Calendar event resource for a syllabus event.

    Times are wall-clock times in ``timezone``.
    """
    start, end = event.resolved_times()

    # An end at or before the start runs past midnight
    end_date = event.date
    if end <= start:
        end_date = (date.fromisoformat(event.date) + timedelta(days=1)).isoformat()

    payload: Dict[str, Any] = {
        "summary": event.calendar_title(),
        "description": event.calendar_description(),
        "location": event.location,
        "start": {"dateTime": f"{event.date}T{start}:00", "timeZone": timezone},
        "end": {"dateTime": f"{end_date}T{end}:00", "timeZone": timezone},
    }

    color_id = event.type.color_id
    if color_id:
        payload["colorId"] = color_id

    rule = build_recurrence_rule(event)
    if rule:
        payload["recurrence"] = [rule]

    return payload


def load_syllabus_events(path: Path) -> List[SyllabusEvent]:
    """
    Load extracted syllabus events from a JSON file.

    The document is either ``{"events": [...]}`` or a bare list of events.

    Raises:
        FileNotFoundError: If the file doesn't exist
        SyllabusFormatError: If the document or an event is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Syllabus file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise SyllabusFormatError(f"Invalid JSON in {path}: {exc}") from exc

    return parse_syllabus_events(data)


def parse_syllabus_events(data: Any) -> List[SyllabusEvent]:
    """Validate an extractor document into ``SyllabusEvent`` objects."""
    if isinstance(data, dict):
        data = data.get("events")

    if not isinstance(data, list):
        raise SyllabusFormatError("Syllabus document must contain a list of events.")

    events: List[SyllabusEvent] = []
    for index, item in enumerate(data):
        try:
            events.append(SyllabusEvent.model_validate(item))
        except ValidationError as exc:
            label = item.get("id", index) if isinstance(item, dict) else index
            raise SyllabusFormatError(f"Invalid syllabus event '{label}': {exc}") from exc

    return events

