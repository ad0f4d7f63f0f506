"""
Calendar stress analysis: flags overloaded days in an upcoming period.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_TOTAL_DAYS = 28
HIGH_STRESS_DAY_THRESHOLD = 7
HIGH_STRESS_AVERAGE = 5.0

MIN_TOTAL_DAYS = 1
MAX_TOTAL_DAYS = 365


@dataclass
class StressDay:
    """A day with more events than the threshold."""
    date: str
    event_count: int
    calendar_event_id: Optional[str] = None


@dataclass
class StressReport:
    """Result of a stress analysis."""
    is_high_stress_period: bool
    average_events_per_day: float
    total_days: int
    high_stress_days: List[StressDay] = field(default_factory=list)


def clamp_total_days(total_days: int) -> int:
    """Clamp the analysed period to between 1 and 365 days."""
    return max(MIN_TOTAL_DAYS, min(MAX_TOTAL_DAYS, round(total_days)))


def event_day(event: Dict[str, Any]) -> Optional[str]:
    """
    Return the ``YYYY-MM-DD`` start day of a calendar event resource.

    Timed events carry ``start.dateTime``, all-day events ``start.date``.
    """
    start = event.get("start") or {}
    value = start.get("dateTime") or start.get("date")
    if not value:
        return None
    return value.split("T")[0]


def count_events_per_day(events: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for event in events:
        day = event_day(event)
        if day is not None:
            counts[day] = counts.get(day, 0) + 1
    return counts


def analyze_stress(
    events: List[Dict[str, Any]],
    total_days: int = DEFAULT_TOTAL_DAYS,
    high_stress_day_threshold: int = HIGH_STRESS_DAY_THRESHOLD,
    high_stress_average: float = HIGH_STRESS_AVERAGE,
) -> StressReport:
    """
    Count events per day and flag overloaded days.

    Args:
        events: Calendar event resources in the analysed period
        total_days: Length of the analysed period, clamped to [1, 365]
        high_stress_day_threshold: A day with more events than this is flagged
        high_stress_average: The period is flagged when the daily average exceeds this

    Returns:
        StressReport with flagged days sorted by date
    """
    days = clamp_total_days(total_days)
    average = len(events) / days

    counts = count_events_per_day(events)
    stress_days = [
        StressDay(date=day, event_count=count)
        for day, count in sorted(counts.items())
        if count > high_stress_day_threshold
    ]

    return StressReport(
        is_high_stress_period=average > high_stress_average,
        average_events_per_day=average,
        total_days=days,
        high_stress_days=stress_days,
    )


def build_stress_marker_payload(day: StressDay, timezone: str) -> Dict[str, Any]:
    """Red 09:00-10:00 reminder event placed on a high-stress day."""
    return {
        "summary": f"High Stress Day - {day.event_count} events",
        "description": (
            f"This day has {day.event_count} events scheduled. Make sure to plan ahead!"
        ),
        "start": {"dateTime": f"{day.date}T09:00:00", "timeZone": timezone},
        "end": {"dateTime": f"{day.date}T10:00:00", "timeZone": timezone},
        "colorId": "11",
    }
