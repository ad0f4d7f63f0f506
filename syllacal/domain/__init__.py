"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityFinder, Transition
from .models import BusyInterval, CandidateSlot, MeetingRequest, SearchWindow, TimeRange, TimeWindowPreference

__all__ = [
    "AvailabilityFinder",
    "Transition",
    "BusyInterval",
    "CandidateSlot",
    "MeetingRequest",
    "SearchWindow",
    "TimeRange",
    "TimeWindowPreference",
]
