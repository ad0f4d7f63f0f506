"""
Domain-specific exception hierarchy for the syllacal application.
"""


class SyllacalError(Exception):
    """Base class for all application-level errors."""


class CalendarAPIError(SyllacalError):
    """Raised when calendar data cannot be fetched, written or parsed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(SyllacalError):
    """Raised when authentication or token handling fails."""


class SyllabusFormatError(SyllacalError):
    """Raised when an extracted syllabus document cannot be validated."""
