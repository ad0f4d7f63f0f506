"""
Adapters layer - External integrations (Google Calendar API, OAuth session).
"""

from .google_authenticator import GoogleAuthenticator
from .google_calendar_client import GoogleCalendarClient
from .mock_calendar_client import MockCalendarClient

__all__ = ["GoogleAuthenticator", "GoogleCalendarClient", "MockCalendarClient"]
