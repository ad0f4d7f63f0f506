"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .meeting_scheduler import CalendarGatewayProtocol, MeetingSchedulerService
from .syllabus_sync import SyllabusSyncService, SyncResult

__all__ = ["CalendarGatewayProtocol", "MeetingSchedulerService", "SyllabusSyncService", "SyncResult"]
