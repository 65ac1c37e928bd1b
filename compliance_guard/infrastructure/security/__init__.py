"""Security event recording."""

from .security_event_log import SecurityEventLog

__all__ = ["SecurityEventLog"]
