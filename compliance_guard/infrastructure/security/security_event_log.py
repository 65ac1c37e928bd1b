"""Bounded in-memory security event log with structured log emission."""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List, Optional

import structlog

from compliance_guard.domain.entities.security_event import (
    SecurityEvent,
    SecurityEventType,
    SecuritySeverity,
)
from compliance_guard.domain.interfaces import ISecurityEventLog

logger = structlog.get_logger("compliance_guard.security")

DEFAULT_BUFFER_SIZE = 100


class SecurityEventLog(ISecurityEventLog):
    """
    Keeps the most recent security events and emits each one as a log line.

    High and critical events are logged at warning level with ``alert=True``
    so log routing can page on them. Older events drop off once the buffer
    is full.
    """

    def __init__(self, max_events: int = DEFAULT_BUFFER_SIZE):
        if max_events <= 0:
            raise ValueError("max_events must be positive")
        self.max_events = max_events
        self._events: Deque[SecurityEvent] = deque(maxlen=max_events)

    def log_event(
        self,
        event_type: SecurityEventType,
        severity: SecuritySeverity,
        *,
        tenant_id: Optional[str] = None,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> SecurityEvent:
        event = SecurityEvent(
            event_type=SecurityEventType(event_type),
            severity=SecuritySeverity(severity),
            tenant_id=str(tenant_id) if tenant_id is not None else None,
            user_id=str(user_id) if user_id is not None else None,
            details=dict(details or {}),
        )
        self._events.append(event)

        fields = dict(
            event_type=event.event_type.value,
            severity=event.severity.value,
            tenant_id=event.tenant_id,
            user_id=event.user_id,
            details=event.details,
        )
        if event.requires_alert:
            logger.warning("Security alert", alert=True, **fields)
        else:
            logger.info("Security event", **fields)
        return event

    def get_events(
        self,
        event_type: Optional[SecurityEventType] = None,
        severity: Optional[SecuritySeverity] = None,
    ) -> List[SecurityEvent]:
        events = list(self._events)
        if event_type is not None:
            events = [e for e in events if e.event_type == SecurityEventType(event_type)]
        if severity is not None:
            events = [e for e in events if e.severity == SecuritySeverity(severity)]
        return events

    def get_alerts(self) -> List[SecurityEvent]:
        """Events that required an alert, oldest first."""
        return [e for e in self._events if e.requires_alert]

    def clear_events(self) -> None:
        self._events.clear()

    async def check_health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": "SecurityEventLog",
            "buffered_events": len(self._events),
            "max_events": self.max_events,
        }


__all__ = ["SecurityEventLog"]
