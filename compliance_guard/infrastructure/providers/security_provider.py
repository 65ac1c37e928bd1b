"""Provider utilities for the security event log."""

from __future__ import annotations

from typing import Optional

import structlog

from compliance_guard.core.config import get_settings
from compliance_guard.domain.interfaces import ISecurityEventLog
from compliance_guard.infrastructure.security.security_event_log import SecurityEventLog

logger = structlog.get_logger(__name__)

_security_event_log: Optional[ISecurityEventLog] = None


def get_security_event_log() -> ISecurityEventLog:
    """
    Return the singleton security event log.

    Synchronous so it can be used from code paths that are not awaited.
    """
    global _security_event_log

    if _security_event_log is None:
        settings = get_settings()
        _security_event_log = SecurityEventLog(max_events=settings.SECURITY_EVENT_BUFFER_SIZE)
        logger.info("Security event log initialized", max_events=settings.SECURITY_EVENT_BUFFER_SIZE)

    return _security_event_log


async def reset_security_event_log() -> None:
    """Reset the security event log singleton."""
    global _security_event_log
    _security_event_log = None


__all__ = [
    "get_security_event_log",
    "reset_security_event_log",
]
