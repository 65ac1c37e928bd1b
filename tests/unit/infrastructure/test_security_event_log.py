"""Tests for the bounded security event log."""

import pytest

from compliance_guard.domain.entities.security_event import SecurityEventType, SecuritySeverity
from compliance_guard.infrastructure.security import security_event_log
from compliance_guard.infrastructure.security.security_event_log import SecurityEventLog


class RecordingLogger:
    def __init__(self):
        self.calls = []

    def info(self, event, **fields):
        self.calls.append(("info", event, fields))

    def warning(self, event, **fields):
        self.calls.append(("warning", event, fields))


class TestSecurityEventLog:
    def test_buffer_keeps_most_recent_events(self):
        log = SecurityEventLog()

        for i in range(150):
            log.log_event(SecurityEventType.VALIDATION_FAILED, SecuritySeverity.MEDIUM, details={"n": i})

        events = log.get_events()
        assert len(events) == 100
        assert events[0].details["n"] == 50
        assert events[-1].details["n"] == 149

    def test_high_severity_emits_alert(self, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(security_event_log, "logger", recorder)
        log = SecurityEventLog()

        log.log_event(
            SecurityEventType.CONTENT_UNSAFE,
            SecuritySeverity.HIGH,
            tenant_id="t-1",
            details={"reason": "Script tag detected"},
        )
        log.log_event(SecurityEventType.ADMISSION_DENIED, SecuritySeverity.LOW, tenant_id="t-1")

        (alert_level, alert_event, alert_fields), (info_level, info_event, _) = recorder.calls
        assert (alert_level, alert_event) == ("warning", "Security alert")
        assert alert_fields["alert"] is True
        assert alert_fields["details"] == {"reason": "Script tag detected"}
        assert (info_level, info_event) == ("info", "Security event")
        assert [e.event_type for e in log.get_alerts()] == [SecurityEventType.CONTENT_UNSAFE]

    def test_filters(self):
        log = SecurityEventLog()
        log.log_event(SecurityEventType.ADMISSION_DENIED, SecuritySeverity.LOW)
        log.log_event(SecurityEventType.CONTENT_UNSAFE, SecuritySeverity.HIGH)
        log.log_event(SecurityEventType.CONTENT_UNSAFE, SecuritySeverity.CRITICAL)

        assert len(log.get_events(event_type=SecurityEventType.CONTENT_UNSAFE)) == 2
        assert len(log.get_events(severity=SecuritySeverity.LOW)) == 1
        assert len(log.get_alerts()) == 2

    def test_clear(self):
        log = SecurityEventLog(max_events=5)
        log.log_event(SecurityEventType.SUSPICIOUS_ACTIVITY, SecuritySeverity.MEDIUM)

        log.clear_events()

        assert log.get_events() == []

    def test_buffer_size_must_be_positive(self):
        with pytest.raises(ValueError):
            SecurityEventLog(max_events=0)
