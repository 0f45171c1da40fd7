"""Tests for logging setup and audit emission."""

import logging
from types import SimpleNamespace

import pytest

from clearance.common.logger import (
    AUDIT_LOGGER,
    configure_logging,
    log_audit_event,
    parse_level,
    setup_from_settings,
)
from clearance.core.audit import AuditAction, build_audit_event
from clearance.core.rbac.decisions import Decision, DenyReason
from clearance.core.rbac.engine import AccessRequest
from clearance.core.rbac.resolver import Principal


def owned_handlers(logger):
    return [h for h in logger.handlers if getattr(h, "_clearance_owned", False)]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_console_logger(self):
        logger = configure_logging("debug")
        assert logger.name == "clearance"
        assert logger.level == logging.DEBUG
        handlers = owned_handlers(logger)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging("LOUD")

    def test_file_logging(self, tmp_path):
        log_dir = tmp_path / "logs"
        logger = configure_logging(log_dir=str(log_dir), file_logging=True, console_logging=False)
        logging.getLogger("clearance.core.rbac.snapshot").info("catalog published")
        for handler in logger.handlers:
            handler.flush()

        text = (log_dir / "clearance.log").read_text()
        assert "[INFO] [clearance.core.rbac.snapshot] catalog published" in text

    def test_reconfigure_replaces_handlers(self):
        configure_logging()
        logger = configure_logging("WARNING")
        assert len(owned_handlers(logger)) == 1
        assert logger.level == logging.WARNING

    def test_host_handlers_kept(self):
        logger = logging.getLogger("clearance")
        host = logging.NullHandler()
        logger.addHandler(host)
        try:
            configure_logging()
            configure_logging()
            assert host in logger.handlers
        finally:
            logger.removeHandler(host)

    def test_setup_from_settings(self):
        settings = SimpleNamespace(log_dir="/unused", log_level="ERROR", log_to_file=False)
        logger = setup_from_settings(settings)
        assert logger is logging.getLogger("clearance")
        assert logger.level == logging.ERROR

    def test_parse_level(self):
        assert parse_level("warning") == logging.WARNING


class TestLogAuditEvent:
    """Tests for log_audit_event."""

    def test_denial_logged_as_critical(self, caplog):
        event = build_audit_event(
            Principal("basic_user_1", subject_id="u-1"),
            AuditAction.AUTHORIZE,
            AccessRequest("hr.view"),
            Decision.deny(DenyReason.PERMISSION_NOT_GRANTED),
            request_id="req-9",
        )
        with caplog.at_level(logging.DEBUG, logger=AUDIT_LOGGER):
            log_audit_event(event)

        record = caplog.records[-1]
        assert record.name == AUDIT_LOGGER
        assert record.levelno == logging.CRITICAL
        assert record.getMessage() == (
            "authorize deny actor=basic_user_1 reason=permission_not_granted request_id=req-9"
        )
        assert record.audit_event["target"]["permission"] == "hr.view"

    def test_level_follows_severity(self, caplog):
        allow = build_audit_event("svc", AuditAction.AUTHORIZE, "t", Decision.allow())
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER):
            log_audit_event(allow)
        assert not caplog.records

        with caplog.at_level(logging.DEBUG, logger=AUDIT_LOGGER):
            log_audit_event(allow)
        assert caplog.records[-1].levelno == logging.DEBUG
        assert caplog.records[-1].getMessage() == "authorize allow actor=svc"

    def test_service_emits_denials(self, service, caplog):
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER):
            service.authorize_with_audit(Principal("basic_user_1"), AccessRequest("system.roles"))
        assert [r.levelno for r in caplog.records if r.name == AUDIT_LOGGER] == [logging.CRITICAL]

    def test_administrator_emits_changes(self, administrator, sysadmin, caplog):
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER):
            administrator.grant_permission(sysadmin, "basic_user_1", "hr.view")
        record = [r for r in caplog.records if r.name == AUDIT_LOGGER][-1]
        assert record.levelno == logging.INFO
        assert record.getMessage().startswith("grant_permission allow actor=system_administrator")
