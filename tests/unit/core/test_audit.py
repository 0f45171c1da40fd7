"""Tests for audit event construction."""

import dataclasses
import uuid

import pytest

from clearance.core.audit import (
    AuditAction,
    AuditSeverity,
    build_audit_event,
    determine_severity,
    redact_sensitive,
)
from clearance.core.rbac.decisions import Decision, DenyReason
from clearance.core.rbac.engine import AccessRequest
from clearance.core.rbac.resolver import Principal


class TestBuildAuditEvent:
    """Test build_audit_event."""

    def test_deny_event(self, fixed_clock):
        decision = Decision.deny(DenyReason.SCOPE_INSUFFICIENT, "needs organization")
        event = build_audit_event(
            Principal("advance_user_1", "HR", subject_id="u-1"),
            AuditAction.AUTHORIZE,
            AccessRequest("documents.view_confidential", "any"),
            decision,
            clock=fixed_clock,
            id_factory=lambda: "evt-1",
        )
        assert event.event_id == "evt-1"
        assert event.occurred_at == fixed_clock()
        assert event.action == "authorize"
        assert event.actor["subject_id"] == "u-1"
        assert event.target["required_scope"] == "organization"
        assert event.verdict == "deny"
        assert event.reason == "scope_insufficient"
        assert event.details["decision_detail"] == "needs organization"
        assert not event.allowed

    def test_default_id_is_uuid(self):
        event = build_audit_event("actor", "custom_action", "target")
        uuid.UUID(event.event_id)
        assert event.actor == {"id": "actor"}
        assert event.action == "custom_action"

    def test_change_without_decision_is_allow(self):
        event = build_audit_event(Principal("system_administrator"), AuditAction.UPSERT_ROLE, {"id": "r"})
        assert event.allowed
        assert event.reason is None
        assert event.severity is AuditSeverity.INFO

    def test_pure(self, fixed_clock):
        """Test identical inputs give identical events."""
        kwargs = dict(clock=fixed_clock, id_factory=lambda: "evt-1")
        first = build_audit_event("a", AuditAction.ASSIGN_ROLE, "t", Decision.allow(), **kwargs)
        second = build_audit_event("a", AuditAction.ASSIGN_ROLE, "t", Decision.allow(), **kwargs)
        assert first == second

    def test_event_is_immutable(self):
        event = build_audit_event("a", AuditAction.AUTHORIZE, "t", details={"k": "v"})
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.verdict = "deny"
        with pytest.raises(TypeError):
            event.details["k"] = "changed"

    def test_nested_values_are_immutable(self):
        event = build_audit_event(
            "a",
            AuditAction.UPSERT_ROLE,
            {"role": {"name": "r", "tags": ["x"]}},
            details={"changes": [{"field": "priority"}]},
        )
        with pytest.raises(TypeError):
            event.target["role"]["name"] = "changed"
        with pytest.raises(TypeError):
            event.details["changes"][0]["field"] = "changed"
        assert event.target["role"]["tags"] == ("x",)
        with pytest.raises(AttributeError):
            event.target["role"]["tags"].append("y")

    def test_sensitive_details_redacted(self):
        event = build_audit_event(
            "a",
            AuditAction.ASSIGN_ROLE,
            {"subject_id": "u-1", "token": "abc"},
            details={"password": "hunter2", "nested": [{"api_key": "k", "note": "ok"}]},
        )
        assert event.target["token"] == "[REDACTED]"
        assert event.details["password"] == "[REDACTED]"
        assert event.details["nested"] == ({"api_key": "[REDACTED]", "note": "ok"},)

    def test_to_dict(self, fixed_clock):
        event = build_audit_event("a", AuditAction.AUTHORIZE, "t", Decision.allow(), clock=fixed_clock)
        data = event.to_dict()
        assert data["occurred_at"] == fixed_clock().isoformat()
        assert data["severity"] == "debug"
        assert data["verdict"] == "allow"

    def test_to_dict_returns_plain_containers(self):
        event = build_audit_event("a", AuditAction.UPSERT_ROLE, {"role": {"tags": ["x"]}})
        data = event.to_dict()
        assert data["target"] == {"role": {"tags": ["x"]}}
        assert type(data["target"]["role"]) is dict
        data["target"]["role"]["tags"].append("y")
        assert event.target["role"]["tags"] == ("x",)


class TestSeverity:
    """Test determine_severity."""

    def test_denials_are_critical(self):
        deny = Decision.deny(DenyReason.PERMISSION_NOT_GRANTED)
        assert determine_severity(deny, "authorize") is AuditSeverity.CRITICAL
        assert determine_severity(deny, "assign_role") is AuditSeverity.CRITICAL

    def test_authorize_allow_is_debug(self):
        assert determine_severity(Decision.allow(), "authorize") is AuditSeverity.DEBUG

    def test_change_allow_is_info(self):
        assert determine_severity(Decision.allow(), "grant_permission") is AuditSeverity.INFO
        assert determine_severity(None, "grant_permission") is AuditSeverity.INFO


class TestRedaction:
    """Test redact_sensitive."""

    def test_case_insensitive_keys(self):
        assert redact_sensitive({"Password": "x"}) == {"Password": "[REDACTED]"}

    def test_passes_scalars_through(self):
        assert redact_sensitive("plain") == "plain"
        assert redact_sensitive(3) == 3
