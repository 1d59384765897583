"""Tests for the AuditLogger and related utilities."""

from __future__ import annotations

import json

import pytest

from wellinsight.core.audit.logger import AuditEvent, AuditLogger, hash_user_id
from wellinsight.core.storage.database import HealthDatabase


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def audit_db():
    """In-memory database with V2 schema for audit tests."""
    db = HealthDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def audit(audit_db):
    return AuditLogger(audit_db)


# ---------------------------------------------------------------------------
# hash_user_id tests
# ---------------------------------------------------------------------------

class TestHashUserId:
    def test_sha256_hex(self):
        h = hash_user_id("user-1")
        assert isinstance(h, str)
        assert len(h) == 64

    def test_deterministic(self):
        assert hash_user_id("user-1") == hash_user_id("user-1")

    def test_distinct_users_distinct_hashes(self):
        assert hash_user_id("user-1") != hash_user_id("user-2")

    def test_empty_id(self):
        assert hash_user_id("") == ""


# ---------------------------------------------------------------------------
# AuditLogger tests
# ---------------------------------------------------------------------------

class TestLogEvent:
    def test_returns_event_id(self, audit):
        event_id = audit.log_event(AuditEvent(action="insights_read", tool_name="ai_insights"))
        assert event_id
        assert audit.count_events() == 1

    def test_metadata_stored_as_json(self, audit):
        audit.log_event(AuditEvent(action="trend_query", metadata={"period": 30}))
        event = audit.get_events()[0]
        assert json.loads(event["metadata_json"]) == {"period": 30}

    def test_empty_metadata_stored_as_null(self, audit):
        audit.log_event(AuditEvent(action="insights_read"))
        assert audit.get_events()[0]["metadata_json"] is None

    def test_write_failure_is_swallowed(self, audit, audit_db):
        audit_db.close()
        assert audit.log_event(AuditEvent(action="insights_read")) == ""


class TestLogToolCall:
    def test_user_id_is_hashed(self, audit):
        audit.log_tool_call("ai_insights", user_id="user-1", cache_status="hit", duration_ms=2.5)
        event = audit.get_events()[0]
        assert event["user_hash"] == hash_user_id("user-1")
        assert "user-1" not in json.dumps(event)
        assert event["cache_status"] == "hit"
        assert event["duration_ms"] == 2.5
        assert event["status"] == "success"

    def test_failure_recorded(self, audit):
        audit.log_tool_call(
            "ai_insights", user_id="u1", status="failure", error_type="InsightsGenerationError"
        )
        event = audit.get_events()[0]
        assert event["status"] == "failure"
        assert event["error_type"] == "InsightsGenerationError"


class TestQueries:
    def test_filter_by_action(self, audit):
        audit.log_tool_call("ai_insights", user_id="u1")
        audit.log_tool_call("refresh_insights", user_id="u1", action="cache_clear")
        assert audit.count_events(action="cache_clear") == 1
        events = audit.get_events(action="insights_read")
        assert [e["tool_name"] for e in events] == ["ai_insights"]

    def test_filter_by_user(self, audit):
        audit.log_tool_call("ai_insights", user_id="u1")
        audit.log_tool_call("ai_insights", user_id="u2")
        assert len(audit.get_events(user_id="u2")) == 1

    def test_filter_by_since(self, audit):
        audit.log_tool_call("ai_insights", user_id="u1")
        assert audit.count_events(since="2000-01-01T00:00:00+00:00") == 1
        assert audit.count_events(since="2999-01-01T00:00:00+00:00") == 0

    def test_limit(self, audit):
        for _ in range(5):
            audit.log_tool_call("ai_insights", user_id="u1")
        assert len(audit.get_events(limit=3)) == 3

    def test_count_by_user(self, audit):
        audit.log_tool_call("ai_insights", user_id="u1")
        audit.log_tool_call("health_trends", user_id="u1", action="trend_query")
        audit.log_tool_call("ai_insights", user_id="u2")
        assert audit.count_events(user_id="u1") == 2
        assert audit.count_events(user_id="u1", action="trend_query") == 1
