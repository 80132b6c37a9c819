"""Tests for the notification dispatcher."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from eventintel.errors import AttendeeNotFound
from eventintel.notify import NotificationDispatcher, format_message
from eventintel.pylon_client import PylonClient


class TestNotificationDispatcher:
    def test_unknown_attendee(self, services):
        with pytest.raises(AttendeeNotFound):
            services.dispatcher.send("missing")

    def test_not_key_lead_is_a_noop(self, services, make_attendee, db, relay):
        attendee = make_attendee()
        db.upsert_lead_score(attendee["id"], "user-1", 5, "Senior leadership role", False)

        result = services.dispatcher.send(attendee["id"])

        assert result == {"success": True, "sent": False, "skipped": "not key lead"}
        assert db.list_notifications(attendee["id"]) == []
        assert relay.sent == []

    def test_unscored_attendee_is_a_noop(self, services, make_attendee, db):
        attendee = make_attendee()
        result = services.dispatcher.send(attendee["id"])
        assert result["sent"] is False
        assert db.list_notifications(attendee["id"]) == []

    def test_key_lead_sent_and_logged(self, services, make_attendee, db, relay):
        attendee = make_attendee()
        db.upsert_lead_score(attendee["id"], "user-1", 9, "Senior leadership role", True)

        result = services.dispatcher.send(attendee["id"])

        assert result["success"] is True
        assert result["sent"] is True
        assert result["notification_ref"] == "msg_123"
        assert relay.sent[0]["channel"] == "slack"
        assert relay.sent[0]["destination"] == "#sales"

        rows = db.list_notifications(attendee["id"])
        assert len(rows) == 1
        assert rows[0]["pylon_ref"] == "msg_123"
        assert rows[0]["user_id"] == "user-1"

        lead_score = db.get_lead_score(attendee["id"])
        assert lead_score["notification_ref"] == "msg_123"
        assert lead_score["notified_at"] is not None
        assert lead_score["score"] == 9
        assert lead_score["reason"] == "Senior leadership role"

    def test_relay_failure_logs_attempt_without_marking(self, services, make_attendee, db, relay):
        relay.ref = None
        attendee = make_attendee()
        db.upsert_lead_score(attendee["id"], "user-1", 9, "x", True)

        result = services.dispatcher.send(attendee["id"])

        assert result["success"] is True
        assert result["sent"] is False
        rows = db.list_notifications(attendee["id"])
        assert len(rows) == 1
        assert rows[0]["pylon_ref"] is None
        assert db.get_lead_score(attendee["id"])["notified_at"] is None

    def test_cooldown_blocks_repeat_unless_forced(self, services, make_attendee, db, relay):
        attendee = make_attendee()
        db.upsert_lead_score(attendee["id"], "user-1", 9, "x", True)

        services.dispatcher.send(attendee["id"])
        repeat = services.dispatcher.send(attendee["id"])
        forced = services.dispatcher.send(attendee["id"], force=True)

        assert repeat == {"success": True, "sent": False, "skipped": "recently notified"}
        assert forced["sent"] is True
        assert len(db.list_notifications(attendee["id"])) == 2
        assert len(relay.sent) == 2

    def test_cooldown_expires(self, services, make_attendee, db):
        attendee = make_attendee()
        db.upsert_lead_score(attendee["id"], "user-1", 9, "x", True)
        old = (datetime.now(timezone.utc) - timedelta(days=2)).isoformat()
        db.mark_notified(attendee["id"], "old_ref", notified_at=old)

        result = services.dispatcher.send(attendee["id"])
        assert result["sent"] is True

    def test_zero_cooldown_allows_duplicates(self, services, settings, make_attendee, db):
        settings.config["notifications"]["cooldown_seconds"] = 0
        attendee = make_attendee()
        db.upsert_lead_score(attendee["id"], "user-1", 9, "x", True)

        services.dispatcher.send(attendee["id"])
        services.dispatcher.send(attendee["id"])
        assert len(db.list_notifications(attendee["id"])) == 2

    def test_uses_fresh_score(self, services, make_attendee, db, relay):
        attendee = make_attendee()
        db.upsert_lead_score(attendee["id"], "user-1", 9, "x", True)
        db.upsert_lead_score(attendee["id"], "user-1", 4, "y", False)

        result = services.dispatcher.send(attendee["id"])
        assert result["skipped"] == "not key lead"
        assert relay.sent == []

    @patch("eventintel.pylon_client.requests.post")
    def test_relay_array_body_still_logs_attempt(self, mock_post, settings, make_attendee, db):
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = ["queued"]
        mock_post.return_value = response
        dispatcher = NotificationDispatcher(db, PylonClient(token="py_test"), settings)
        attendee = make_attendee()
        db.upsert_lead_score(attendee["id"], "user-1", 9, "x", True)

        result = dispatcher.send(attendee["id"])

        assert result["sent"] is True
        rows = db.list_notifications(attendee["id"])
        assert len(rows) == 1
        assert rows[0]["pylon_ref"] == "delivered"


class TestFormatMessage:
    ATTENDEE = {"name": "Ada Lovelace", "email": "ada@acme.com", "title": None, "company": None}
    SCORE = {"score": 9, "reason": "Senior leadership role, Target industry"}

    def test_full_message(self):
        enrichment = {
            "person_json": {"title": "CTO", "linkedin_url": "https://linkedin.com/in/ada"},
            "company_json": None,
            "mixrank_json": {"name": "Acme", "employee_count": 1200, "industry": "Fintech",
                             "revenue": "$50M"},
        }
        message = format_message(self.ATTENDEE, enrichment, self.SCORE,
                                 rep={"name": "Sam", "email": "sam@x.com"}, event_name="AgentJam")

        assert "*Ada Lovelace* just registered for AgentJam!" in message
        assert "• Title: CTO" in message
        assert "• Company: Acme" in message
        assert "• Lead Score: 9/10" in message
        assert "Senior leadership role, Target industry" in message
        assert "• Size: 1200 employees" in message
        assert "• Industry: Fintech" in message
        assert "• Revenue: $50M" in message
        assert "Assigned to:* Sam (sam@x.com)" in message

    def test_missing_intel_is_omitted(self):
        message = format_message(self.ATTENDEE, None, self.SCORE)
        assert "• Title: Not specified" in message
        assert "• Company: Not specified" in message
        assert "Company Intel" not in message
        assert "Size:" not in message
        assert "Assigned to" not in message

    def test_attendee_fields_take_precedence(self):
        attendee = dict(self.ATTENDEE, title="CEO", company="Acme Corp")
        enrichment = {"person_json": {"title": "CTO"}, "company_json": {"name": "Other"},
                      "mixrank_json": None}
        message = format_message(attendee, enrichment, self.SCORE)
        assert "• Title: CEO" in message
        assert "• Company: Acme Corp" in message
