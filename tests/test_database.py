"""Tests for the SQLite storage layer."""
import sqlite3

import pytest

from eventintel.database import Database


class TestLeadScores:
    def test_rescore_keeps_notification_and_rep_fields(self, db, make_attendee):
        attendee = make_attendee()
        rep_id = db.add_sales_rep("user-1", "Sam", "sam@example.com")
        db.upsert_lead_score(attendee["id"], "user-1", 9, "first", True)
        db.mark_notified(attendee["id"], "msg_1")
        db.assign_sales_rep(attendee["id"], rep_id)

        db.upsert_lead_score(attendee["id"], "user-1", 6, "second", False)

        lead_score = db.get_lead_score(attendee["id"])
        assert lead_score["score"] == 6
        assert lead_score["reason"] == "second"
        assert lead_score["is_key_lead"] is False
        assert lead_score["notification_ref"] == "msg_1"
        assert lead_score["notified_at"] is not None
        assert lead_score["assigned_sales_rep_id"] == rep_id

    def test_score_out_of_range_rejected(self, db, make_attendee):
        attendee = make_attendee()
        with pytest.raises(sqlite3.IntegrityError):
            db.upsert_lead_score(attendee["id"], "user-1", 11, "too high", True)

    def test_list_lead_scores_filters_by_owner(self, db, make_attendee):
        mine = make_attendee()
        theirs = make_attendee(user_id="user-2")
        db.upsert_lead_score(mine["id"], "user-1", 3, "a", False)
        db.upsert_lead_score(theirs["id"], "user-2", 9, "b", True)

        assert [s["attendee_id"] for s in db.list_lead_scores("agentjam-2025", "user-1")] == [mine["id"]]
        theirs_only = db.list_lead_scores("agentjam-2025", "user-2")
        assert [s["attendee_id"] for s in theirs_only] == [theirs["id"]]
        assert theirs_only[0]["name"] == "Ada Lovelace"
        assert db.list_lead_scores("agentjam-2025") == []

    def test_attendee_queries_scoped_to_owner(self, db, make_attendee):
        make_attendee()
        make_attendee(user_id="user-2")
        anonymous = make_attendee(user_id=None)

        assert db.count_attendees("agentjam-2025", "user-1") == 1
        assert db.count_attendees("agentjam-2025") == 1
        assert [a["id"] for a in db.list_attendees("agentjam-2025")] == [anonymous["id"]]


class TestEnrichment:
    def test_upsert_replaces_blobs(self, db, make_attendee):
        attendee = make_attendee()
        db.upsert_enrichment(attendee["id"], "user-1", {"title": "CTO"}, None, {"name": "Acme"})
        db.upsert_enrichment(attendee["id"], "user-1", None, {"name": "Acme"}, None)

        enrichment = db.get_enrichment(attendee["id"])
        assert enrichment["person_json"] is None
        assert enrichment["company_json"] == {"name": "Acme"}
        assert enrichment["mixrank_json"] is None

    def test_missing_enrichment(self, db):
        assert db.get_enrichment("nobody") is None


class TestEventExpenses:
    def test_one_summary_per_event_and_owner(self, db):
        db.upsert_event_expenses("ev", "user-1", 100, 1, {"transactions": []})
        db.upsert_event_expenses("ev", "user-1", 250, 2, {"transactions": []})
        db.upsert_event_expenses("ev", None, 999, 9, None)

        assert db.get_event_expenses("ev", "user-1")["total_cents"] == 250
        assert db.get_event_expenses("ev")["total_cents"] == 999
        assert db.get_event_expenses("other") is None


class TestSalesReps:
    def test_least_loaded_first(self, db, make_attendee):
        first = db.add_sales_rep("user-1", "First", "first@example.com")
        second = db.add_sales_rep("user-1", "Second", "second@example.com")
        attendee = make_attendee()
        db.upsert_lead_score(attendee["id"], "user-1", 9, "x", True)
        db.assign_sales_rep(attendee["id"], first)

        reps = db.list_sales_reps("user-1")
        assert [r["id"] for r in reps] == [second, first]
        assert reps[1]["assigned_count"] == 1

    def test_active_only(self, db):
        rep_id = db.add_sales_rep("user-1", "Sam", "sam@example.com")
        db.set_sales_rep_active(rep_id, False)

        assert db.list_sales_reps("user-1", active_only=True) == []
        assert db.get_sales_rep(rep_id)["active"] is False

    def test_scoped_to_owner(self, db):
        db.add_sales_rep("user-1", "Sam", "sam@example.com")
        db.add_sales_rep(None, "Shared", "shared@example.com")

        assert [r["name"] for r in db.list_sales_reps("user-1")] == ["Sam"]
        assert [r["name"] for r in db.list_sales_reps(None)] == ["Shared"]


class TestFileDatabase:
    def test_persists_across_connections(self, tmp_path):
        path = str(tmp_path / "events.db")
        first = Database(path)
        first.insert_attendee({
            "id": "a1", "event_id": "ev", "registration_id": "reg_1",
            "name": "Ada", "email": "ada@acme.com",
        })
        first.close()

        second = Database(path)
        assert second.get_attendee("a1")["name"] == "Ada"
        assert second.count_attendees("ev") == 1
        second.close()
