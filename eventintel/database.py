"""SQLite storage layer for attendees, enrichment, scores, notifications and expenses."""

import json
import sqlite3
import threading
import uuid
from datetime import datetime, timezone


def _now():
    return datetime.now(timezone.utc).isoformat()


def _dumps(value):
    return json.dumps(value) if value is not None else None


def _loads(value):
    return json.loads(value) if value is not None else None


class Database:
    """One shared SQLite connection, created on first use.

    Background enrichment threads share the connection, so every statement
    runs under a lock.
    """

    def __init__(self, path=':memory:'):
        self.path = path
        self._db = None
        self._lock = threading.RLock()

    def _get_db(self):
        """Return the shared connection (created once)."""
        if self._db is not None:
            return self._db

        self._db = sqlite3.connect(self.path, check_same_thread=False)
        self._db.row_factory = sqlite3.Row
        if self.path != ':memory:':
            self._db.execute("PRAGMA journal_mode=WAL")
        _init_tables(self._db)
        return self._db

    def _execute(self, sql, params=(), commit=False):
        with self._lock:
            db = self._get_db()
            cursor = db.execute(sql, params)
            if commit:
                db.commit()
            return cursor

    def _fetchone(self, sql, params=()):
        with self._lock:
            return self._get_db().execute(sql, params).fetchone()

    def _fetchall(self, sql, params=()):
        with self._lock:
            return self._get_db().execute(sql, params).fetchall()

    def close(self):
        with self._lock:
            if self._db is not None:
                self._db.close()
                self._db = None

    # ─── Attendees ───────────────────────────────────────────────────────────

    def insert_attendee(self, attendee):
        """Insert a new attendee row. Expects id, event_id and registration_id set."""
        self._execute("""
            INSERT INTO attendees
                (id, event_id, registration_id, name, email, company, title,
                 registered_at, user_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            attendee['id'],
            attendee['event_id'],
            attendee['registration_id'],
            attendee['name'],
            attendee['email'],
            attendee.get('company'),
            attendee.get('title'),
            attendee.get('registered_at') or _now(),
            attendee.get('user_id'),
        ), commit=True)
        return attendee['id']

    def get_attendee(self, attendee_id):
        row = self._fetchone("SELECT * FROM attendees WHERE id = ?", (str(attendee_id),))
        return dict(row) if row else None

    def list_attendees(self, event_id, user_id=None):
        """Attendees of one event owned by user_id. None selects rows with no owner."""
        rows = self._fetchall(
            "SELECT * FROM attendees WHERE event_id = ? AND user_id IS ? ORDER BY registered_at",
            (event_id, user_id),
        )
        return [dict(r) for r in rows]

    def count_attendees(self, event_id, user_id=None):
        row = self._fetchone(
            "SELECT COUNT(*) AS n FROM attendees WHERE event_id = ? AND user_id IS ?",
            (event_id, user_id),
        )
        return row['n']

    # ─── Enrichment ──────────────────────────────────────────────────────────

    def upsert_enrichment(self, attendee_id, user_id, person_json, company_json, mixrank_json):
        """Replace all three provider blobs for an attendee."""
        self._execute("""
            INSERT INTO enrichment
                (attendee_id, user_id, person_json, company_json, mixrank_json, enriched_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(attendee_id) DO UPDATE SET
                user_id      = excluded.user_id,
                person_json  = excluded.person_json,
                company_json = excluded.company_json,
                mixrank_json = excluded.mixrank_json,
                enriched_at  = excluded.enriched_at
        """, (
            str(attendee_id),
            user_id,
            _dumps(person_json),
            _dumps(company_json),
            _dumps(mixrank_json),
            _now(),
        ), commit=True)

    def get_enrichment(self, attendee_id):
        row = self._fetchone("SELECT * FROM enrichment WHERE attendee_id = ?", (str(attendee_id),))
        if row is None:
            return None
        return {
            'attendee_id': row['attendee_id'],
            'user_id': row['user_id'],
            'person_json': _loads(row['person_json']),
            'company_json': _loads(row['company_json']),
            'mixrank_json': _loads(row['mixrank_json']),
            'enriched_at': row['enriched_at'],
        }

    # ─── Lead scores ─────────────────────────────────────────────────────────

    def upsert_lead_score(self, attendee_id, user_id, score, reason, is_key_lead):
        """Insert or update the score. Notification and rep fields are left untouched."""
        self._execute("""
            INSERT INTO lead_scores
                (attendee_id, user_id, score, reason, is_key_lead, scored_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(attendee_id) DO UPDATE SET
                user_id     = excluded.user_id,
                score       = excluded.score,
                reason      = excluded.reason,
                is_key_lead = excluded.is_key_lead,
                scored_at   = excluded.scored_at
        """, (str(attendee_id), user_id, int(score), reason, int(bool(is_key_lead)), _now()),
            commit=True)

    def mark_notified(self, attendee_id, notification_ref, notified_at=None):
        self._execute("""
            UPDATE lead_scores SET notified_at = ?, notification_ref = ?
            WHERE attendee_id = ?
        """, (notified_at or _now(), notification_ref, str(attendee_id)), commit=True)

    def assign_sales_rep(self, attendee_id, sales_rep_id):
        self._execute(
            "UPDATE lead_scores SET assigned_sales_rep_id = ? WHERE attendee_id = ?",
            (sales_rep_id, str(attendee_id)), commit=True,
        )

    def get_lead_score(self, attendee_id):
        row = self._fetchone("SELECT * FROM lead_scores WHERE attendee_id = ?", (str(attendee_id),))
        if row is None:
            return None
        result = dict(row)
        result['is_key_lead'] = bool(result['is_key_lead'])
        return result

    def list_lead_scores(self, event_id, user_id=None):
        sql = """
            SELECT s.*, a.name, a.email, a.company, a.title
            FROM lead_scores s JOIN attendees a ON a.id = s.attendee_id
            WHERE a.event_id = ? AND a.user_id IS ?
            ORDER BY s.score DESC
        """
        rows = self._fetchall(sql, (event_id, user_id))
        results = []
        for row in rows:
            item = dict(row)
            item['is_key_lead'] = bool(item['is_key_lead'])
            results.append(item)
        return results

    # ─── Notifications ───────────────────────────────────────────────────────

    def insert_notification(self, attendee_id, user_id, channel, destination, message,
                            pylon_ref=None):
        notification_id = str(uuid.uuid4())
        self._execute("""
            INSERT INTO notifications
                (id, attendee_id, user_id, channel, destination, message, pylon_ref, sent_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (notification_id, attendee_id, user_id, channel, destination, message,
              pylon_ref, _now()), commit=True)
        return notification_id

    def list_notifications(self, attendee_id):
        rows = self._fetchall(
            "SELECT * FROM notifications WHERE attendee_id = ? ORDER BY sent_at",
            (str(attendee_id),),
        )
        return [dict(r) for r in rows]

    # ─── Event expenses ──────────────────────────────────────────────────────

    def upsert_event_expenses(self, event_id, user_id, total_cents, txn_count, raw):
        self._execute("""
            INSERT INTO event_expenses
                (id, event_id, user_id, total_cents, txn_count, raw, pulled_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(event_id, user_id) DO UPDATE SET
                total_cents = excluded.total_cents,
                txn_count   = excluded.txn_count,
                raw         = excluded.raw,
                pulled_at   = excluded.pulled_at
        """, (str(uuid.uuid4()), event_id, user_id or '', int(total_cents), int(txn_count),
              _dumps(raw), _now()), commit=True)
        return self.get_event_expenses(event_id, user_id)

    def get_event_expenses(self, event_id, user_id=None):
        row = self._fetchone(
            "SELECT * FROM event_expenses WHERE event_id = ? AND user_id = ?",
            (event_id, user_id or ''),
        )
        if row is None:
            return None
        result = dict(row)
        result['raw'] = _loads(row['raw'])
        return result

    # ─── Sales reps ──────────────────────────────────────────────────────────

    def add_sales_rep(self, user_id, name, email, active=True):
        rep_id = str(uuid.uuid4())
        self._execute("""
            INSERT INTO sales_reps (id, user_id, name, email, active, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (rep_id, user_id, name, email, int(bool(active)), _now()), commit=True)
        return rep_id

    def set_sales_rep_active(self, rep_id, active):
        self._execute("UPDATE sales_reps SET active = ? WHERE id = ?",
                      (int(bool(active)), rep_id), commit=True)

    def get_sales_rep(self, rep_id):
        row = self._fetchone("SELECT * FROM sales_reps WHERE id = ?", (rep_id,))
        if row is None:
            return None
        result = dict(row)
        result['active'] = bool(result['active'])
        return result

    def list_sales_reps(self, user_id, active_only=False):
        sql = """
            SELECT r.*, COUNT(s.attendee_id) AS assigned_count
            FROM sales_reps r
            LEFT JOIN lead_scores s ON s.assigned_sales_rep_id = r.id
            WHERE r.user_id IS ?
        """
        if active_only:
            sql += " AND r.active = 1"
        sql += " GROUP BY r.id ORDER BY assigned_count ASC, r.created_at ASC, r.rowid ASC"
        rows = self._fetchall(sql, (user_id,))
        results = []
        for row in rows:
            item = dict(row)
            item['active'] = bool(item['active'])
            results.append(item)
        return results


def _init_tables(db):
    db.executescript("""
        CREATE TABLE IF NOT EXISTS attendees (
            id              TEXT PRIMARY KEY,
            event_id        TEXT NOT NULL,
            registration_id TEXT,
            name            TEXT NOT NULL,
            email           TEXT NOT NULL,
            company         TEXT,
            title           TEXT,
            registered_at   TEXT,
            user_id         TEXT
        );
        CREATE INDEX IF NOT EXISTS idx_attendees_event ON attendees (event_id, user_id);

        CREATE TABLE IF NOT EXISTS enrichment (
            attendee_id  TEXT PRIMARY KEY REFERENCES attendees (id) ON DELETE CASCADE,
            user_id      TEXT,
            person_json  TEXT,
            company_json TEXT,
            mixrank_json TEXT,
            enriched_at  TEXT
        );

        CREATE TABLE IF NOT EXISTS lead_scores (
            attendee_id           TEXT PRIMARY KEY REFERENCES attendees (id) ON DELETE CASCADE,
            user_id               TEXT,
            score                 INTEGER NOT NULL CHECK (score BETWEEN 0 AND 10),
            reason                TEXT,
            is_key_lead           INTEGER NOT NULL DEFAULT 0,
            scored_at             TEXT,
            notified_at           TEXT,
            notification_ref      TEXT,
            assigned_sales_rep_id TEXT REFERENCES sales_reps (id)
        );

        CREATE TABLE IF NOT EXISTS notifications (
            id          TEXT PRIMARY KEY,
            attendee_id TEXT REFERENCES attendees (id) ON DELETE SET NULL,
            user_id     TEXT,
            channel     TEXT NOT NULL,
            destination TEXT NOT NULL,
            message     TEXT NOT NULL,
            pylon_ref   TEXT,
            sent_at     TEXT
        );
        CREATE INDEX IF NOT EXISTS idx_notifications_attendee ON notifications (attendee_id);

        CREATE TABLE IF NOT EXISTS event_expenses (
            id          TEXT PRIMARY KEY,
            event_id    TEXT NOT NULL,
            user_id     TEXT NOT NULL DEFAULT '',
            total_cents INTEGER NOT NULL,
            txn_count   INTEGER NOT NULL,
            raw         TEXT,
            pulled_at   TEXT,
            UNIQUE (event_id, user_id)
        );

        CREATE TABLE IF NOT EXISTS sales_reps (
            id         TEXT PRIMARY KEY,
            user_id    TEXT,
            name       TEXT NOT NULL,
            email      TEXT NOT NULL,
            active     INTEGER NOT NULL DEFAULT 1,
            created_at TEXT
        );
    """)
    db.commit()
