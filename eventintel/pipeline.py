"""Enrichment pipeline — enrich what we can, score what we have, notify if warranted.

Phases:
  1. load      — fetch the attendee (AttendeeNotFound if missing)
  2. enrich    — SixtyFour and MixRank in parallel; each may fail independently
  3. persist   — upsert enrichment blobs (best-effort)
  4. score     — pure scorer, cannot fail
  5. persist   — upsert lead score (best-effort)
  6. notify    — key leads only: assign a sales rep, then dispatch (best-effort)
"""

import sqlite3
import sys
from concurrent.futures import ThreadPoolExecutor

from .enrichment import email_domain, is_personal_domain, normalize_company
from .errors import AttendeeNotFound
from .mixrank_client import normalize_firmographics
from .scorer import score_lead, is_key_lead
from .sixtyfour_client import normalize_person


class EnrichmentOrchestrator:
    def __init__(self, db, person_provider, firmographic_provider, dispatcher, settings):
        self.db = db
        self.person_provider = person_provider
        self.firmographic_provider = firmographic_provider
        self.dispatcher = dispatcher
        self.settings = settings

    def run(self, attendee_id):
        """
        Full pipeline for a stored attendee.

        Returns a status summary:
          {success, attendee_id, score, is_key_lead, reason,
           enriched: {person, company, mixrank},
           persisted: {enrichment, score},
           notification: {...} | None, outcome}
        """
        # 1. Load
        attendee = self.db.get_attendee(attendee_id)
        if attendee is None:
            raise AttendeeNotFound(attendee_id)
        print(f"[pipeline] Processing attendee {attendee['name']} <{attendee['email']}>", file=sys.stderr)

        # 2. Enrich
        person_raw, firmographic_raw = self.fetch_enrichment(attendee)
        company_raw = person_raw.get('company') if isinstance(person_raw, dict) else None

        # 3. Persist enrichment
        stored = self._merge_with_previous(attendee['id'], person_raw, company_raw, firmographic_raw)
        enrichment_saved = True
        try:
            self.db.upsert_enrichment(
                attendee['id'], attendee.get('user_id'),
                stored['person_json'], stored['company_json'], stored['mixrank_json'],
            )
        except sqlite3.Error as e:
            enrichment_saved = False
            print(f"[pipeline] Failed to store enrichment for {attendee['id']}: {e}", file=sys.stderr)

        # 4. Score from what was stored (which may include preserved data)
        score, reason, key_lead = self.score(
            stored['person_json'], stored['company_json'], stored['mixrank_json'], attendee,
        )
        print(
            f"[pipeline] Lead score for {attendee['name']}: {score}/10 "
            f"({'KEY LEAD' if key_lead else 'regular'}) — {reason}",
            file=sys.stderr,
        )

        # 5. Persist score
        score_saved = True
        try:
            self.db.upsert_lead_score(attendee['id'], attendee.get('user_id'), score, reason, key_lead)
        except sqlite3.Error as e:
            score_saved = False
            print(f"[pipeline] Failed to store lead score for {attendee['id']}: {e}", file=sys.stderr)

        # 6. Notify
        notification = None
        outcome = 'scored'
        if key_lead:
            if score_saved:
                self._assign_sales_rep(attendee)
            notification = self._notify(attendee['id'])
            if notification.get('sent'):
                outcome = 'notified'
            elif notification.get('skipped'):
                outcome = 'notify-skipped'
            else:
                outcome = 'notify-failed'

        return {
            'success': enrichment_saved and score_saved,
            'attendee_id': attendee['id'],
            'score': score,
            'is_key_lead': key_lead,
            'reason': reason,
            'enriched': {
                'person': person_raw is not None,
                'company': company_raw is not None,
                'mixrank': firmographic_raw is not None,
            },
            'persisted': {'enrichment': enrichment_saved, 'score': score_saved},
            'notification': notification,
            'outcome': outcome,
        }

    def preview(self, name, email, company=None, title=None):
        """Ad-hoc dry run: enrich and score inline data without persisting or notifying."""
        attendee = {'name': name, 'email': email, 'company': company, 'title': title}
        person_raw, firmographic_raw = self.fetch_enrichment(attendee)
        company_raw = person_raw.get('company') if isinstance(person_raw, dict) else None
        score, reason, key_lead = self.score(person_raw, company_raw, firmographic_raw, attendee)
        return {
            'success': True,
            'score': score,
            'is_key_lead': key_lead,
            'reason': reason,
            'enriched': {
                'person': person_raw is not None,
                'company': company_raw is not None,
                'mixrank': firmographic_raw is not None,
            },
        }

    def fetch_enrichment(self, attendee):
        """Call both providers concurrently. Returns (person_raw, firmographic_raw)."""
        person_query = {
            'name': attendee.get('name'),
            'email': attendee.get('email'),
            'company': attendee.get('company'),
        }
        firmographic_query = self.firmographic_query(attendee)

        with ThreadPoolExecutor(max_workers=2) as pool:
            person_future = pool.submit(self._safe_enrich, self.person_provider, person_query)
            firm_future = (
                pool.submit(self._safe_enrich, self.firmographic_provider, firmographic_query)
                if firmographic_query else None
            )
            person_raw = person_future.result()
            firmographic_raw = firm_future.result() if firm_future else None

        if firmographic_query is None:
            print("[pipeline] No usable domain or company name, skipped firmographic lookup",
                  file=sys.stderr)
        return person_raw, firmographic_raw

    def firmographic_query(self, attendee):
        """Domain lookup for work emails; company-name lookup for personal emails."""
        domain = email_domain(attendee.get('email'))
        personal = self.settings.scoring.get('personal_domains')
        if domain and not is_personal_domain(domain, personal):
            return {'domain': domain}
        if attendee.get('company'):
            return {'company': attendee['company']}
        return None

    def score(self, person_raw, company_raw, firmographic_raw, attendee):
        """Normalise provider payloads and run the scorer. Returns (score, reason, key_lead)."""
        person = normalize_person(person_raw)
        company = merge_company(
            normalize_firmographics(firmographic_raw),
            normalize_company(company_raw, 'sixtyfour'),
        )
        config = self.settings.scoring
        score, reason = score_lead(person, company, attendee, config)
        return score, reason, is_key_lead(score, config)

    def _safe_enrich(self, provider, query):
        # HTTP errors are handled inside enrich(); anything here is an adapter bug.
        try:
            return provider.enrich(query)
        except Exception as e:
            print(f"[pipeline] Provider '{getattr(provider, 'name', provider)}' failed: {e}",
                  file=sys.stderr)
            return None

    def _merge_with_previous(self, attendee_id, person_raw, company_raw, firmographic_raw):
        stored = {
            'person_json': person_raw,
            'company_json': company_raw,
            'mixrank_json': firmographic_raw,
        }
        if not self.settings.enrichment.get('preserve_on_failure', True):
            return stored

        try:
            previous = self.db.get_enrichment(attendee_id)
        except sqlite3.Error as e:
            print(f"[pipeline] Could not read previous enrichment for {attendee_id}: {e}", file=sys.stderr)
            previous = None
        if not previous:
            return stored

        if person_raw is None and previous.get('person_json') is not None:
            stored['person_json'] = previous['person_json']
            stored['company_json'] = previous.get('company_json')
            print(f"[pipeline] Keeping previous person data for {attendee_id}", file=sys.stderr)
        if firmographic_raw is None and previous.get('mixrank_json') is not None:
            stored['mixrank_json'] = previous['mixrank_json']
            print(f"[pipeline] Keeping previous firmographic data for {attendee_id}", file=sys.stderr)
        return stored

    def _assign_sales_rep(self, attendee):
        """Give an unassigned key lead to the owner's least-loaded active rep."""
        try:
            current = self.db.get_lead_score(attendee['id'])
            if current and current.get('assigned_sales_rep_id'):
                return current['assigned_sales_rep_id']
            reps = self.db.list_sales_reps(attendee.get('user_id'), active_only=True)
            if not reps:
                return None
            rep = reps[0]
            self.db.assign_sales_rep(attendee['id'], rep['id'])
            print(f"[pipeline] Assigned {attendee['id']} to sales rep {rep['name']}", file=sys.stderr)
            return rep['id']
        except sqlite3.Error as e:
            print(f"[pipeline] Sales rep assignment failed for {attendee['id']}: {e}", file=sys.stderr)
            return None

    def _notify(self, attendee_id):
        try:
            return self.dispatcher.send(attendee_id)
        except Exception as e:
            print(f"[pipeline] Notification failed for {attendee_id}: {e}", file=sys.stderr)
            return {'success': False, 'sent': False, 'error': str(e)}


def merge_company(primary, fallback):
    """Field-wise merge of two normalised company dicts; primary wins where set."""
    if not primary:
        return fallback
    if not fallback:
        return primary
    merged = dict(fallback)
    merged.update({k: v for k, v in primary.items() if v is not None})
    return merged
