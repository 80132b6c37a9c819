"""Notification dispatcher — alerts the sales channel about key leads.

Always re-reads attendee, enrichment and score from storage before sending,
so a stale caller can't notify on an outdated score.
"""

import sqlite3
import sys
from datetime import datetime, timezone

from .errors import AttendeeNotFound
from .mixrank_client import normalize_firmographics
from .enrichment import normalize_company
from .sixtyfour_client import normalize_person


class NotificationDispatcher:
    def __init__(self, db, relay, settings):
        self.db = db
        self.relay = relay
        self.settings = settings

    def send(self, attendee_id, force=False):
        """
        Send a key-lead alert for one attendee.

        Returns {"success": True, "sent": bool, ...}. Not being a key lead,
        or having been notified inside the cooldown window, is a skip rather
        than an error. Relay failures still log an attempt row with a null
        reference. Raises AttendeeNotFound for unknown ids.
        """
        attendee = self.db.get_attendee(attendee_id)
        if attendee is None:
            raise AttendeeNotFound(attendee_id)

        lead_score = self.db.get_lead_score(attendee_id)
        if not lead_score or not lead_score.get('is_key_lead'):
            print(f"[notify] Attendee {attendee_id} is not a key lead, skipping", file=sys.stderr)
            return {'success': True, 'sent': False, 'skipped': 'not key lead'}

        if not force and self._recently_notified(lead_score):
            print(
                f"[notify] Attendee {attendee_id} already notified at {lead_score['notified_at']}, skipping",
                file=sys.stderr,
            )
            return {'success': True, 'sent': False, 'skipped': 'recently notified'}

        enrichment = self.db.get_enrichment(attendee_id)
        rep = None
        if lead_score.get('assigned_sales_rep_id'):
            rep = self.db.get_sales_rep(lead_score['assigned_sales_rep_id'])

        config = self.settings.notifications
        channel = config.get('channel', 'slack')
        destination = config.get('destination', '#sales')
        message = format_message(attendee, enrichment, lead_score, rep=rep,
                                 event_name=config.get('event_name', 'the event'))

        ref = self.relay.send_message(channel, destination, message)
        if ref:
            print(f"[notify] Alert sent for {attendee['name']} ({attendee_id}): {ref}", file=sys.stderr)
        else:
            print(f"[notify] Alert not delivered for {attendee_id}, logging attempt", file=sys.stderr)

        notification_id = None
        try:
            notification_id = self.db.insert_notification(
                attendee['id'], attendee.get('user_id'), channel, destination, message, pylon_ref=ref,
            )
            if ref:
                self.db.mark_notified(attendee['id'], ref)
        except sqlite3.Error as e:
            print(f"[notify] Failed to record notification for {attendee_id}: {e}", file=sys.stderr)

        return {
            'success': True,
            'sent': bool(ref),
            'notification_ref': ref,
            'notification_id': notification_id,
        }

    def _recently_notified(self, lead_score):
        notified_at = lead_score.get('notified_at')
        if not notified_at:
            return False
        cooldown = self.settings.notifications.get('cooldown_seconds', 0)
        if not cooldown:
            return False
        try:
            sent = datetime.fromisoformat(notified_at)
        except ValueError:
            return False
        if sent.tzinfo is None:
            sent = sent.replace(tzinfo=timezone.utc)
        return (datetime.now(timezone.utc) - sent).total_seconds() < cooldown


def company_view(enrichment):
    """Best available company intel: MixRank first, then the SixtyFour company sub-record."""
    if not enrichment:
        return None
    return (
        normalize_firmographics(enrichment.get('mixrank_json'))
        or normalize_company(enrichment.get('company_json'), 'sixtyfour')
    )


def format_message(attendee, enrichment, lead_score, rep=None, event_name='the event'):
    """Compose the sales alert. Optional fields are left out when unknown."""
    person = normalize_person((enrichment or {}).get('person_json')) or {}
    company = company_view(enrichment) or {}

    title = attendee.get('title') or person.get('title') or 'Not specified'
    company_name = attendee.get('company') or company.get('name') or 'Not specified'

    lines = [
        "🚀 *High-Value Event Lead Alert*",
        "",
        f"*{attendee.get('name', 'Unknown')}* just registered for {event_name}!",
        "",
        "*Details:*",
        f"• Title: {title}",
        f"• Company: {company_name}",
        f"• Email: {attendee.get('email', '')}",
        f"• Lead Score: {lead_score.get('score', 0)}/10",
        "",
        "*Why this lead matters:*",
        lead_score.get('reason') or '',
    ]

    intel = []
    if company.get('employee_count'):
        intel.append(f"• Size: {company['employee_count']} employees")
    if company.get('industry'):
        intel.append(f"• Industry: {company['industry']}")
    if company.get('revenue'):
        intel.append(f"• Revenue: {company['revenue']}")
    if person.get('linkedin_url'):
        intel.append(f"• LinkedIn: {person['linkedin_url']}")
    if intel:
        lines += ["", "*Company Intel:*"] + intel

    if rep:
        lines += ["", f"*Assigned to:* {rep['name']} ({rep['email']})"]

    lines += [
        "",
        "*Next Steps:*",
        "• Follow up within 24 hours",
        "• Personalize outreach using the company intel above",
    ]
    return "\n".join(lines)
