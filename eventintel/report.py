"""Event report — lead quality and spend summary for one event."""

from collections import Counter

from .expenses import cost_per_lead_cents


def build_event_report(db, event_id, user_id=None, top_n=5):
    attendees = db.list_attendees(event_id, user_id)
    scores = db.list_lead_scores(event_id, user_id)
    expenses = db.get_event_expenses(event_id, user_id)

    key_leads = [s for s in scores if s['is_key_lead']]
    average = round(sum(s['score'] for s in scores) / len(scores), 1) if scores else None

    companies = Counter(a['company'].strip() for a in attendees if a.get('company') and a['company'].strip())
    total_cents = expenses['total_cents'] if expenses else 0
    cpl = cost_per_lead_cents(total_cents, len(attendees))

    return {
        'event_id': event_id,
        'attendee_count': len(attendees),
        'scored_count': len(scores),
        'key_lead_count': len(key_leads),
        'average_score': average,
        'total_spent': total_cents / 100,
        'cost_per_lead': cpl / 100,
        'expenses_pulled_at': expenses['pulled_at'] if expenses else None,
        'top_companies': [name for name, _ in companies.most_common(top_n)],
        'key_leads': [
            {
                'attendee_id': s['attendee_id'],
                'name': s['name'],
                'company': s['company'],
                'title': s['title'],
                'score': s['score'],
                'reason': s['reason'],
                'notified_at': s['notified_at'],
            }
            for s in key_leads
        ],
    }
