"""Registration intake — validate a webhook payload, store the attendee, kick off enrichment."""

import sys
import threading
import time
import uuid
from datetime import datetime, timezone

from .errors import ValidationError

OPTIONAL_FIELDS = ('company', 'title', 'event_id', 'registration_id', 'timestamp')


def validate_registration(payload):
    """Return a cleaned payload dict, or raise ValidationError."""
    if not isinstance(payload, dict):
        raise ValidationError("Registration payload must be a JSON object")

    name = str(payload.get('name') or '').strip()
    email = str(payload.get('email') or '').strip()
    missing = [field for field, value in (('name', name), ('email', email)) if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {' and '.join(missing)}")
    if '@' not in email:
        raise ValidationError(f"Invalid email address: {email}")

    cleaned = {'name': name, 'email': email}
    for field in OPTIONAL_FIELDS:
        value = payload.get(field)
        if value is not None:
            value = str(value).strip() or None
        cleaned[field] = value
    return cleaned


def register_attendee(db, payload, user_id=None, trigger=None, wait=False,
                      default_event_id='agentjam-2025'):
    """
    Store a new attendee and trigger enrichment.

    trigger: callable(attendee_id) — usually EnrichmentOrchestrator.run.
    wait=False runs it in a daemon thread and returns immediately;
    wait=True runs it inline. Either way its failures are logged, never
    raised to the registration caller.

    Returns the new attendee id. Raises ValidationError before touching
    storage, and lets storage errors on the insert propagate.
    """
    data = validate_registration(payload)

    attendee = {
        'id': str(uuid.uuid4()),
        'event_id': data['event_id'] or default_event_id,
        'registration_id': data['registration_id'] or f"reg_{int(time.time() * 1000)}",
        'name': data['name'],
        'email': data['email'],
        'company': data['company'],
        'title': data['title'],
        'registered_at': data['timestamp'] or datetime.now(timezone.utc).isoformat(),
        'user_id': user_id,
    }
    attendee_id = db.insert_attendee(attendee)
    print(f"[intake] Attendee inserted: {attendee_id} ({attendee['email']})", file=sys.stderr)

    if trigger is not None:
        if wait:
            _run_trigger(trigger, attendee_id)
        else:
            thread = threading.Thread(target=_run_trigger, args=(trigger, attendee_id), daemon=True)
            thread.start()

    return attendee_id


def _run_trigger(trigger, attendee_id):
    """Run enrichment for one attendee; failures stay on this path."""
    try:
        result = trigger(attendee_id)
        if isinstance(result, dict):
            print(
                f"[intake] Enrichment finished for {attendee_id}: "
                f"score={result.get('score')} outcome={result.get('outcome')}",
                file=sys.stderr,
            )
    except Exception as e:
        print(f"[intake] Enrichment failed for {attendee_id}: {e}", file=sys.stderr)
