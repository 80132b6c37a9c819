"""Expense aggregator — event spend from Brex card transactions, and cost per lead."""

import sys
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def event_keywords(event_id, base_keywords):
    keywords = [event_id] if event_id else []
    keywords += list(base_keywords or [])
    return [k.lower() for k in keywords if k]


def is_event_transaction(txn, keywords):
    """Keyword match against memo, description and merchant name."""
    search_text = ' '.join(
        str(txn.get(field) or '') for field in ('memo', 'description', 'merchant_name')
    ).lower()
    return any(keyword in search_text for keyword in keywords)


def amount_to_cents(txn):
    """Absolute transaction amount in integer cents. Unparseable amounts count as 0."""
    amount = txn.get('amount')
    if isinstance(amount, dict):
        amount = amount.get('amount')
    if amount is None:
        return 0
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return 0
    return int((abs(value) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def cost_per_lead_cents(total_cents, attendee_count):
    if not attendee_count:
        return 0
    return int((Decimal(total_cents) / Decimal(attendee_count)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class ExpenseAggregator:
    def __init__(self, db, transactions_client, settings):
        self.db = db
        self.client = transactions_client
        self.settings = settings

    def pull(self, event_id, user_id=None, start_date=None, end_date=None):
        """
        Fetch transactions, keep the event-related ones, store the summary.

        Returns {success, event_id, total_spent, total_cents, transaction_count,
        transactions_scanned, attendee_count, cost_per_lead, cost_per_lead_cents,
        complete}. Amounts in total_spent / cost_per_lead are major units.
        """
        if not self.client.configured:
            print("[expenses] Brex token not configured", file=sys.stderr)
            return {'success': False, 'error': 'Brex token not configured'}

        config = self.settings.expenses
        print(f"[expenses] Pulling Brex expenses for event {event_id}", file=sys.stderr)
        transactions, complete = self.client.fetch_transactions(
            start_date=start_date,
            end_date=end_date,
            page_size=config.get('page_size', 100),
            max_items=config.get('max_items', 1000),
            max_pages=config.get('max_pages', 50),
        )

        keywords = event_keywords(event_id, config.get('keywords'))
        matched = [txn for txn in transactions if is_event_transaction(txn, keywords)]
        total_cents = sum(amount_to_cents(txn) for txn in matched)
        print(
            f"[expenses] {len(matched)} of {len(transactions)} transactions are event-related "
            f"(${total_cents / 100:,.2f})",
            file=sys.stderr,
        )

        self.db.upsert_event_expenses(
            event_id, user_id, total_cents, len(matched),
            raw={
                'transactions': matched,
                'fetched_at': datetime.now(timezone.utc).isoformat(),
                'total_transactions_scanned': len(transactions),
                'complete': complete,
            },
        )

        attendee_count = self.db.count_attendees(event_id, user_id)
        cpl_cents = cost_per_lead_cents(total_cents, attendee_count)

        return {
            'success': True,
            'event_id': event_id,
            'total_spent': total_cents / 100,
            'total_cents': total_cents,
            'transaction_count': len(matched),
            'transactions_scanned': len(transactions),
            'attendee_count': attendee_count,
            'cost_per_lead': cpl_cents / 100,
            'cost_per_lead_cents': cpl_cents,
            'complete': complete,
        }
