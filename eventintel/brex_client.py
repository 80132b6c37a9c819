"""Brex card-transactions client with bounded cursor pagination."""

import sys

import requests

BREX_BASE_URL = 'https://platform.brexapis.com/v2'


class BrexClient:
    def __init__(self, token=None, timeout=15, base_url=BREX_BASE_URL):
        self.token = token
        self.timeout = timeout
        self.base_url = base_url

    @classmethod
    def from_settings(cls, settings):
        return cls(token=settings.brex_token, timeout=settings.request_timeout)

    @property
    def configured(self):
        return bool(self.token)

    def fetch_transactions(self, start_date=None, end_date=None, page_size=100,
                           max_items=1000, max_pages=50):
        """
        Page through /transactions until the cursor runs out.

        Stops early at `max_items` transactions or `max_pages` requests, so
        the loop terminates even if the API keeps returning a cursor. An
        error mid-way returns what was fetched so far.

        Returns (transactions, complete) where complete is False if a cap
        or an error stopped pagination.
        """
        if not self.token:
            print("[brex] Token not configured, no transactions fetched", file=sys.stderr)
            return [], False

        params = {'limit': page_size}
        if start_date:
            params['start_date'] = start_date
        if end_date:
            params['end_date'] = end_date

        transactions = []
        cursor = None
        pages = 0

        while True:
            if pages >= max_pages:
                print(f"[brex] Page limit ({max_pages}) reached, stopping pagination", file=sys.stderr)
                return transactions, False

            page_params = dict(params)
            if cursor:
                page_params['cursor'] = cursor

            try:
                resp = requests.get(
                    f'{self.base_url}/transactions',
                    params=page_params,
                    headers={
                        'Authorization': f'Bearer {self.token}',
                        'Content-Type': 'application/json',
                    },
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as e:
                print(f"[brex] Error fetching transactions: {e}", file=sys.stderr)
                return transactions, False

            pages += 1
            if not 200 <= resp.status_code < 300:
                print(f"[brex] API returned {resp.status_code}: {resp.text[:200]}", file=sys.stderr)
                return transactions, False

            try:
                data = resp.json() or {}
            except ValueError as e:
                print(f"[brex] Invalid JSON response: {e}", file=sys.stderr)
                return transactions, False

            if not isinstance(data, dict):
                print(f"[brex] Unexpected response body type: {type(data).__name__}", file=sys.stderr)
                return transactions, False

            items = data.get('items') or []
            if not isinstance(items, list):
                items = []
            transactions.extend(items)
            print(f"[brex] Fetched {len(items)} transactions (page {pages})", file=sys.stderr)

            if len(transactions) >= max_items:
                print(f"[brex] Transaction limit ({max_items}) reached, stopping pagination",
                      file=sys.stderr)
                return transactions[:max_items], False

            cursor = data.get('next_cursor')
            if not cursor:
                return transactions, True
