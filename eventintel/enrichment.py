"""Shared plumbing for third-party enrichment providers.

Every provider follows the same contract: a missing credential, a timeout,
a network error or a non-2xx response means "no data" (None) and one log
line. Nothing here raises to the caller.
"""

import re
import sys

import requests

PERSONAL_DOMAINS = frozenset([
    'gmail.com', 'yahoo.com', 'hotmail.com', 'outlook.com',
])


def email_domain(email):
    """Return the lowercased domain part of an email, or '' if there is none."""
    if not email or '@' not in email:
        return ''
    return email.rsplit('@', 1)[1].strip().lower()


def is_personal_domain(domain, personal_domains=None):
    domains = personal_domains if personal_domains is not None else PERSONAL_DOMAINS
    return (domain or '').lower() in {d.lower() for d in domains}


def parse_count(value):
    """Parse an employee count from ints, floats or strings like '1,200', '500+' or '51-200'."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = re.search(r'\d[\d,]*', str(value))
    if not match:
        return None
    try:
        return int(match.group(0).replace(',', ''))
    except ValueError:
        return None


def normalize_company(raw, source):
    """Convert a provider company dict to the internal company format."""
    if not isinstance(raw, dict) or not raw:
        return None
    employees = raw.get('employee_count')
    if employees is None:
        employees = raw.get('employees')
    if employees is None:
        employees = raw.get('num_employees') or raw.get('size')
    return {
        'name': raw.get('name') or raw.get('company_name') or None,
        'domain': raw.get('domain') or raw.get('website') or None,
        'employee_count': parse_count(employees),
        'industry': raw.get('industry') or None,
        'revenue': raw.get('revenue') or raw.get('annual_revenue') or None,
        'funding': raw.get('funding') or raw.get('total_funding') or None,
        'source': source,
    }


class EnrichmentProvider:
    """Base class for enrichment adapters.

    Subclasses set `name` and implement `_fetch(query)` returning the raw
    JSON document (or None). `enrich()` wraps it with the credential check
    and error handling.
    """

    name = 'provider'

    def __init__(self, api_key=None, timeout=15):
        self.api_key = api_key
        self.timeout = timeout

    @property
    def configured(self):
        return bool(self.api_key)

    def enrich(self, query):
        """Return the provider's raw record for `query`, or None."""
        if not self.configured:
            print(f"[{self.name}] API key not configured, skipping", file=sys.stderr)
            return None
        try:
            return self._fetch(query)
        except requests.exceptions.Timeout:
            print(f"[{self.name}] Request timed out", file=sys.stderr)
            return None
        except requests.exceptions.RequestException as e:
            print(f"[{self.name}] Request failed: {e}", file=sys.stderr)
            return None
        except ValueError as e:
            print(f"[{self.name}] Invalid JSON response: {e}", file=sys.stderr)
            return None

    def _fetch(self, query):
        raise NotImplementedError

    def _read_json(self, resp):
        """Return the JSON body of a 2xx response, else log and return None."""
        if not 200 <= resp.status_code < 300:
            print(f"[{self.name}] API returned {resp.status_code}: {resp.text[:200]}", file=sys.stderr)
            return None
        data = resp.json()
        if data is not None and not isinstance(data, dict):
            print(f"[{self.name}] Unexpected response body type: {type(data).__name__}", file=sys.stderr)
            return None
        return data
