"""SixtyFour person/company enrichment client."""

import requests

from .enrichment import EnrichmentProvider, normalize_company

SIXTYFOUR_BASE_URL = 'https://api.sixtyfour.ai'


class SixtyFourClient(EnrichmentProvider):
    """Looks up a person by name + email (+ company) and returns the raw lead record."""

    name = 'sixtyfour'

    def __init__(self, api_key=None, timeout=15, base_url=SIXTYFOUR_BASE_URL):
        super().__init__(api_key=api_key, timeout=timeout)
        self.base_url = base_url

    @classmethod
    def from_settings(cls, settings):
        return cls(api_key=settings.sixtyfour_key, timeout=settings.request_timeout)

    def _fetch(self, query):
        payload = {
            'name': query.get('name'),
            'email': query.get('email'),
        }
        if query.get('company'):
            payload['company'] = query['company']

        resp = requests.post(
            f'{self.base_url}/enrich/lead',
            json=payload,
            headers={
                'x-api-key': self.api_key,
                'Content-Type': 'application/json',
            },
            timeout=self.timeout,
        )
        data = self._read_json(resp)
        return data or None


def normalize_person(raw):
    """Convert a SixtyFour lead record to the internal person format.

    Every field is optional; an empty or non-dict payload yields None.
    """
    if not isinstance(raw, dict) or not raw:
        return None
    return {
        'title': raw.get('title') or raw.get('job_title') or None,
        'linkedin_url': raw.get('linkedin_url') or raw.get('linkedin') or None,
        'twitter_url': raw.get('twitter_url') or raw.get('twitter') or None,
        'company': normalize_company(raw.get('company'), 'sixtyfour'),
        'source': 'sixtyfour',
    }
