"""MixRank firmographic lookup client."""

import sys

import requests

from .enrichment import EnrichmentProvider, normalize_company

MIXRANK_BASE_URL = 'https://api.mixrank.com/v3'


class MixRankClient(EnrichmentProvider):
    """Company search by domain or, failing that, by company name.

    `enrich()` takes {"domain": ...} or {"company": ...}; the first search
    hit is returned.
    """

    name = 'mixrank'

    def __init__(self, api_key=None, timeout=15, base_url=MIXRANK_BASE_URL):
        super().__init__(api_key=api_key, timeout=timeout)
        self.base_url = base_url

    @classmethod
    def from_settings(cls, settings):
        return cls(api_key=settings.mixrank_key, timeout=settings.request_timeout)

    def _fetch(self, query):
        if query.get('domain'):
            params = {'domain': query['domain']}
        elif query.get('company'):
            params = {'name': query['company']}
        else:
            print("[mixrank] No domain or company name to search", file=sys.stderr)
            return None

        resp = requests.get(
            f'{self.base_url}/companies/search',
            params=params,
            headers={'Authorization': f'Bearer {self.api_key}'},
            timeout=self.timeout,
        )
        data = self._read_json(resp)
        if not data:
            return None

        results = data.get('results')
        if not isinstance(results, list) or not results:
            return None
        return results[0]


def normalize_firmographics(raw):
    return normalize_company(raw, 'mixrank')
