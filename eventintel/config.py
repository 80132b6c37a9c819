"""Config loader — reads config.yaml and environment variables.

config.yaml holds business tunables (scoring weights, keyword lists,
pagination caps). Credentials come from the environment. Both are bundled
into a Settings object that is passed to every client and service, so
nothing below this module reads os.environ directly.
"""

import copy
import os
import sys

import yaml

_config = None

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), '..', 'config.yaml')

DEFAULTS = {
    'scoring': {
        'key_lead_threshold': 8,
        'max_score': 10,
        'fallback_reason': 'Basic profile information',
        'keyword_match': 'substring',
        'seniority_tiers': [
            {'label': 'Senior leadership role', 'points': 5,
             'keywords': ['founder', 'co-founder', 'ceo', 'cto', 'cpo', 'vp']},
            {'label': 'Management role', 'points': 3,
             'keywords': ['director', 'head', 'lead']},
            {'label': 'Mid-level role', 'points': 2,
             'keywords': ['manager', 'principal', 'senior']},
        ],
        'company_size_tiers': [
            {'label': 'Large company (1000+ employees)', 'min_employees': 1000, 'points': 4},
            {'label': 'Medium company (100+ employees)', 'min_employees': 100, 'points': 3},
            {'label': 'Growing company (50+ employees)', 'min_employees': 50, 'points': 2},
        ],
        'target_industries': ['fintech', 'saas', 'technology', 'software', 'ai',
                              'machine learning', 'data'],
        'target_industry_points': 2,
        'professional_email_points': 1,
        'social_profile_points': 1,
        'revenue_signal_points': 1,
        'personal_domains': ['gmail.com', 'yahoo.com', 'hotmail.com', 'outlook.com'],
    },
    'enrichment': {
        'preserve_on_failure': True,
        'timeout_seconds': 15,
    },
    'notifications': {
        'channel': 'slack',
        'destination': '#sales',
        'event_name': 'the event',
        'cooldown_seconds': 86400,
    },
    'expenses': {
        'keywords': ['event', 'conference', 'meetup', 'hackathon', 'catering',
                     'venue', 'av equipment', 'marketing'],
        'page_size': 100,
        'max_items': 1000,
        'max_pages': 50,
    },
    'registration': {
        'default_event_id': 'agentjam-2025',
        'require_caller_identity': False,
    },
}


def load_config(path=None):
    """Read a YAML config file and merge it over the built-in defaults."""
    path = path or DEFAULT_CONFIG_PATH
    loaded = {}
    if os.path.exists(path):
        with open(path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
    else:
        print(f"[config] {path} not found, using defaults", file=sys.stderr)

    merged = copy.deepcopy(DEFAULTS)
    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def get_config():
    """Load and cache the YAML config file."""
    global _config
    if _config is not None:
        return _config

    _config = load_config(os.getenv('CONFIG_PATH'))
    return _config


class Settings:
    """Credentials plus business config, injected into clients and services."""

    def __init__(self, sixtyfour_key=None, mixrank_key=None, pylon_token=None,
                 brex_token=None, database_path=':memory:', webhook_secret=None,
                 config=None):
        self.sixtyfour_key = sixtyfour_key
        self.mixrank_key = mixrank_key
        self.pylon_token = pylon_token
        self.brex_token = brex_token
        self.database_path = database_path
        self.webhook_secret = webhook_secret
        self.config = config if config is not None else copy.deepcopy(DEFAULTS)

    @classmethod
    def from_env(cls, config=None):
        return cls(
            sixtyfour_key=os.getenv('SIXTYFOUR_KEY'),
            mixrank_key=os.getenv('MIXRANK_API_KEY'),
            pylon_token=os.getenv('PYLON_TOKEN'),
            brex_token=os.getenv('BREX_TOKEN'),
            database_path=os.getenv(
                'DATABASE_PATH',
                os.path.join(os.path.dirname(__file__), '..', 'eventintel.db'),
            ),
            webhook_secret=os.getenv('WEBHOOK_SECRET') or None,
            config=config if config is not None else get_config(),
        )

    def section(self, name):
        return self.config.get(name) or {}

    @property
    def scoring(self):
        return self.section('scoring')

    @property
    def enrichment(self):
        return self.section('enrichment')

    @property
    def notifications(self):
        return self.section('notifications')

    @property
    def expenses(self):
        return self.section('expenses')

    @property
    def registration(self):
        return self.section('registration')

    @property
    def request_timeout(self):
        return self.enrichment.get('timeout_seconds', 15)
