"""Lead scorer — deterministic 0-10 score from person, company and attendee data.

Positive marking: a lead starts at 0 and each independent signal adds
points plus a short reason fragment.

Signals:
  1. Seniority            — highest matching title tier only (+5 / +3 / +2)
  2. Company size         — highest matching employee-count tier (+4 / +3 / +2)
  3. Target industry      — +2
  4. Professional email   — +1 (domain not on the personal-domain list)
  5. Social profile       — +1 (LinkedIn or Twitter URL on the person record)
  6. Revenue/funding data — +1

Final = min(max_score, total). Every input may be None and every field may
be missing. No I/O; weights come from the `scoring` config section.
"""

import re

from .config import DEFAULTS
from .enrichment import email_domain, is_personal_domain, parse_count


def score_lead(person, company, attendee, config=None):
    """Return (score, reason) for one attendee."""
    config = config if config is not None else DEFAULTS['scoring']
    person = person or {}
    company = company or person.get('company') or {}
    attendee = attendee or {}

    total = 0
    reasons = []

    # ── 1. Seniority ────────────────────────────────────────────────────
    title = person.get('title') or attendee.get('title') or ''
    tier = classify_seniority(title, config)
    if tier:
        total += tier.get('points', 0)
        reasons.append(tier['label'])

    # ── 2. Company size ─────────────────────────────────────────────────
    employees = parse_count(company.get('employee_count'))
    if employees is None:
        employees = parse_count(company.get('employees'))
    size_tier = classify_company_size(employees, config)
    if size_tier:
        total += size_tier.get('points', 0)
        reasons.append(size_tier['label'])

    # ── 3. Target industry ──────────────────────────────────────────────
    industry = company.get('industry') or ''
    if isinstance(industry, str) and any(
        _keyword_in(industry, kw, config) for kw in config.get('target_industries', [])
    ):
        total += config.get('target_industry_points', 2)
        reasons.append('Target industry')

    # ── 4. Professional email domain ────────────────────────────────────
    domain = email_domain(attendee.get('email'))
    if domain and not is_personal_domain(domain, config.get('personal_domains')):
        total += config.get('professional_email_points', 1)
        reasons.append('Professional email domain')

    # ── 5. Social verification ──────────────────────────────────────────
    if person.get('linkedin_url') or person.get('twitter_url'):
        total += config.get('social_profile_points', 1)
        reasons.append('Social profile verified')

    # ── 6. Revenue / funding signal ─────────────────────────────────────
    if company.get('revenue') or company.get('funding'):
        total += config.get('revenue_signal_points', 1)
        reasons.append('Revenue/funding data available')

    max_score = config.get('max_score', 10)
    final = max(0, min(int(total), max_score))
    reason = ', '.join(reasons) or config.get('fallback_reason', 'Basic profile information')
    return final, reason


def is_key_lead(score, config=None):
    config = config if config is not None else DEFAULTS['scoring']
    return score >= config.get('key_lead_threshold', 8)


def classify_seniority(title, config):
    """Return the first (most senior) tier whose keywords appear in the title, or None."""
    if not title or not isinstance(title, str):
        return None
    for tier in config.get('seniority_tiers', []):
        if any(_keyword_in(title, kw, config) for kw in tier.get('keywords', [])):
            return tier
    return None


def classify_company_size(employees, config):
    """Return the largest tier the employee count reaches, or None."""
    if not employees:
        return None
    tiers = sorted(config.get('company_size_tiers', []),
                   key=lambda t: t['min_employees'], reverse=True)
    for tier in tiers:
        if employees >= tier['min_employees']:
            return tier
    return None


def _keyword_in(text, keyword, config=None):
    """Case-insensitive keyword match.

    Substring match by default, so "SVP" and "Cofounder" hit "vp" and
    "founder". With `keyword_match: word` in the scoring config the keyword
    must stand on word boundaries ("cto" no longer matches "director").
    """
    text = text.lower()
    keyword = keyword.lower()
    if (config or {}).get('keyword_match', 'substring') != 'word':
        return keyword in text
    pattern = r'(?:^|[\s,/&\-()|.])' + re.escape(keyword) + r'(?:$|[\s,/&\-()|.])'
    return re.search(pattern, text) is not None
