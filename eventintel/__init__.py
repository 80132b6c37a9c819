"""Event Attendee Intelligence Pipeline.

Ingests registration webhooks, enriches attendees via SixtyFour and MixRank,
scores them 0-10, alerts sales on key leads via Pylon, and tracks event
spend from Brex for cost-per-lead reporting.
"""
from dotenv import load_dotenv
load_dotenv()
