import copy

import pytest

from eventintel.config import DEFAULTS, Settings
from eventintel.database import Database
from eventintel.services import Services


class FakeProvider:
    """Enrichment provider returning a canned result and recording queries."""

    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.queries = []

    def enrich(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.result


class FakeRelay:
    def __init__(self, ref="msg_123"):
        self.ref = ref
        self.sent = []

    def send_message(self, channel, destination, text):
        self.sent.append({"channel": channel, "destination": destination, "text": text})
        return self.ref


class FakeTransactions:
    def __init__(self, transactions=None, complete=True, configured=True):
        self.transactions = transactions or []
        self.complete = complete
        self.configured = configured
        self.calls = []

    def fetch_transactions(self, **kwargs):
        self.calls.append(kwargs)
        return list(self.transactions), self.complete


@pytest.fixture
def settings():
    return Settings(
        sixtyfour_key="sf_test",
        mixrank_key="mr_test",
        pylon_token="py_test",
        brex_token="bx_test",
        database_path=":memory:",
        config=copy.deepcopy(DEFAULTS),
    )


@pytest.fixture
def db():
    database = Database(":memory:")
    yield database
    database.close()


@pytest.fixture
def person_provider():
    return FakeProvider("sixtyfour")


@pytest.fixture
def firmographic_provider():
    return FakeProvider("mixrank")


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def transactions_client():
    return FakeTransactions()


@pytest.fixture
def services(settings, db, person_provider, firmographic_provider, relay, transactions_client):
    return Services(
        settings=settings,
        db=db,
        person_provider=person_provider,
        firmographic_provider=firmographic_provider,
        relay=relay,
        transactions_client=transactions_client,
    )


@pytest.fixture
def make_attendee(db):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        attendee = {
            "id": f"att-{counter['n']}",
            "event_id": "agentjam-2025",
            "registration_id": f"reg-{counter['n']}",
            "name": "Ada Lovelace",
            "email": "ada@acme.com",
            "company": "Acme",
            "title": "CEO",
            "user_id": "user-1",
        }
        attendee.update(overrides)
        db.insert_attendee(attendee)
        return attendee

    return _make
