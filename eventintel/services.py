"""Wires storage, provider clients and pipeline services from one Settings object."""

from .brex_client import BrexClient
from .config import Settings
from .database import Database
from .expenses import ExpenseAggregator
from .mixrank_client import MixRankClient
from .notify import NotificationDispatcher
from .pipeline import EnrichmentOrchestrator
from .pylon_client import PylonClient
from .sixtyfour_client import SixtyFourClient


class Services:
    def __init__(self, settings=None, db=None, person_provider=None, firmographic_provider=None,
                 relay=None, transactions_client=None):
        self.settings = settings or Settings.from_env()
        self.db = db or Database(self.settings.database_path)
        self.person_provider = person_provider or SixtyFourClient.from_settings(self.settings)
        self.firmographic_provider = firmographic_provider or MixRankClient.from_settings(self.settings)
        self.relay = relay or PylonClient.from_settings(self.settings)
        self.transactions_client = transactions_client or BrexClient.from_settings(self.settings)

        self.dispatcher = NotificationDispatcher(self.db, self.relay, self.settings)
        self.orchestrator = EnrichmentOrchestrator(
            self.db, self.person_provider, self.firmographic_provider, self.dispatcher, self.settings,
        )
        self.expenses = ExpenseAggregator(self.db, self.transactions_client, self.settings)
