"""Shared pytest fixtures for pocketledger tests."""

import os
import tempfile
from datetime import datetime, timedelta

import pytest

from pocketledger.config import LedgerSettings
from pocketledger.database.factories import create_sqlite_database
from pocketledger.domain.archive import ArchiveService
from pocketledger.domain.assets import AssetService
from pocketledger.domain.budgets import BudgetService
from pocketledger.domain.history import HistoryService
from pocketledger.domain.ledger import Ledger
from pocketledger.domain.queries import SummaryService
from pocketledger.domain.reconciliation import ReconciliationService
from pocketledger.domain.transfer import DataTransferService

# Saturday; the week started on Sunday 2024-06-09
NOW = datetime(2024, 6, 15, 12, 0, 0)


class FakeClock:
    """Settable clock for deterministic period and archive tests."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Default engine settings; override in a test module to change policy."""
    return LedgerSettings()


@pytest.fixture
def ledger(temp_db, settings, clock):
    """Create a loaded Ledger over the temporary database with a fixed clock."""
    ledger = Ledger(temp_db, settings, clock=clock)
    ledger.reload_all()
    return ledger


@pytest.fixture
def reconciliation(ledger):
    return ReconciliationService(ledger)


@pytest.fixture
def archive_service(ledger):
    return ArchiveService(ledger)


@pytest.fixture
def history_service(ledger):
    return HistoryService(ledger)


@pytest.fixture
def asset_service(ledger):
    return AssetService(ledger)


@pytest.fixture
def budget_service(ledger):
    return BudgetService(ledger)


@pytest.fixture
def summary_service(ledger):
    return SummaryService(ledger)


@pytest.fixture
def transfer_service(ledger):
    return DataTransferService(ledger)


@pytest.fixture
def wallet(asset_service):
    """Create a 'Wallet' asset with a balance of 100.00."""
    return asset_service.add_asset(name="Wallet", amount="100.00", currency_code="PHP")


@pytest.fixture
def bank(asset_service):
    """Create a 'Bank' asset with a balance of 500.00."""
    return asset_service.add_asset(name="Bank", amount="500.00", currency_code="PHP")


@pytest.fixture
def food_budget(budget_service):
    """Create a monthly 'Food' budget of 200.00."""
    return budget_service.add_budget(category="Food", amount="200.00", period="Monthly")


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
