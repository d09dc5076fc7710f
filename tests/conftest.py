"""
Pytest fixtures for the mint oracle tests.
"""
import os
import time
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from web3 import Web3

from mint_oracle._rate_limited_log import reset_rate_limits
from mint_oracle.ledger.records import RecordBook
from mint_oracle.ledger.store import LedgerStore, MemoryLedgerStore
from test_helpers.oracle_creator import TEST_PRIV_KEY

# Make time.sleep instantaneous so receipt retries don't slow the suite down
@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _fresh_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture(autouse=True)
def _no_oracle_env(monkeypatch):
    """Keep deployment settings in the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("ORACLE_") or name in ("ALCHEMY_API_KEY", "SIGNER_PRIVATE_KEY"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_w3():
    """Mock Web3 instance whose eth namespace can be configured per test"""
    mock = MagicMock(spec=Web3)
    mock.eth = MagicMock()
    return mock


@pytest.fixture
def mock_account():
    """Deterministic test account"""
    return Account.from_key(TEST_PRIV_KEY)


@pytest.fixture
def memory_store():
    return MemoryLedgerStore()


@pytest.fixture
def records(memory_store):
    return RecordBook(memory_store)


@pytest.fixture
def ledger_path(tmp_path):
    return str(tmp_path / "ledger" / "ledger.json")


@pytest.fixture
def file_store(ledger_path):
    return LedgerStore(ledger_path)
