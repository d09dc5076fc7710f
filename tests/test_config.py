"""
Tests for environment-driven settings.
"""
from decimal import Decimal

import pytest
from web3 import Web3

from mint_oracle.config import OracleSettings
from mint_oracle.exceptions import ConfigurationError
from mint_oracle.ledger.store import LedgerStore, MemoryLedgerStore
from test_helpers.oracle_creator import TEST_NFT, TEST_PRIV_KEY, TEST_RECIPIENT, TEST_TOKEN


def _env(**overrides):
    env = {"ORACLE_RECIPIENT_ADDRESS": TEST_RECIPIENT, "ALCHEMY_API_KEY": "key123"}
    env.update(overrides)
    return env


def test_defaults():
    settings = OracleSettings.from_env(_env())
    assert settings.recipient_address == Web3.to_checksum_address(TEST_RECIPIENT)
    assert settings.network == "base-mainnet"
    assert settings.token_decimals == 18
    assert settings.nft_address is None
    assert settings.receipt_attempts == 5
    assert settings.receipt_delay == 2.0
    assert settings.allocator == "ledger"
    assert settings.price_tiers.series_length == 5
    assert settings.face_value_usd == Decimal("25")
    assert settings.collection_name == "Erewhon Gift Card"
    assert settings.port == 8000
    assert settings.provider_url == "https://base-mainnet.g.alchemy.com/v2/key123"


def test_overrides():
    settings = OracleSettings.from_env(_env(
        ORACLE_CHAIN_NETWORK="base-sepolia",
        ORACLE_TOKEN_ADDRESS=TEST_TOKEN,
        ORACLE_NFT_ADDRESS=TEST_NFT,
        ORACLE_TOKEN_DECIMALS="6",
        ORACLE_RECEIPT_ATTEMPTS="3",
        ORACLE_RECEIPT_DELAY="0.5",
        ORACLE_ALLOCATOR="MEMORY",
        ORACLE_PRICE_TIERS="1,2,3",
        ORACLE_FACE_VALUE_USD="50",
        ORACLE_PORT="9000",
    ))
    assert settings.token_address == Web3.to_checksum_address(TEST_TOKEN)
    assert settings.nft_address == Web3.to_checksum_address(TEST_NFT)
    assert settings.token_decimals == 6
    assert settings.allocator == "memory"
    assert settings.price_tiers.tiers == (Decimal(1), Decimal(2), Decimal(3))
    assert settings.face_value_usd == Decimal("50")
    assert settings.port == 9000
    assert settings.provider_url == "https://base-sepolia.g.alchemy.com/v2/key123"

    policy = settings.build_retry_policy()
    assert policy.max_attempts == 3
    assert policy.delay == 0.5


def test_rpc_url_override():
    settings = OracleSettings.from_env(_env(ALCHEMY_API_KEY="", ORACLE_RPC_URL="https://rpc.example.com"))
    assert settings.provider_url == "https://rpc.example.com"


def test_missing_provider_credential():
    settings = OracleSettings.from_env(_env(ALCHEMY_API_KEY=""))
    with pytest.raises(ConfigurationError):
        settings.build_fetcher()


def test_recipient_required():
    with pytest.raises(ConfigurationError):
        OracleSettings.from_env({})


@pytest.mark.parametrize("overrides", [
    {"ORACLE_RECIPIENT_ADDRESS": "0x1234"},
    {"ORACLE_TOKEN_ADDRESS": "not-an-address"},
    {"ORACLE_NFT_ADDRESS": "0xnft"},
    {"ORACLE_TOKEN_DECIMALS": "eighteen"},
    {"ORACLE_TOKEN_DECIMALS": "99"},
    {"ORACLE_RECEIPT_DELAY": "soon"},
    {"ORACLE_ALLOCATOR": "redis"},
    {"ORACLE_PRICE_TIERS": "10,abc"},
    {"ORACLE_PRICE_TIERS": "10,-5"},
    {"ORACLE_FACE_VALUE_USD": "lots"},
    {"ORACLE_PORT": "http"},
])
def test_invalid_values(overrides):
    with pytest.raises(ConfigurationError):
        OracleSettings.from_env(_env(**overrides))


def test_invalid_retry_policy():
    settings = OracleSettings.from_env(_env(ORACLE_RECEIPT_ATTEMPTS="0"))
    with pytest.raises(ConfigurationError):
        settings.build_retry_policy()


def test_key_not_in_repr():
    settings = OracleSettings.from_env(_env(SIGNER_PRIVATE_KEY=TEST_PRIV_KEY))
    assert TEST_PRIV_KEY not in repr(settings)
    assert settings.build_signer().available


def test_signer_without_key():
    assert not OracleSettings.from_env(_env()).build_signer().available


def test_build_allocator_and_records(ledger_path):
    settings = OracleSettings.from_env(_env(ORACLE_LEDGER_PATH=ledger_path))
    allocator = settings.build_allocator()
    assert isinstance(allocator.store, LedgerStore)
    assert settings.build_records(allocator).store is allocator.store

    memory = OracleSettings.from_env(_env(ORACLE_ALLOCATOR="memory")).build_allocator()
    assert isinstance(memory.store, MemoryLedgerStore)


def test_build_fetcher_uses_policy():
    settings = OracleSettings.from_env(_env(ORACLE_RECEIPT_ATTEMPTS="2"))
    fetcher = settings.build_fetcher()
    assert fetcher.policy.max_attempts == 2
    assert fetcher.client.rpc_url == settings.provider_url
    fetcher.client.close()
