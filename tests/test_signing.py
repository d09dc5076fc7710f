"""
Tests for mint message packing and signing.
"""
import logging

import pytest
from eth_account import Account
from web3 import Web3

from mint_oracle.exceptions import SigningUnavailableError
from mint_oracle.signing.packer import (
    MINT_MESSAGE_PREFIX,
    PACKED_PAYLOAD_LENGTH,
    address_bytes,
    mint_message_hash,
    pack_mint_message,
    tx_hash_bytes,
    uint256_bytes,
)
from mint_oracle.signing.signer import MintSigner, recover_mint_signer
from test_helpers.oracle_creator import TEST_BUYER, TEST_PRIV_KEY, TEST_TX_HASH


def test_packed_layout():
    packed = pack_mint_message(TEST_TX_HASH, TEST_BUYER, 1)
    assert packed.startswith(MINT_MESSAGE_PREFIX)
    payload = packed[len(MINT_MESSAGE_PREFIX):]
    assert len(payload) == PACKED_PAYLOAD_LENGTH == 84
    assert payload[:32] == bytes.fromhex(TEST_TX_HASH[2:])
    assert payload[32:52] == bytes.fromhex(TEST_BUYER[2:])
    assert payload[52:] == (1).to_bytes(32, "big")


def test_hash_matches_solidity_encode_packed():
    expected = Web3.solidity_keccak(
        ["string", "bytes32", "address", "uint256"],
        [
            "\x19Ethereum Signed Message:\n84",
            TEST_TX_HASH,
            Web3.to_checksum_address(TEST_BUYER),
            7,
        ]
    )
    assert mint_message_hash(TEST_TX_HASH, TEST_BUYER, 7) == bytes(expected)


def test_tx_hash_without_prefix():
    assert tx_hash_bytes(TEST_TX_HASH[2:]) == tx_hash_bytes(TEST_TX_HASH)


@pytest.mark.parametrize("value", ["0x1234", "0x" + "11" * 33])
def test_tx_hash_wrong_length(value):
    with pytest.raises(ValueError):
        tx_hash_bytes(value)


def test_invalid_address():
    with pytest.raises(ValueError):
        address_bytes("0x1234")


@pytest.mark.parametrize("value", [-1, 2 ** 256])
def test_uint256_range(value):
    with pytest.raises(ValueError):
        uint256_bytes(value)


def test_sign_recovers_to_signer(mock_account):
    signer = MintSigner(TEST_PRIV_KEY)
    signature = signer.sign(TEST_TX_HASH, TEST_BUYER, 1)

    assert signature.startswith("0x")
    raw = bytes.fromhex(signature[2:])
    assert len(raw) == 65
    assert raw[64] in (27, 28)
    assert recover_mint_signer(TEST_TX_HASH, TEST_BUYER, 1, signature) == mock_account.address


def test_digest_is_not_wrapped_again(mock_account):
    signature = MintSigner(TEST_PRIV_KEY).sign(TEST_TX_HASH, TEST_BUYER, 1)
    digest = mint_message_hash(TEST_TX_HASH, TEST_BUYER, 1)
    assert Account._recover_hash(digest, signature=signature) == mock_account.address


def test_signature_bound_to_token_id(mock_account):
    signature = MintSigner(TEST_PRIV_KEY).sign(TEST_TX_HASH, TEST_BUYER, 1)
    assert recover_mint_signer(TEST_TX_HASH, TEST_BUYER, 2, signature) != mock_account.address


def test_signing_is_deterministic():
    signer = MintSigner(TEST_PRIV_KEY)
    assert signer.sign(TEST_TX_HASH, TEST_BUYER, 3) == signer.sign(TEST_TX_HASH, TEST_BUYER, 3)


def test_missing_key_unavailable():
    signer = MintSigner(None)
    assert not signer.available
    with pytest.raises(SigningUnavailableError):
        signer.sign(TEST_TX_HASH, TEST_BUYER, 1)
    with pytest.raises(SigningUnavailableError):
        _ = signer.address


def test_invalid_key_not_leaked():
    bad_key = "0xnot-a-key"
    with pytest.raises(SigningUnavailableError) as exc_info:
        MintSigner(bad_key)
    assert bad_key not in str(exc_info.value)
    assert exc_info.value.__cause__ is None


def test_from_env(monkeypatch, mock_account):
    monkeypatch.setenv("SIGNER_PRIVATE_KEY", TEST_PRIV_KEY)
    signer = MintSigner.from_env()
    assert signer.address == mock_account.address


def test_repr_hides_key(caplog):
    with caplog.at_level(logging.INFO):
        signer = MintSigner(TEST_PRIV_KEY)
    assert TEST_PRIV_KEY[2:] not in repr(signer)
    assert TEST_PRIV_KEY[2:] not in caplog.text
    assert repr(MintSigner()) == "MintSigner(unavailable)"
