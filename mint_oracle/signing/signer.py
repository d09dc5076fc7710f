"""
Mint authorization signing.
"""
import logging
import os
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from ..exceptions import SigningUnavailableError
from .packer import mint_message_hash

logger = logging.getLogger(__name__)

SIGNER_KEY_ENV = "SIGNER_PRIVATE_KEY"


class MintSigner:
    """
    Holds the oracle's secp256k1 key and signs mint messages.

    The digest is signed directly: the verifier contract already applies the
    Ethereum signed-message prefix inside the packed message, so it must not
    be wrapped a second time.
    """

    def __init__(self, private_key: Optional[str] = None):
        """
        Initialize the signer

        Args:
            private_key: Hex-encoded private key; None leaves the signer unavailable

        Raises:
            SigningUnavailableError: If the key is present but not a valid secp256k1 key
        """
        self._account: Optional[LocalAccount] = None
        if private_key:
            try:
                self._account = Account.from_key(private_key)
            except Exception:
                # The key itself must never end up in logs or tracebacks
                raise SigningUnavailableError(f"{SIGNER_KEY_ENV} is not a valid private key") from None
            logger.info(f"Mint signer loaded for {self._account.address}")

    @classmethod
    def from_env(cls) -> "MintSigner":
        return cls(os.environ.get(SIGNER_KEY_ENV))

    @property
    def available(self) -> bool:
        return self._account is not None

    @property
    def address(self) -> str:
        """
        Get the signing address

        Raises:
            SigningUnavailableError: If no key is configured
        """
        if self._account is None:
            raise SigningUnavailableError(f"{SIGNER_KEY_ENV} is not set")
        return self._account.address

    def sign(self, tx_hash: str, minter: str, token_id: int) -> str:
        """
        Sign a mint authorization.

        Args:
            tx_hash: Verified payment transaction hash
            minter: Address that will call mint
            token_id: Token id being authorized

        Returns:
            65-byte r||s||v signature as 0x-prefixed hex

        Raises:
            SigningUnavailableError: If no key is configured
        """
        if self._account is None:
            logger.error("Mint signature requested but no signing key is configured")
            raise SigningUnavailableError(f"{SIGNER_KEY_ENV} is not set")

        digest = mint_message_hash(tx_hash, minter, token_id)
        signed = Account.unsafe_sign_hash(digest, self._account.key)
        return Web3.to_hex(signed.signature)

    def __repr__(self) -> str:
        if self._account is None:
            return "MintSigner(unavailable)"
        return f"MintSigner(address={self._account.address})"


def recover_mint_signer(tx_hash: str, minter: str, token_id: int, signature: str) -> str:
    """
    Recover the address that signed a mint authorization, the way the
    verifier contract does with ecrecover.

    Returns:
        Checksummed signer address
    """
    digest = mint_message_hash(tx_hash, minter, token_id)
    return Account._recover_hash(digest, signature=signature)
