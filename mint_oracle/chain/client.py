"""
ChainClient - JSON-RPC access to the chain-data provider.
"""
import logging
import urllib.parse
from collections.abc import Mapping
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from web3 import Web3
from web3.exceptions import TransactionNotFound

from ..exceptions import ChainError, ConfigurationError
from ..models import ChainTransaction, TxReceipt

ALCHEMY_URL_TEMPLATE = "https://{network}.g.alchemy.com/v2/{api_key}"


def build_provider_url(api_key: str, network: str = "base-mainnet") -> str:
    """
    Build the Alchemy JSON-RPC endpoint for a network.

    Args:
        api_key: Provider API credential
        network: Alchemy network slug (e.g., "base-mainnet")

    Returns:
        HTTPS endpoint URL

    Raises:
        ConfigurationError: If the API key is empty
    """
    if not api_key:
        raise ConfigurationError("ALCHEMY_API_KEY is not set")
    return ALCHEMY_URL_TEMPLATE.format(network=network, api_key=api_key)


def _to_plain(value: Any) -> Any:
    """Turn web3 AttributeDicts and HexBytes into JSON-like dicts and hex strings."""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    if isinstance(value, Mapping):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    return value


class ChainClient:
    """
    Thin read-only client over a single chain's JSON-RPC provider.

    Only two calls are needed by the oracle: ``eth_getTransactionReceipt``
    and ``eth_getTransactionByHash``. A missing receipt or transaction is
    reported as None; transport failures raise ChainError.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: int = 30,
        w3: Optional[Web3] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the ChainClient

        Args:
            rpc_url: JSON-RPC endpoint URL (e.g., "https://base-mainnet.g.alchemy.com/v2/<key>")
            timeout: Timeout for HTTP requests in seconds
            w3: Pre-built Web3 instance (mainly for tests)
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ConfigurationError: If the URL doesn't use https (unless it's localhost/127.0.0.1)
        """
        parsed = urllib.parse.urlparse(rpc_url)
        host = parsed.hostname or ""
        is_local = host in ("localhost", "127.0.0.1", "::1")
        if parsed.scheme != "https" and not is_local:
            raise ConfigurationError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")

        self.rpc_url = rpc_url
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        # Receipt polling owns retries; neither urllib3 nor web3 may retry underneath it
        self.session = requests.Session()
        retries = Retry(total=0, raise_on_status=False)
        self.session.mount("http://", HTTPAdapter(max_retries=retries))
        self.session.mount("https://", HTTPAdapter(max_retries=retries))

        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(
                rpc_url,
                request_kwargs={"timeout": timeout},
                session=self.session,
                exception_retry_configuration=None
            ))
        self.w3 = w3

    def get_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        """
        Fetch a transaction receipt.

        Returns:
            The receipt, or None if the provider does not know it yet

        Raises:
            ChainError: If the provider call fails
        """
        try:
            raw = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except Exception as e:
            raise ChainError(f"eth_getTransactionReceipt failed for {tx_hash}: {e}") from e

        if raw is None:
            return None
        return self._convert_receipt(raw)

    def get_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
        """
        Fetch a transaction body.

        Returns:
            The transaction, or None if the provider does not know it

        Raises:
            ChainError: If the provider call fails
        """
        try:
            raw = self.w3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None
        except Exception as e:
            raise ChainError(f"eth_getTransactionByHash failed for {tx_hash}: {e}") from e

        if raw is None:
            return None
        return ChainTransaction.model_validate(_to_plain(raw))

    def _convert_receipt(self, web3_receipt: Any) -> TxReceipt:
        """
        Convert a Web3 receipt to our TxReceipt model

        Args:
            web3_receipt: The Web3 transaction receipt (AttributeDict or plain dict)

        Returns:
            Our TxReceipt model
        """
        receipt_dict: Dict[str, Any] = _to_plain(web3_receipt)
        self.logger.debug(
            f"Receipt {receipt_dict.get('transactionHash')}: status={receipt_dict.get('status')}, "
            f"logs={len(receipt_dict.get('logs') or [])}"
        )
        return TxReceipt.model_validate(receipt_dict)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
