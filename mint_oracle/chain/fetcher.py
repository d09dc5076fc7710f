"""
Receipt fetching with bounded retries.

Receipts become available some time after a transaction is broadcast, so a
missing receipt is retried a fixed number of times before being reported as
not found.
"""
from typing import Optional

from ..models import ChainTransaction, TxReceipt
from ..retry import RetryPolicy
from .client import ChainClient

RECEIPT_MAX_ATTEMPTS = 5
RECEIPT_RETRY_DELAY = 2.0


class ReceiptFetcher:
    """Reads receipts and transactions, tolerating provider lag."""

    def __init__(self, client: ChainClient, policy: Optional[RetryPolicy] = None):
        self.client = client
        self.policy = policy or RetryPolicy(
            max_attempts=RECEIPT_MAX_ATTEMPTS,
            delay=RECEIPT_RETRY_DELAY
        )

    def fetch_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        """
        Fetch the receipt for ``tx_hash``.

        Returns:
            The receipt, or None after all attempts came back empty or failed
        """
        return self.policy.run(
            lambda: self.client.get_receipt(tx_hash),
            description=f"Receipt for {tx_hash}"
        )

    def fetch_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
        """
        Fetch the transaction body for ``tx_hash``.

        Returns:
            The transaction, or None after all attempts came back empty or failed
        """
        return self.policy.run(
            lambda: self.client.get_transaction(tx_hash),
            description=f"Transaction {tx_hash}"
        )
