"""
Storefront records written after a successful mint.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..models import NftMetadataRecord, PurchaseRecord
from .store import BaseLedgerStore

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordBook:
    """NFT metadata keyed by token id and purchases keyed by wallet address"""

    def __init__(self, store: BaseLedgerStore):
        self.store = store

    def record_nft_metadata(self, record: NftMetadataRecord) -> NftMetadataRecord:
        """
        Insert or replace the metadata for a token.

        A replacement keeps the original ``created_at``.
        """
        with self.store.transaction() as ledger:
            table = ledger["nft_metadata"]
            existing = table.get(str(record.token_id))
            created_at = record.created_at or (existing or {}).get("created_at") or _now()
            record = record.model_copy(update={"created_at": created_at})
            table[str(record.token_id)] = record.model_dump(mode="json")
        logger.info(f"Stored NFT metadata for token ID {record.token_id}")
        return record

    def get_nft_metadata(self, token_id: int) -> Optional[NftMetadataRecord]:
        entry = self.store.read()["nft_metadata"].get(str(token_id))
        if entry is None:
            return None
        return NftMetadataRecord.model_validate(entry)

    def record_purchase(self, record: PurchaseRecord) -> PurchaseRecord:
        if record.created_at is None:
            record = record.model_copy(update={"created_at": _now()})
        with self.store.transaction() as ledger:
            ledger["purchases"].append(record.model_dump(mode="json"))
        logger.info(f"Stored purchase {record.payment_tx} for {record.wallet_address}")
        return record

    def purchases_for(self, wallet_address: str) -> List[PurchaseRecord]:
        """All purchases made by a wallet, oldest first."""
        wallet = wallet_address.lower()
        return [
            PurchaseRecord.model_validate(entry)
            for entry in self.store.read()["purchases"]
            if entry["wallet_address"].lower() == wallet
        ]
