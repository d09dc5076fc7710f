"""
Token id allocation.

Ids are handed out by atomic reservation rather than "read max, add one",
so two concurrent purchase attempts can never be authorized for the same
sequence position. A reservation is bound to the payment transaction hash:
asking again with the same hash returns the same id.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from ..exceptions import TokenIdConflictError
from ..models import Reservation, ReservationStatus
from .store import BaseLedgerStore, LedgerStore, MemoryLedgerStore

logger = logging.getLogger(__name__)


class TokenIdAllocator(ABC):
    """
    Abstract base class for token id allocators.

    This class defines the interface the oracle relies on; any backing store
    must make ``reserve`` atomic with respect to every other call.
    """

    @abstractmethod
    def next_token_id(self) -> int:
        """
        The id the next reservation would receive.

        Returns:
            The lowest id not held by any reservation, starting from 1. Ids freed
            by released reservations are handed out again before new ones
        """
        pass

    @abstractmethod
    def reserve(self, tx_hash: str, wallet_address: str) -> Reservation:
        """
        Atomically claim the next id for a payment transaction.

        Args:
            tx_hash: Payment transaction hash the id is bound to
            wallet_address: Buyer wallet

        Returns:
            The new pending reservation, or the existing one for ``tx_hash``
        """
        pass

    @abstractmethod
    def confirm(self, token_id: int, tx_hash: str, expected_amount: Optional[Decimal] = None) -> Reservation:
        """
        Mark a reservation authorized once its signature is issued.

        Raises:
            TokenIdConflictError: If ``token_id`` is not held by ``tx_hash``
        """
        pass

    @abstractmethod
    def release(self, token_id: int, tx_hash: str) -> bool:
        """
        Free a pending reservation after a rejected verification.

        Returns:
            True if the reservation was released
        """
        pass

    @abstractmethod
    def mark_minted(self, token_id: int, mint_tx: str) -> Reservation:
        """
        Record that the authorization for ``token_id`` was consumed on chain.

        Raises:
            TokenIdConflictError: If ``token_id`` was never reserved
        """
        pass

    @abstractmethod
    def get(self, token_id: int) -> Optional[Reservation]:
        """Look up a reservation by token id."""
        pass


def _lowest_free_id(reservations: Dict[str, Any]) -> int:
    token_id = 1
    while str(token_id) in reservations:
        token_id += 1
    return token_id


def _to_reservation(token_id: str, entry: Dict[str, Any]) -> Reservation:
    return Reservation(token_id=int(token_id), **entry)


class LedgerAllocator(TokenIdAllocator):
    """Allocator backed by a ledger store's reservation table"""

    def __init__(self, store: BaseLedgerStore):
        self.store = store

    def next_token_id(self) -> int:
        return _lowest_free_id(self.store.read()["reservations"])

    def reserve(self, tx_hash: str, wallet_address: str) -> Reservation:
        tx_hash = tx_hash.lower()
        with self.store.transaction() as ledger:
            reservations = ledger["reservations"]
            for token_id, entry in reservations.items():
                if entry["tx_hash"] == tx_hash:
                    logger.info(f"Reusing token ID {token_id} ({entry['status']}) for {tx_hash}")
                    return _to_reservation(token_id, entry)

            token_id = _lowest_free_id(reservations)
            entry = {
                "tx_hash": tx_hash,
                "wallet_address": wallet_address,
                "status": ReservationStatus.PENDING.value,
                "reserved_at": datetime.now(timezone.utc).isoformat(),
            }
            reservations[str(token_id)] = entry
            logger.info(f"Reserved token ID {token_id} for {tx_hash}")
            return _to_reservation(str(token_id), entry)

    def confirm(self, token_id: int, tx_hash: str, expected_amount: Optional[Decimal] = None) -> Reservation:
        tx_hash = tx_hash.lower()
        with self.store.transaction() as ledger:
            entry = ledger["reservations"].get(str(token_id))
            if entry is None or entry["tx_hash"] != tx_hash:
                raise TokenIdConflictError(f"Token ID {token_id} is no longer reserved for {tx_hash}")
            if entry["status"] == ReservationStatus.PENDING.value:
                entry["status"] = ReservationStatus.AUTHORIZED.value
            if expected_amount is not None:
                entry["expected_amount"] = str(expected_amount)
            return _to_reservation(str(token_id), entry)

    def release(self, token_id: int, tx_hash: str) -> bool:
        tx_hash = tx_hash.lower()
        with self.store.transaction() as ledger:
            reservations = ledger["reservations"]
            entry = reservations.get(str(token_id))
            if entry is None or entry["tx_hash"] != tx_hash:
                return False
            if entry["status"] != ReservationStatus.PENDING.value:
                return False
            del reservations[str(token_id)]
            logger.info(f"Released token ID {token_id} held by {tx_hash}")
            return True

    def mark_minted(self, token_id: int, mint_tx: str) -> Reservation:
        with self.store.transaction() as ledger:
            entry = ledger["reservations"].get(str(token_id))
            if entry is None:
                raise TokenIdConflictError(f"Token ID {token_id} was never reserved")
            entry["status"] = ReservationStatus.MINTED.value
            entry["mint_tx"] = mint_tx
            return _to_reservation(str(token_id), entry)

    def get(self, token_id: int) -> Optional[Reservation]:
        entry = self.store.read()["reservations"].get(str(token_id))
        if entry is None:
            return None
        return _to_reservation(str(token_id), entry)


def get_allocator(kind: str = "ledger", ledger_path: Optional[str] = None) -> LedgerAllocator:
    """
    Get an allocator implementation.

    Args:
        kind: "ledger" for the file-backed store, "memory" for an in-process one
        ledger_path: Ledger file path for the file-backed store

    Returns:
        Allocator implementation
    """
    if kind == "memory":
        logger.info("Using in-memory token allocator")
        return LedgerAllocator(MemoryLedgerStore())
    if kind == "ledger":
        store = LedgerStore(ledger_path)
        logger.info(f"Using ledger token allocator at {store.store_path}")
        return LedgerAllocator(store)
    raise ValueError(f"Unknown allocator kind: {kind}")
