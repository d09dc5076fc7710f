"""
Verification orchestrator.

Ties the allocator, receipt fetcher, transfer matcher and signer together
into the one operation the storefront calls after a buyer pays.
"""
import logging
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from ._rate_limited_log import rate_limited_log
from .chain.fetcher import ReceiptFetcher
from .chain.matcher import TransferMatcher, extract_minted_token_id
from .exceptions import (
    ReceiptUnavailableError,
    TransferNotVerifiedError,
    VerificationError,
)
from .ledger.allocator import TokenIdAllocator
from .models import MintAuthorization, Rejection, Reservation, TransferClaim
from .pricing import PriceSchedule
from .signing.signer import MintSigner

logger = logging.getLogger(__name__)

# Client-quoted amounts within this many token units of the server price are not reported
CLAIM_DISCREPANCY_THRESHOLD = Decimal(1)


class VerificationState(str, Enum):
    """Stages a verification request passes through."""
    RECEIVED = "received"
    ALLOCATING_ID = "allocating_id"
    FETCHING_RECEIPT = "fetching_receipt"
    MATCHING = "matching"
    SIGNING = "signing"
    AUTHORIZED = "authorized"
    REJECTED = "rejected"


class VerificationOracle:
    """
    Verifies a payment and authorizes exactly one mint for it.

    Each call reserves a token id first, so the expected price is the one
    for that id's position, and releases the reservation again if the
    payment cannot be proven.
    """

    def __init__(
        self,
        fetcher: ReceiptFetcher,
        matcher: TransferMatcher,
        signer: MintSigner,
        allocator: TokenIdAllocator,
        schedule: PriceSchedule,
        recipient_address: str,
        token_address: Optional[str] = None,
        nft_address: Optional[str] = None
    ):
        self.fetcher = fetcher
        self.matcher = matcher
        self.signer = signer
        self.allocator = allocator
        self.schedule = schedule
        self.recipient_address = recipient_address
        self.token_address = token_address
        self.nft_address = nft_address

    def _enter(self, tx_hash: str, state: VerificationState) -> None:
        logger.debug(f"Verification {tx_hash}: {state.value}")

    def _check_claimed_amount(self, tx_hash: str, claimed: Optional[Decimal], expected: Decimal) -> None:
        if claimed is None:
            return
        if abs(Decimal(claimed) - expected) > CLAIM_DISCREPANCY_THRESHOLD:
            rate_limited_log(
                f"Client amount {claimed} differs from server amount {expected}; using server amount",
                level="warning",
                logger_instance=logger
            )
            logger.debug(f"Claimed amount {claimed} ignored for {tx_hash}")

    def verify_and_authorize(
        self,
        tx_hash: str,
        wallet_address: str,
        claimed_amount: Optional[Decimal] = None
    ) -> Union[MintAuthorization, Rejection]:
        """
        Verify a payment transaction and sign a mint authorization for it.

        Args:
            tx_hash: Payment transaction hash (0x-prefixed, 32 bytes)
            wallet_address: Buyer wallet; must be the payment's sender and
                becomes the only address allowed to mint
            claimed_amount: Amount the storefront displayed; informational only

        Returns:
            MintAuthorization on success, Rejection when the payment is not proven

        Raises:
            SigningUnavailableError: If the oracle has no usable signing key
        """
        tx_hash = tx_hash.lower()
        self._enter(tx_hash, VerificationState.RECEIVED)

        self._enter(tx_hash, VerificationState.ALLOCATING_ID)
        reservation = self.allocator.reserve(tx_hash, wallet_address)
        if reservation.wallet_address.lower() != wallet_address.lower():
            # The id stays with the wallet that first presented this payment
            return self._rejection(
                tx_hash,
                TransferNotVerifiedError(f"Transaction {tx_hash} was already presented by another wallet"),
                reservation.token_id
            )

        token_id = reservation.token_id
        expected = self.schedule.expected_amount(token_id)
        self._check_claimed_amount(tx_hash, claimed_amount, expected)

        try:
            authorization = self._authorize(reservation, expected)
        except VerificationError as e:
            self._release(reservation)
            return self._rejection(tx_hash, e, token_id)
        except Exception:
            self._release(reservation)
            raise

        self._enter(tx_hash, VerificationState.AUTHORIZED)
        logger.info(f"Authorized mint of token ID {token_id} for {wallet_address} ({tx_hash})")
        return authorization

    def _authorize(self, reservation: Reservation, expected: Decimal) -> MintAuthorization:
        tx_hash = reservation.tx_hash
        wallet_address = reservation.wallet_address

        self._enter(tx_hash, VerificationState.FETCHING_RECEIPT)
        receipt = self.fetcher.fetch_receipt(tx_hash)
        if receipt is None:
            raise ReceiptUnavailableError(f"Transaction receipt not found for {tx_hash}")

        self._enter(tx_hash, VerificationState.MATCHING)
        transaction = self.fetcher.fetch_transaction(tx_hash)
        claim = TransferClaim(
            tx_hash=tx_hash,
            expected_sender=wallet_address,
            expected_recipient=self.recipient_address,
            expected_amount=expected,
            token_address=self.token_address
        )
        result = self.matcher.match(receipt, transaction, claim)
        if not result:
            raise TransferNotVerifiedError(f"Transfer verification failed: {result.reason}")

        self._enter(tx_hash, VerificationState.SIGNING)
        signature = self.signer.sign(tx_hash, wallet_address, reservation.token_id)

        self.allocator.confirm(reservation.token_id, tx_hash, expected)
        return MintAuthorization(
            token_id=reservation.token_id,
            signature=signature,
            expected_amount=expected,
            tx_hash=tx_hash,
            minter=wallet_address
        )

    def _release(self, reservation: Reservation) -> None:
        self.allocator.release(reservation.token_id, reservation.tx_hash)

    def _rejection(self, tx_hash: str, error: VerificationError, token_id: Optional[int]) -> Rejection:
        self._enter(tx_hash, VerificationState.REJECTED)
        logger.warning(f"Rejected {tx_hash} ({error.reason.value}): {error}")
        return Rejection(reason=error.reason, error=str(error), token_id=token_id)

    def record_mint(self, mint_tx: str, token_id: Optional[int] = None) -> int:
        """
        Confirm a mint transaction on chain and mark its reservation minted.

        Args:
            mint_tx: Hash of the buyer's mint transaction
            token_id: Id the caller believes was minted, if known

        Returns:
            The minted token id

        Raises:
            ReceiptUnavailableError: If the mint receipt cannot be fetched
            TransferNotVerifiedError: If the receipt shows no mint from the voucher contract, or a different id
            TokenIdConflictError: If the minted id was never reserved
        """
        receipt = self.fetcher.fetch_receipt(mint_tx)
        if receipt is None:
            raise ReceiptUnavailableError(f"Mint receipt not found for {mint_tx}")

        minted = extract_minted_token_id(receipt, self.nft_address)
        if minted is None:
            raise TransferNotVerifiedError(f"No token was minted in {mint_tx}")
        if token_id is not None and minted != token_id:
            raise TransferNotVerifiedError(f"Transaction {mint_tx} minted token ID {minted}, not {token_id}")

        self.allocator.mark_minted(minted, mint_tx)
        logger.info(f"Token ID {minted} minted in {mint_tx}")
        return minted
