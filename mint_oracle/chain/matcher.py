"""
Transfer matching over receipt logs.

Logs carry no schema, so an ERC-20 payment is recognised by convention: the
first topic is the keccak hash of ``Transfer(address,address,uint256)``, the
next two topics are the left-padded sender and recipient, and the data field
holds the uint256 amount.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from ..models import ChainTransaction, LogEntry, TransferClaim, TransferLogEntry, TxReceipt
from ..pricing import DEFAULT_TOKEN_DECIMALS, to_base_units

logger = logging.getLogger(__name__)

# keccak256("Transfer(address,address,uint256)"), shared by ERC-20 and ERC-721
TRANSFER_EVENT_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

ERC20_TRANSFER_TOPIC_COUNT = 3
ERC721_TRANSFER_TOPIC_COUNT = 4
ZERO_ADDRESS = "0x" + "0" * 40

# Relative tolerance is 1/TOLERANCE_DIVISOR of the expected base-unit amount (0.1%)
TOLERANCE_DIVISOR = 1000


def topic_to_address(topic: str) -> str:
    """Right-trim a 32-byte topic to its low 20 bytes as a lowercase address."""
    return ("0x" + topic[-40:]).lower()


def decode_amount(data: str) -> Optional[int]:
    """Decode a uint256 log data field, or None if it is empty or not one word."""
    if not data:
        return None
    body = data[2:] if data.lower().startswith("0x") else data
    if not body or len(body) > 64:
        return None
    try:
        return int(body, 16)
    except ValueError:
        return None


def amount_tolerance(expected_base_units: int) -> int:
    return expected_base_units // TOLERANCE_DIVISOR


def within_tolerance(observed: int, expected: int) -> bool:
    """True when ``observed`` is within 0.1% of ``expected`` (boundary inclusive)."""
    return abs(observed - expected) <= amount_tolerance(expected)


def parse_transfer_logs(logs: List[LogEntry], topic_count: int = ERC20_TRANSFER_TOPIC_COUNT) -> List[TransferLogEntry]:
    """
    Extract Transfer events of the given indexed shape from receipt logs.

    Args:
        logs: Receipt logs, in emission order
        topic_count: 3 for ERC-20 transfers, 4 for ERC-721 transfers

    Returns:
        Decoded transfers, in emission order
    """
    transfers = []
    for log in logs:
        if len(log.topics) != topic_count:
            continue
        if log.topics[0].lower() != TRANSFER_EVENT_TOPIC:
            continue
        if topic_count == ERC721_TRANSFER_TOPIC_COUNT:
            amount = int(log.topics[3], 16)
        else:
            amount = decode_amount(log.data)
        transfers.append(TransferLogEntry(
            event_signature_topic=log.topics[0].lower(),
            from_address=topic_to_address(log.topics[1]),
            to_address=topic_to_address(log.topics[2]),
            amount=amount,
            token_address=log.address.lower() if log.address else None
        ))
    return transfers


def extract_minted_token_id(receipt: TxReceipt, nft_address: Optional[str] = None) -> Optional[int]:
    """
    Find the token id minted in an NFT mint transaction.

    Looks for an ERC-721 Transfer log (four topics) whose sender is the
    zero address and returns the id from its last topic. When
    ``nft_address`` is given, mints emitted by any other contract are ignored.

    Returns:
        The minted token id, or None if the receipt contains no mint
    """
    if not receipt.succeeded:
        return None
    for transfer in parse_transfer_logs(receipt.logs, ERC721_TRANSFER_TOPIC_COUNT):
        if transfer.from_address != ZERO_ADDRESS:
            continue
        if nft_address and transfer.token_address != nft_address.lower():
            continue
        logger.info(f"Found token ID {transfer.amount} in transaction {receipt.tx_hash}")
        return transfer.amount
    logger.info(f"No mint transfer found in transaction {receipt.tx_hash}")
    return None


@dataclass
class MatchResult:
    """Outcome of matching a receipt against a claim; truthy on success."""
    matched: bool
    reason: str = ""
    transfer: Optional[TransferLogEntry] = None

    def __bool__(self) -> bool:
        return self.matched


class TransferMatcher:
    """
    Decides whether a receipt proves the payment described by a claim.

    Every check fails closed: anything missing or ambiguous is a mismatch.
    """

    def __init__(self, decimals: int = DEFAULT_TOKEN_DECIMALS):
        self.decimals = decimals

    def _reject(self, claim: TransferClaim, reason: str) -> MatchResult:
        logger.warning(f"Transfer {claim.tx_hash} not verified: {reason}")
        return MatchResult(matched=False, reason=reason)

    def match(
        self,
        receipt: TxReceipt,
        transaction: Optional[ChainTransaction],
        claim: TransferClaim
    ) -> MatchResult:
        """
        Match a receipt and its transaction against a claim.

        Args:
            receipt: Receipt of the payment transaction
            transaction: The payment transaction body (its ``from`` is the payer)
            claim: Expected sender, recipient and amount

        Returns:
            MatchResult carrying the matched transfer or a rejection reason
        """
        if not receipt.succeeded:
            return self._reject(claim, "Transaction failed on chain")

        if transaction is None:
            return self._reject(claim, "Transaction not found")

        if transaction.from_address.lower() != claim.expected_sender.lower():
            return self._reject(
                claim, f"Sender mismatch: {transaction.from_address} != {claim.expected_sender}"
            )

        if not receipt.logs:
            return self._reject(claim, "No logs found in transaction receipt")

        transfers = parse_transfer_logs(receipt.logs)
        if claim.token_address:
            token = claim.token_address.lower()
            transfers = [t for t in transfers if t.token_address == token]
        if not transfers:
            return self._reject(claim, "No transfer events found in logs")

        recipient = claim.expected_recipient.lower()
        matching = next((t for t in transfers if t.to_address == recipient), None)
        if matching is None:
            return self._reject(claim, f"No transfer to {claim.expected_recipient} found")

        if matching.amount is None:
            return self._reject(claim, "Transfer amount could not be decoded")

        expected = to_base_units(claim.expected_amount, self.decimals)
        if not within_tolerance(matching.amount, expected):
            return self._reject(
                claim, f"Amount mismatch: {matching.amount} vs expected {expected}"
            )

        logger.info(
            f"Verified transfer of {matching.amount} base units from {transaction.from_address} "
            f"to {matching.to_address} in {claim.tx_hash}"
        )
        return MatchResult(matched=True, transfer=matching)


def match_transfer(
    receipt: TxReceipt,
    transaction: Optional[ChainTransaction],
    claim: TransferClaim,
    decimals: int = DEFAULT_TOKEN_DECIMALS
) -> bool:
    """Boolean shortcut for ``TransferMatcher(decimals).match(...)``."""
    return bool(TransferMatcher(decimals).match(receipt, transaction, claim))
