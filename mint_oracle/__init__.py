"""
Mint Oracle - payment verification and mint authorization for voucher NFTs.
"""
from .chain import ChainClient, ReceiptFetcher, TransferMatcher, extract_minted_token_id, match_transfer
from .config import OracleSettings
from .exceptions import (
    ChainError,
    ConfigurationError,
    MalformedRequestError,
    MintOracleError,
    ReceiptUnavailableError,
    RejectionReason,
    SigningUnavailableError,
    TokenIdConflictError,
    TransferNotVerifiedError,
    VerificationError,
)
from .ledger import LedgerAllocator, RecordBook, get_allocator
from .models import MintAuthorization, Rejection, TransferClaim, TxReceipt
from .oracle import VerificationOracle, VerificationState
from .pricing import PriceSchedule
from .retry import RetryPolicy
from .signing import MintSigner, pack_mint_message, recover_mint_signer
from .version import __version__

__all__ = [
    "VerificationOracle",
    "VerificationState",
    "OracleSettings",
    "ChainClient",
    "ReceiptFetcher",
    "TransferMatcher",
    "match_transfer",
    "extract_minted_token_id",
    "LedgerAllocator",
    "get_allocator",
    "RecordBook",
    "MintSigner",
    "pack_mint_message",
    "recover_mint_signer",
    "PriceSchedule",
    "RetryPolicy",
    "TransferClaim",
    "TxReceipt",
    "MintAuthorization",
    "Rejection",
    "RejectionReason",
    "MintOracleError",
    "ConfigurationError",
    "MalformedRequestError",
    "ChainError",
    "VerificationError",
    "ReceiptUnavailableError",
    "TransferNotVerifiedError",
    "TokenIdConflictError",
    "SigningUnavailableError",
    "__version__",
]
