"""
Oracle settings loaded from the environment.
"""
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from web3 import Web3

from .chain.client import ChainClient, build_provider_url
from .chain.fetcher import RECEIPT_MAX_ATTEMPTS, RECEIPT_RETRY_DELAY, ReceiptFetcher
from .chain.matcher import TransferMatcher
from .exceptions import ConfigurationError
from .ledger.allocator import LedgerAllocator, get_allocator
from .ledger.records import RecordBook
from .ledger.store import DEFAULT_LEDGER_PATH
from .pricing import DEFAULT_PRICE_TIERS, DEFAULT_TOKEN_DECIMALS, PriceSchedule
from .retry import RetryPolicy
from .signing.signer import SIGNER_KEY_ENV, MintSigner

logger = logging.getLogger(__name__)

ALLOCATOR_KINDS = ("ledger", "memory")


def _checksum(name: str, value: str) -> str:
    if not Web3.is_address(value):
        raise ConfigurationError(f"{name} is not a valid address: {value}")
    return Web3.to_checksum_address(value)


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer (got: {raw})") from None


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number (got: {raw})") from None


@dataclass
class OracleSettings:
    """
    Everything needed to wire the oracle together.

    Build with ``OracleSettings.from_env()`` in deployments; tests construct
    it directly.
    """
    recipient_address: str
    alchemy_api_key: Optional[str] = None
    network: str = "base-mainnet"
    rpc_url: Optional[str] = None
    signer_private_key: Optional[str] = field(default=None, repr=False)
    token_address: Optional[str] = None
    nft_address: Optional[str] = None
    token_decimals: int = DEFAULT_TOKEN_DECIMALS
    token_symbol: str = "HIGHER"
    receipt_attempts: int = RECEIPT_MAX_ATTEMPTS
    receipt_delay: float = RECEIPT_RETRY_DELAY
    allocator: str = "ledger"
    ledger_path: str = DEFAULT_LEDGER_PATH
    price_tiers: PriceSchedule = field(default_factory=lambda: PriceSchedule(DEFAULT_PRICE_TIERS))
    base_url: str = "https://yourdomain.com"
    face_value_usd: Decimal = Decimal("25")
    collection_name: str = "Erewhon Gift Card"
    host: str = "0.0.0.0"
    port: int = 8000

    def __post_init__(self):
        if not self.recipient_address:
            raise ConfigurationError("ORACLE_RECIPIENT_ADDRESS is required")
        self.recipient_address = _checksum("ORACLE_RECIPIENT_ADDRESS", self.recipient_address)
        if self.token_address:
            self.token_address = _checksum("ORACLE_TOKEN_ADDRESS", self.token_address)
        if self.nft_address:
            self.nft_address = _checksum("ORACLE_NFT_ADDRESS", self.nft_address)
        if self.allocator not in ALLOCATOR_KINDS:
            raise ConfigurationError(
                f"ORACLE_ALLOCATOR must be one of {', '.join(ALLOCATOR_KINDS)} (got: {self.allocator})"
            )
        if not 0 <= self.token_decimals <= 36:
            raise ConfigurationError(f"ORACLE_TOKEN_DECIMALS out of range: {self.token_decimals}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OracleSettings":
        """
        Read settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigurationError: If a value is missing or malformed
        """
        env = os.environ if environ is None else environ

        tiers_raw = env.get("ORACLE_PRICE_TIERS")
        try:
            schedule = PriceSchedule.parse(tiers_raw) if tiers_raw else PriceSchedule(DEFAULT_PRICE_TIERS)
        except (ValueError, InvalidOperation) as e:
            raise ConfigurationError(f"ORACLE_PRICE_TIERS is invalid: {e}") from e

        face_raw = env.get("ORACLE_FACE_VALUE_USD", "25")
        try:
            face_value = Decimal(face_raw)
        except InvalidOperation:
            raise ConfigurationError(f"ORACLE_FACE_VALUE_USD must be a number (got: {face_raw})") from None

        return cls(
            recipient_address=env.get("ORACLE_RECIPIENT_ADDRESS", ""),
            alchemy_api_key=env.get("ALCHEMY_API_KEY") or None,
            network=env.get("ORACLE_CHAIN_NETWORK", "base-mainnet"),
            rpc_url=env.get("ORACLE_RPC_URL") or None,
            signer_private_key=env.get(SIGNER_KEY_ENV) or None,
            token_address=env.get("ORACLE_TOKEN_ADDRESS") or None,
            nft_address=env.get("ORACLE_NFT_ADDRESS") or None,
            token_decimals=_int(env, "ORACLE_TOKEN_DECIMALS", DEFAULT_TOKEN_DECIMALS),
            token_symbol=env.get("ORACLE_TOKEN_SYMBOL", "HIGHER"),
            receipt_attempts=_int(env, "ORACLE_RECEIPT_ATTEMPTS", RECEIPT_MAX_ATTEMPTS),
            receipt_delay=_float(env, "ORACLE_RECEIPT_DELAY", RECEIPT_RETRY_DELAY),
            allocator=env.get("ORACLE_ALLOCATOR", "ledger").lower(),
            ledger_path=env.get("ORACLE_LEDGER_PATH", DEFAULT_LEDGER_PATH),
            price_tiers=schedule,
            base_url=env.get("ORACLE_BASE_URL", "https://yourdomain.com"),
            face_value_usd=face_value,
            collection_name=env.get("ORACLE_COLLECTION_NAME", "Erewhon Gift Card"),
            host=env.get("ORACLE_HOST", "0.0.0.0"),
            port=_int(env, "ORACLE_PORT", 8000),
        )

    @property
    def provider_url(self) -> str:
        if self.rpc_url:
            return self.rpc_url
        return build_provider_url(self.alchemy_api_key or "", self.network)

    def build_retry_policy(self) -> RetryPolicy:
        try:
            return RetryPolicy(max_attempts=self.receipt_attempts, delay=self.receipt_delay)
        except ValueError as e:
            raise ConfigurationError(f"Invalid receipt retry settings: {e}") from e

    def build_fetcher(self) -> ReceiptFetcher:
        client = ChainClient(self.provider_url)
        logger.info(f"Reading receipts from {self.network}")
        return ReceiptFetcher(client, self.build_retry_policy())

    def build_matcher(self) -> TransferMatcher:
        return TransferMatcher(decimals=self.token_decimals)

    def build_signer(self) -> MintSigner:
        signer = MintSigner(self.signer_private_key)
        if not signer.available:
            logger.warning(f"{SIGNER_KEY_ENV} is not set; verification requests will fail")
        return signer

    def build_allocator(self) -> LedgerAllocator:
        return get_allocator(self.allocator, self.ledger_path)

    def build_records(self, allocator: LedgerAllocator) -> RecordBook:
        """Records share the allocator's store so both live in one ledger."""
        return RecordBook(allocator.store)
