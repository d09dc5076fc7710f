"""
Data models for the mint oracle.
"""
import re
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3

from .exceptions import RejectionReason

TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _hex_quantity(value: Any) -> Any:
    """Decode JSON-RPC hex quantities ("0x1") while passing ints through."""
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text, 16) if len(text) > 2 else 0
        if text.isdigit():
            return int(text)
    return value


def _amount_to_json(amount: Optional[Decimal]) -> Optional[Union[int, float]]:
    if amount is None:
        return None
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


class LogEntry(BaseModel):
    """A single event log from a transaction receipt"""
    address: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    data: str = "0x"
    log_index: Optional[int] = Field(None, alias="logIndex")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("log_index", mode="before")
    @classmethod
    def _decode_log_index(cls, value):
        return _hex_quantity(value)


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    tx_hash: str = Field(..., alias="transactionHash")
    block_number: Optional[int] = Field(None, alias="blockNumber")
    block_hash: Optional[str] = Field(None, alias="blockHash")
    status: int
    gas_used: Optional[int] = Field(None, alias="gasUsed")
    from_address: Optional[str] = Field(None, alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    logs: List[LogEntry] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("status", "block_number", "gas_used", mode="before")
    @classmethod
    def _decode_quantities(cls, value):
        return _hex_quantity(value)

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class ChainTransaction(BaseModel):
    """Transaction body as returned by eth_getTransactionByHash"""
    tx_hash: str = Field(..., alias="hash")
    from_address: str = Field(..., alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    block_number: Optional[int] = Field(None, alias="blockNumber")
    value: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("block_number", "value", mode="before")
    @classmethod
    def _decode_quantities(cls, value):
        return _hex_quantity(value)


class TransferLogEntry(BaseModel):
    """An ERC-20 Transfer event decoded from a receipt log"""
    event_signature_topic: str
    from_address: str
    to_address: str
    amount: Optional[int] = None
    token_address: Optional[str] = None


class TransferClaim(BaseModel):
    """What the buyer claims to have paid; built per request, never persisted"""
    tx_hash: str
    expected_sender: str
    expected_recipient: str
    expected_amount: Decimal
    token_address: Optional[str] = None


class MintAuthorization(BaseModel):
    """Signed proof of payment accepted by the on-chain verifier"""
    token_id: int
    verified: bool = True
    signature: str
    expected_amount: Decimal
    tx_hash: str
    minter: str


class Rejection(BaseModel):
    """Structured, non-exceptional verification failure"""
    verified: bool = False
    reason: RejectionReason
    error: str
    token_id: Optional[int] = None


class ReservationStatus(str, Enum):
    """Lifecycle of a reserved token id."""
    PENDING = "pending"
    AUTHORIZED = "authorized"
    MINTED = "minted"


class Reservation(BaseModel):
    """A token id held by one payment transaction"""
    token_id: int
    tx_hash: str
    wallet_address: str
    status: ReservationStatus = ReservationStatus.PENDING
    expected_amount: Optional[Decimal] = None
    mint_tx: Optional[str] = None
    reserved_at: Optional[str] = None


class VerifyTransferRequest(BaseModel):
    """Inbound verify-transfer payload, validated before any chain I/O"""
    tx_hash: str = Field(..., alias="txHash")
    wallet_address: str = Field(..., alias="walletAddress")
    amount: Optional[Decimal] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("tx_hash")
    @classmethod
    def _check_tx_hash(cls, value: str) -> str:
        value = value.strip()
        if not TX_HASH_RE.match(value):
            raise ValueError("txHash must be a 0x-prefixed 32-byte hex string")
        return value.lower()

    @field_validator("wallet_address")
    @classmethod
    def _check_wallet_address(cls, value: str) -> str:
        value = value.strip()
        if not ADDRESS_RE.match(value):
            raise ValueError("walletAddress must be a 0x-prefixed 20-byte hex address")
        return Web3.to_checksum_address(value)


class VerifyTransferResponse(BaseModel):
    """Outbound verify-transfer payload"""
    verified: bool
    signature: Optional[str] = None
    token_id: Optional[int] = Field(None, alias="tokenId")
    expected_amount: Optional[Decimal] = Field(None, alias="expectedAmount")
    error: Optional[str] = None
    reason: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: Union[MintAuthorization, Rejection]) -> "VerifyTransferResponse":
        if isinstance(result, MintAuthorization):
            return cls(
                verified=True,
                signature=result.signature,
                token_id=result.token_id,
                expected_amount=result.expected_amount,
            )
        return cls(verified=False, error=result.error, reason=result.reason.value)

    def to_json(self) -> Dict[str, Any]:
        body = self.model_dump(by_alias=True, exclude_none=True)
        if "expectedAmount" in body:
            body["expectedAmount"] = _amount_to_json(self.expected_amount)
        return body


class NftMetadataRecord(BaseModel):
    """Stored metadata for a minted voucher NFT"""
    token_id: int
    purchase_price: Decimal
    face_value_usd: Decimal
    image_url: str
    owner_address: str
    payment_tx: Optional[str] = None
    mint_tx: Optional[str] = None
    created_at: Optional[str] = None


class PurchaseRecord(BaseModel):
    """Stored purchase, keyed by wallet address"""
    wallet_address: str
    payment_tx: str
    fid: str
    email: Optional[str] = None
    mint_tx: Optional[str] = None
    token_id: Optional[int] = None
    created_at: Optional[str] = None


class NftMetadataRequest(BaseModel):
    """Inbound nft-metadata payload"""
    token_id: Optional[int] = Field(None, alias="tokenId", ge=1)
    purchase_price: Decimal = Field(..., alias="purchasePriceHigher", gt=0)
    owner_address: str = Field(..., alias="ownerAddress")
    payment_tx: Optional[str] = Field(None, alias="paymentTx")
    mint_tx: Optional[str] = Field(None, alias="mintTx")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("owner_address")
    @classmethod
    def _check_owner_address(cls, value: str) -> str:
        value = value.strip()
        if not ADDRESS_RE.match(value):
            raise ValueError("ownerAddress must be a 0x-prefixed 20-byte hex address")
        return Web3.to_checksum_address(value)

    @field_validator("payment_tx", "mint_tx")
    @classmethod
    def _check_tx_hashes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not TX_HASH_RE.match(value):
            raise ValueError("transaction hashes must be 0x-prefixed 32-byte hex strings")
        return value.lower()


class PurchaseRequest(BaseModel):
    """Inbound purchase payload"""
    wallet_address: str = Field(..., alias="walletAddress")
    tx_hash: str = Field(..., alias="txHash")
    fid: str = Field(..., min_length=1)
    email: Optional[str] = None
    token_id: Optional[int] = Field(None, alias="tokenId", ge=1)
    mint_tx: Optional[str] = Field(None, alias="mintTx")

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    @field_validator("wallet_address")
    @classmethod
    def _check_wallet_address(cls, value: str) -> str:
        value = value.strip()
        if not ADDRESS_RE.match(value):
            raise ValueError("walletAddress must be a 0x-prefixed 20-byte hex address")
        return Web3.to_checksum_address(value)

    @field_validator("tx_hash")
    @classmethod
    def _check_tx_hash(cls, value: str) -> str:
        value = value.strip()
        if not TX_HASH_RE.match(value):
            raise ValueError("txHash must be a 0x-prefixed 32-byte hex string")
        return value.lower()
