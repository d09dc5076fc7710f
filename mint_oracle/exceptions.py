"""
Exceptions for the mint oracle.
"""
from enum import Enum
from typing import Optional


class RejectionReason(str, Enum):
    """
    Reason codes reported to the storefront when a claim is not authorized.

    These are serialized verbatim into the ``reason`` field of the
    verify-transfer response.
    """
    RECEIPT_UNAVAILABLE = "ReceiptUnavailable"
    TRANSFER_NOT_VERIFIED = "TransferNotVerified"
    ALLOCATION_CONFLICT = "AllocationConflict"


class MintOracleError(Exception):
    """Base exception for mint oracle errors."""
    pass


class ConfigurationError(MintOracleError):
    """Raised when oracle settings are missing or invalid."""
    pass


class MalformedRequestError(MintOracleError):
    """Raised when an inbound claim is missing fields or badly formatted."""
    pass


class ChainError(MintOracleError):
    """Raised when a chain-data provider call fails at the transport level."""
    pass


class VerificationError(MintOracleError):
    """
    Base class for failures that end a verification request without
    authorizing a mint.

    The orchestrator converts these into structured rejections; they never
    cross the HTTP boundary as exceptions.
    """
    reason: RejectionReason = RejectionReason.TRANSFER_NOT_VERIFIED

    def __init__(self, message: str, reason: Optional[RejectionReason] = None):
        if reason is not None:
            self.reason = reason
        super().__init__(message)


class ReceiptUnavailableError(VerificationError):
    """Raised when the receipt is still missing after all fetch attempts."""
    reason = RejectionReason.RECEIPT_UNAVAILABLE


class TransferNotVerifiedError(VerificationError):
    """Raised when the receipt does not prove the expected payment."""
    reason = RejectionReason.TRANSFER_NOT_VERIFIED


class TokenIdConflictError(VerificationError):
    """Raised when a reserved token id is no longer held by the claiming payment."""
    reason = RejectionReason.ALLOCATION_CONFLICT


class SigningUnavailableError(MintOracleError):
    """
    Raised when no signing key is configured or the key is unusable.

    This is operator-fatal: no authorization can be issued until the
    deployment is fixed, so callers must not treat it as a rejection.
    """
    pass
