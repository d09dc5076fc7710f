"""
Packed mint message, byte-for-byte as the verifier contract rebuilds it.

The verifier computes::

    keccak256(abi.encodePacked("\\x19Ethereum Signed Message:\\n84", txHash, msg.sender, tokenId))

with ``txHash`` a bytes32, ``msg.sender`` an address and ``tokenId`` a
uint256. The "84" is the literal length of the 32 + 20 + 32 byte payload.
"""
from web3 import Web3

MINT_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n84"
PACKED_PAYLOAD_LENGTH = 84
UINT256_MAX = 2 ** 256 - 1


def tx_hash_bytes(tx_hash: str) -> bytes:
    """Decode a 0x-hex transaction hash into its 32 raw bytes."""
    value = tx_hash if tx_hash.startswith("0x") else f"0x{tx_hash}"
    raw = Web3.to_bytes(hexstr=value)
    if len(raw) != 32:
        raise ValueError(f"Transaction hash must be 32 bytes, got {len(raw)}")
    return raw


def address_bytes(address: str) -> bytes:
    """Decode a 0x-hex address into its 20 raw bytes."""
    if not Web3.is_address(address):
        raise ValueError(f"Invalid address: {address}")
    return Web3.to_bytes(hexstr=address)


def uint256_bytes(value: int) -> bytes:
    """Encode an unsigned integer as a 32-byte big-endian word."""
    if not 0 <= value <= UINT256_MAX:
        raise ValueError(f"Value out of uint256 range: {value}")
    return value.to_bytes(32, "big")


def pack_mint_message(tx_hash: str, minter: str, token_id: int) -> bytes:
    """
    Build the packed message the verifier hashes.

    Args:
        tx_hash: Verified payment transaction hash (bytes32)
        minter: Address that will call mint (msg.sender on chain)
        token_id: Token id the authorization is bound to

    Returns:
        Prefix followed by the 84-byte payload
    """
    return MINT_MESSAGE_PREFIX + tx_hash_bytes(tx_hash) + address_bytes(minter) + uint256_bytes(token_id)


def mint_message_hash(tx_hash: str, minter: str, token_id: int) -> bytes:
    """keccak256 digest of the packed mint message."""
    return bytes(Web3.keccak(pack_mint_message(tx_hash, minter, token_id)))
