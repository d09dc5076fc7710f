"""
Signing module for the mint oracle.

This module reproduces the verifier contract's packed message and signs it
with the oracle key.
"""
from .packer import MINT_MESSAGE_PREFIX, mint_message_hash, pack_mint_message
from .signer import MintSigner, recover_mint_signer

__all__ = [
    'MINT_MESSAGE_PREFIX',
    'pack_mint_message',
    'mint_message_hash',
    'MintSigner',
    'recover_mint_signer',
]
