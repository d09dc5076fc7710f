"""
Chain access for the mint oracle.

This package reads payment receipts from a single chain's JSON-RPC provider
and decides whether they prove an expected ERC-20 transfer.
"""
from .client import ChainClient, build_provider_url
from .fetcher import ReceiptFetcher
from .matcher import (
    TRANSFER_EVENT_TOPIC,
    MatchResult,
    TransferMatcher,
    extract_minted_token_id,
    match_transfer,
    parse_transfer_logs,
)

__all__ = [
    'ChainClient',
    'build_provider_url',
    'ReceiptFetcher',
    'TransferMatcher',
    'MatchResult',
    'match_transfer',
    'parse_transfer_logs',
    'extract_minted_token_id',
    'TRANSFER_EVENT_TOPIC',
]
