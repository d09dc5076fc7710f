"""
Ledger for token id reservations and storefront records.
"""
from .allocator import LedgerAllocator, TokenIdAllocator, get_allocator
from .records import RecordBook
from .store import BaseLedgerStore, LedgerStore, MemoryLedgerStore

__all__ = [
    'TokenIdAllocator',
    'LedgerAllocator',
    'get_allocator',
    'RecordBook',
    'BaseLedgerStore',
    'LedgerStore',
    'MemoryLedgerStore',
]
