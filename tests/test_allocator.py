"""
Tests for token id reservation.
"""
import json
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from mint_oracle.exceptions import TokenIdConflictError
from mint_oracle.ledger.allocator import LedgerAllocator, get_allocator
from mint_oracle.ledger.store import LedgerStore, MemoryLedgerStore
from mint_oracle.models import ReservationStatus
from test_helpers.oracle_creator import TEST_BUYER, TEST_MINT_TX, TEST_OTHER


def _tx(n: int) -> str:
    return "0x" + f"{n:064x}"


@pytest.fixture(params=["memory", "file"])
def any_allocator(request, ledger_path):
    if request.param == "memory":
        return LedgerAllocator(MemoryLedgerStore())
    return LedgerAllocator(LedgerStore(ledger_path))


def test_first_id_is_one(any_allocator):
    assert any_allocator.next_token_id() == 1
    reservation = any_allocator.reserve(_tx(1), TEST_BUYER)
    assert reservation.token_id == 1
    assert reservation.status == ReservationStatus.PENDING
    assert any_allocator.next_token_id() == 2


def test_ids_increase(any_allocator):
    ids = [any_allocator.reserve(_tx(n), TEST_BUYER).token_id for n in range(1, 6)]
    assert ids == [1, 2, 3, 4, 5]


def test_reserve_is_idempotent_per_tx(any_allocator):
    first = any_allocator.reserve(_tx(1), TEST_BUYER)
    again = any_allocator.reserve(_tx(1).upper().replace("0X", "0x"), TEST_BUYER)
    assert again.token_id == first.token_id
    assert any_allocator.next_token_id() == 2


def test_confirm_marks_authorized(any_allocator):
    reservation = any_allocator.reserve(_tx(1), TEST_BUYER)
    confirmed = any_allocator.confirm(reservation.token_id, _tx(1), Decimal("4450"))
    assert confirmed.status == ReservationStatus.AUTHORIZED
    assert confirmed.expected_amount == Decimal("4450")
    assert any_allocator.get(1).status == ReservationStatus.AUTHORIZED


def test_confirm_by_other_tx_conflicts(any_allocator):
    any_allocator.reserve(_tx(1), TEST_BUYER)
    with pytest.raises(TokenIdConflictError):
        any_allocator.confirm(1, _tx(2))


def test_confirm_after_release_conflicts(any_allocator):
    any_allocator.reserve(_tx(1), TEST_BUYER)
    assert any_allocator.release(1, _tx(1))
    with pytest.raises(TokenIdConflictError):
        any_allocator.confirm(1, _tx(1))


def test_release_frees_id_for_reuse(any_allocator):
    any_allocator.reserve(_tx(1), TEST_BUYER)
    assert any_allocator.release(1, _tx(1))
    assert any_allocator.get(1) is None
    assert any_allocator.reserve(_tx(2), TEST_OTHER).token_id == 1


def test_release_fills_hole_first(any_allocator):
    for n in range(1, 4):
        any_allocator.reserve(_tx(n), TEST_BUYER)
    any_allocator.release(2, _tx(2))
    assert any_allocator.next_token_id() == 2
    assert any_allocator.reserve(_tx(4), TEST_BUYER).token_id == 2
    assert any_allocator.reserve(_tx(5), TEST_BUYER).token_id == 4


def test_release_ignores_authorized(any_allocator):
    any_allocator.reserve(_tx(1), TEST_BUYER)
    any_allocator.confirm(1, _tx(1))
    assert not any_allocator.release(1, _tx(1))
    assert any_allocator.get(1) is not None


def test_release_requires_owner(any_allocator):
    any_allocator.reserve(_tx(1), TEST_BUYER)
    assert not any_allocator.release(1, _tx(2))
    assert not any_allocator.release(9, _tx(1))


def test_mark_minted(any_allocator):
    any_allocator.reserve(_tx(1), TEST_BUYER)
    any_allocator.confirm(1, _tx(1))
    minted = any_allocator.mark_minted(1, TEST_MINT_TX)
    assert minted.status == ReservationStatus.MINTED
    assert minted.mint_tx == TEST_MINT_TX


def test_mark_minted_unknown_id(any_allocator):
    with pytest.raises(TokenIdConflictError):
        any_allocator.mark_minted(3, TEST_MINT_TX)


def test_concurrent_reservations_are_unique_and_contiguous(any_allocator):
    with ThreadPoolExecutor(max_workers=8) as pool:
        reservations = list(pool.map(lambda n: any_allocator.reserve(_tx(n), TEST_BUYER), range(1, 41)))

    ids = sorted(r.token_id for r in reservations)
    assert ids == list(range(1, 41))


def test_concurrent_duplicates_share_one_id(any_allocator):
    with ThreadPoolExecutor(max_workers=8) as pool:
        reservations = list(pool.map(lambda _: any_allocator.reserve(_tx(7), TEST_BUYER), range(20)))

    assert {r.token_id for r in reservations} == {1}


def test_file_ledger_persists(ledger_path):
    first = LedgerAllocator(LedgerStore(ledger_path))
    first.reserve(_tx(1), TEST_BUYER)

    second = LedgerAllocator(LedgerStore(ledger_path))
    assert second.next_token_id() == 2
    with open(ledger_path) as f:
        data = json.load(f)
    assert data["reservations"]["1"]["tx_hash"] == _tx(1)


def test_get_allocator_kinds(ledger_path):
    assert isinstance(get_allocator("memory").store, MemoryLedgerStore)
    ledger = get_allocator("ledger", ledger_path)
    assert isinstance(ledger.store, LedgerStore)
    with pytest.raises(ValueError):
        get_allocator("redis")
