# MIT License
# Copyright (c) 2025 Hashborn

"""
Supply ledger: capped minting, ceiling updates, transfers and burns.
"""

import pytest

from stakeledger.protocol.config.params import CUSTODY_ADDRESS, MAX_UINT256
from stakeledger.protocol.types.common import (
    InsufficientBalance, InvalidAmount, InvalidIdentity, SupplyCapExceeded, Unauthorized,
)

from conftest import ADMIN, ALICE, BOB, MAX_SUPPLY


def test_mint_credits_balance_and_supply(ledger, check_invariants):
    ledger.mint(ADMIN, ALICE, 100_000)

    assert ledger.total_supply == 100_000
    assert ledger.balance_of(ALICE) == 100_000
    check_invariants(ledger)

    event = ledger.events.recent(kind="Minted")[-1]
    assert event.fields == {"to": ALICE, "amount": 100_000, "minter": ADMIN}


def test_mint_up_to_cap_exactly(ledger, check_invariants):
    ledger.mint(ADMIN, ALICE, MAX_SUPPLY)
    assert ledger.total_supply == MAX_SUPPLY
    check_invariants(ledger)


def test_mint_over_cap_fails_without_mutation(funded_ledger):
    ledger = funded_ledger
    root_before = ledger.state.compute_state_root()

    with pytest.raises(SupplyCapExceeded):
        ledger.mint(ADMIN, BOB, MAX_SUPPLY - 100_000 + 1)

    assert ledger.total_supply == 100_000
    assert ledger.balance_of(BOB) == 0
    assert ledger.state.compute_state_root() == root_before


def test_mint_requires_minter(ledger):
    with pytest.raises(Unauthorized):
        ledger.mint(ALICE, ALICE, 10)
    assert ledger.total_supply == 0


@pytest.mark.parametrize("amount", [0, -5, True, "10", MAX_UINT256 + 1])
def test_mint_rejects_bad_amounts(ledger, amount):
    with pytest.raises(InvalidAmount):
        ledger.mint(ADMIN, ALICE, amount)
    assert ledger.total_supply == 0


@pytest.mark.parametrize("recipient", ["", None, CUSTODY_ADDRESS])
def test_mint_rejects_bad_recipient(ledger, recipient):
    with pytest.raises(InvalidIdentity):
        ledger.mint(ADMIN, recipient, 10)
    assert ledger.total_supply == 0


def test_update_max_supply(funded_ledger):
    ledger = funded_ledger
    ledger.update_max_supply(ADMIN, 100_000)
    assert ledger.max_supply == 100_000

    with pytest.raises(SupplyCapExceeded):
        ledger.mint(ADMIN, BOB, 1)

    event = ledger.events.recent(kind="MaxSupplyUpdated")[-1]
    assert event.fields == {"old": MAX_SUPPLY, "new": 100_000}


def test_update_max_supply_rejects_below_total(funded_ledger):
    ledger = funded_ledger
    with pytest.raises(InvalidAmount):
        ledger.update_max_supply(ADMIN, 99_999)
    with pytest.raises(InvalidAmount):
        ledger.update_max_supply(ADMIN, 0)
    assert ledger.max_supply == MAX_SUPPLY


def test_update_max_supply_requires_admin(funded_ledger):
    with pytest.raises(Unauthorized):
        funded_ledger.update_max_supply(ALICE, 5_000_000)
    assert funded_ledger.max_supply == MAX_SUPPLY


def test_transfer_conserves_supply(funded_ledger, check_invariants):
    ledger = funded_ledger
    ledger.transfer(ALICE, BOB, 30_000)

    assert ledger.balance_of(ALICE) == 70_000
    assert ledger.balance_of(BOB) == 30_000
    assert ledger.total_supply == 100_000
    check_invariants(ledger)

    event = ledger.events.recent(kind="Transfer")[-1]
    assert event.fields == {"sender": ALICE, "to": BOB, "amount": 30_000}


def test_transfer_insufficient_balance(funded_ledger):
    ledger = funded_ledger
    with pytest.raises(InsufficientBalance):
        ledger.transfer(ALICE, BOB, 100_001)
    assert ledger.balance_of(ALICE) == 100_000
    assert ledger.balance_of(BOB) == 0


def test_transfer_to_custody_rejected(funded_ledger):
    with pytest.raises(InvalidIdentity):
        funded_ledger.transfer(ALICE, CUSTODY_ADDRESS, 1)
    assert funded_ledger.custody_balance == 0


def test_burn_reduces_supply(funded_ledger, check_invariants):
    ledger = funded_ledger
    ledger.burn(ALICE, 40_000)

    assert ledger.balance_of(ALICE) == 60_000
    assert ledger.total_supply == 60_000
    check_invariants(ledger)

    # Burned headroom can be minted again
    ledger.mint(ADMIN, BOB, MAX_SUPPLY - 60_000)
    assert ledger.total_supply == MAX_SUPPLY


def test_burn_more_than_balance(funded_ledger):
    with pytest.raises(InsufficientBalance):
        funded_ledger.burn(ALICE, 100_001)
    assert funded_ledger.total_supply == 100_000
