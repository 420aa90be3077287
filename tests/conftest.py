# MIT License
# Copyright (c) 2025 Hashborn

import os
import shutil
import tempfile

import pytest

from stakeledger.ledger.core.events import EventBus
from stakeledger.ledger.core.ledger import Ledger
from stakeledger.protocol.config.params import CUSTODY_ADDRESS, LedgerConfig, SECONDS_PER_DAY

ADMIN = "stk1admin"
ALICE = "stk1alice"
BOB = "stk1bob"
CAROL = "stk1carol"

START_TIME = 1_700_000_000
MAX_SUPPLY = 1_000_000
RATE_BPS = 500
MIN_DURATION = SECONDS_PER_DAY


class FakeClock:
    """Controllable clock; the ledger reads it once per operation."""

    def __init__(self, now: int = START_TIME):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int):
        self.now += seconds


def make_config(default_logic: str = "v2") -> LedgerConfig:
    return LedgerConfig(
        network_id="test",
        token_name="Test Ledger",
        token_symbol="TST",
        initial_max_supply=MAX_SUPPLY,
        reward_rate_bps=RATE_BPS,
        min_staking_duration=MIN_DURATION,
        default_logic=default_logic,
        max_events=1000,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_dir():
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def make_ledger(db_dir, clock):
    """Factory for ledgers sharing one data dir (reopening sees the same DB)."""
    opened = []

    def factory(logic: str = "v2") -> Ledger:
        ledger = Ledger(os.path.join(db_dir, "ledger.db"), config=make_config(logic), clock=clock, bus=EventBus())
        opened.append(ledger)
        return ledger

    yield factory

    for ledger in opened:
        ledger.close()


@pytest.fixture
def ledger(make_ledger):
    """v2 ledger with both schema setups done."""
    ledger = make_ledger()
    ledger.initialize(ADMIN, MAX_SUPPLY)
    ledger.initialize_v2(ADMIN, RATE_BPS, MIN_DURATION)
    return ledger


@pytest.fixture
def funded_ledger(ledger):
    """ALICE holds 100,000 units."""
    ledger.mint(ADMIN, ALICE, 100_000)
    return ledger


def _check_invariants(ledger: Ledger):
    state = ledger.state
    balances = sum(acc.balance for acc in state.get_all_accounts())
    assert balances == state.supply.total_supply

    if state.schema_version >= 2:
        staked = sum(record.staked_amount for record in state.get_all_stakes())
        assert state.staking_v2.total_staked == staked
        assert state.staking_v2.total_staked == state.get_account(CUSTODY_ADDRESS).balance


@pytest.fixture
def check_invariants():
    """Conservation and staking accounting checks."""
    return _check_invariants
