# MIT License
# Copyright (c) 2025 Hashborn

"""
Tests for logic swaps: partitions survive, setups run atomically with the
swap, and the stored schema never outruns the active logic.
"""

import pytest

from stakeledger.ledger.core.accounts import LogicPointer
from stakeledger.ledger.storage.partitions import LEDGER_V1_PARTITION
from stakeledger.ledger.upgrade import MigrationRegistry, UpgradePlan, get_global_registry
from stakeledger.protocol.types.common import (
    InvalidAmount, Unauthorized, UnsupportedOperation, ValidationError, VersionTooLow,
)

from conftest import ADMIN, ALICE, BOB, MAX_SUPPLY, MIN_DURATION, RATE_BPS

ENABLE_STAKING = UpgradePlan(
    name="EnableStaking",
    logic="v2",
    setup_version=2,
    setup_params={"reward_rate_bps": RATE_BPS, "min_staking_duration": MIN_DURATION},
)


@pytest.fixture
def v1_ledger(make_ledger):
    ledger = make_ledger("v1")
    ledger.initialize(ADMIN, MAX_SUPPLY)
    ledger.mint(ADMIN, ALICE, 100_000)
    ledger.add_minter(ADMIN, BOB)
    return ledger


def test_v1_logic_has_no_staking(v1_ledger):
    assert v1_ledger.logic.name == "v1"

    with pytest.raises(UnsupportedOperation):
        v1_ledger.stake(ALICE, 10)
    with pytest.raises(UnsupportedOperation):
        v1_ledger.initialize_v2(ADMIN)
    with pytest.raises(UnsupportedOperation):
        v1_ledger.stake_info(ALICE)
    assert v1_ledger.schema_version == 1


def test_upgrade_with_setup_preserves_v1_partition(v1_ledger, check_invariants):
    ledger = v1_ledger
    v1_raw = ledger.db.get_state(LEDGER_V1_PARTITION.key("state"))

    ledger.upgrade(ADMIN, ENABLE_STAKING)

    assert ledger.logic.name == "v2"
    assert ledger.state.logic.name == "v2"
    assert ledger.schema_version == 2
    assert ledger.reward_rate_bps == RATE_BPS
    assert ledger.db.get_state(LEDGER_V1_PARTITION.key("state")) == v1_raw

    # Everything written by v1 is still readable
    assert ledger.balance_of(ALICE) == 100_000
    assert ledger.minters == [ADMIN, BOB]
    assert ledger.administrator == ADMIN

    ledger.stake(ALICE, 10_000)
    assert ledger.total_staked == 10_000
    check_invariants(ledger)

    upgraded = ledger.events.recent(kind="Upgraded")[-1]
    assert upgraded.fields == {"name": "EnableStaking", "old": "v1", "new": "v2", "setup_version": 2}
    assert ledger.events.recent(kind="UpgradeAuthorized")


def test_upgrade_requires_admin(v1_ledger):
    with pytest.raises(Unauthorized):
        v1_ledger.upgrade(ALICE, ENABLE_STAKING)

    assert v1_ledger.logic.name == "v1"
    assert v1_ledger.state.logic.name == "v1"
    assert v1_ledger.schema_version == 1
    assert not v1_ledger.events.recent(kind="UpgradeAuthorized")


def test_upgrade_without_setup_leaves_partition_unreachable(v1_ledger):
    ledger = v1_ledger
    ledger.upgrade(ADMIN, UpgradePlan(name="SwapOnly", logic="v2"))

    assert ledger.logic.name == "v2"
    assert ledger.schema_version == 1
    with pytest.raises(VersionTooLow):
        ledger.stake(ALICE, 10)

    # The setup can follow as a separate admin operation
    ledger.initialize_v2(ADMIN)
    assert ledger.schema_version == 2
    assert ledger.reward_rate_bps == RATE_BPS
    ledger.stake(ALICE, 10)


def test_downgrade_below_schema_rejected(ledger):
    with pytest.raises(VersionTooLow):
        ledger.upgrade(ADMIN, UpgradePlan(name="Rollback", logic="v1"))
    assert ledger.logic.name == "v2"


def test_failed_setup_rolls_back_swap(v1_ledger):
    ledger = v1_ledger
    root_before = ledger.state.compute_state_root()
    plan = UpgradePlan(name="BadRate", logic="v2", setup_version=2,
                       setup_params={"reward_rate_bps": -1})

    with pytest.raises(InvalidAmount):
        ledger.upgrade(ADMIN, plan)

    assert ledger.logic.name == "v1"
    assert ledger.schema_version == 1
    assert ledger.state.compute_state_root() == root_before


def test_setup_beyond_target_logic_rejected(v1_ledger):
    plan = UpgradePlan(name="Mismatch", logic="v1", setup_version=2)
    with pytest.raises(UnsupportedOperation):
        v1_ledger.upgrade(ADMIN, plan)
    assert v1_ledger.schema_version == 1


def test_unknown_logic_rejected(v1_ledger):
    with pytest.raises(UnsupportedOperation):
        v1_ledger.upgrade(ADMIN, UpgradePlan(name="Nope", logic="v9"))
    assert v1_ledger.logic.name == "v1"


def test_upgraded_logic_survives_reopen(v1_ledger, make_ledger, clock):
    v1_ledger.upgrade(ADMIN, ENABLE_STAKING)
    v1_ledger.stake(ALICE, 10_000)
    v1_ledger.close()

    # Config default is ignored once a logic pointer is stored
    reopened = make_ledger("v1")
    assert reopened.logic.name == "v2"
    assert reopened.schema_version == 2
    assert reopened.balance_of(ALICE) == 90_000
    assert reopened.stake_info(ALICE)["staked_amount"] == 10_000


def test_stale_logic_pointer_refused(ledger, make_ledger):
    ledger.db.set_state("logic", LogicPointer(name="v1", version=1).model_dump_json())
    ledger.close()

    with pytest.raises(RuntimeError):
        make_ledger()


def test_setup_registry():
    registry = get_global_registry()
    assert registry.list_migrations() == [1, 2]
    assert registry.has_migration(2)
    assert not registry.has_migration(3)
    with pytest.raises(KeyError):
        registry.get_migration(3)


def test_registry_rejects_duplicate_setup():
    registry = MigrationRegistry()
    registry.register(3, lambda ctx: None)
    with pytest.raises(ValueError):
        registry.register(3, lambda ctx: None)


def test_unknown_setup_params_rejected(v1_ledger):
    ledger = v1_ledger
    root = ledger.state.compute_state_root()
    plan = UpgradePlan(name="EnableStaking", logic="v2", setup_version=2, setup_params={"bogus": 1})

    with pytest.raises(ValidationError):
        ledger.upgrade(ADMIN, plan)

    assert ledger.logic.name == "v1"
    assert ledger.schema_version == 1
    assert ledger.state.compute_state_root() == root
