# MIT License
# Copyright (c) 2025 Hashborn

"""
Processing logic versions.

A logic object is stateless: every method takes the OperationContext it
acts on. Each version only touches its own partition and older ones; the
upgrade host swaps which object the ledger dispatches to.
"""

import logging
from typing import Dict, Type

from .access import AccessControl, require_identity
from .context import OperationContext
from .guard import initializer, reinitializer
from .staking import StakingEngine
from .supply import SupplyLedger, require_amount
from ..upgrade.migrations import migration
from ...protocol.types.common import InvalidAmount, UnsupportedOperation

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# SCHEMA SETUPS
# ═══════════════════════════════════════════════════════════════════

@migration(1)
@initializer
def setup_ledger_v1(ctx: OperationContext, administrator: str, max_supply: int,
                    name: str = "", symbol: str = "", decimals: int = 18):
    """Populates the v1 partition: roles, ceiling, token metadata."""
    require_identity(administrator, "administrator")
    require_amount(max_supply, "max supply")
    if ctx.state.supply.total_supply > max_supply:
        raise InvalidAmount("Max supply is below existing total supply")

    storage = ctx.state.ledger_v1
    storage.name = name or ctx.config.token_name
    storage.symbol = symbol or ctx.config.token_symbol
    storage.decimals = decimals
    storage.administrator = administrator
    storage.minters = [administrator]
    storage.max_supply = max_supply
    storage.operations_allowed = True
    logger.info(f"Ledger initialized: admin={administrator} max_supply={max_supply}")


@migration(2)
@reinitializer(2)
def setup_staking_v2(ctx: OperationContext, reward_rate_bps: int = None,
                     min_staking_duration: int = None):
    """Populates the v2 partition with the initial staking parameters."""
    AccessControl(ctx).require_admin()

    engine = StakingEngine(ctx)
    engine.set_reward_rate(ctx.config.reward_rate_bps if reward_rate_bps is None else reward_rate_bps)
    engine.set_min_staking_duration(
        ctx.config.min_staking_duration if min_staking_duration is None else min_staking_duration
    )
    logger.info(
        f"Staking initialized: rate={engine.storage.reward_rate_bps}bps "
        f"min_duration={engine.storage.min_staking_duration}s"
    )


# ═══════════════════════════════════════════════════════════════════
# LOGIC VERSIONS
# ═══════════════════════════════════════════════════════════════════

class LedgerLogicV1:
    """Supply ledger with roles and pause gate."""
    name = "v1"
    version = 1

    def initialize(self, ctx: OperationContext, administrator: str, max_supply: int, **metadata):
        setup_ledger_v1(ctx, administrator, max_supply, **metadata)

    def mint(self, ctx: OperationContext, to: str, amount: int):
        SupplyLedger(ctx).mint(to, amount)

    def update_max_supply(self, ctx: OperationContext, new_max: int):
        SupplyLedger(ctx).update_max_supply(new_max)

    def transfer(self, ctx: OperationContext, to: str, amount: int):
        SupplyLedger(ctx).transfer(to, amount)

    def burn(self, ctx: OperationContext, amount: int):
        SupplyLedger(ctx).burn(amount)

    def add_minter(self, ctx: OperationContext, account: str):
        AccessControl(ctx).add_minter(account)

    def remove_minter(self, ctx: OperationContext, account: str):
        AccessControl(ctx).remove_minter(account)

    def transfer_admin(self, ctx: OperationContext, new_admin: str):
        AccessControl(ctx).transfer_admin(new_admin)

    def pause(self, ctx: OperationContext):
        AccessControl(ctx).set_operations_allowed(False)

    def unpause(self, ctx: OperationContext):
        AccessControl(ctx).set_operations_allowed(True)

    def authorize_upgrade(self, ctx: OperationContext, new_logic: str):
        AccessControl(ctx).authorize_upgrade(new_logic)


class LedgerLogicV2(LedgerLogicV1):
    """Adds the staking engine on top of v1."""
    name = "v2"
    version = 2

    def initialize_v2(self, ctx: OperationContext, reward_rate_bps: int = None,
                      min_staking_duration: int = None):
        setup_staking_v2(ctx, reward_rate_bps, min_staking_duration)

    def stake(self, ctx: OperationContext, amount: int):
        StakingEngine(ctx).stake(amount)

    def unstake(self, ctx: OperationContext, amount: int):
        StakingEngine(ctx).unstake(amount)

    def claim_rewards(self, ctx: OperationContext):
        StakingEngine(ctx).claim_rewards()

    def set_reward_rate(self, ctx: OperationContext, rate_bps: int):
        StakingEngine(ctx).set_reward_rate(rate_bps)

    def set_min_staking_duration(self, ctx: OperationContext, seconds: int):
        StakingEngine(ctx).set_min_staking_duration(seconds)

    def calculate_reward(self, ctx: OperationContext, address: str) -> int:
        return StakingEngine(ctx).pending_reward(address)

    def stake_info(self, ctx: OperationContext, address: str) -> dict:
        return StakingEngine(ctx).stake_info(address)


LOGIC_VERSIONS: Dict[str, Type[LedgerLogicV1]] = {
    LedgerLogicV1.name: LedgerLogicV1,
    LedgerLogicV2.name: LedgerLogicV2,
}


def resolve_logic(name: str) -> LedgerLogicV1:
    if name not in LOGIC_VERSIONS:
        raise UnsupportedOperation(f"Unknown logic '{name}' (known: {', '.join(LOGIC_VERSIONS)})")
    return LOGIC_VERSIONS[name]()
