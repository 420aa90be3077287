# MIT License
# Copyright (c) 2025 Hashborn

"""
Staking & Reward Accrual Engine

Per account: Idle (staked_amount == 0) <-> Staked (staked_amount > 0).

Rewards accrue linearly at the rate in force at settlement time:

    accrued = staked * rate_bps * elapsed // (10000 * SECONDS_PER_YEAR)
    pending = accrued + banked_reward

Staked tokens sit in the custody account, so
total_staked == sum(staked_amount) == balance(CUSTODY_ADDRESS).
"""

import logging

from .accounts import StakeRecord
from .access import AccessControl, require_identity
from .context import OperationContext
from .supply import SupplyLedger, require_amount
from ...protocol.config.params import (
    BPS_DENOMINATOR, CUSTODY_ADDRESS, MAX_UINT256, SECONDS_PER_YEAR,
)
from ...protocol.types.common import (
    DurationNotMet, EventKind, InsufficientBalance, InvalidAmount,
)

logger = logging.getLogger(__name__)

MAX_UINT64 = 2**64 - 1


def calculate_reward(record: StakeRecord, rate_bps: int, now: int) -> int:
    """Pending reward for a stake snapshot evaluated at `now`. Truncates."""
    elapsed = max(0, now - record.stake_started_at)
    accrued = (record.staked_amount * rate_bps * elapsed) // (BPS_DENOMINATOR * SECONDS_PER_YEAR)
    return accrued + record.banked_reward


def _require_parameter(value: int, upper: int, what: str):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{what} must be an integer, got {type(value).__name__}")
    if value < 0 or value > upper:
        raise InvalidAmount(f"{what} out of range: {value}")


class StakingEngine:
    def __init__(self, ctx: OperationContext):
        self.ctx = ctx
        self.supply = SupplyLedger(ctx)
        self.access = AccessControl(ctx)

    @property
    def storage(self):
        return self.ctx.state.staking_v2

    def pending_reward(self, address: str) -> int:
        record = self.ctx.state.get_stake(address)
        return calculate_reward(record, self.storage.reward_rate_bps, self.ctx.now)

    def stake(self, amount: int):
        self.access.require_operations_allowed()
        caller = self.ctx.caller
        require_identity(caller, "staker")
        require_amount(amount)

        balance = self.supply.balances.balance_of(caller)
        if balance < amount:
            raise InsufficientBalance(f"Insufficient balance: have {balance}, need {amount}")

        storage = self.storage
        record = self.ctx.state.get_stake(caller)

        # Settle what the existing stake has earned before the clock restarts.
        pending = calculate_reward(record, storage.reward_rate_bps, self.ctx.now)
        if pending > 0:
            record.banked_reward = 0
            minted = self.supply.settle_reward(caller, pending)
            self.ctx.emit(EventKind.REWARDS_CLAIMED, account=caller, amount=pending, minted=minted)

        self.supply.balances.transfer(caller, CUSTODY_ADDRESS, amount)

        record.staked_amount += amount
        record.stake_started_at = self.ctx.now
        storage.total_staked += amount

        self.ctx.emit(EventKind.STAKED, account=caller, amount=amount, staked=record.staked_amount)
        logger.debug(f"{caller} staked {amount} (now {record.staked_amount})")

    def unstake(self, amount: int):
        self.access.require_operations_allowed()
        caller = self.ctx.caller
        require_identity(caller, "staker")
        require_amount(amount)

        storage = self.storage
        record = self.ctx.state.get_stake(caller)
        if amount > record.staked_amount:
            raise InsufficientBalance(
                f"Insufficient stake: have {record.staked_amount}, trying to unstake {amount}"
            )

        held_for = self.ctx.now - record.stake_started_at
        if held_for < storage.min_staking_duration:
            raise DurationNotMet(
                f"Stake held for {held_for}s, minimum is {storage.min_staking_duration}s"
            )

        # Reward is settled against the whole stake, not just the unstaked part.
        pending = calculate_reward(record, storage.reward_rate_bps, self.ctx.now)

        record.staked_amount -= amount
        storage.total_staked -= amount
        record.banked_reward = 0
        if record.staked_amount > 0:
            record.stake_started_at = self.ctx.now

        self.supply.balances.transfer(CUSTODY_ADDRESS, caller, amount)

        minted = False
        if pending > 0:
            minted = self.supply.settle_reward(caller, pending)

        # Reports the computed reward even when the mint was skipped.
        self.ctx.emit(EventKind.UNSTAKED, account=caller, amount=amount, reward=pending, minted=minted)
        logger.debug(f"{caller} unstaked {amount} (reward {pending}, minted={minted})")

    def claim_rewards(self):
        self.access.require_operations_allowed()
        caller = self.ctx.caller
        require_identity(caller, "staker")

        record = self.ctx.state.get_stake(caller)
        pending = calculate_reward(record, self.storage.reward_rate_bps, self.ctx.now)
        if pending == 0:
            raise InvalidAmount("No rewards to claim")

        record.banked_reward = 0
        record.stake_started_at = self.ctx.now

        minted = self.supply.settle_reward(caller, pending)
        self.ctx.emit(EventKind.REWARDS_CLAIMED, account=caller, amount=pending, minted=minted)
        logger.debug(f"{caller} claimed {pending} (minted={minted})")

    def set_reward_rate(self, rate_bps: int):
        self.access.require_admin()
        _require_parameter(rate_bps, MAX_UINT256, "reward rate")

        storage = self.storage
        old_rate = storage.reward_rate_bps
        storage.reward_rate_bps = rate_bps
        self.ctx.emit(EventKind.REWARD_RATE_UPDATED, old=old_rate, new=rate_bps)
        logger.info(f"Reward rate updated: {old_rate} -> {rate_bps} bps")

    def set_min_staking_duration(self, seconds: int):
        self.access.require_admin()
        _require_parameter(seconds, MAX_UINT64, "min staking duration")

        storage = self.storage
        old_duration = storage.min_staking_duration
        storage.min_staking_duration = seconds
        self.ctx.emit(EventKind.MIN_STAKING_DURATION_UPDATED, old=old_duration, new=seconds)
        logger.info(f"Min staking duration updated: {old_duration}s -> {seconds}s")

    def stake_info(self, address: str) -> dict:
        record = self.ctx.state.get_stake(address)
        return {
            "address": address,
            "staked_amount": record.staked_amount,
            "stake_started_at": record.stake_started_at,
            "banked_reward": record.banked_reward,
            "pending_reward": calculate_reward(record, self.storage.reward_rate_bps, self.ctx.now),
            "unlocks_at": record.stake_started_at + self.storage.min_staking_duration
            if record.is_staked else None,
        }
