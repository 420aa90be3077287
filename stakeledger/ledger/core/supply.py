# MIT License
# Copyright (c) 2025 Hashborn

"""
Supply Ledger

Wraps the base balance primitive with the max_supply ceiling. Direct mints
fail when they would cross the ceiling; reward settlement mints are skipped
instead (see settle_reward).
"""

import logging

from .access import AccessControl, require_identity
from .balances import BalanceLedger
from .context import OperationContext
from ...protocol.config.params import MAX_UINT256
from ...protocol.types.common import EventKind, InvalidAmount, SupplyCapExceeded

logger = logging.getLogger(__name__)


def require_amount(amount: int, what: str = "amount"):
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{what} must be an integer, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount(f"{what} must be positive, got {amount}")
    if amount > MAX_UINT256:
        raise InvalidAmount(f"{what} exceeds u256 range")


class SupplyLedger:
    def __init__(self, ctx: OperationContext):
        self.ctx = ctx
        self.balances = BalanceLedger(ctx.state)
        self.access = AccessControl(ctx)

    @property
    def max_supply(self) -> int:
        return self.ctx.state.ledger_v1.max_supply

    def fits_under_cap(self, amount: int) -> bool:
        return self.balances.total_supply + amount <= self.max_supply

    def mint(self, to: str, amount: int):
        self.access.require_operations_allowed()
        self.access.require_minter()
        require_identity(to, "recipient")
        require_amount(amount)
        if not self.fits_under_cap(amount):
            raise SupplyCapExceeded(
                f"Mint of {amount} would exceed max supply "
                f"({self.balances.total_supply} + {amount} > {self.max_supply})"
            )

        self.balances.credit(to, amount)
        self.ctx.emit(EventKind.MINTED, to=to, amount=amount, minter=self.ctx.caller)
        logger.debug(f"Minted {amount} to {to}")

    def update_max_supply(self, new_max: int):
        self.access.require_admin()
        require_amount(new_max, "max supply")
        if new_max < self.balances.total_supply:
            raise InvalidAmount(
                f"Max supply {new_max} is below current total supply {self.balances.total_supply}"
            )

        storage = self.ctx.state.ledger_v1
        old_max = storage.max_supply
        storage.max_supply = new_max
        self.ctx.emit(EventKind.MAX_SUPPLY_UPDATED, old=old_max, new=new_max)
        logger.info(f"Max supply updated: {old_max} -> {new_max}")

    def settle_reward(self, to: str, amount: int) -> bool:
        """
        Mints a settled staking reward if it fits under the ceiling.

        When it does not fit the mint is skipped and the reward is lost; the
        calling operation still succeeds. Returns whether the mint happened.
        """
        if amount <= 0:
            return False
        if not self.fits_under_cap(amount):
            # Forfeited: callers have already zeroed the banked reward.
            self.ctx.rewards_forfeited += amount
            logger.warning(
                f"Reward of {amount} for {to} forfeited: would exceed max supply "
                f"({self.balances.total_supply} + {amount} > {self.max_supply})"
            )
            return False

        self.balances.credit(to, amount)
        self.ctx.rewards_minted += amount
        return True

    def transfer(self, to: str, amount: int):
        self.access.require_operations_allowed()
        require_identity(self.ctx.caller, "sender")
        require_identity(to, "recipient")
        require_amount(amount)

        self.balances.transfer(self.ctx.caller, to, amount)
        self.ctx.emit(EventKind.TRANSFER, sender=self.ctx.caller, to=to, amount=amount)

    def burn(self, amount: int):
        self.access.require_operations_allowed()
        require_identity(self.ctx.caller, "holder")
        require_amount(amount)

        self.balances.debit(self.ctx.caller, amount)
        self.ctx.emit(EventKind.BURNED, account=self.ctx.caller, amount=amount)
