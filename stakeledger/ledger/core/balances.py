# MIT License
# Copyright (c) 2025 Hashborn

"""
Base balance primitive.

Every credit/debit moves total_supply with it, so
sum(balances) == total_supply holds after each call.
"""

from .state import LedgerState
from ...protocol.config.params import MAX_UINT256
from ...protocol.types.common import InsufficientBalance, InvalidAmount


class BalanceLedger:
    def __init__(self, state: LedgerState):
        self.state = state

    def balance_of(self, address: str) -> int:
        return self.state.get_account(address).balance

    @property
    def total_supply(self) -> int:
        return self.state.supply.total_supply

    def credit(self, to: str, amount: int):
        """Creates `amount` new units in `to`'s balance."""
        supply = self.state.supply
        if supply.total_supply + amount > MAX_UINT256:
            raise InvalidAmount("Total supply would overflow u256")
        acc = self.state.get_account(to)
        acc.balance += amount
        supply.total_supply += amount
        self.state.set_account(acc)

    def debit(self, from_address: str, amount: int):
        """Destroys `amount` units from `from_address`'s balance."""
        acc = self.state.get_account(from_address)
        if acc.balance < amount:
            raise InsufficientBalance(f"Insufficient balance: have {acc.balance}, need {amount}")
        acc.balance -= amount
        self.state.supply.total_supply -= amount
        self.state.set_account(acc)

    def transfer(self, from_address: str, to: str, amount: int):
        sender = self.state.get_account(from_address)
        if sender.balance < amount:
            raise InsufficientBalance(f"Insufficient balance: have {sender.balance}, need {amount}")
        recipient = self.state.get_account(to)
        sender.balance -= amount
        recipient.balance += amount
        self.state.set_account(sender)
        self.state.set_account(recipient)
