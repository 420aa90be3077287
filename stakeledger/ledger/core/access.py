# MIT License
# Copyright (c) 2025 Hashborn

"""
Access Control Gate

Two flat roles stored in the v1 partition: one administrator and a set of
minters. Roles are read from the operation's own state on every call.
"""

import logging

from .context import OperationContext
from ...protocol.config.params import CUSTODY_ADDRESS
from ...protocol.crypto.addresses import is_null_address
from ...protocol.types.common import (
    EventKind, InvalidIdentity, OperationsPaused, Unauthorized,
)

logger = logging.getLogger(__name__)


def require_identity(address: str, what: str = "account"):
    if is_null_address(address):
        raise InvalidIdentity(f"Null {what} identity")
    if address == CUSTODY_ADDRESS:
        raise InvalidIdentity(f"Custody account cannot be used as {what}")


class AccessControl:
    def __init__(self, ctx: OperationContext):
        self.ctx = ctx

    @property
    def administrator(self) -> str:
        return self.ctx.state.ledger_v1.administrator

    def is_admin(self, address: str) -> bool:
        return not is_null_address(address) and address == self.administrator

    def is_minter(self, address: str) -> bool:
        return address in self.ctx.state.ledger_v1.minters

    def require_admin(self):
        if not self.is_admin(self.ctx.caller):
            raise Unauthorized(f"{self.ctx.caller or '<anonymous>'} is not the administrator")

    def require_minter(self):
        if not self.is_minter(self.ctx.caller):
            raise Unauthorized(f"{self.ctx.caller or '<anonymous>'} is not a minter")

    def require_operations_allowed(self):
        if not self.ctx.state.ledger_v1.operations_allowed:
            raise OperationsPaused("Ledger operations are paused")

    def add_minter(self, account: str):
        self.require_admin()
        require_identity(account, "minter")
        storage = self.ctx.state.ledger_v1
        if account not in storage.minters:
            storage.minters = sorted(storage.minters + [account])
            self.ctx.emit(EventKind.MINTER_ADDED, account=account)
            logger.info(f"Minter added: {account}")

    def remove_minter(self, account: str):
        self.require_admin()
        storage = self.ctx.state.ledger_v1
        if account in storage.minters:
            storage.minters = [m for m in storage.minters if m != account]
            self.ctx.emit(EventKind.MINTER_REMOVED, account=account)
            logger.info(f"Minter removed: {account}")

    def transfer_admin(self, new_admin: str):
        self.require_admin()
        require_identity(new_admin, "administrator")
        storage = self.ctx.state.ledger_v1
        old_admin = storage.administrator
        storage.administrator = new_admin
        self.ctx.emit(EventKind.ADMIN_TRANSFERRED, old=old_admin, new=new_admin)
        logger.info(f"Administrator transferred: {old_admin} -> {new_admin}")

    def set_operations_allowed(self, allowed: bool):
        self.require_admin()
        self.ctx.state.ledger_v1.operations_allowed = allowed
        self.ctx.emit(EventKind.UNPAUSED if allowed else EventKind.PAUSED, account=self.ctx.caller)
        logger.info(f"Ledger {'unpaused' if allowed else 'paused'} by {self.ctx.caller}")

    def authorize_upgrade(self, new_logic: str):
        """Hook consulted by the upgrade host before any logic swap."""
        self.require_admin()
        self.ctx.emit(EventKind.UPGRADE_AUTHORIZED, logic=new_logic, account=self.ctx.caller)
