# MIT License
# Copyright (c) 2025 Hashborn

"""
Upgrade Host

Swaps the ledger's processing logic while leaving every storage partition
in place. The swap, the optional schema setup and the new logic pointer are
committed as one ledger operation.
"""

import inspect
import logging
from typing import Callable, Tuple

from .types import UpgradePlan
from .migrations import get_global_registry
from ..core.accounts import LogicPointer
from ..core.context import OperationContext
from ..core.logic import LedgerLogicV1, resolve_logic
from ...protocol.types.common import (
    EventKind, UnsupportedOperation, ValidationError, VersionTooLow,
)

logger = logging.getLogger(__name__)


class UpgradeHost:
    """
    Accepts swap requests for one ledger.

    Only the administrator can swap: the active logic's authorize_upgrade
    hook runs inside the same operation as the swap.
    """

    def __init__(self, ledger):
        self.ledger = ledger
        self.migration_registry = get_global_registry()

    def prepare(self, plan: UpgradePlan) -> Tuple[Callable[[OperationContext], None], Callable[[], None]]:
        """
        Build the swap operation and its commit hook.

        Returns:
            (operation, on_commit): operation runs inside the ledger's atomic
            context; on_commit activates the new logic once state is durable.
        """
        new_logic = resolve_logic(plan.logic)

        def operation(ctx: OperationContext):
            # Authorization is decided by the logic being replaced.
            self.ledger.logic.authorize_upgrade(ctx, plan.logic)

            current = ctx.state.schema_version
            if new_logic.version < current:
                raise VersionTooLow(
                    f"Logic {plan.logic} (v{new_logic.version}) cannot serve schema v{current}"
                )

            if plan.setup_version is not None:
                if plan.setup_version > new_logic.version:
                    raise UnsupportedOperation(
                        f"Logic {plan.logic} does not understand schema v{plan.setup_version}"
                    )
                try:
                    setup = self.migration_registry.get_migration(plan.setup_version)
                except KeyError as e:
                    raise UnsupportedOperation(str(e))
                try:
                    inspect.signature(setup).bind(ctx, **plan.setup_params)
                except TypeError as e:
                    raise ValidationError(f"Bad setup params for v{plan.setup_version}: {e}")
                logger.info(f"Running setup v{plan.setup_version} during upgrade '{plan.name}'")
                setup(ctx, **plan.setup_params)

            old = ctx.state.logic
            ctx.state.logic = LogicPointer(name=new_logic.name, version=new_logic.version, activated_at=ctx.now)
            ctx.emit(
                EventKind.UPGRADED,
                name=plan.name,
                old=old.name if old else None,
                new=new_logic.name,
                setup_version=plan.setup_version,
            )

        def on_commit():
            old_name = self.ledger.logic.name
            self.ledger.logic = new_logic
            logger.info(f"Upgrade '{plan.name}' complete: logic {old_name} -> {new_logic.name}")

        return operation, on_commit

    def authorize_and_swap(self, caller: str, plan: UpgradePlan) -> LedgerLogicV1:
        """
        Swap the active logic according to plan.

        Raises:
            Unauthorized: caller is not the administrator
            VersionTooLow: target logic is older than the stored schema
        """
        logger.info(f"Upgrade requested by {caller}: {plan.name} -> {plan.logic}")
        operation, on_commit = self.prepare(plan)
        self.ledger.execute(caller, "upgrade", operation, on_commit=on_commit)
        return self.ledger.logic
