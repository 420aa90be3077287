# MIT License
# Copyright (c) 2025 Hashborn

from dataclasses import dataclass, field
from typing import List, Any
from .events import LedgerEvent
from .state import LedgerState
from ...protocol.config.params import LedgerConfig


@dataclass
class OperationContext:
    """
    Everything one operation may touch.

    `state` is a private clone; nothing in it is visible to other callers
    until the ledger commits the context.
    """
    state: LedgerState
    caller: str
    now: int
    config: LedgerConfig
    events: List[LedgerEvent] = field(default_factory=list)
    # Settlement totals, reported to metrics only on commit
    rewards_minted: int = 0
    rewards_forfeited: int = 0

    def emit(self, kind: Any, **fields: Any) -> None:
        kind = getattr(kind, "value", kind)
        self.events.append(LedgerEvent(kind=kind, timestamp=self.now, fields=fields))
