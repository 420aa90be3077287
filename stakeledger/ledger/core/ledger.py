# MIT License
# Copyright (c) 2025 Hashborn

from typing import Any, Callable, Dict, List, Optional
import json
import logging
import os
import threading
import time

from pydantic import BaseModel, Field

from .accounts import LogicPointer
from .context import OperationContext
from .events import EventBus, EventLog, LedgerEvent, event_bus
from .logic import LedgerLogicV1, resolve_logic
from .state import LedgerState
from ..observability import metrics
from ..storage.db import StorageDB
from ..upgrade.manager import UpgradeHost
from ..upgrade.types import UpgradePlan
from ...protocol.config.params import CURRENT_NETWORK, CUSTODY_ADDRESS, LedgerConfig
from ...protocol.crypto.addresses import address_from_pubkey
from ...protocol.crypto.keys import verify
from ...protocol.types.common import (
    ActionType, ProtocolError, UnsupportedOperation, ValidationError,
)
from ...protocol.types.tx import LedgerTx

logger = logging.getLogger(__name__)


class GenesisConfig(BaseModel):
    """Contents of <datadir>/genesis.json."""
    administrator: str
    max_supply: int
    name: str = ""
    symbol: str = ""
    decimals: int = 18
    reward_rate_bps: Optional[int] = None
    min_staking_duration: Optional[int] = None
    alloc: Dict[str, int] = Field(default_factory=dict)


class Ledger:
    """
    Single logical owner of the ledger state.

    Every mutating call runs under one lock against a private working view of the
    state and is committed all-or-nothing; events are published only after
    the commit.
    """

    def __init__(self, db_path: str, config: LedgerConfig = None,
                 clock: Callable[[], int] = None, bus: EventBus = None):
        self.db = StorageDB(db_path)
        self._lock = threading.RLock()
        self.config = config or CURRENT_NETWORK
        self.clock = clock or (lambda: int(time.time()))
        self.event_bus = bus or event_bus
        self.events = EventLog(self.config.max_events)
        self.state = LedgerState(self.db)
        self.logic: Optional[LedgerLogicV1] = None
        self.upgrade_host = UpgradeHost(self)

        self.genesis_path = os.path.join(os.path.dirname(os.path.abspath(db_path)), "genesis.json")

        self._load_logic()
        if self.state.schema_version == 0:
            self._apply_genesis()
        metrics.update_metrics(self)

    def _load_logic(self):
        pointer = self.state.logic
        if pointer:
            logic = resolve_logic(pointer.name)
            if logic.version < self.state.schema_version:
                raise RuntimeError(
                    f"Stored logic {pointer.name} is older than schema v{self.state.schema_version}"
                )
            self.logic = logic
            logger.info(f"Ledger loaded: logic {logic.name}, schema v{self.state.schema_version}")
            return

        # Fresh data dir: deploy the configured logic.
        self.logic = resolve_logic(self.config.default_logic)
        self.state.logic = LogicPointer(name=self.logic.name, version=self.logic.version,
                                        activated_at=self.clock())
        self.state.persist()
        logger.info(f"Ledger deployed with logic {self.logic.name}")

    def _apply_genesis(self):
        """Runs first-time setup from genesis.json if present."""
        if not os.path.exists(self.genesis_path):
            logger.info("No genesis.json found. Waiting for initialize().")
            return

        with open(self.genesis_path, "r") as f:
            genesis = GenesisConfig.model_validate(json.load(f))

        def operation(ctx: OperationContext):
            self.logic.initialize(ctx, genesis.administrator, genesis.max_supply,
                                  name=genesis.name, symbol=genesis.symbol, decimals=genesis.decimals)
            if hasattr(self.logic, "initialize_v2"):
                self.logic.initialize_v2(ctx, genesis.reward_rate_bps, genesis.min_staking_duration)
            for address, amount in genesis.alloc.items():
                self.logic.mint(ctx, address, int(amount))

        self.execute(genesis.administrator, "genesis", operation)
        logger.info(f"Applied genesis: admin={genesis.administrator}, {len(genesis.alloc)} allocations")

    # --- Core execution ---

    def execute(self, caller: str, action: str, operation: Callable[[OperationContext], Any],
                on_commit: Callable[[], None] = None) -> Any:
        """
        Run one operation atomically.

        The operation sees a working view of the state. Its changed records are
        written to the DB in one transaction and only then folded into the
        committed view.
        """
        with self._lock:
            now = max(int(self.clock()), self.state.last_timestamp)
            working = self.state.clone()
            ctx = OperationContext(state=working, caller=caller, now=now, config=self.config)
            try:
                result = operation(ctx)
                working.last_timestamp = now
                written = working.persist()
            except ProtocolError as e:
                metrics.record_failure(getattr(e, "code", "error"))
                logger.debug(f"{action} by {caller} rejected: {e}")
                raise

            self.state.absorb(working, written)
            if on_commit:
                on_commit()

            metrics.record_operation(action, ctx.rewards_minted, ctx.rewards_forfeited)
            metrics.update_metrics(self)
            self._publish(ctx.events)
            return result

    def _publish(self, events: List[LedgerEvent]):
        for event in events:
            self.events.append(event)
            self.event_bus.emit(event.kind, timestamp=event.timestamp, **event.fields)

    def _handler(self, method: str) -> Callable:
        handler = getattr(self.logic, method, None)
        if handler is None:
            raise UnsupportedOperation(f"'{method}' is not available in logic {self.logic.name}")
        return handler

    def _dispatch(self, caller: str, method: str, *args, **kwargs) -> Any:
        return self.execute(caller, method, lambda ctx: self._handler(method)(ctx, *args, **kwargs))

    def _view(self, operation: Callable[[OperationContext], Any], caller: str = "") -> Any:
        with self._lock:
            now = max(int(self.clock()), self.state.last_timestamp)
            ctx = OperationContext(state=self.state.clone(), caller=caller, now=now, config=self.config)
            return operation(ctx)

    # --- Setup ---

    def initialize(self, administrator: str, max_supply: int, **metadata):
        return self._dispatch(administrator, "initialize", administrator, max_supply, **metadata)

    def initialize_v2(self, caller: str, reward_rate_bps: int = None, min_staking_duration: int = None):
        return self._dispatch(caller, "initialize_v2", reward_rate_bps, min_staking_duration)

    def upgrade(self, caller: str, plan: UpgradePlan) -> LedgerLogicV1:
        return self.upgrade_host.authorize_and_swap(caller, plan)

    # --- Supply & roles ---

    def mint(self, caller: str, to: str, amount: int):
        return self._dispatch(caller, "mint", to, amount)

    def update_max_supply(self, caller: str, new_max: int):
        return self._dispatch(caller, "update_max_supply", new_max)

    def transfer(self, caller: str, to: str, amount: int):
        return self._dispatch(caller, "transfer", to, amount)

    def burn(self, caller: str, amount: int):
        return self._dispatch(caller, "burn", amount)

    def add_minter(self, caller: str, account: str):
        return self._dispatch(caller, "add_minter", account)

    def remove_minter(self, caller: str, account: str):
        return self._dispatch(caller, "remove_minter", account)

    def transfer_admin(self, caller: str, new_admin: str):
        return self._dispatch(caller, "transfer_admin", new_admin)

    def pause(self, caller: str):
        return self._dispatch(caller, "pause")

    def unpause(self, caller: str):
        return self._dispatch(caller, "unpause")

    # --- Staking ---

    def stake(self, caller: str, amount: int):
        return self._dispatch(caller, "stake", amount)

    def unstake(self, caller: str, amount: int):
        return self._dispatch(caller, "unstake", amount)

    def claim_rewards(self, caller: str):
        return self._dispatch(caller, "claim_rewards")

    def set_reward_rate(self, caller: str, rate_bps: int):
        return self._dispatch(caller, "set_reward_rate", rate_bps)

    def set_min_staking_duration(self, caller: str, seconds: int):
        return self._dispatch(caller, "set_min_staking_duration", seconds)

    # --- Views ---

    @property
    def schema_version(self) -> int:
        with self._lock:
            return self.state.schema_version

    def balance_of(self, address: str) -> int:
        with self._lock:
            return self.state.get_account(address).balance

    def nonce_of(self, address: str) -> int:
        with self._lock:
            return self.state.get_account(address).nonce

    @property
    def total_supply(self) -> int:
        with self._lock:
            return self.state.supply.total_supply

    @property
    def max_supply(self) -> int:
        with self._lock:
            return self.state.ledger_v1.max_supply

    @property
    def administrator(self) -> Optional[str]:
        with self._lock:
            return self.state.ledger_v1.administrator

    @property
    def minters(self) -> List[str]:
        with self._lock:
            return list(self.state.ledger_v1.minters)

    def is_minter(self, address: str) -> bool:
        with self._lock:
            return address in self.state.ledger_v1.minters

    @property
    def operations_allowed(self) -> bool:
        with self._lock:
            return self.state.ledger_v1.operations_allowed

    @property
    def total_staked(self) -> int:
        with self._lock:
            return self.state.staking_v2.total_staked

    @property
    def reward_rate_bps(self) -> int:
        with self._lock:
            return self.state.staking_v2.reward_rate_bps

    @property
    def min_staking_duration(self) -> int:
        with self._lock:
            return self.state.staking_v2.min_staking_duration

    @property
    def custody_balance(self) -> int:
        return self.balance_of(CUSTODY_ADDRESS)

    def calculate_reward(self, address: str) -> int:
        return self._view(lambda ctx: self._handler("calculate_reward")(ctx, address))

    def stake_info(self, address: str) -> dict:
        return self._view(lambda ctx: self._handler("stake_info")(ctx, address))

    def status(self) -> dict:
        with self._lock:
            info = {
                "network": self.config.network_id,
                "logic": self.logic.name,
                "logic_version": self.logic.version,
                "schema_version": self.state.schema_version,
                "total_supply": str(self.state.supply.total_supply),
                "last_timestamp": self.state.last_timestamp,
            }
            if self.state.schema_version >= 1:
                storage = self.state.ledger_v1
                info.update({
                    "name": storage.name,
                    "symbol": storage.symbol,
                    "decimals": storage.decimals,
                    "administrator": storage.administrator,
                    "minters": list(storage.minters),
                    "max_supply": str(storage.max_supply),
                    "operations_allowed": storage.operations_allowed,
                })
            if self.state.schema_version >= 2:
                staking = self.state.staking_v2
                info.update({
                    "total_staked": str(staking.total_staked),
                    "reward_rate_bps": staking.reward_rate_bps,
                    "min_staking_duration": staking.min_staking_duration,
                })
            return info

    # --- Signed transactions ---

    def _verify_transaction(self, tx: LedgerTx):
        if not tx.signature or not tx.pub_key:
            raise ValidationError("Missing signature or pub_key")

        try:
            pub_bytes = bytes.fromhex(tx.pub_key)
            sig_bytes = bytes.fromhex(tx.signature)
        except ValueError as e:
            raise ValidationError(f"Malformed hex in transaction: {e}")

        prefix = tx.from_address.split("1")[0] or self.config.address_prefix
        try:
            derived_addr = address_from_pubkey(pub_bytes, prefix=prefix)
        except ValueError as e:
            raise ValidationError(f"Invalid public key: {e}")
        if derived_addr != tx.from_address:
            raise ValidationError(f"pub_key mismatch: derived {derived_addr}, expected {tx.from_address}")

        if not verify(bytes.fromhex(tx.hash()), sig_bytes, pub_bytes):
            raise ValidationError("Invalid signature")

    def _route(self, tx: LedgerTx):
        """Maps a transaction to (method, args)."""
        action = tx.action
        if action in (ActionType.TRANSFER, ActionType.MINT):
            return action.value.lower(), (tx.to_address, tx.amount)
        elif action in (ActionType.ADD_MINTER, ActionType.REMOVE_MINTER, ActionType.TRANSFER_ADMIN):
            return action.value.lower(), (tx.to_address,)
        elif action in (ActionType.BURN, ActionType.UPDATE_MAX_SUPPLY, ActionType.STAKE,
                        ActionType.UNSTAKE, ActionType.SET_REWARD_RATE,
                        ActionType.SET_MIN_STAKING_DURATION):
            return action.value.lower(), (tx.amount,)
        elif action in (ActionType.PAUSE, ActionType.UNPAUSE, ActionType.CLAIM_REWARDS):
            return action.value.lower(), ()
        raise ValidationError(f"Unroutable action {action}")

    def apply_transaction(self, tx: LedgerTx) -> Any:
        """
        Verifies and applies a signed transaction. Raises on failure.

        The nonce bump commits together with the action, so a rejected
        transaction can be fixed and resubmitted with the same nonce.
        """
        self._verify_transaction(tx)

        on_commit = None
        if tx.action == ActionType.UPGRADE:
            try:
                plan = UpgradePlan.model_validate(tx.payload)
            except ValueError as e:
                raise ValidationError(f"Invalid upgrade plan: {e}")
            action_op, on_commit = self.upgrade_host.prepare(plan)
        else:
            method, args = self._route(tx)
            action_op = lambda ctx: self._handler(method)(ctx, *args)

        def operation(ctx: OperationContext):
            sender = ctx.state.get_account(tx.from_address)
            if tx.nonce != sender.nonce:
                raise ValidationError(f"Invalid nonce: expected {sender.nonce}, got {tx.nonce}")
            result = action_op(ctx)
            sender.nonce += 1
            ctx.state.set_account(sender)
            return result

        result = self.execute(tx.from_address, tx.action.value.lower(), operation, on_commit=on_commit)
        logger.debug(f"Applied {tx.action.value} from {tx.from_address} (nonce {tx.nonce})")
        return result

    def close(self):
        self.db.close()
