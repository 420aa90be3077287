# MIT License
# Copyright (c) 2025 Hashborn

from typing import Callable, Dict, Optional, List, Type, TypeVar
import logging
from pydantic import BaseModel
from .accounts import (
    Account, SupplyInfo, InitializerStorage, LedgerStorageV1,
    StakingStorageV2, StakeRecord, LogicPointer, LedgerClock,
)
from ...protocol.crypto.hash import sha256, merkle_root
from ...protocol.types.common import VersionTooLow
from ..storage.db import StorageDB
from ..storage.partitions import (
    StoragePartition, INITIALIZER_PARTITION, LEDGER_V1_PARTITION,
    STAKING_V2_PARTITION, get_partition_resolver,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class LedgerState:
    """
    Cached view over the state table.

    The committed view (no parent) caches only records that exist in the DB;
    looking up an unknown key hands back a fresh default that is never stored.
    A working view made by clone() loads records lazily from its parent, so
    its cost is proportional to the keys an operation touches. Only records
    whose serialized form changed since they were loaded are persisted.

    Partitioned records are reachable only once the schema version that
    introduced their partition has been set up.
    """

    def __init__(self, db: StorageDB, parent: 'LedgerState' = None):
        self.db = db
        self.parent = parent
        self.resolver = get_partition_resolver()
        self._records: Dict[str, BaseModel] = {}
        # Serialized form of each record when it was loaded (None: key absent)
        self._originals: Dict[str, Optional[str]] = {}

    def clone(self) -> 'LedgerState':
        """Working view on top of this one. Mutating it leaves this one untouched."""
        return LedgerState(self.db, parent=self)

    # --- Record access ---

    def _fetch(self, key: str, model: Type[M]) -> Optional[M]:
        """Committed record under `key` as this view sees it, or None."""
        if key in self._records:
            return self._records[key]
        if self.parent is not None:
            return self.parent._fetch(key, model)
        raw_json = self.db.get_state(key)
        return model.model_validate_json(raw_json) if raw_json else None

    def _load(self, key: str, model: Type[M], default: Callable[[], M] = None) -> Optional[M]:
        if key in self._records:
            return self._records[key]

        record = self.parent._fetch(key, model) if self.parent is not None else self._fetch(key, model)
        if record is None:
            if default is None:
                return None
            record = default()
            if self.parent is None:
                return record
        elif self.parent is not None:
            record = record.model_copy(deep=True)

        self._records[key] = record
        self._originals[key] = record.model_dump_json()
        return record

    def _put(self, key: str, model: Type[M], record: M):
        if key not in self._originals:
            existing = self.parent._fetch(key, model) if self.parent is not None else self._fetch(key, model)
            self._originals[key] = existing.model_dump_json() if existing is not None else None
        self._records[key] = record

    def _collect(self, prefix: str, model: Type[M]) -> Dict[str, M]:
        final: Dict[str, M] = {
            k: model.model_validate_json(v) for k, v in self.db.get_state_by_prefix(prefix).items()
        }
        chain = []
        view = self
        while view is not None:
            chain.append(view)
            view = view.parent
        for view in reversed(chain):
            for key, record in view._records.items():
                if key.startswith(prefix):
                    final[key] = record
        return final

    # --- Base balance layer ---

    def get_account(self, address: str) -> Account:
        return self._load(f"acc:{address}", Account, lambda: Account(address=address))

    def set_account(self, account: Account):
        self._put(f"acc:{account.address}", Account, account)

    @property
    def supply(self) -> SupplyInfo:
        return self._load("supply", SupplyInfo, SupplyInfo)

    @property
    def logic(self) -> Optional[LogicPointer]:
        return self._load("logic", LogicPointer)

    @logic.setter
    def logic(self, pointer: LogicPointer):
        self._put("logic", LogicPointer, pointer)

    @property
    def last_timestamp(self) -> int:
        return self._load("clock", LedgerClock, LedgerClock).last_timestamp

    @last_timestamp.setter
    def last_timestamp(self, value: int):
        clock = self._load("clock", LedgerClock, LedgerClock)
        if "clock" not in self._records:
            self._put("clock", LedgerClock, clock)
        clock.last_timestamp = value

    # --- Partitions ---

    @property
    def initializer(self) -> InitializerStorage:
        return self._load(INITIALIZER_PARTITION.key("state"), InitializerStorage, InitializerStorage)

    @property
    def schema_version(self) -> int:
        return self.initializer.schema_version

    def _require_partition(self, partition: StoragePartition):
        if not self.resolver.is_active(partition, self.schema_version):
            raise VersionTooLow(
                f"Storage partition '{partition.namespace}' requires schema v{partition.version}, "
                f"current is v{self.schema_version}"
            )

    @property
    def ledger_v1(self) -> LedgerStorageV1:
        self._require_partition(LEDGER_V1_PARTITION)
        return self._load(LEDGER_V1_PARTITION.key("state"), LedgerStorageV1, LedgerStorageV1)

    @property
    def staking_v2(self) -> StakingStorageV2:
        self._require_partition(STAKING_V2_PARTITION)
        return self._load(STAKING_V2_PARTITION.key("state"), StakingStorageV2, StakingStorageV2)

    def get_stake(self, address: str) -> StakeRecord:
        self._require_partition(STAKING_V2_PARTITION)
        key = STAKING_V2_PARTITION.prefix("stake") + address
        return self._load(key, StakeRecord, lambda: StakeRecord(address=address))

    def set_stake(self, record: StakeRecord):
        self._require_partition(STAKING_V2_PARTITION)
        self._put(STAKING_V2_PARTITION.prefix("stake") + record.address, StakeRecord, record)

    def get_all_stakes(self) -> List[StakeRecord]:
        """Loads all stake records from DB + cache overlay."""
        self._require_partition(STAKING_V2_PARTITION)
        return list(self._collect(STAKING_V2_PARTITION.prefix("stake"), StakeRecord).values())

    def get_all_accounts(self) -> List[Account]:
        return list(self._collect("acc:", Account).values())

    # --- Persistence ---

    def dump(self) -> Dict[str, str]:
        """Serializes every record that changed since it was loaded."""
        items: Dict[str, str] = {}
        for key, record in self._records.items():
            raw_json = record.model_dump_json()
            if raw_json != self._originals.get(key):
                items[key] = raw_json
        return items

    def persist(self) -> Dict[str, str]:
        """Writes changed records to DB in one transaction and returns them."""
        items = self.dump()
        self.db.write_batch(items)
        self._originals.update(items)
        logger.debug(f"Persisted {len(items)} state keys")
        return items

    def absorb(self, child: 'LedgerState', keys):
        """Takes over records a working view has already persisted."""
        for key in keys:
            record = child._records[key]
            self._records[key] = record
            self._originals[key] = record.model_dump_json()

    def compute_state_root(self) -> str:
        """Merkle root over every (key, value) pair, DB overlaid with unpersisted changes."""
        final = self.db.get_state_by_prefix("")
        final.update(self.dump())
        leaves = [sha256((key + "=" + final[key]).encode("utf-8")) for key in sorted(final)]
        if not leaves:
            return sha256(b"").hex()
        return merkle_root(leaves).hex()
