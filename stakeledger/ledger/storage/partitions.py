# MIT License
# Copyright (c) 2025 Hashborn

"""
Versioned Storage Partitions

Every logic version owns one named region of the state table. A region's
key prefix ("slot") is derived from a namespace string:

    slot = sha256(uint256(sha256(namespace)) - 1) with the low byte cleared

so slots are stable across restarts, unrelated to any field name, and
distinct between namespaces. Partitions are additive: a new version adds a
new partition and never writes keys owned by an older one.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List
from ...protocol.crypto.hash import sha256

logger = logging.getLogger(__name__)

# Keys written by the base balance layer, outside any partition.
BASE_KEY_PREFIXES = ("acc:", "supply", "logic", "clock")


def derive_slot(namespace: str) -> str:
    """Deterministically derive the 64-hex-char slot for a namespace."""
    if not namespace:
        raise ValueError("Partition namespace must be non-empty")
    outer = int.from_bytes(sha256(namespace.encode("utf-8")), "big") - 1
    digest = bytearray(sha256(outer.to_bytes(32, "big")))
    digest[-1] = 0
    return bytes(digest).hex()


@dataclass(frozen=True)
class StoragePartition:
    namespace: str
    version: int

    @property
    def slot(self) -> str:
        return derive_slot(self.namespace)

    def key(self, field: str) -> str:
        return f"{self.slot}:{field}"

    def prefix(self, collection: str) -> str:
        """Key prefix for a per-account collection inside this partition."""
        return f"{self.slot}:{collection}:"


class PartitionRegistry:
    """
    Registry of every partition the system uses.

    Registration fails on any namespace, version or slot collision, so a
    layout defect surfaces at import time rather than as corrupted state.
    """

    def __init__(self):
        self._by_version: Dict[int, StoragePartition] = {}
        self._by_slot: Dict[str, StoragePartition] = {}

    def register(self, partition: StoragePartition) -> StoragePartition:
        if partition.version in self._by_version:
            raise ValueError(
                f"Partition version {partition.version} already owned by "
                f"'{self._by_version[partition.version].namespace}'"
            )
        for existing in self._by_slot.values():
            if existing.namespace == partition.namespace:
                raise ValueError(f"Partition namespace '{partition.namespace}' already registered")

        slot = partition.slot
        if slot in self._by_slot:
            raise ValueError(
                f"Slot collision between '{partition.namespace}' and "
                f"'{self._by_slot[slot].namespace}'"
            )

        self._by_version[partition.version] = partition
        self._by_slot[slot] = partition
        logger.debug(f"Registered partition {partition.namespace} (v{partition.version}) at {slot[:16]}...")
        return partition

    def get(self, version: int) -> StoragePartition:
        return self._by_version[version]

    def all(self) -> List[StoragePartition]:
        return [self._by_version[v] for v in sorted(self._by_version)]

    def validate_layout(self):
        """Re-checks pairwise distinct slots and separation from base-layer keys."""
        partitions = self.all()
        slots = [p.slot for p in partitions]
        if len(set(slots)) != len(slots):
            raise ValueError("Duplicate partition slots in layout")
        for p in partitions:
            if p.slot != derive_slot(p.namespace):
                raise ValueError(f"Partition '{p.namespace}' slot is not deterministic")
            for base in BASE_KEY_PREFIXES:
                if p.key("").startswith(base):
                    raise ValueError(f"Partition '{p.namespace}' overlaps base key '{base}'")


class PartitionResolver:
    """Selects the partitions that are valid for a given schema version."""

    def __init__(self, registry: PartitionRegistry):
        self.registry = registry

    def for_version(self, schema_version: int) -> List[StoragePartition]:
        return [p for p in self.registry.all() if p.version <= schema_version]

    def is_active(self, partition: StoragePartition, schema_version: int) -> bool:
        return partition.version <= schema_version


# Global partition layout
_global_registry = PartitionRegistry()

# The guard's own partition is version 0: it exists before any setup has run.
INITIALIZER_PARTITION = _global_registry.register(
    StoragePartition("stakeledger.storage.Initializable", version=0)
)
LEDGER_V1_PARTITION = _global_registry.register(
    StoragePartition("stakeledger.storage.LedgerV1", version=1)
)
STAKING_V2_PARTITION = _global_registry.register(
    StoragePartition("stakeledger.storage.StakingV2", version=2)
)

_global_registry.validate_layout()


def get_partition_registry() -> PartitionRegistry:
    return _global_registry


def get_partition_resolver() -> PartitionResolver:
    return PartitionResolver(_global_registry)
