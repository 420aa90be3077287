# MIT License
# Copyright (c) 2025 Hashborn

"""
Upgrade Protocol

Replaces processing logic without touching persisted storage partitions.
The host lives in .manager (it depends on the logic versions, which in turn
register their setups here).
"""

from .types import UpgradePlan
from .migrations import MigrationRegistry, migration, get_global_registry

__all__ = [
    "UpgradePlan",
    "MigrationRegistry",
    "migration",
    "get_global_registry",
]
