# MIT License
# Copyright (c) 2025 Hashborn

"""
Schema Setup Registry

Maps each schema version to the one-shot setup that populates its storage
partition. Setups are guarded by the initialization guard, so registering
here never makes a setup runnable twice.
"""

import logging
from typing import Dict, Callable, List

logger = logging.getLogger(__name__)


class MigrationRegistry:
    """
    Registry for schema setup functions.

    Each setup takes (ctx: OperationContext, **params) and moves the schema
    from any lower version to its own version.
    """

    def __init__(self):
        self._migrations: Dict[int, Callable] = {}

    def register(self, version: int, migration_func: Callable):
        """
        Register a setup function.

        Args:
            version: Schema version the setup produces (e.g., 2)
            migration_func: Function that takes (ctx, **params) -> None

        Raises:
            ValueError: If a setup is already registered for the version
        """
        if version in self._migrations:
            raise ValueError(f"Setup for schema v{version} already registered")

        self._migrations[version] = migration_func
        logger.debug(f"Registered setup: v{version}")

    def get_migration(self, version: int) -> Callable:
        """
        Get setup function for a schema version.

        Raises:
            KeyError: If no setup is registered for the version
        """
        if version not in self._migrations:
            raise KeyError(f"No setup registered for schema v{version}")
        return self._migrations[version]

    def has_migration(self, version: int) -> bool:
        return version in self._migrations

    def list_migrations(self) -> List[int]:
        return sorted(self._migrations)


# Global migration registry
_global_registry = MigrationRegistry()


def migration(version: int):
    """
    Decorator to register a schema setup function.

    Usage:
        @migration(2)
        @reinitializer(2)
        def setup_staking(ctx, reward_rate_bps, min_staking_duration):
            ...
    """
    def decorator(func):
        _global_registry.register(version, func)
        return func
    return decorator


def get_global_registry() -> MigrationRegistry:
    """Get the global migration registry."""
    return _global_registry
