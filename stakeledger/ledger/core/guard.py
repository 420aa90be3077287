# MIT License
# Copyright (c) 2025 Hashborn

"""
Initialization Guard

Schema versions only move forward: Uninitialized(0) -> 1 -> 2 -> ...
A setup function tagged with version k runs at most once, and never after a
later version has been set up. The check and the version bump happen inside
the same operation context, so two runs can never both commit.
"""

import functools
import logging
from typing import Callable

from .context import OperationContext
from ...protocol.types.common import AlreadyInitialized, VersionTooLow, EventKind

logger = logging.getLogger(__name__)


def check_setup_allowed(current: int, version: int):
    if version < 1:
        raise ValueError(f"Setup version must be >= 1, got {version}")
    if current == version:
        raise AlreadyInitialized(f"Schema version {version} already initialized")
    if current > version:
        raise VersionTooLow(f"Cannot run setup v{version}: schema is already at v{current}")


def reinitializer(version: int) -> Callable:
    """
    Decorator for setup functions taking an OperationContext first.

    The schema version is bumped before the body runs so the body can reach
    the partition it populates. Any failure discards the whole context.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(ctx: OperationContext, *args, **kwargs):
            current = ctx.state.schema_version
            check_setup_allowed(current, version)

            ctx.state.initializer.schema_version = version
            result = func(ctx, *args, **kwargs)
            ctx.emit(EventKind.INITIALIZED, version=version)
            logger.info(f"Schema initialized: v{current} -> v{version}")
            return result

        wrapper.setup_version = version
        return wrapper
    return decorator


initializer = reinitializer(1)
