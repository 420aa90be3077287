# MIT License
# Copyright (c) 2025 Hashborn

"""
Event system for ledger state changes.

Operations collect events while they run; the ledger publishes them through
the event bus only after the operation's state has been committed.
"""
from collections import deque
from threading import RLock
from typing import Deque, Dict, List, Callable, Any, Optional
import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class LedgerEvent(BaseModel):
    """Structured record of one committed state change."""
    kind: str
    timestamp: int
    fields: Dict[str, Any] = Field(default_factory=dict)


class EventBus:
    """
    Simple event bus for ledger events.

    Events are delivered synchronously in the same thread.
    """

    def __init__(self):
        self.listeners: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: Event name (e.g., 'Staked', 'Minted')
            callback: Function to call when event is emitted
        """
        if event_type not in self.listeners:
            self.listeners[event_type] = []

        self.listeners[event_type].append(callback)
        logger.debug(f"Subscribed to event: {event_type}")

    def emit(self, event_type: str, **data: Any) -> None:
        """
        Emit an event to all subscribers.

        Listener failures are logged and never propagate back into the ledger.
        """
        listeners = self.listeners.get(event_type, [])

        if not listeners:
            logger.debug(f"No listeners for event: {event_type}")
            return

        logger.debug(f"Emitting event: {event_type} to {len(listeners)} listener(s)")

        for callback in list(listeners):
            try:
                callback(**data)
            except Exception as e:
                logger.error(f"Error in event callback for {event_type}: {e}", exc_info=True)


class EventLog:
    """Bounded in-memory history of committed events, oldest dropped first."""

    def __init__(self, max_events: int = 10000):
        self._events: Deque[LedgerEvent] = deque(maxlen=max_events)
        self._lock = RLock()

    def append(self, event: LedgerEvent) -> None:
        with self._lock:
            self._events.append(event)

    def recent(self, limit: int = 100, kind: Optional[str] = None) -> List[LedgerEvent]:
        with self._lock:
            events = [e for e in self._events if kind is None or e.kind == kind]
        return events[-limit:] if limit > 0 else []

    def __len__(self) -> int:
        return len(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


# Global event bus instance
event_bus = EventBus()
