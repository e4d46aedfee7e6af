"""Module events: observable scene events and host-raised named events."""
#
# PURPOSE:
# Decouples what the engine does (assembling documents, firing triggers,
# applying swaps) from who watches it (tests, tooling, the host's logs).
#
# LOGIC:
# - EventBus: per-context observable, synchronous delivery.
# - raise_event(): the host announces a named event; it is queued until the
#   next patch pass drains it, so "on-named-event" triggers see each event once.
#

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from itertools import count
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class SceneEventType(str, Enum):
    """
    Taxonomy of observable events.
    """
    DOCUMENT_ASSEMBLED = "document_assembled"
    ASSEMBLY_FAILED = "assembly_failed"
    TRIGGER_FIRED = "trigger_fired"
    SWAP_APPLIED = "swap_applied"
    SWAP_SKIPPED = "swap_skipped"
    NAMED_EVENT = "named_event"


@dataclass
class SceneEvent:
    """
    Event record with a per-bus sequence number.

    Fields:
        type: Event classification from SceneEventType
        payload: Event-specific data (identities, function names, ...)
        timestamp: When the event occurred (epoch time)
        sequence: Monotonic position on the emitting bus
    """
    type: SceneEventType
    payload: Dict[str, Any]
    timestamp: float = field(default_factory=time.time)
    sequence: int = 0


class EventBus:
    """
    Synchronous Event Bus for scene observability.
    """
    def __init__(self):
        self._subscribers: List[Callable[[SceneEvent], None]] = []
        self._sequence = count(1)
        self._last_event_sequence: int = 0
        self._raised: List[str] = []

    def subscribe(self, callback: Callable[[SceneEvent], None]):
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[SceneEvent], None]):
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def last_event_sequence(self) -> int:
        """Get the sequence number of the last emitted event."""
        return self._last_event_sequence

    def emit(self, event_type: SceneEventType, payload: Optional[Dict[str, Any]] = None) -> SceneEvent:
        """Broadcast an event to all subscribers."""
        event = SceneEvent(type=event_type, payload=payload or {}, sequence=next(self._sequence))
        self._last_event_sequence = event.sequence

        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"[EventBus] Subscriber failed: {e}")
        return event

    # --- Named events (host → patch engine) ---

    def raise_event(self, name: str, payload: Optional[Dict[str, Any]] = None) -> None:
        """Queue a named event for the next patch pass and broadcast it."""
        self._raised.append(name)
        data = {"name": name}
        if payload:
            data.update(payload)
        self.emit(SceneEventType.NAMED_EVENT, data)

    def drain_raised(self) -> List[str]:
        """Take every named event raised since the last drain."""
        raised, self._raised = self._raised, []
        return raised

    def restore_raised(self, names: List[str]) -> None:
        """Put drained named events back, ahead of any raised since."""
        self._raised[:0] = names

    def clear(self) -> None:
        self._raised.clear()
