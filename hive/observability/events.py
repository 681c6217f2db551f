"""Typed event system for fleet observability.

Events are emitted by the registry (membership and liveness changes) and by
the dispatcher (one start, one outcome per node, one end per broadcast).
Listeners subscribe via the EventBus and receive typed dataclass payloads.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from hive.fleet.types import DispatchResult, NodeStatus, Outcome

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

class EventKind(str, Enum):
    NODE_REGISTERED = "node_registered"
    NODE_REMOVED = "node_removed"
    NODE_STATUS_CHANGED = "node_status_changed"
    DISPATCH_START = "dispatch_start"
    NODE_OUTCOME = "node_outcome"
    DISPATCH_END = "dispatch_end"


@dataclass(frozen=True)
class Event:
    """Base event payload."""
    kind: EventKind
    timestamp_ms: int = field(default_factory=lambda: int(time.time() * 1000))


@dataclass(frozen=True)
class NodeRegisteredEvent(Event):
    kind: EventKind = field(default=EventKind.NODE_REGISTERED, init=False)
    node_id: str = ""


@dataclass(frozen=True)
class NodeRemovedEvent(Event):
    kind: EventKind = field(default=EventKind.NODE_REMOVED, init=False)
    node_id: str = ""


@dataclass(frozen=True)
class NodeStatusChangedEvent(Event):
    kind: EventKind = field(default=EventKind.NODE_STATUS_CHANGED, init=False)
    node_id: str = ""
    previous: NodeStatus = NodeStatus.ONLINE
    current: NodeStatus = NodeStatus.ONLINE


@dataclass(frozen=True)
class DispatchStartEvent(Event):
    kind: EventKind = field(default=EventKind.DISPATCH_START, init=False)
    command_id: str = ""
    command_kind: str = ""
    targets: Tuple[str, ...] = ()


@dataclass(frozen=True)
class NodeOutcomeEvent(Event):
    kind: EventKind = field(default=EventKind.NODE_OUTCOME, init=False)
    command_id: str = ""
    node_id: str = ""
    outcome: Optional[Outcome] = None


@dataclass(frozen=True)
class DispatchEndEvent(Event):
    kind: EventKind = field(default=EventKind.DISPATCH_END, init=False)
    command_id: str = ""
    result: Optional[DispatchResult] = None
    cancelled: bool = False
    wall_time_ms: int = 0


# ---------------------------------------------------------------------------
# Event bus
# ---------------------------------------------------------------------------

Listener = Callable[[Event], None]


class EventBus:
    """Simple synchronous pub/sub for fleet events.

    Listeners are called inline, keep them fast. A failing listener is
    logged and never breaks the emitter.
    """

    def __init__(self):
        self._listeners: Dict[EventKind, List[Listener]] = {}
        self._global_listeners: List[Listener] = []

    def on(self, kind: EventKind, listener: Listener) -> None:
        """Subscribe to a specific event kind."""
        self._listeners.setdefault(kind, []).append(listener)

    def on_all(self, listener: Listener) -> None:
        """Subscribe to every event kind."""
        self._global_listeners.append(listener)

    def emit(self, event: Event) -> None:
        """Dispatch an event to all matching listeners."""
        for listener in self._global_listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Global event listener error for %s", event.kind)

        for listener in self._listeners.get(event.kind, []):
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener error for %s", event.kind)
