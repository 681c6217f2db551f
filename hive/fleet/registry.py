"""NodeRegistry: the single owner of node records and their liveness.

Callers only ever receive NodeSnapshot copies. Status is never set directly;
it is recomputed from dispatch outcomes in record_outcome():

- any ok                          -> online
- a failure while online          -> degraded
- ``offline_after`` failures in a row -> offline
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set, Tuple

from hive.errors import DuplicateNodeError, UnknownNodeError
from hive.fleet.models import NodeInfo
from hive.fleet.types import WILDCARD, NodeSnapshot, NodeStatus, Outcome
from hive.observability.events import (
    Event,
    EventBus,
    NodeRegisteredEvent,
    NodeRemovedEvent,
    NodeStatusChangedEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_OFFLINE_AFTER = 3


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _NodeRecord:
    """Registry-internal mutable node state. Never leaves this module."""
    id: str
    display_name: str
    capabilities: Set[str] = field(default_factory=set)
    repo: Optional[str] = None
    endpoint: Optional[str] = None
    status: NodeStatus = NodeStatus.ONLINE
    last_seen_ms: Optional[int] = None
    consecutive_failures: int = 0

    def freeze(self) -> NodeSnapshot:
        return NodeSnapshot(
            id=self.id,
            display_name=self.display_name,
            capabilities=frozenset(self.capabilities),
            status=self.status,
            last_seen_ms=self.last_seen_ms,
            consecutive_failures=self.consecutive_failures,
            repo=self.repo,
            endpoint=self.endpoint,
        )


class NodeRegistry:
    """Thread-safe registry of known nodes keyed by id."""

    def __init__(
        self,
        *,
        offline_after: int = DEFAULT_OFFLINE_AFTER,
        events: Optional[EventBus] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        if offline_after < 1:
            raise ValueError("offline_after must be >= 1")
        self.offline_after = offline_after
        self.events = events
        self._clock = clock
        # Insertion order doubles as the deterministic wildcard order.
        self._nodes: Dict[str, _NodeRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def register(self, info: NodeInfo) -> NodeSnapshot:
        """Insert a new node. Raises DuplicateNodeError if the id exists."""
        with self._lock:
            if info.node_id in self._nodes:
                raise DuplicateNodeError(info.node_id)
            record = _NodeRecord(
                id=info.node_id,
                display_name=info.display_name or info.node_id,
                capabilities=set(info.capabilities),
                repo=info.repo,
                endpoint=info.endpoint,
            )
            self._nodes[info.node_id] = record
            snap = record.freeze()

        logger.info("Node registered: %s (%s)", snap.display_name, snap.id)
        self._emit(NodeRegisteredEvent(node_id=snap.id))
        return snap

    def unregister(self, node_id: str) -> bool:
        """Remove a node. Returns False if it was not registered."""
        with self._lock:
            removed = self._nodes.pop(node_id, None)
        if removed is None:
            return False
        logger.info("Node removed: %s (%s)", removed.display_name, node_id)
        self._emit(NodeRemovedEvent(node_id=node_id))
        return True

    def rename(self, node_id: str, display_name: str) -> NodeSnapshot:
        """Change a node's human label."""
        with self._lock:
            record = self._nodes.get(node_id)
            if record is None:
                raise UnknownNodeError(node_id)
            record.display_name = display_name
            return record.freeze()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, node_id: str) -> NodeSnapshot:
        with self._lock:
            record = self._nodes.get(node_id)
            if record is None:
                raise UnknownNodeError(node_id)
            return record.freeze()

    def resolve_targets(self, selector: str) -> Tuple[str, ...]:
        """Map a selector to node ids.

        The wildcard returns every id in registration order (possibly empty).
        Any other selector must name a registered node.
        """
        with self._lock:
            if selector == WILDCARD:
                return tuple(self._nodes)
            if selector not in self._nodes:
                raise UnknownNodeError(selector)
            return (selector,)

    def resolve_nodes(self, selector: str) -> Tuple[NodeSnapshot, ...]:
        """Like resolve_targets, but returns the matched nodes' snapshots.

        Ids and states are read under one lock, so a concurrent unregister
        cannot remove a node between resolution and lookup.
        """
        with self._lock:
            if selector == WILDCARD:
                return tuple(r.freeze() for r in self._nodes.values())
            record = self._nodes.get(selector)
            if record is None:
                raise UnknownNodeError(selector)
            return (record.freeze(),)

    def snapshot(self) -> Tuple[NodeSnapshot, ...]:
        """Immutable copy of every node's current state."""
        with self._lock:
            return tuple(r.freeze() for r in self._nodes.values())

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    def record_outcome(self, node_id: str, outcome: Outcome) -> Optional[NodeSnapshot]:
        """Fold one dispatch outcome into the node's liveness.

        Unknown ids are ignored and return None.
        """
        with self._lock:
            record = self._nodes.get(node_id)
            if record is None:
                logger.debug("Ignoring outcome for unknown node %s", node_id)
                return None

            previous = record.status
            if outcome.is_ok:
                record.consecutive_failures = 0
                record.last_seen_ms = self._clock()
                record.status = NodeStatus.ONLINE
            else:
                record.consecutive_failures += 1
                if record.consecutive_failures >= self.offline_after:
                    record.status = NodeStatus.OFFLINE
                elif record.status is NodeStatus.ONLINE:
                    record.status = NodeStatus.DEGRADED
            snap = record.freeze()

        if snap.status is not previous:
            log = logger.info if snap.status is NodeStatus.ONLINE else logger.warning
            log(
                "Node %s status %s -> %s after %d consecutive failures",
                node_id, previous.value, snap.status.value, snap.consecutive_failures,
            )
            self._emit(NodeStatusChangedEvent(node_id=node_id, previous=previous, current=snap.status))
        return snap

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _emit(self, event: Event) -> None:
        if self.events is not None:
            self.events.emit(event)

