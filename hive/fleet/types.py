"""Core value types for the node registry and command dispatcher."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

WILDCARD = "*"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class NodeStatus(str, Enum):
    """Liveness of a node, derived from recent dispatch outcomes."""
    ONLINE = "online"
    DEGRADED = "degraded"
    OFFLINE = "offline"


class CommandKind(str, Enum):
    """Closed set of command types a node can receive."""
    SYNC = "sync"
    DEPLOY = "deploy"
    FIX = "fix"
    LEARN = "learn"
    REASON = "reason"


class OutcomeKind(str, Enum):
    """Terminal state of one per-node send."""
    OK = "ok"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Outcome:
    """Result of sending one command to one node."""
    kind: OutcomeKind
    reason: Optional[str] = None
    duration_ms: int = 0

    @classmethod
    def ok(cls, duration_ms: int = 0) -> Outcome:
        return cls(OutcomeKind.OK, duration_ms=duration_ms)

    @classmethod
    def failed(cls, reason: str, duration_ms: int = 0) -> Outcome:
        return cls(OutcomeKind.FAILED, reason=reason, duration_ms=duration_ms)

    @classmethod
    def timed_out(cls, reason: Optional[str] = None, duration_ms: int = 0) -> Outcome:
        return cls(OutcomeKind.TIMED_OUT, reason=reason, duration_ms=duration_ms)

    @property
    def is_ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "reason": self.reason, "duration_ms": self.duration_ms}


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Command:
    """One unit of work to broadcast.

    ``kind`` is kept as a plain string so that an out-of-range value can be
    rejected by the dispatcher with InvalidCommandError rather than at
    construction time.
    """
    kind: str
    target: str = WILDCARD
    payload: Any = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])

    @property
    def is_wildcard(self) -> bool:
        return self.target == WILDCARD


# ---------------------------------------------------------------------------
# Node snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodeSnapshot:
    """Read-only copy of a node's state at one point in time."""
    id: str
    display_name: str
    capabilities: FrozenSet[str]
    status: NodeStatus
    last_seen_ms: Optional[int] = None
    consecutive_failures: int = 0
    repo: Optional[str] = None
    endpoint: Optional[str] = None

    @property
    def is_online(self) -> bool:
        return self.status is NodeStatus.ONLINE


# ---------------------------------------------------------------------------
# Dispatch result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DispatchResult:
    """Aggregated outcomes of a single broadcast."""
    command_id: str
    kind: str
    per_node: Mapping[str, Outcome] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the mapping so the result cannot change after it is returned.
        object.__setattr__(self, "per_node", MappingProxyType(dict(self.per_node)))

    @property
    def overall_success(self) -> bool:
        return all(o.is_ok for o in self.per_node.values())

    def nodes_with(self, kind: OutcomeKind) -> Tuple[str, ...]:
        return tuple(nid for nid, o in self.per_node.items() if o.kind is kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command_id": self.command_id,
            "kind": self.kind,
            "overall_success": self.overall_success,
            "per_node": {nid: o.to_dict() for nid, o in self.per_node.items()},
        }
