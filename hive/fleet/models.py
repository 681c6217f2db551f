"""Pydantic models for the hive HTTP surface and node wire protocol.

NodeInfo is what a caller supplies to register a node.
NodeReport/StatusReport are the externally displayed health document.
CommandEnvelope/CommandAck are what HttpTransport exchanges with a node.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from hive.fleet.types import WILDCARD, DispatchResult, NodeSnapshot, NodeStatus


# ---------------------------------------------------------------------------
# Node identity
# ---------------------------------------------------------------------------

class NodeInfo(BaseModel):
    """Registration data for a node. Status is never accepted from callers."""
    node_id: str = Field(min_length=1)
    display_name: str = ""
    capabilities: List[str] = Field(default_factory=list)
    repo: Optional[str] = None
    endpoint: Optional[str] = None


# ---------------------------------------------------------------------------
# Status report
# ---------------------------------------------------------------------------

class NodeReport(BaseModel):
    """One node's entry in the status report."""
    node_id: str
    display_name: str
    status: NodeStatus
    capabilities: List[str] = Field(default_factory=list)
    repo: Optional[str] = None
    last_seen_ms: Optional[int] = None
    consecutive_failures: int = 0

    @classmethod
    def from_snapshot(cls, node: NodeSnapshot) -> NodeReport:
        return cls(
            node_id=node.id,
            display_name=node.display_name,
            status=node.status,
            capabilities=sorted(node.capabilities),
            repo=node.repo,
            last_seen_ms=node.last_seen_ms,
            consecutive_failures=node.consecutive_failures,
        )


class StatusReport(BaseModel):
    """Fleet health document. ``healthy`` is true iff every node is online."""
    nodes: List[NodeReport] = Field(default_factory=list)
    healthy: bool = True
    generated_at_ms: int = Field(default_factory=lambda: int(time.time() * 1000))

    @classmethod
    def from_snapshot(cls, nodes: Sequence[NodeSnapshot]) -> StatusReport:
        return cls(
            nodes=[NodeReport.from_snapshot(n) for n in nodes],
            healthy=all(n.is_online for n in nodes),
        )


# ---------------------------------------------------------------------------
# API: registration / leave
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    """POST /hive/nodes body."""
    node: NodeInfo
    hive_token: str = ""


class LeaveRequest(BaseModel):
    """POST /hive/leave body."""
    node_id: str
    hive_token: str = ""


class LeaveResponse(BaseModel):
    ok: bool


# ---------------------------------------------------------------------------
# API: broadcast
# ---------------------------------------------------------------------------

class BroadcastRequest(BaseModel):
    """POST /hive/broadcast body."""
    kind: str
    target: str = WILDCARD
    payload: Any = None
    timeout_s: Optional[float] = Field(default=None, gt=0)
    hive_token: str = ""


class OutcomeReport(BaseModel):
    kind: str
    reason: Optional[str] = None
    duration_ms: int = 0


class BroadcastResponse(BaseModel):
    """Response to POST /hive/broadcast."""
    command_id: str
    kind: str
    overall_success: bool
    per_node: Dict[str, OutcomeReport] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: DispatchResult) -> BroadcastResponse:
        return cls.model_validate(result.to_dict())


# ---------------------------------------------------------------------------
# Wire protocol: coordinator -> node
# ---------------------------------------------------------------------------

class CommandEnvelope(BaseModel):
    """POST {endpoint}/hive/command body."""
    command_id: str
    node_id: str
    kind: str
    payload: Any = None
    hive_token: str


class CommandAck(BaseModel):
    """A node's acknowledgement of a command."""
    ok: bool
    error: Optional[str] = None
