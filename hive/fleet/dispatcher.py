"""CommandDispatcher: fans one command out to the resolved target nodes.

Each target gets its own asyncio task bounded by a per-node timeout. A node
that fails or times out never aborts the others; every outcome is fed back
into the registry and aggregated into a single DispatchResult.

There are no retries here; callers retry by broadcasting again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Optional

from hive.errors import InvalidCommandError
from hive.fleet.registry import NodeRegistry
from hive.fleet.transport import Transport
from hive.fleet.types import Command, CommandKind, DispatchResult, NodeSnapshot, Outcome, OutcomeKind
from hive.observability.events import (
    DispatchEndEvent,
    DispatchStartEvent,
    Event,
    EventBus,
    NodeOutcomeEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0
CANCELLED_REASON = "dispatch cancelled"


class CommandDispatcher:
    """Executes commands against the registry's nodes through a transport."""

    def __init__(self, registry: NodeRegistry, *, events: Optional[EventBus] = None):
        self.registry = registry
        self.events = events

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def broadcast(
        self,
        command: Command,
        transport: Transport,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> DispatchResult:
        """Send ``command`` to every node matched by ``command.target``.

        Raises InvalidCommandError or UnknownNodeError before any send.
        Per-node failures and timeouts are reported in the result.
        """
        kind = self._validate(command)
        nodes = self.registry.resolve_nodes(command.target)
        targets = tuple(n.id for n in nodes)

        if not targets:
            logger.info("Broadcast %s (%s): no targets", command.id, kind.value)
            return DispatchResult(command_id=command.id, kind=kind.value)

        logger.info(
            "Broadcasting %s (%s) to %s: %d node(s)",
            command.id, kind.value, command.target, len(targets),
        )
        self._emit(DispatchStartEvent(command_id=command.id, command_kind=kind.value, targets=targets))

        start = time.monotonic()
        tasks: Dict[str, asyncio.Task] = {}
        for node in nodes:
            tasks[node.id] = asyncio.create_task(
                self._send_one(node, command, transport, timeout_s),
                name=f"hive-send-{command.id}-{node.id}",
            )

        try:
            await asyncio.gather(*tasks.values())
        except asyncio.CancelledError:
            result = self._settle_cancelled(command, kind, tasks)
            logger.warning(
                "Broadcast %s cancelled: %d/%d node(s) unresolved",
                command.id, len(result.nodes_with(OutcomeKind.TIMED_OUT)), len(targets),
            )
            self._emit(DispatchEndEvent(
                command_id=command.id,
                result=result,
                cancelled=True,
                wall_time_ms=int((time.monotonic() - start) * 1000),
            ))
            raise

        result = DispatchResult(
            command_id=command.id,
            kind=kind.value,
            per_node={nid: task.result() for nid, task in tasks.items()},
        )
        wall_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Broadcast %s done in %dms: success=%s ok=%d failed=%d timed_out=%d",
            command.id, wall_ms, result.overall_success,
            len(result.nodes_with(OutcomeKind.OK)),
            len(result.nodes_with(OutcomeKind.FAILED)),
            len(result.nodes_with(OutcomeKind.TIMED_OUT)),
        )
        self._emit(DispatchEndEvent(command_id=command.id, result=result, wall_time_ms=wall_ms))
        return result

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(command: Command) -> CommandKind:
        try:
            return CommandKind(command.kind)
        except ValueError:
            raise InvalidCommandError(
                f"Unknown command kind '{command.kind}'; "
                f"expected one of {', '.join(k.value for k in CommandKind)}"
            ) from None

    # ------------------------------------------------------------------
    # Per-node execution
    # ------------------------------------------------------------------

    async def _send_one(
        self,
        node: NodeSnapshot,
        command: Command,
        transport: Transport,
        timeout_s: float,
    ) -> Outcome:
        """pending -> ok | failed | timed_out. Never raises except on cancel."""
        start = time.monotonic()
        try:
            outcome = await asyncio.wait_for(transport.send(node, command), timeout=timeout_s)
            if not isinstance(outcome, Outcome):
                outcome = Outcome.failed(f"transport returned {type(outcome).__name__}, expected Outcome")
        except asyncio.TimeoutError:
            outcome = Outcome.timed_out(f"no response within {timeout_s:g}s")
        except Exception as exc:
            outcome = Outcome.failed(str(exc) or type(exc).__name__)

        duration = int((time.monotonic() - start) * 1000)
        if not outcome.duration_ms:
            outcome = Outcome(outcome.kind, reason=outcome.reason, duration_ms=duration)

        if not outcome.is_ok:
            logger.warning(
                "Node %s %s for %s: %s",
                node.id, outcome.kind.value, command.id, outcome.reason,
            )
        self._record(command, node.id, outcome)
        return outcome

    def _settle_cancelled(
        self,
        command: Command,
        kind: CommandKind,
        tasks: Dict[str, asyncio.Task],
    ) -> DispatchResult:
        """Mark every unresolved per-node task timed out and record it."""
        per_node: Dict[str, Outcome] = {}
        for node_id, task in tasks.items():
            if task.done() and not task.cancelled():
                per_node[node_id] = task.result()
                continue
            task.cancel()
            outcome = Outcome.timed_out(CANCELLED_REASON)
            self._record(command, node_id, outcome)
            per_node[node_id] = outcome
        return DispatchResult(command_id=command.id, kind=kind.value, per_node=per_node)

    def _record(self, command: Command, node_id: str, outcome: Outcome) -> None:
        self.registry.record_outcome(node_id, outcome)
        self._emit(NodeOutcomeEvent(command_id=command.id, node_id=node_id, outcome=outcome))

    def _emit(self, event: Event) -> None:
        if self.events is not None:
            self.events.emit(event)
