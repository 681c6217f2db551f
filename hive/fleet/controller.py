"""HiveController: boundary component that wires the fleet together.

Owns the registry, the dispatcher and the transport. The credential is
injected at construction (never read from the process environment here),
handed to the transport for signing, and used to verify inbound tokens.
The controller is created at app startup and stopped at shutdown.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from hive.fleet.auth import verify_hive_token
from hive.fleet.dispatcher import DEFAULT_TIMEOUT_S, CommandDispatcher
from hive.fleet.models import NodeInfo, StatusReport
from hive.fleet.registry import DEFAULT_OFFLINE_AFTER, NodeRegistry
from hive.fleet.seed import DEFAULT_NODES, seed_registry
from hive.fleet.transport import HttpTransport, Transport
from hive.fleet.types import Command, DispatchResult, NodeSnapshot
from hive.observability.events import EventBus

if TYPE_CHECKING:
    from hive.config import Settings

logger = logging.getLogger(__name__)


class HiveController:
    """Coordinates a fleet of nodes: membership, broadcast, health."""

    def __init__(
        self,
        *,
        credential: str = "",
        transport: Optional[Transport] = None,
        node_timeout_s: float = DEFAULT_TIMEOUT_S,
        offline_after: int = DEFAULT_OFFLINE_AFTER,
        events: Optional[EventBus] = None,
    ):
        self._credential = credential
        self.node_timeout_s = node_timeout_s
        self.events = events or EventBus()
        self.registry = NodeRegistry(offline_after=offline_after, events=self.events)
        self.dispatcher = CommandDispatcher(self.registry, events=self.events)
        self.transport: Transport = transport or HttpTransport(credential, timeout_s=node_timeout_s)

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        *,
        transport: Optional[Transport] = None,
        nodes: Iterable[NodeInfo] = DEFAULT_NODES,
    ) -> HiveController:
        """Build a controller from Settings and seed the default fleet."""
        controller = cls(
            credential=settings.hive_token.get_secret_value(),
            transport=transport,
            node_timeout_s=settings.hive_node_timeout_s,
            offline_after=settings.hive_offline_after,
        )
        if settings.hive_seed_defaults:
            seeded = seed_registry(controller.registry, nodes, settings.get_node_urls())
            logger.info("Seeded %d node(s)", len(seeded))
        return controller

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Release transport resources."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()
        logger.info("Hive controller stopped")

    # ------------------------------------------------------------------
    # Fleet operations
    # ------------------------------------------------------------------

    def register(self, info: NodeInfo) -> NodeSnapshot:
        return self.registry.register(info)

    def remove(self, node_id: str) -> bool:
        return self.registry.unregister(node_id)

    async def broadcast(self, command: Command, timeout_s: Optional[float] = None) -> DispatchResult:
        """Broadcast through the configured transport."""
        return await self.dispatcher.broadcast(
            command,
            self.transport,
            timeout_s if timeout_s is not None else self.node_timeout_s,
        )

    def status(self) -> StatusReport:
        return StatusReport.from_snapshot(self.registry.snapshot())

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    @property
    def auth_enabled(self) -> bool:
        return bool(self._credential)

    def verify_token(self, token: str) -> bool:
        """Verify an inbound hive token. Auth is disabled without a credential."""
        if not self.auth_enabled:
            return True
        return verify_hive_token(token, self._credential)
