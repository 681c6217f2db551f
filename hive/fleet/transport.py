"""Transport capability: how a command actually reaches a node.

The dispatcher only depends on the Transport protocol. HttpTransport is the
default implementation: it POSTs a CommandEnvelope to the node's endpoint
with httpx and maps the reply to an Outcome. Tests supply their own doubles.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable

import httpx

from hive.fleet.auth import sign_hive_token
from hive.fleet.models import CommandAck, CommandEnvelope
from hive.fleet.types import Command, NodeSnapshot, Outcome

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10
COMMAND_PATH = "/hive/command"


@runtime_checkable
class Transport(Protocol):
    """Anything that can deliver a command to one node."""

    async def send(self, node: NodeSnapshot, command: Command) -> Outcome:
        ...


class HttpTransport:
    """HTTP transport for talking to hive nodes."""

    def __init__(
        self,
        credential: str = "",
        timeout_s: float = DEFAULT_TIMEOUT_S,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._credential = credential
        self.timeout_s = timeout_s
        self._client = client

    def __repr__(self) -> str:
        return f"HttpTransport(timeout_s={self.timeout_s!r})"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_s, connect=5.0),
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send(self, node: NodeSnapshot, command: Command) -> Outcome:
        """Deliver ``command`` to ``node`` and translate the reply."""
        if not node.endpoint:
            return Outcome.failed(f"node {node.id} has no endpoint")

        body = CommandEnvelope(
            command_id=command.id,
            node_id=node.id,
            kind=str(getattr(command.kind, "value", command.kind)),
            payload=command.payload,
            hive_token=sign_hive_token(self._credential, scope=node.id),
        )
        url = f"{node.endpoint.rstrip('/')}{COMMAND_PATH}"
        try:
            client = await self._get_client()
            resp = await client.post(url, json=body.model_dump(mode="json"))
        except httpx.TimeoutException as exc:
            logger.warning("Command %s to %s timed out: %s", command.id, node.id, exc)
            return Outcome.timed_out(f"transport timeout: {type(exc).__name__}")
        except httpx.HTTPError as exc:
            logger.warning("Command %s to %s error: %s", command.id, node.id, exc)
            return Outcome.failed(f"transport error: {exc}")

        if resp.status_code != 200:
            logger.warning(
                "Command %s to %s failed: %d %s",
                command.id, node.id, resp.status_code, resp.text[:200],
            )
            return Outcome.failed(f"HTTP {resp.status_code}")

        try:
            ack = CommandAck.model_validate(resp.json())
        except ValueError as exc:
            return Outcome.failed(f"invalid ack: {exc}")

        if not ack.ok:
            return Outcome.failed(ack.error or "node rejected command")
        return Outcome.ok()
