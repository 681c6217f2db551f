"""Transport doubles shared by the fleet tests."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Tuple

from hive.fleet.types import Command, NodeSnapshot, Outcome


class Delay:
    """Sleep for ``seconds`` and then return ``outcome``."""

    def __init__(self, seconds: float, outcome: Outcome | None = None):
        self.seconds = seconds
        self.outcome = outcome or Outcome.ok()


class ScriptedTransport:
    """Replies per node id from a script.

    A script entry may be an Outcome (returned), an Exception (raised) or a
    Delay. Nodes missing from the script get Outcome.ok().
    """

    def __init__(self, script: Dict[str, Any] | None = None):
        self.script = script or {}
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    async def send(self, node: NodeSnapshot, command: Command) -> Outcome:
        self.calls.append((node.id, command.id))
        action = self.script.get(node.id, Outcome.ok())
        if isinstance(action, Delay):
            await asyncio.sleep(action.seconds)
            return action.outcome
        if isinstance(action, BaseException):
            raise action
        return action

    async def close(self) -> None:
        self.closed = True
