"""Fleet coordination: who the nodes are and how commands reach them.

The registry owns liveness; the dispatcher fans commands out through an
injected transport and feeds outcomes back into the registry.
"""

from hive.fleet.controller import HiveController
from hive.fleet.dispatcher import CommandDispatcher
from hive.fleet.registry import NodeRegistry

__all__ = ["CommandDispatcher", "HiveController", "NodeRegistry"]
