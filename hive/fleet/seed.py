"""The default fleet and helpers to seed a registry with it."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from hive.errors import DuplicateNodeError
from hive.fleet.models import NodeInfo
from hive.fleet.registry import NodeRegistry
from hive.fleet.types import NodeSnapshot

logger = logging.getLogger(__name__)

DEFAULT_NODES: List[NodeInfo] = [
    NodeInfo(
        node_id="ops-agent",
        display_name="ULYSSES Ops Agent",
        repo="Dankjiujitsu/ulysses-ops-agent",
        capabilities=["build-fix", "deploy", "pr-create", "issue-create"],
    ),
    NodeInfo(
        node_id="ai-core",
        display_name="ULYSSES AI Core",
        repo="Dankjiujitsu/ulysses-ai-core",
        capabilities=["llm-orchestration", "reasoning", "learning", "ethics"],
    ),
    NodeInfo(
        node_id="main",
        display_name="ULYSSES-OS Main",
        repo="ULY-OS-V420/ULYSSES-OS-",
        capabilities=["knowledge", "domains", "full-system"],
    ),
]


def seed_registry(
    registry: NodeRegistry,
    nodes: Iterable[NodeInfo] = DEFAULT_NODES,
    endpoints: Optional[Dict[str, str]] = None,
) -> List[NodeSnapshot]:
    """Register ``nodes``, attaching endpoints by id. Duplicates are skipped."""
    endpoints = endpoints or {}
    seeded: List[NodeSnapshot] = []
    for info in nodes:
        if info.node_id in endpoints:
            info = info.model_copy(update={"endpoint": endpoints[info.node_id]})
        try:
            seeded.append(registry.register(info))
        except DuplicateNodeError:
            logger.warning("Skipping seed node %s: already registered", info.node_id)
    return seeded
