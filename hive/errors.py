"""Typed error hierarchy for the hive coordinator.

Every error carries a machine-readable `code` so API handlers never need to
parse exception messages. Per-node dispatch failures are not errors: they are
reported as data in a DispatchResult.
"""

from __future__ import annotations

from typing import Optional


class HiveError(Exception):
    """Base for all hive errors."""
    code: str = "hive_error"
    retriable: bool = False

    def __init__(self, message: str, *, code: Optional[str] = None, retriable: Optional[bool] = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        if retriable is not None:
            self.retriable = retriable


class DuplicateNodeError(HiveError):
    """A node with the same id is already registered."""
    code = "duplicate_node"
    retriable = False

    def __init__(self, node_id: str):
        super().__init__(f"Node '{node_id}' is already registered")
        self.node_id = node_id


class UnknownNodeError(HiveError):
    """A selector or lookup named a node id that is not registered."""
    code = "unknown_node"
    retriable = False

    def __init__(self, node_id: str):
        super().__init__(f"Node '{node_id}' is not registered")
        self.node_id = node_id


class InvalidCommandError(HiveError):
    """Command kind is outside the closed enumeration."""
    code = "invalid_command"
    retriable = False
