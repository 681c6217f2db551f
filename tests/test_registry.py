"""Unit tests for hive.fleet.registry — membership, selectors, liveness policy."""

import dataclasses
import threading

import pytest

from hive.errors import DuplicateNodeError, UnknownNodeError
from hive.fleet.models import NodeInfo
from hive.fleet.registry import NodeRegistry
from hive.fleet.types import WILDCARD, NodeStatus, Outcome
from hive.observability.events import EventBus, EventKind


class TestRegister:
    def test_register_returns_online_snapshot(self):
        reg = NodeRegistry()
        snap = reg.register(NodeInfo(node_id="n1", display_name="Node 1", capabilities=["sync"]))
        assert snap.id == "n1"
        assert snap.display_name == "Node 1"
        assert snap.capabilities == frozenset({"sync"})
        assert snap.status is NodeStatus.ONLINE
        assert snap.last_seen_ms is None
        assert "n1" in reg
        assert len(reg) == 1

    def test_display_name_defaults_to_id(self):
        reg = NodeRegistry()
        assert reg.register(NodeInfo(node_id="n1")).display_name == "n1"

    def test_duplicate_rejected_and_state_unchanged(self, registry):
        before = registry.snapshot()
        with pytest.raises(DuplicateNodeError) as exc_info:
            registry.register(NodeInfo(node_id="main", display_name="Impostor"))
        assert exc_info.value.node_id == "main"
        assert registry.snapshot() == before
        assert registry.get("main").display_name == "Main"

    def test_offline_after_must_be_positive(self):
        with pytest.raises(ValueError):
            NodeRegistry(offline_after=0)


class TestUnregisterAndRename:
    def test_unregister(self, registry):
        assert registry.unregister("ai-core") is True
        assert "ai-core" not in registry
        assert registry.unregister("ai-core") is False

    def test_rename(self, registry):
        snap = registry.rename("main", "Main Node")
        assert snap.display_name == "Main Node"
        assert registry.get("main").display_name == "Main Node"

    def test_rename_unknown(self, registry):
        with pytest.raises(UnknownNodeError):
            registry.rename("ghost", "x")

    def test_get_unknown(self, registry):
        with pytest.raises(UnknownNodeError):
            registry.get("ghost")


class TestResolveTargets:
    def test_wildcard_returns_all_in_registration_order(self, registry):
        assert registry.resolve_targets(WILDCARD) == ("ops-agent", "ai-core", "main")

    def test_wildcard_has_no_duplicates(self):
        reg = NodeRegistry()
        ids = [f"n{i}" for i in range(20)]
        for nid in ids:
            reg.register(NodeInfo(node_id=nid))
        targets = reg.resolve_targets(WILDCARD)
        assert len(targets) == len(set(targets))
        assert set(targets) == set(ids)
        assert reg.resolve_targets(WILDCARD) == targets

    def test_wildcard_on_empty_registry(self):
        assert NodeRegistry().resolve_targets(WILDCARD) == ()

    def test_specific_id(self, registry):
        assert registry.resolve_targets("ai-core") == ("ai-core",)

    def test_unknown_id(self, registry):
        with pytest.raises(UnknownNodeError) as exc_info:
            registry.resolve_targets("ghost")
        assert exc_info.value.code == "unknown_node"

    def test_resolve_nodes_returns_snapshots(self, registry):
        nodes = registry.resolve_nodes(WILDCARD)
        assert [n.id for n in nodes] == ["ops-agent", "ai-core", "main"]
        assert registry.resolve_nodes("main")[0].display_name == "Main"
        with pytest.raises(UnknownNodeError):
            registry.resolve_nodes("ghost")


class TestRecordOutcome:
    def test_ok_updates_last_seen(self):
        reg = NodeRegistry(clock=lambda: 1234)
        reg.register(NodeInfo(node_id="n1"))
        snap = reg.record_outcome("n1", Outcome.ok())
        assert snap.last_seen_ms == 1234
        assert snap.status is NodeStatus.ONLINE

    def test_single_failure_degrades(self, registry):
        snap = registry.record_outcome("main", Outcome.failed("boom"))
        assert snap.status is NodeStatus.DEGRADED
        assert snap.consecutive_failures == 1
        assert snap.last_seen_ms is None

    def test_three_consecutive_failures_go_offline(self, registry):
        registry.record_outcome("main", Outcome.failed("a"))
        registry.record_outcome("main", Outcome.timed_out())
        assert registry.get("main").status is NodeStatus.DEGRADED
        snap = registry.record_outcome("main", Outcome.failed("c"))
        assert snap.status is NodeStatus.OFFLINE

    def test_success_restores_online_from_offline(self, registry):
        for _ in range(4):
            registry.record_outcome("main", Outcome.timed_out())
        assert registry.get("main").status is NodeStatus.OFFLINE
        snap = registry.record_outcome("main", Outcome.ok())
        assert snap.status is NodeStatus.ONLINE
        assert snap.consecutive_failures == 0

    def test_success_restores_online_from_degraded(self, registry):
        registry.record_outcome("main", Outcome.failed("x"))
        assert registry.record_outcome("main", Outcome.ok()).status is NodeStatus.ONLINE

    def test_success_resets_failure_streak(self, registry):
        registry.record_outcome("main", Outcome.failed("a"))
        registry.record_outcome("main", Outcome.failed("b"))
        registry.record_outcome("main", Outcome.ok())
        registry.record_outcome("main", Outcome.failed("c"))
        registry.record_outcome("main", Outcome.failed("d"))
        assert registry.get("main").status is NodeStatus.DEGRADED

    def test_custom_threshold(self):
        reg = NodeRegistry(offline_after=1)
        reg.register(NodeInfo(node_id="n1"))
        assert reg.record_outcome("n1", Outcome.failed("x")).status is NodeStatus.OFFLINE

    def test_concurrent_writers_never_lose_updates(self):
        reg = NodeRegistry(offline_after=1_000_000)
        reg.register(NodeInfo(node_id="n1"))
        threads, calls = 8, 2000

        def hammer():
            for _ in range(calls):
                reg.record_outcome("n1", Outcome.failed("x"))

        workers = [threading.Thread(target=hammer) for _ in range(threads)]
        for w in workers:
            w.start()
        for w in workers:
            w.join()

        snap = reg.get("n1")
        assert snap.consecutive_failures == threads * calls
        assert snap.status is NodeStatus.DEGRADED

    def test_unknown_id_is_noop(self, registry):
        before = registry.snapshot()
        assert registry.record_outcome("ghost", Outcome.failed("x")) is None
        assert registry.snapshot() == before


class TestSnapshot:
    def test_snapshot_is_a_copy(self, registry):
        snap = registry.snapshot()
        registry.record_outcome("main", Outcome.failed("x"))
        assert snap[2].status is NodeStatus.ONLINE
        assert registry.get("main").status is NodeStatus.DEGRADED

    def test_snapshot_is_immutable(self, registry):
        node = registry.snapshot()[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            node.status = NodeStatus.OFFLINE
        assert isinstance(node.capabilities, frozenset)


class TestRegistryEvents:
    def test_emits_membership_and_status_events(self):
        bus = EventBus()
        received = []
        bus.on_all(lambda e: received.append(e))
        reg = NodeRegistry(events=bus)

        reg.register(NodeInfo(node_id="n1"))
        reg.record_outcome("n1", Outcome.ok())  # no transition
        reg.record_outcome("n1", Outcome.failed("x"))
        reg.unregister("n1")

        kinds = [e.kind for e in received]
        assert kinds == [
            EventKind.NODE_REGISTERED,
            EventKind.NODE_STATUS_CHANGED,
            EventKind.NODE_REMOVED,
        ]
        changed = received[1]
        assert changed.previous is NodeStatus.ONLINE
        assert changed.current is NodeStatus.DEGRADED
