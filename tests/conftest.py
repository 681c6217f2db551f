"""Shared fixtures and markers for the hive test suite."""

import pytest

from hive.fleet.models import NodeInfo
from hive.fleet.registry import NodeRegistry


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks slow tests")


@pytest.fixture
def three_nodes():
    return [
        NodeInfo(node_id="ops-agent", display_name="Ops", capabilities=["deploy"]),
        NodeInfo(node_id="ai-core", display_name="AI Core", capabilities=["reasoning"]),
        NodeInfo(node_id="main", display_name="Main", capabilities=["knowledge"]),
    ]


@pytest.fixture
def registry(three_nodes):
    reg = NodeRegistry()
    for info in three_nodes:
        reg.register(info)
    return reg
