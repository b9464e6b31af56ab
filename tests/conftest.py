"""Pytest configuration and fixtures for graphmem tests."""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from graphmem.core.compiler import QueryCompiler
from graphmem.core.config import EngineConfig
from graphmem.core.models import Edge, Node
from graphmem.core.storage import GraphStorage


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(clock) -> GraphStorage:
    """Empty storage with default config and a fake clock."""
    return GraphStorage(EngineConfig(), clock=clock)


@pytest.fixture
def compiler() -> QueryCompiler:
    return QueryCompiler()


@pytest.fixture
def shop_storage(storage) -> GraphStorage:
    """
    Small shop graph:

        user:1 -HAS_ORDER-> order:101 -CONTAINS-> product:5
        user:1 -HAS_ORDER-> order:102 -CONTAINS-> product:6
        user:2 -HAS_ORDER-> order:103 -CONTAINS-> product:5
    """
    storage.add_node(Node(
        id="user:1", type="user",
        properties={"name": "Alice", "status": "active"},
        edges=[Edge("HAS_ORDER", "order:101"), Edge("HAS_ORDER", "order:102")],
    ))
    storage.add_node(Node(
        id="user:2", type="user",
        properties={"name": "Bob", "status": "inactive"},
        edges=[Edge("HAS_ORDER", "order:103")],
    ))
    storage.add_node(Node(
        id="order:101", type="order", properties={"total": 100},
        edges=[Edge("CONTAINS", "product:5", weight=2.0)],
    ))
    storage.add_node(Node(
        id="order:102", type="order", properties={"total": 200},
        edges=[Edge("CONTAINS", "product:6")],
    ))
    storage.add_node(Node(
        id="order:103", type="order", properties={"total": 300},
        edges=[Edge("CONTAINS", "product:5")],
    ))
    storage.add_node(Node(id="product:5", type="product", properties={"price": 50}))
    storage.add_node(Node(id="product:6", type="product", properties={"price": 300}))
    return storage
