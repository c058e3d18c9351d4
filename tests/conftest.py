"""Shared fixtures for tests."""

from pathlib import Path

import pytest

from dmlgraph.engine.backend import ExecuteOptions
from dmlgraph.engine.memory import InMemoryBackend
from dmlgraph.graph.node_types import OperationKind
from dmlgraph.graph.record import Record
from dmlgraph.mocking.rules import MockRegistry


@pytest.fixture
def examples_dir() -> Path:
    """Return the path to the examples directory."""
    return Path(__file__).parent.parent / "examples"


@pytest.fixture
def backend() -> InMemoryBackend:
    """Return an empty in-memory backend."""
    return InMemoryBackend()


@pytest.fixture
def seed(backend):
    """Return a helper that stores a row and returns its id."""

    def _seed(entity_type: str, **fields) -> str:
        outcomes = backend.execute(
            [Record(entity_type, fields)], OperationKind.INSERT, ExecuteOptions()
        )
        backend.calls.clear()
        return outcomes[0].identifier

    return _seed


@pytest.fixture
def mocks() -> MockRegistry:
    """Return an empty mock registry."""
    return MockRegistry()


@pytest.fixture
def family():
    """Return a parent, two children pointing at it, and an unrelated record."""
    return {
        "p1": Record("Parent", {"Name": "P1"}),
        "c1": Record("Child", {"Name": "C1"}),
        "c2": Record("Child", {"Name": "C2"}),
        "u1": Record("Unrelated", {"Name": "U1"}),
    }


@pytest.fixture
def rejecting_backend():
    """Return a factory for backends that reject every record of some types."""

    def _factory(*entity_types: str) -> InMemoryBackend:
        def reject(record, kind):
            if record.type in entity_types:
                return f"{record.type} rejected"
            return None

        return InMemoryBackend(reject=reject)

    return _factory
