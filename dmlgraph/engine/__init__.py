"""Execution of scheduled buckets against a backend."""

from .backend import Backend, ExecuteOptions
from .executor import ExecutionEngine, ExecutionOutcome
from .memory import BackendCall, InMemoryBackend
from .transaction import CommitMode, TransactionController, TransactionState

__all__ = [
    "Backend",
    "ExecuteOptions",
    "ExecutionEngine",
    "ExecutionOutcome",
    "BackendCall",
    "InMemoryBackend",
    "CommitMode",
    "TransactionController",
    "TransactionState",
]
