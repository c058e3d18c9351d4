"""dmlgraph: a dependency-aware unit of work for batched record operations."""

from .errors import (
    BackendCallFailed,
    BackendContractError,
    BackendOperationError,
    ConfigurationConflict,
    CyclicDependency,
    DmlError,
    DuplicateRegistration,
    MissingIdentity,
    MockResultNotFound,
    UnitOfWorkClosed,
    UnknownRelationshipTarget,
)
from .engine import Backend, CommitMode, ExecuteOptions, InMemoryBackend, TransactionState
from .graph import (
    AccessMode,
    ExternalIdRef,
    Operation,
    OperationKind,
    Record,
    Registration,
    SharingMode,
)
from .mocking import FakeIdGenerator, MockRegistry
from .results import ErrorCode, OperationResult, RecordError, RecordOutcome, RecordResult, Result
from .scheduler import Bucket, BucketKey, Schedule
from .work import UnitOfWork, WorkOptions

__version__ = "0.1.0"

__all__ = [
    # Unit of work
    "UnitOfWork",
    "WorkOptions",
    # Records
    "AccessMode",
    "ExternalIdRef",
    "Operation",
    "OperationKind",
    "Record",
    "Registration",
    "SharingMode",
    # Backend
    "Backend",
    "CommitMode",
    "ExecuteOptions",
    "InMemoryBackend",
    "TransactionState",
    # Schedule
    "Bucket",
    "BucketKey",
    "Schedule",
    # Results
    "ErrorCode",
    "OperationResult",
    "RecordError",
    "RecordOutcome",
    "RecordResult",
    "Result",
    # Mocking
    "FakeIdGenerator",
    "MockRegistry",
    # Errors
    "BackendCallFailed",
    "BackendContractError",
    "BackendOperationError",
    "ConfigurationConflict",
    "CyclicDependency",
    "DmlError",
    "DuplicateRegistration",
    "MissingIdentity",
    "MockResultNotFound",
    "UnitOfWorkClosed",
    "UnknownRelationshipTarget",
]
