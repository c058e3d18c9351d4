"""Exceptions raised by the unit of work."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .results.models import RecordError, Result


class DmlError(Exception):
    """Base exception for unit-of-work errors."""

    pass


class DuplicateRegistration(DmlError):
    """Raised when the same record is registered twice for one operation."""

    def __init__(self, message: str, identity: Any = None):
        self.identity = identity
        super().__init__(message)


class MissingIdentity(DmlError):
    """Raised when a record lacks the key its operation needs."""

    pass


class UnknownRelationshipTarget(DmlError):
    """Raised when a relationship points at an unregistered, unsaved record."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class CyclicDependency(DmlError):
    """Raised when relationships form a cycle."""

    def __init__(self, message: str, cycle: list[str] | None = None):
        self.cycle = cycle or []
        super().__init__(message)


class ConfigurationConflict(DmlError):
    """Raised when two options cannot be combined."""

    pass


class UnitOfWorkClosed(DmlError):
    """Raised when a unit of work is used after its commit."""

    pass


class BackendContractError(DmlError):
    """Raised when the backend breaks the one-outcome-per-record contract.

    When raised during a commit, ``result`` holds the buckets finished before
    the offending one.
    """

    def __init__(self, message: str, result: "Result | None" = None):
        self.result = result
        super().__init__(message)


class BackendCallFailed(DmlError):
    """Raised when the backend itself raises while executing a bucket.

    The original exception is chained as ``__cause__``; ``result`` holds the
    buckets finished before the failing call.
    """

    def __init__(self, message: str, result: "Result"):
        self.result = result
        super().__init__(message)


class BackendOperationError(DmlError):
    """Raised when a record failure aborts the commit.

    Carries the partial result accumulated before the abort so callers can
    inspect what was attempted.
    """

    def __init__(
        self,
        message: str,
        result: "Result",
        errors: "list[RecordError] | None" = None,
    ):
        self.result = result
        self.errors = errors or []
        super().__init__(message)

    @property
    def message(self) -> str | None:
        """Message of the triggering error."""
        return self.errors[0].message if self.errors else None

    @property
    def status_code(self) -> str | None:
        """Status code of the triggering error."""
        return self.errors[0].status_code if self.errors else None

    @property
    def fields(self) -> list[str]:
        """Fields named by the triggering error."""
        return list(self.errors[0].fields) if self.errors else []


class MockResultNotFound(DmlError):
    """Raised when no result was recorded under a mock identifier."""

    pass
