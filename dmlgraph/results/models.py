"""Result tree reported after a commit."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from ..graph.node_types import OperationKind
from ..graph.record import Record


class ErrorCode(str, Enum):
    """Where a record error came from."""

    BACKEND_ERROR = "backend_error"
    UNRESOLVED_DEPENDENCY = "unresolved_dependency"
    MOCK_FAILURE = "mock_failure"


@dataclass(frozen=True)
class RecordError:
    """A single error reported for a record."""

    message: str
    status_code: str | None = None
    fields: tuple[str, ...] = ()
    code: ErrorCode = ErrorCode.BACKEND_ERROR

    def __str__(self) -> str:
        status = f"{self.status_code}: " if self.status_code else ""
        fields = f" [{', '.join(self.fields)}]" if self.fields else ""
        return f"{status}{self.message}{fields}"


@dataclass(frozen=True)
class RecordOutcome:
    """What the backend reports for one record."""

    success: bool
    identifier: str | None = None
    errors: tuple[RecordError, ...] = ()

    @classmethod
    def ok(cls, identifier: str | None) -> "RecordOutcome":
        return cls(success=True, identifier=identifier)

    @classmethod
    def failed(cls, *errors: RecordError) -> "RecordOutcome":
        return cls(success=False, errors=tuple(errors))


@dataclass(frozen=True)
class RecordResult:
    """The outcome of one registered record."""

    handle: int
    kind: OperationKind
    entity_type: str
    record: Record
    success: bool
    identifier: str | None = None
    errors: tuple[RecordError, ...] = ()

    @property
    def has_failures(self) -> bool:
        return not self.success


@dataclass
class OperationResult:
    """Outcomes of one operation kind on one entity type.

    Merges every bucket of that pair, however many layers it took.
    """

    kind: OperationKind
    entity_type: str
    records: list[RecordResult] = field(default_factory=list)

    @property
    def successes(self) -> list[RecordResult]:
        """Get the records that succeeded."""
        return [r for r in self.records if r.success]

    @property
    def failures(self) -> list[RecordResult]:
        """Get the records that failed."""
        return [r for r in self.records if not r.success]

    @property
    def has_failures(self) -> bool:
        """Check if any record failed."""
        return any(not r.success for r in self.records)

    @property
    def identifiers(self) -> list[str | None]:
        """Get the identifiers of all records, in registration order."""
        return [r.identifier for r in self.records]

    @property
    def errors(self) -> list[RecordError]:
        """Get every error of every record."""
        return [e for r in self.records for e in r.errors]

    def __len__(self) -> int:
        return len(self.records)


@dataclass
class Result:
    """The outcome of a commit, grouped by operation kind and entity type."""

    operations: list[OperationResult] = field(default_factory=list)

    @property
    def records(self) -> list[RecordResult]:
        """Get all record results, in registration order."""
        return sorted(
            (r for op in self.operations for r in op.records),
            key=lambda r: r.handle,
        )

    @property
    def successes(self) -> list[RecordResult]:
        return [r for r in self.records if r.success]

    @property
    def failures(self) -> list[RecordResult]:
        return [r for r in self.records if not r.success]

    @property
    def has_failures(self) -> bool:
        """Check if any record failed."""
        return any(op.has_failures for op in self.operations)

    def get(self, kind: OperationKind | str, entity_type: str) -> OperationResult:
        """Get the result of one operation on one entity type.

        Returns an empty OperationResult when nothing of that kind ran.
        """
        kind = OperationKind(kind)
        for op in self.operations:
            if op.kind == kind and op.entity_type == entity_type:
                return op
        return OperationResult(kind=kind, entity_type=entity_type)

    def of_kind(self, kind: OperationKind | str) -> list[OperationResult]:
        """Get the operation results of one kind."""
        kind = OperationKind(kind)
        return [op for op in self.operations if op.kind == kind]

    def for_handle(self, handle: int) -> RecordResult | None:
        """Get the result of a registered node."""
        for record in self.records:
            if record.handle == handle:
                return record
        return None

    def inserts(self) -> list[OperationResult]:
        return self.of_kind(OperationKind.INSERT)

    def updates(self) -> list[OperationResult]:
        return self.of_kind(OperationKind.UPDATE)

    def upserts(self) -> list[OperationResult]:
        return self.of_kind(OperationKind.UPSERT)

    def deletes(self) -> list[OperationResult]:
        return self.of_kind(OperationKind.DELETE)

    def undeletes(self) -> list[OperationResult]:
        return self.of_kind(OperationKind.UNDELETE)

    def merges(self) -> list[OperationResult]:
        return self.of_kind(OperationKind.MERGE)

    def publishes(self) -> list[OperationResult]:
        return self.of_kind(OperationKind.PUBLISH)

    def summary(self) -> dict[str, Any]:
        """Counts per operation, for logging and output."""
        return {
            f"{op.kind.value}:{op.entity_type}": {
                "total": len(op.records),
                "failed": len(op.failures),
            }
            for op in self.operations
        }

    def __iter__(self) -> Iterator[OperationResult]:
        return iter(self.operations)
