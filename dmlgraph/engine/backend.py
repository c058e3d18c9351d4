"""The contract between the unit of work and the persistence backend."""

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ..graph.node_types import AccessMode, OperationKind, SharingMode
from ..graph.record import Record
from ..results.models import RecordOutcome


@dataclass(frozen=True)
class ExecuteOptions:
    """Options sent with every backend call.

    ``access_mode`` and ``sharing_mode`` are passed through untouched; only
    the backend gives them meaning.
    """

    allow_partial_success: bool = False
    external_id_field: str | None = None
    merge_master_id: str | None = None
    access_mode: AccessMode = AccessMode.USER
    sharing_mode: SharingMode = SharingMode.INHERITED


@runtime_checkable
class Backend(Protocol):
    """Performs record operations and reports one outcome per record."""

    def execute(
        self,
        records: list[Record],
        kind: OperationKind,
        options: ExecuteOptions,
    ) -> list[RecordOutcome]:
        """Run one operation on a batch of records.

        Must return exactly one outcome per record, in input order.
        """
        ...

    def savepoint(self) -> Any:
        """Mark a point the backend can roll back to."""
        ...

    def rollback(self, savepoint: Any) -> None:
        """Undo everything done since ``savepoint``."""
        ...
