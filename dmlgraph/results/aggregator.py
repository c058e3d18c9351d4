"""Merge per-bucket outcomes into the caller-facing result tree."""

from ..graph.node_types import OperationKind
from .models import OperationResult, RecordResult, Result


class ResultAggregator:
    """Collects record results bucket by bucket.

    Buckets of the same (operation kind, entity type) land in one
    OperationResult; operation results keep the order they were first seen.
    """

    def __init__(self):
        self._operations: dict[tuple[OperationKind, str], OperationResult] = {}

    def add(self, record_results: list[RecordResult]) -> None:
        """Add the results of one bucket."""
        for record_result in record_results:
            key = (record_result.kind, record_result.entity_type)
            if key not in self._operations:
                self._operations[key] = OperationResult(
                    kind=record_result.kind, entity_type=record_result.entity_type
                )
            self._operations[key].records.append(record_result)

    def build(self) -> Result:
        """Build the result tree from everything added so far."""
        operations = []
        for op in self._operations.values():
            operations.append(
                OperationResult(
                    kind=op.kind,
                    entity_type=op.entity_type,
                    records=sorted(op.records, key=lambda r: r.handle),
                )
            )
        return Result(operations=operations)
