"""Synthesize backend outcomes for mocked buckets."""

import structlog

from ..graph.node_types import OperationKind
from ..graph.record import Record
from ..results.models import ErrorCode, RecordError, RecordOutcome
from .ids import FakeIdGenerator
from .rules import MockRule

logger = structlog.get_logger(__name__)

MOCK_FAILURE_STATUS = "MOCKED_FAILURE"


class MockInterceptor:
    """Answers buckets matched by a mock rule in place of the backend."""

    def __init__(self, rules: list[MockRule], id_generator: FakeIdGenerator):
        self.rules = list(rules)
        self.id_generator = id_generator

    def match(self, kind: OperationKind, entity_type: str) -> MockRule | None:
        """Get the first rule intercepting a bucket, if any."""
        for rule in self.rules:
            if rule.matches(kind, entity_type):
                return rule
        return None

    def execute(
        self,
        records: list[Record],
        kind: OperationKind,
        rule: MockRule,
        merge_master_id: str | None = None,
    ) -> list[RecordOutcome]:
        """Produce one outcome per record without touching the backend."""
        logger.debug(
            "bucket_mocked",
            identifier=rule.identifier,
            operation=kind.value,
            size=len(records),
            inject_failure=rule.inject_failure,
        )

        if rule.inject_failure:
            error = RecordError(
                message=f"Mocked {kind.value} failure",
                status_code=MOCK_FAILURE_STATUS,
                code=ErrorCode.MOCK_FAILURE,
            )
            return [RecordOutcome.failed(error) for _ in records]

        if kind == OperationKind.MERGE and merge_master_id:
            return [RecordOutcome.ok(merge_master_id) for _ in records]
        return [RecordOutcome.ok(self._identifier_for(r, kind)) for r in records]

    def _identifier_for(self, record: Record, kind: OperationKind) -> str:
        if kind in (OperationKind.INSERT, OperationKind.PUBLISH) or not record.id:
            return self.id_generator.next_id(record.type)
        return record.id
