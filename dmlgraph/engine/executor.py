"""Dispatch scheduled buckets and resolve relationships as records land."""

from dataclasses import dataclass, field

import structlog

from ..errors import BackendCallFailed, BackendContractError
from ..graph.node_types import AccessMode, NodeStatus, SharingMode
from ..graph.record import Record
from ..graph.registry import NodeRegistry, RecordNode
from ..mocking.interceptor import MockInterceptor
from ..results.aggregator import ResultAggregator
from ..results.models import ErrorCode, RecordError, RecordOutcome, RecordResult, Result
from ..scheduler.models import Bucket, Schedule
from .backend import Backend, ExecuteOptions

logger = structlog.get_logger(__name__)

UNRESOLVED_DEPENDENCY_STATUS = "UNRESOLVED_DEPENDENCY"


@dataclass
class ExecutionOutcome:
    """What a run of the engine produced."""

    result: Result
    aborted: bool = False
    failed_bucket: Bucket | None = None
    errors: list[RecordError] = field(default_factory=list)
    backend_calls: int = 0
    mocked_calls: int = 0


class ExecutionEngine:
    """Runs a schedule bucket by bucket against the backend.

    Each bucket's records are materialized just before dispatch, so foreign
    keys pick up identifiers assigned by earlier buckets.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        backend: Backend | None,
        *,
        allow_partial_success: bool = False,
        access_mode: AccessMode = AccessMode.USER,
        sharing_mode: SharingMode = SharingMode.INHERITED,
        interceptor: MockInterceptor | None = None,
    ):
        self.registry = registry
        self.backend = backend
        self.allow_partial_success = allow_partial_success
        self.access_mode = access_mode
        self.sharing_mode = sharing_mode
        self.interceptor = interceptor
        self._backend_calls = 0
        self._mocked_calls = 0

    def run(self, schedule: Schedule) -> ExecutionOutcome:
        """Execute every bucket in schedule order.

        Without partial success the run stops after the first bucket holding
        a failed record; the outcome then covers only buckets attempted.

        Raises:
            BackendContractError: If the backend returns the wrong number of
                outcomes; carries the result of the buckets finished so far.
            BackendCallFailed: If the backend raises; carries the result of
                the buckets finished so far.
        """
        aggregator = ResultAggregator()

        for bucket in schedule:
            try:
                record_results = self._run_bucket(bucket)
            except BackendContractError as e:
                e.result = aggregator.build()
                raise
            except Exception as e:
                logger.error(
                    "bucket_raised",
                    layer=bucket.layer,
                    bucket=str(bucket.key),
                    error=str(e),
                )
                raise BackendCallFailed(
                    f"{bucket.key} raised {type(e).__name__}: {e}",
                    result=aggregator.build(),
                ) from e
            aggregator.add(record_results)

            failed = [r for r in record_results if not r.success]
            if failed and not self.allow_partial_success:
                logger.warning(
                    "execution_aborted",
                    layer=bucket.layer,
                    bucket=str(bucket.key),
                    failed=len(failed),
                )
                return ExecutionOutcome(
                    result=aggregator.build(),
                    aborted=True,
                    failed_bucket=bucket,
                    errors=[e for r in failed for e in r.errors],
                    backend_calls=self._backend_calls,
                    mocked_calls=self._mocked_calls,
                )

        return ExecutionOutcome(
            result=aggregator.build(),
            backend_calls=self._backend_calls,
            mocked_calls=self._mocked_calls,
        )

    def _run_bucket(self, bucket: Bucket) -> list[RecordResult]:
        results: dict[int, RecordResult] = {}
        ready: list[tuple[RecordNode, Record]] = []

        for handle in bucket.members:
            node = self.registry[handle]
            record, errors = self._materialize(node)
            if errors:
                node.status = NodeStatus.FAILED
                node.errors = errors
                results[handle] = _record_result(node, record)
            else:
                ready.append((node, record))

        if ready:
            records = [record for _, record in ready]
            outcomes = self._dispatch(bucket, records)
            if len(outcomes) != len(records):
                raise BackendContractError(
                    f"Backend returned {len(outcomes)} outcomes for "
                    f"{len(records)} records in {bucket.key}"
                )
            for (node, record), outcome in zip(ready, outcomes):
                _apply_outcome(node, record, outcome)
                results[node.handle] = _record_result(node, record)
        else:
            logger.debug("bucket_skipped", layer=bucket.layer, bucket=str(bucket.key))

        return [results[handle] for handle in bucket.members]

    def _materialize(self, node: RecordNode) -> tuple[Record, list[RecordError]]:
        """Build the record to send: fields, overrides, then relationships."""
        fields = node.base_fields()
        errors: list[RecordError] = []

        for edge in node.edges:
            if edge.target_handle is None:
                fields[edge.field] = edge.literal
                continue

            target = self.registry[edge.target_handle]
            if target.status == NodeStatus.RESOLVED and target.resolved_id:
                fields[edge.field] = target.resolved_id
                continue

            reason = "failed" if target.status == NodeStatus.FAILED else "was not resolved"
            errors.append(
                RecordError(
                    message=f"'{edge.field}' depends on {target.label}, which {reason}",
                    status_code=UNRESOLVED_DEPENDENCY_STATUS,
                    fields=(edge.field,),
                    code=ErrorCode.UNRESOLVED_DEPENDENCY,
                )
            )

        return node.record.with_fields(fields), errors

    def _dispatch(self, bucket: Bucket, records: list[Record]) -> list[RecordOutcome]:
        key = bucket.key
        rule = self.interceptor.match(key.kind, key.entity_type) if self.interceptor else None

        logger.debug(
            "bucket_dispatched",
            layer=bucket.layer,
            bucket=str(key),
            size=len(records),
            mocked=rule is not None,
        )

        if rule is not None:
            self._mocked_calls += 1
            return self.interceptor.execute(
                records, key.kind, rule, merge_master_id=key.merge_master_id
            )

        if self.backend is None:
            raise BackendContractError(f"No backend configured to run {key}")

        self._backend_calls += 1
        options = ExecuteOptions(
            allow_partial_success=self.allow_partial_success,
            external_id_field=key.external_id_field,
            merge_master_id=key.merge_master_id,
            access_mode=self.access_mode,
            sharing_mode=self.sharing_mode,
        )
        return list(self.backend.execute(records, key.kind, options))


def _apply_outcome(node: RecordNode, record: Record, outcome: RecordOutcome) -> None:
    if outcome.success:
        node.status = NodeStatus.RESOLVED
        node.resolved_id = outcome.identifier or record.id
        node.errors = []
    else:
        node.status = NodeStatus.FAILED
        node.errors = list(outcome.errors) or [
            RecordError(message="Backend reported a failure without details")
        ]


def _record_result(node: RecordNode, record: Record) -> RecordResult:
    return RecordResult(
        handle=node.handle,
        kind=node.kind,
        entity_type=node.entity_type,
        record=record,
        success=node.status == NodeStatus.RESOLVED,
        identifier=node.resolved_id,
        errors=tuple(node.errors),
    )
