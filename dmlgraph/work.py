"""The unit of work: register record operations, then commit them once."""

from dataclasses import dataclass
from typing import Any, Iterable

import structlog

from .errors import (
    BackendCallFailed,
    BackendContractError,
    BackendOperationError,
    ConfigurationConflict,
)
from .engine.backend import Backend
from .engine.executor import ExecutionEngine
from .engine.transaction import CommitMode, TransactionController, TransactionState
from .graph.dependency_graph import build_dependency_graph
from .graph.node_types import AccessMode, SharingMode
from .graph.record import ExternalIdRef, Operation, Record, Registration, RelationshipEdge
from .graph.registry import NodeHandle, NodeRegistry
from .mocking.interceptor import MockInterceptor
from .mocking.rules import MockRegistry, MockRuleBuilder
from .results.models import Result
from .scheduler.models import Schedule
from .scheduler.planner import build_schedule

logger = structlog.get_logger(__name__)

Registrable = Record | Registration
Relationships = dict[str, Record | ExternalIdRef]


@dataclass
class WorkOptions:
    """Options of one unit of work."""

    identifier: str | None = None
    allow_partial_success: bool = False
    combine_on_duplicate: bool = False
    access_mode: AccessMode = AccessMode.USER
    sharing_mode: SharingMode = SharingMode.INHERITED


class UnitOfWork:
    """Batches record operations and commits them in as few calls as possible.

    Register records with ``insert``, ``update``, ``upsert``, ``delete``,
    ``undelete``, ``merge``, and ``publish``; each accepts a record, a
    ``Registration``, or a list of either. Then call exactly one of
    ``commit``, ``transactional_commit``, or ``dry_run``.

    Example:
        uow = UnitOfWork(backend)
        uow.insert(account)
        uow.insert(contact, relationships={"AccountId": account})
        result = uow.commit()
    """

    def __init__(
        self,
        backend: Backend | None = None,
        *,
        identifier: str | None = None,
        allow_partial_success: bool = False,
        combine_on_duplicate: bool = False,
        access_mode: AccessMode = AccessMode.USER,
        sharing_mode: SharingMode = SharingMode.INHERITED,
        mocks: MockRegistry | None = None,
    ):
        self.backend = backend
        self.mocks = mocks
        self.options = WorkOptions(
            identifier=identifier,
            allow_partial_success=allow_partial_success,
            combine_on_duplicate=combine_on_duplicate,
            access_mode=access_mode,
            sharing_mode=sharing_mode,
        )
        self._registry = NodeRegistry(combine_on_duplicate=combine_on_duplicate)
        self._controller = TransactionController(backend)

    @property
    def state(self) -> TransactionState:
        return self._controller.state

    @property
    def registry(self) -> NodeRegistry:
        return self._registry

    def __len__(self) -> int:
        return len(self._registry)

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    def with_identifier(self, identifier: str) -> "UnitOfWork":
        """Tag this unit of work for mock rules and mocked results."""
        self.options.identifier = identifier
        return self

    def allow_partial_success(self, enabled: bool = True) -> "UnitOfWork":
        """Keep going past record failures instead of aborting."""
        self.options.allow_partial_success = enabled
        return self

    def combine_on_duplicate(self, enabled: bool = True) -> "UnitOfWork":
        """Merge repeated registrations of a record instead of rejecting them."""
        self.options.combine_on_duplicate = enabled
        self._registry.combine_on_duplicate = enabled
        return self

    def user_mode(self) -> "UnitOfWork":
        self.options.access_mode = AccessMode.USER
        return self

    def system_mode(self) -> "UnitOfWork":
        self.options.access_mode = AccessMode.SYSTEM
        return self

    def with_sharing(self) -> "UnitOfWork":
        self.options.sharing_mode = SharingMode.WITH_SHARING
        return self

    def without_sharing(self) -> "UnitOfWork":
        self.options.sharing_mode = SharingMode.WITHOUT_SHARING
        return self

    def inherited_sharing(self) -> "UnitOfWork":
        self.options.sharing_mode = SharingMode.INHERITED
        return self

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def insert(
        self,
        records: Registrable | Iterable[Registrable],
        *,
        overrides: dict[str, Any] | None = None,
        relationships: Relationships | None = None,
    ) -> NodeHandle | list[NodeHandle]:
        """Register records to insert."""
        return self._register(records, Operation.insert(), overrides, relationships)

    def update(
        self,
        records: Registrable | Iterable[Registrable],
        *,
        overrides: dict[str, Any] | None = None,
        relationships: Relationships | None = None,
    ) -> NodeHandle | list[NodeHandle]:
        """Register records to update; each needs an id."""
        return self._register(records, Operation.update(), overrides, relationships)

    def upsert(
        self,
        records: Registrable | Iterable[Registrable],
        *,
        external_id_field: str | None = None,
        overrides: dict[str, Any] | None = None,
        relationships: Relationships | None = None,
    ) -> NodeHandle | list[NodeHandle]:
        """Register records to upsert, by id or by an external-id field."""
        return self._register(
            records, Operation.upsert(external_id_field), overrides, relationships
        )

    def delete(
        self, records: Registrable | Iterable[Registrable]
    ) -> NodeHandle | list[NodeHandle]:
        """Register records to delete; each needs an id."""
        return self._register(records, Operation.delete())

    def undelete(
        self, records: Registrable | Iterable[Registrable]
    ) -> NodeHandle | list[NodeHandle]:
        """Register records to restore from deletion; each needs an id."""
        return self._register(records, Operation.undelete())

    def merge(
        self,
        master: Record | str,
        duplicates: Registrable | Iterable[Registrable],
    ) -> NodeHandle | list[NodeHandle]:
        """Register duplicates to merge into a persisted master record."""
        master_id = master.id if isinstance(master, Record) else master
        return self._register(duplicates, Operation.merge(master_id))

    def publish(
        self,
        records: Registrable | Iterable[Registrable],
        *,
        overrides: dict[str, Any] | None = None,
        relationships: Relationships | None = None,
    ) -> NodeHandle | list[NodeHandle]:
        """Register events to publish."""
        return self._register(records, Operation.publish(), overrides, relationships)

    def register(
        self,
        record: Registrable,
        operation: Operation,
        overrides: dict[str, Any] | None = None,
        relationships: Relationships | None = None,
    ) -> NodeHandle:
        """Register one record for any operation."""
        self._controller.ensure_idle()
        edges = [
            RelationshipEdge(field_name, target)
            for field_name, target in (relationships or {}).items()
        ]
        return self._registry.register(record, operation, overrides, edges)

    def _register(
        self,
        records: Registrable | Iterable[Registrable],
        operation: Operation,
        overrides: dict[str, Any] | None = None,
        relationships: Relationships | None = None,
    ) -> NodeHandle | list[NodeHandle]:
        if isinstance(records, (Record, Registration)):
            return self.register(records, operation, overrides, relationships)
        return [
            self.register(record, operation, overrides, relationships)
            for record in records
        ]

    # -------------------------------------------------------------------------
    # Mocking
    # -------------------------------------------------------------------------

    def register_mock(self, identifier: str | None = None) -> MockRuleBuilder:
        """Start a mock rule, under this unit's identifier by default."""
        identifier = identifier or self.options.identifier
        if identifier is None:
            raise ConfigurationConflict("Mocking needs an identifier")
        if self.mocks is None:
            self.mocks = MockRegistry()
        return self.mocks.register_mock(identifier)

    def fetch_mock_result(self, identifier: str | None = None) -> Result:
        """Get the result recorded for a mocked commit."""
        identifier = identifier or self.options.identifier
        if self.mocks is None:
            self.mocks = MockRegistry()
        return self.mocks.fetch_mock_result(identifier)

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def plan(self) -> Schedule:
        """Build the schedule without touching the backend.

        Raises:
            UnknownRelationshipTarget: If a relationship cannot be resolved.
            CyclicDependency: If relationships form a cycle.
        """
        graph = build_dependency_graph(self._registry)
        return build_schedule(self._registry, graph)

    def commit(self) -> Result:
        """Commit without rollback; dispatched buckets stay on failure."""
        return self._commit(CommitMode.PLAIN)

    def transactional_commit(self) -> Result:
        """Commit, rolling everything back if a record failure aborts it."""
        return self._commit(CommitMode.SAVEPOINT)

    def dry_run(self) -> Result:
        """Run everything, report the result, then roll it all back."""
        return self._commit(CommitMode.DRY_RUN)

    def _commit(self, mode: CommitMode) -> Result:
        self._controller.ensure_idle()
        TransactionController.validate(mode, self.options.allow_partial_success)

        schedule = self.plan()
        interceptor = self._interceptor()
        if self.backend is None:
            self._check_fully_mocked(schedule, interceptor)

        engine = ExecutionEngine(
            self._registry,
            self.backend,
            allow_partial_success=self.options.allow_partial_success,
            access_mode=self.options.access_mode,
            sharing_mode=self.options.sharing_mode,
            interceptor=interceptor,
        )

        logger.debug(
            "unit_of_work_committing",
            identifier=self.options.identifier,
            records=len(self._registry),
            mode=mode.value,
        )

        try:
            result = self._controller.commit(engine, schedule, mode)
        except (BackendOperationError, BackendCallFailed, BackendContractError) as e:
            self._remember_mocked(interceptor, e.result)
            raise
        self._remember_mocked(interceptor, result)
        return result

    def _interceptor(self) -> MockInterceptor | None:
        if self.mocks is None:
            return None
        rules = self.mocks.rules_for(self.options.identifier)
        if not rules:
            return None
        return MockInterceptor(rules, self.mocks.id_generator)

    def _remember_mocked(
        self, interceptor: MockInterceptor | None, result: Result | None
    ) -> None:
        if interceptor is not None and result is not None:
            self.mocks.record_result(self.options.identifier, result)

    def _check_fully_mocked(
        self, schedule: Schedule, interceptor: MockInterceptor | None
    ) -> None:
        for bucket in schedule:
            if interceptor is None or interceptor.match(bucket.kind, bucket.entity_type) is None:
                raise ConfigurationConflict(
                    f"No backend configured and {bucket.key} is not mocked"
                )
