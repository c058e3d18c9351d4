"""In-memory backend used by tests, simulations, and the CLI."""

import copy
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Callable

import structlog

from ..graph.node_types import OperationKind
from ..graph.record import ExternalIdRef, Record
from ..results.models import RecordError, RecordOutcome
from .backend import ExecuteOptions

logger = structlog.get_logger(__name__)

Rejector = Callable[[Record, OperationKind], "RecordError | str | None"]


@dataclass
class BackendCall:
    """One call received by the in-memory backend."""

    kind: OperationKind
    entity_type: str
    records: list[Record]
    options: ExecuteOptions

    @property
    def size(self) -> int:
        return len(self.records)


@dataclass
class _Store:
    tables: dict[str, dict[str, dict[str, Any]]] = field(default_factory=dict)
    recycle_bin: dict[str, tuple[str, dict[str, Any]]] = field(default_factory=dict)
    merged_into: dict[str, str] = field(default_factory=dict)
    events: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)


class InMemoryBackend:
    """A dictionary-backed store implementing every operation kind.

    Every call is logged in ``calls`` (rolled-back calls included). A
    ``reject`` callback can fail individual records: it returns an error, a
    message, or None to let the record through.

    Without partial success a call is all-or-none: if any record fails, none
    of the call's changes are kept.
    """

    def __init__(self, reject: Rejector | None = None):
        self.reject = reject
        self.calls: list[BackendCall] = []
        self.rollbacks = 0
        self._store = _Store()
        self._savepoints: list[_Store] = []
        self._ids = count(1)

    # -------------------------------------------------------------------------
    # Backend protocol
    # -------------------------------------------------------------------------

    def execute(
        self,
        records: list[Record],
        kind: OperationKind,
        options: ExecuteOptions,
    ) -> list[RecordOutcome]:
        entity_type = records[0].type if records else ""
        self.calls.append(BackendCall(kind, entity_type, list(records), options))

        before = copy.deepcopy(self._store)
        outcomes = [self._execute_one(record, kind, options) for record in records]

        if not options.allow_partial_success and not all(o.success for o in outcomes):
            self._store = before
            rolled_back = RecordError(
                message="Operation rolled back because another record failed",
                status_code="ALL_OR_NONE_OPERATION_ROLLED_BACK",
            )
            outcomes = [o if not o.success else RecordOutcome.failed(rolled_back) for o in outcomes]

        return outcomes

    def savepoint(self) -> int:
        self._savepoints.append(copy.deepcopy(self._store))
        return len(self._savepoints) - 1

    def rollback(self, savepoint: int) -> None:
        self._store = self._savepoints[savepoint]
        del self._savepoints[savepoint:]
        self.rollbacks += 1
        logger.debug("memory_backend_rolled_back", savepoint=savepoint)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, entity_type: str, record_id: str) -> dict[str, Any] | None:
        """Get a stored row by id."""
        row = self._store.tables.get(entity_type, {}).get(record_id)
        return dict(row) if row is not None else None

    def rows(self, entity_type: str) -> dict[str, dict[str, Any]]:
        """Get every stored row of an entity type, keyed by id."""
        return {k: dict(v) for k, v in self._store.tables.get(entity_type, {}).items()}

    def count(self, entity_type: str | None = None) -> int:
        """Count stored rows of one entity type, or of all types."""
        if entity_type is not None:
            return len(self._store.tables.get(entity_type, {}))
        return sum(len(t) for t in self._store.tables.values())

    def is_deleted(self, record_id: str) -> bool:
        return record_id in self._store.recycle_bin

    def merged_into(self, record_id: str) -> str | None:
        return self._store.merged_into.get(record_id)

    @property
    def events(self) -> list[tuple[str, str, dict[str, Any]]]:
        """Published events as (id, entity type, fields)."""
        return list(self._store.events)

    def calls_for(self, kind: OperationKind | str, entity_type: str) -> list[BackendCall]:
        kind = OperationKind(kind)
        return [c for c in self.calls if c.kind == kind and c.entity_type == entity_type]

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def _execute_one(
        self, record: Record, kind: OperationKind, options: ExecuteOptions
    ) -> RecordOutcome:
        if self.reject is not None:
            rejection = self.reject(record, kind)
            if rejection is not None:
                if isinstance(rejection, str):
                    rejection = RecordError(message=rejection, status_code="REJECTED")
                return RecordOutcome.failed(rejection)

        try:
            fields = self._resolve_references(record.fields)
        except LookupError as e:
            return RecordOutcome.failed(
                RecordError(
                    message=str(e.args[0]),
                    status_code="INVALID_FIELD",
                    fields=(e.args[1],),
                )
            )

        handler = getattr(self, f"_{kind.value}")
        return handler(record, fields, options)

    def _insert(self, record: Record, fields: dict, options: ExecuteOptions) -> RecordOutcome:
        if record.id:
            return _failure("Cannot specify an id in an insert call", "INVALID_FIELD_FOR_INSERT_UPDATE", "Id")
        record_id = self._new_id(record.type)
        self._table(record.type)[record_id] = fields
        return RecordOutcome.ok(record_id)

    def _update(self, record: Record, fields: dict, options: ExecuteOptions) -> RecordOutcome:
        table = self._table(record.type)
        if record.id not in table:
            return _failure(f"{record.type} {record.id} does not exist", "ENTITY_IS_DELETED")
        table[record.id].update(fields)
        return RecordOutcome.ok(record.id)

    def _upsert(self, record: Record, fields: dict, options: ExecuteOptions) -> RecordOutcome:
        table = self._table(record.type)
        key = options.external_id_field

        if key:
            matches = [rid for rid, row in table.items() if row.get(key) == fields.get(key)]
            if len(matches) > 1:
                return _failure(
                    f"Multiple {record.type} rows match {key}={fields.get(key)!r}",
                    "DUPLICATE_EXTERNAL_ID",
                    key,
                )
            if matches:
                table[matches[0]].update(fields)
                return RecordOutcome.ok(matches[0])
        elif record.id:
            return self._update(record, fields, options)

        record_id = self._new_id(record.type)
        table[record_id] = fields
        return RecordOutcome.ok(record_id)

    def _delete(self, record: Record, fields: dict, options: ExecuteOptions) -> RecordOutcome:
        table = self._table(record.type)
        if record.id not in table:
            return _failure(f"{record.type} {record.id} does not exist", "ENTITY_IS_DELETED")
        self._store.recycle_bin[record.id] = (record.type, table.pop(record.id))
        return RecordOutcome.ok(record.id)

    def _undelete(self, record: Record, fields: dict, options: ExecuteOptions) -> RecordOutcome:
        if record.id not in self._store.recycle_bin:
            return _failure(f"{record.type} {record.id} is not in the recycle bin", "UNDELETE_FAILED")
        entity_type, row = self._store.recycle_bin.pop(record.id)
        self._table(entity_type)[record.id] = row
        return RecordOutcome.ok(record.id)

    def _merge(self, record: Record, fields: dict, options: ExecuteOptions) -> RecordOutcome:
        table = self._table(record.type)
        master_id = options.merge_master_id
        if master_id not in table:
            return _failure(f"Master {record.type} {master_id} does not exist", "ENTITY_IS_DELETED")
        if record.id not in table:
            return _failure(f"{record.type} {record.id} does not exist", "ENTITY_IS_DELETED")
        if record.id == master_id:
            return _failure("Cannot merge a record into itself", "INVALID_OPERATION")
        self._store.recycle_bin[record.id] = (record.type, table.pop(record.id))
        self._store.merged_into[record.id] = master_id
        return RecordOutcome.ok(master_id)

    def _publish(self, record: Record, fields: dict, options: ExecuteOptions) -> RecordOutcome:
        event_id = self._new_id(record.type)
        self._store.events.append((event_id, record.type, fields))
        return RecordOutcome.ok(event_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _table(self, entity_type: str) -> dict[str, dict[str, Any]]:
        return self._store.tables.setdefault(entity_type, {})

    def _new_id(self, entity_type: str) -> str:
        return f"{entity_type[:3].upper()}{next(self._ids):012d}"

    def _resolve_references(self, fields: dict[str, Any]) -> dict[str, Any]:
        resolved = dict(fields)
        for name, value in fields.items():
            if isinstance(value, ExternalIdRef):
                table = self._store.tables.get(value.type, {})
                matches = [rid for rid, row in table.items() if row.get(value.field) == value.value]
                if not matches:
                    raise LookupError(f"No {value} found", name)
                resolved[name] = matches[0]
        return resolved


def _failure(message: str, status_code: str, *fields: str) -> RecordOutcome:
    return RecordOutcome.failed(RecordError(message=message, status_code=status_code, fields=fields))
