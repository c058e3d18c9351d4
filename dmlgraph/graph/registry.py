"""Arena of record nodes keyed by integer handles."""

from dataclasses import dataclass, field
from typing import Any, Iterator

import structlog

from ..errors import DuplicateRegistration, MissingIdentity
from .node_types import CREATING_OPERATIONS, KEYED_OPERATIONS, NodeStatus, OperationKind
from .record import Operation, Record, Registration, RelationshipEdge

logger = structlog.get_logger(__name__)

NodeHandle = int


@dataclass
class RecordNode:
    """One record and the operation requested for it."""

    handle: NodeHandle
    record: Record
    operation: Operation
    identity: tuple
    overrides: dict[str, Any] = field(default_factory=dict)
    edges: list[RelationshipEdge] = field(default_factory=list)
    resolved_id: str | None = None
    status: NodeStatus = NodeStatus.PENDING
    errors: list[Any] = field(default_factory=list)

    @property
    def kind(self) -> OperationKind:
        return self.operation.kind

    @property
    def entity_type(self) -> str:
        return self.record.type

    @property
    def label(self) -> str:
        """Human-readable identity used in error messages."""
        return f"#{self.handle} {self.operation} {self.entity_type}"

    def base_fields(self) -> dict[str, Any]:
        """Record fields with overrides applied."""
        fields = dict(self.record.fields)
        fields.update(self.overrides)
        return fields


class NodeRegistry:
    """Holds every record node of one unit of work.

    Nodes live in a flat list; a node's handle is its index, which is also its
    registration sequence.
    """

    def __init__(self, combine_on_duplicate: bool = False):
        self.combine_on_duplicate = combine_on_duplicate
        self._nodes: list[RecordNode] = []
        self._by_conflict_key: dict[tuple, NodeHandle] = {}
        self._by_record: dict[int, NodeHandle] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[RecordNode]:
        return iter(self._nodes)

    def __getitem__(self, handle: NodeHandle) -> RecordNode:
        return self._nodes[handle]

    def register(
        self,
        record: Record | Registration,
        operation: Operation,
        overrides: dict[str, Any] | None = None,
        relationships: list[RelationshipEdge] | None = None,
    ) -> NodeHandle:
        """Register a record for an operation.

        Args:
            record: The record, or a registration wrapping it.
            operation: The requested operation.
            overrides: Field values applied on top of the record's fields.
            relationships: Fields to fill from other records' identifiers.

        Returns:
            The handle of the node holding the record.

        Raises:
            MissingIdentity: If the record lacks the key its operation needs.
            DuplicateRegistration: If the record is already registered for the
                same operation and combining duplicates is off.
        """
        registration = Registration.of(record)
        merged_overrides = {**registration.overrides, **(overrides or {})}
        edges = [*registration.relationships, *(relationships or [])]
        record = registration.record

        identity = _identity_for(record, operation, merged_overrides)
        conflict_key = (
            operation.kind,
            record.type,
            operation.external_id_field,
            identity,
        )

        existing = self._by_conflict_key.get(conflict_key)
        if existing is not None:
            if not self.combine_on_duplicate:
                raise DuplicateRegistration(
                    f"{record.type} {_describe_identity(identity)} is already "
                    f"registered for {operation}",
                    identity=identity,
                )
            self._combine(self._nodes[existing], record, merged_overrides, edges)
            self._by_record.setdefault(id(record), existing)
            logger.debug(
                "registration_combined",
                handle=existing,
                operation=str(operation),
                entity_type=record.type,
            )
            return existing

        handle = len(self._nodes)
        self._nodes.append(
            RecordNode(
                handle=handle,
                record=record,
                operation=operation,
                identity=identity,
                overrides=merged_overrides,
                edges=list(edges),
            )
        )
        self._by_conflict_key[conflict_key] = handle
        self._by_record.setdefault(id(record), handle)
        return handle

    def handle_for(self, record: Record) -> NodeHandle | None:
        """Get the earliest node registered for a record object."""
        return self._by_record.get(id(record))

    def _combine(
        self,
        node: RecordNode,
        record: Record,
        overrides: dict[str, Any],
        edges: list[RelationshipEdge],
    ) -> None:
        if record is not node.record:
            node.overrides.update(record.fields)
        node.overrides.update(overrides)

        replaced = {edge.field for edge in edges}
        node.edges = [e for e in node.edges if e.field not in replaced] + list(edges)


def _identity_for(
    record: Record, operation: Operation, overrides: dict[str, Any]
) -> tuple:
    """Compute the identity key a record is registered under."""
    kind = operation.kind

    if kind in CREATING_OPERATIONS:
        return ("object", id(record))

    if kind in KEYED_OPERATIONS:
        if not record.id:
            raise MissingIdentity(
                f"Cannot {kind.value} {record.type} without an id"
            )
        return ("id", record.id)

    if kind == OperationKind.UPSERT:
        if operation.external_id_field:
            value = overrides.get(
                operation.external_id_field,
                record.get(operation.external_id_field),
            )
            if value is None:
                raise MissingIdentity(
                    f"Cannot upsert {record.type} on "
                    f"'{operation.external_id_field}' without a value"
                )
            return ("external", value)
        if record.id:
            return ("id", record.id)
        return ("object", id(record))

    # Merge: the duplicate is folded into the master.
    if not record.id or not operation.merge_master_id:
        raise MissingIdentity(
            f"Cannot merge {record.type} without both master and duplicate ids"
        )
    return ("merge", operation.merge_master_id, record.id)


def _describe_identity(identity: tuple) -> str:
    if identity[0] == "object":
        return "(unsaved record)"
    if identity[0] == "merge":
        return f"{identity[2]} into {identity[1]}"
    return str(identity[1])
