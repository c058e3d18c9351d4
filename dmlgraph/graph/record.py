"""Records, operations, and relationship declarations."""

from dataclasses import dataclass, field
from typing import Any

from .node_types import OperationKind


@dataclass(eq=False)
class Record:
    """A structured record handed to the unit of work.

    Records compare and hash by object identity, which is what identifies a
    record that has not been persisted yet.
    """

    type: str
    fields: dict[str, Any] = field(default_factory=dict)
    id: str | None = None

    def get(self, name: str, default: Any = None) -> Any:
        """Get a field value."""
        return self.fields.get(name, default)

    def with_fields(self, fields: dict[str, Any]) -> "Record":
        """Return a detached copy carrying the given fields."""
        return Record(type=self.type, fields=dict(fields), id=self.id)


@dataclass(frozen=True)
class ExternalIdRef:
    """A reference to a record by external-id field and value."""

    type: str
    field: str
    value: Any

    def __str__(self) -> str:
        return f"{self.type}({self.field}={self.value!r})"


@dataclass(frozen=True)
class Operation:
    """An operation kind plus its kind-specific payload.

    Only upserts carry an external-id field and only merges carry a master
    identifier.
    """

    kind: OperationKind
    external_id_field: str | None = None
    merge_master_id: str | None = None

    def __post_init__(self) -> None:
        if self.external_id_field is not None and self.kind != OperationKind.UPSERT:
            raise ValueError(
                f"external_id_field is only valid for upsert, not {self.kind.value}"
            )
        if self.merge_master_id is not None and self.kind != OperationKind.MERGE:
            raise ValueError(
                f"merge_master_id is only valid for merge, not {self.kind.value}"
            )

    @classmethod
    def insert(cls) -> "Operation":
        return cls(OperationKind.INSERT)

    @classmethod
    def update(cls) -> "Operation":
        return cls(OperationKind.UPDATE)

    @classmethod
    def upsert(cls, external_id_field: str | None = None) -> "Operation":
        return cls(OperationKind.UPSERT, external_id_field=external_id_field)

    @classmethod
    def delete(cls) -> "Operation":
        return cls(OperationKind.DELETE)

    @classmethod
    def undelete(cls) -> "Operation":
        return cls(OperationKind.UNDELETE)

    @classmethod
    def merge(cls, master_id: str) -> "Operation":
        return cls(OperationKind.MERGE, merge_master_id=master_id)

    @classmethod
    def publish(cls) -> "Operation":
        return cls(OperationKind.PUBLISH)

    def __str__(self) -> str:
        if self.external_id_field:
            return f"{self.kind.value}[{self.external_id_field}]"
        if self.merge_master_id:
            return f"{self.kind.value}[into {self.merge_master_id}]"
        return self.kind.value


@dataclass
class RelationshipEdge:
    """A foreign-key field whose value comes from another record.

    ``target_handle`` is filled in when the dependency graph is built and
    points at the node the field waits for. ``literal`` holds the value to use
    when the target is not part of the unit of work.
    """

    field: str
    target: Record | ExternalIdRef
    target_handle: int | None = None
    literal: Any = None


@dataclass
class Registration:
    """A record wrapped with field overrides and relationships.

    Example:
        Registration.of(contact).with_relationship("AccountId", account)
    """

    record: Record
    overrides: dict[str, Any] = field(default_factory=dict)
    relationships: list[RelationshipEdge] = field(default_factory=list)

    @classmethod
    def of(cls, record: "Record | Registration") -> "Registration":
        """Wrap a record, or return an existing registration unchanged."""
        if isinstance(record, Registration):
            return record
        return cls(record=record)

    def with_field(self, name: str, value: Any) -> "Registration":
        """Override a field value for this registration."""
        self.overrides[name] = value
        return self

    def with_relationship(
        self, field_name: str, target: Record | ExternalIdRef
    ) -> "Registration":
        """Fill ``field_name`` with the identifier of ``target`` once known."""
        self.relationships.append(RelationshipEdge(field_name, target))
        return self

    def with_external_relationship(
        self, field_name: str, target_type: str, external_field: str, value: Any
    ) -> "Registration":
        """Fill ``field_name`` from a record found by external id."""
        return self.with_relationship(
            field_name, ExternalIdRef(target_type, external_field, value)
        )
