"""Pydantic models for YAML work files."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from ..graph.node_types import AccessMode, OperationKind, SharingMode

_OPERATION_NAMES = [kind.value for kind in OperationKind]


class ExternalIdTarget(BaseModel):
    """A relationship target looked up by external id."""

    type: str
    field: str
    value: Any


class RelationshipSpec(BaseModel):
    """A field filled from another record's identifier."""

    field: str
    target: str | None = None
    external_id: ExternalIdTarget | None = None

    @model_validator(mode="after")
    def check_one_target(self) -> "RelationshipSpec":
        """Require exactly one of target and external_id."""
        if (self.target is None) == (self.external_id is None):
            raise ValueError("relationship needs exactly one of 'target' or 'external_id'")
        return self


class RecordSpec(BaseModel):
    """One record and the operation to run on it."""

    ref: str | None = None
    operation: OperationKind
    type: str
    id: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    external_id_field: str | None = None
    master_id: str | None = None
    relationships: list[RelationshipSpec] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_record(cls, data: Any) -> Any:
        """Normalize shorthand operation syntax and relationship mappings."""
        if not isinstance(data, dict):
            return data

        # Shorthand: {insert: Account} -> {operation: insert, type: Account}
        if "operation" not in data:
            for name in _OPERATION_NAMES:
                if name in data:
                    data["operation"] = name
                    data["type"] = data.pop(name)
                    break

        # Shorthand: relationships: {AccountId: acme} -> list of specs
        relationships = data.get("relationships")
        if isinstance(relationships, dict):
            data["relationships"] = [
                {"field": name, "target": target}
                if isinstance(target, str)
                else {"field": name, "external_id": target}
                for name, target in relationships.items()
            ]

        return data

    @model_validator(mode="after")
    def check_payload(self) -> "RecordSpec":
        """Only upserts take external_id_field and only merges take master_id."""
        if self.external_id_field and self.operation != OperationKind.UPSERT:
            raise ValueError("external_id_field is only valid for upsert")
        if self.master_id and self.operation != OperationKind.MERGE:
            raise ValueError("master_id is only valid for merge")
        if self.operation == OperationKind.MERGE and not self.master_id:
            raise ValueError("merge needs a master_id")
        return self


class WorkOptionsSpec(BaseModel):
    """Options of the unit of work built from a file."""

    identifier: str | None = None
    allow_partial_success: bool = False
    combine_on_duplicate: bool = False
    access_mode: AccessMode = AccessMode.USER
    sharing_mode: SharingMode = SharingMode.INHERITED


class WorkFile(BaseModel):
    """Root model for a YAML work file."""

    options: WorkOptionsSpec = Field(default_factory=WorkOptionsSpec)
    records: list[RecordSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_refs(self) -> "WorkFile":
        """Refs must be unique and relationship targets must name a ref."""
        refs: set[str] = set()
        for record in self.records:
            if record.ref is None:
                continue
            if record.ref in refs:
                raise ValueError(f"duplicate ref '{record.ref}'")
            refs.add(record.ref)

        for record in self.records:
            for rel in record.relationships:
                if rel.target is not None and rel.target not in refs:
                    raise ValueError(
                        f"relationship '{rel.field}' targets undefined ref '{rel.target}'"
                    )
        return self

    def get_record(self, ref: str) -> RecordSpec | None:
        """Get a record by ref."""
        for record in self.records:
            if record.ref == ref:
                return record
        return None
