"""Tests for work file models."""

import pytest
from pydantic import ValidationError

from dmlgraph.graph.node_types import AccessMode, OperationKind, SharingMode
from dmlgraph.schema.models import RecordSpec, RelationshipSpec, WorkFile, WorkOptionsSpec


class TestRecordSpec:
    def test_explicit_operation(self):
        spec = RecordSpec(operation="update", type="Account", id="A1")

        assert spec.operation == OperationKind.UPDATE
        assert spec.fields == {}
        assert spec.relationships == []

    def test_shorthand_operation(self):
        spec = RecordSpec.model_validate({"delete": "Account", "id": "A1"})

        assert spec.operation == OperationKind.DELETE
        assert spec.type == "Account"

    def test_relationship_mapping_shorthand(self):
        spec = RecordSpec.model_validate(
            {
                "insert": "Contact",
                "relationships": {
                    "AccountId": "acme",
                    "OwnerId": {"type": "User", "field": "Email", "value": "a@b.c"},
                },
            }
        )

        account, owner = spec.relationships
        assert account.target == "acme"
        assert owner.external_id.type == "User"
        assert owner.external_id.value == "a@b.c"

    def test_merge_needs_master(self):
        with pytest.raises(ValidationError):
            RecordSpec(operation="merge", type="Account", id="D1")

    def test_master_only_for_merge(self):
        with pytest.raises(ValidationError):
            RecordSpec(operation="update", type="Account", id="D1", master_id="M1")

    def test_external_id_field_only_for_upsert(self):
        with pytest.raises(ValidationError):
            RecordSpec(operation="insert", type="Account", external_id_field="Ext")

    def test_unknown_operation(self):
        with pytest.raises(ValidationError):
            RecordSpec(operation="truncate", type="Account")


class TestRelationshipSpec:
    def test_needs_exactly_one_target(self):
        with pytest.raises(ValidationError):
            RelationshipSpec(field="AccountId")

        with pytest.raises(ValidationError):
            RelationshipSpec.model_validate(
                {
                    "field": "AccountId",
                    "target": "acme",
                    "external_id": {"type": "Account", "field": "Ext", "value": 1},
                }
            )


class TestWorkOptionsSpec:
    def test_defaults(self):
        options = WorkOptionsSpec()

        assert options.identifier is None
        assert options.combine_on_duplicate is False
        assert options.access_mode == AccessMode.USER
        assert options.sharing_mode == SharingMode.INHERITED

    def test_enum_values(self):
        options = WorkOptionsSpec(access_mode="system", sharing_mode="without_sharing")

        assert options.access_mode == AccessMode.SYSTEM
        assert options.sharing_mode == SharingMode.WITHOUT_SHARING


class TestWorkFile:
    def test_duplicate_ref(self):
        with pytest.raises(ValidationError) as exc_info:
            WorkFile.model_validate(
                {
                    "records": [
                        {"ref": "a", "insert": "Account"},
                        {"ref": "a", "insert": "Account"},
                    ]
                }
            )
        assert "duplicate ref" in str(exc_info.value)

    def test_undefined_target(self):
        with pytest.raises(ValidationError) as exc_info:
            WorkFile.model_validate(
                {"records": [{"insert": "Contact", "relationships": {"AccountId": "nope"}}]}
            )
        assert "undefined ref 'nope'" in str(exc_info.value)

    def test_forward_reference_is_allowed(self):
        work = WorkFile.model_validate(
            {
                "records": [
                    {"insert": "Contact", "relationships": {"AccountId": "acme"}},
                    {"ref": "acme", "insert": "Account"},
                ]
            }
        )

        assert work.get_record("acme").type == "Account"
        assert work.get_record("missing") is None
