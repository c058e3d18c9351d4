"""Tests for the work file loader."""

import pytest

from dmlgraph.graph.node_types import OperationKind
from dmlgraph.schema.errors import WorkFileLoadError, WorkFileValidationError
from dmlgraph.schema.loader import (
    load_yaml,
    parse_work_file,
    parse_work_from_string,
)


class TestLoadYaml:
    def test_load_valid_yaml(self, tmp_path):
        yaml_file = tmp_path / "test.yaml"
        yaml_file.write_text("key: value\nlist:\n  - item1\n  - item2")

        data = load_yaml(yaml_file)
        assert data["key"] == "value"
        assert data["list"] == ["item1", "item2"]

    def test_file_not_found(self):
        with pytest.raises(WorkFileLoadError) as exc_info:
            load_yaml("/nonexistent/path.yaml")
        assert "not found" in str(exc_info.value).lower()
        assert exc_info.value.path == "/nonexistent/path.yaml"

    def test_directory_is_not_a_file(self, tmp_path):
        with pytest.raises(WorkFileLoadError) as exc_info:
            load_yaml(tmp_path)
        assert "Not a file" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path):
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("key: [unclosed bracket")

        with pytest.raises(WorkFileLoadError) as exc_info:
            load_yaml(yaml_file)
        assert "Invalid YAML" in str(exc_info.value)

    def test_empty_file_returns_empty_dict(self, tmp_path):
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert load_yaml(yaml_file) == {}

    def test_non_mapping_at_root(self, tmp_path):
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- item1\n- item2")

        with pytest.raises(WorkFileLoadError) as exc_info:
            load_yaml(yaml_file)
        assert "mapping" in str(exc_info.value).lower()


class TestParseWorkFromString:
    def test_parse_minimal_work(self):
        yaml_str = """
records:
  - insert: Account
    fields:
      Name: Acme
"""
        work = parse_work_from_string(yaml_str)
        assert len(work.records) == 1
        assert work.records[0].operation == OperationKind.INSERT
        assert work.records[0].fields == {"Name": "Acme"}

    def test_parse_empty_work(self):
        work = parse_work_from_string("")
        assert work.records == []
        assert work.options.allow_partial_success is False

    def test_invalid_yaml_string(self):
        with pytest.raises(WorkFileLoadError):
            parse_work_from_string("invalid: [yaml")

    def test_validation_errors_carry_locations(self):
        yaml_str = """
records:
  - operation: explode
    type: Account
"""
        with pytest.raises(WorkFileValidationError) as exc_info:
            parse_work_from_string(yaml_str)

        assert "1 record(s)" in str(exc_info.value)
        errors = exc_info.value.errors
        assert errors
        assert errors[0]["loc"].startswith("records.0")
        assert {"loc", "msg", "type"} <= set(errors[0])


class TestParseWorkFile:
    def test_parse_account_contacts(self, examples_dir):
        work = parse_work_file(examples_dir / "account_contacts.yaml")

        assert work.options.identifier == "account-contacts"
        assert [r.ref for r in work.records] == ["acme", "jane", "john", None]
        assert work.get_record("jane").relationships[0].target == "acme"

    def test_parse_upsert_chain(self, examples_dir):
        work = parse_work_file(examples_dir / "upsert_chain.yaml")

        upsert, opportunity, event = work.records
        assert upsert.external_id_field == "ExternalId"
        assert opportunity.relationships[0].external_id.value == "ACC-1"
        assert event.operation == OperationKind.PUBLISH

    def test_broken_reference_fails_validation(self, examples_dir):
        with pytest.raises(WorkFileValidationError):
            parse_work_file(examples_dir / "invalid" / "broken_reference.yaml")

    def test_invalid_yaml_file_keeps_path(self, tmp_path):
        yaml_file = tmp_path / "broken.yaml"
        yaml_file.write_text("records: [unclosed")

        with pytest.raises(WorkFileLoadError) as exc_info:
            parse_work_file(yaml_file)
        assert exc_info.value.path == str(yaml_file)

    def test_records_must_be_a_list(self):
        with pytest.raises(WorkFileValidationError) as exc_info:
            parse_work_from_string("records: 3")
        assert "0 record(s)" in str(exc_info.value)
