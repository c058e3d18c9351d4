"""Read YAML work files into validated WorkFile models."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from .errors import WorkFileLoadError, WorkFileValidationError
from .models import WorkFile


def load_yaml(path: str | Path) -> dict:
    """Read a work file's raw YAML document.

    An empty file reads as an empty work file (no options, no records).

    Raises:
        WorkFileLoadError: If the path is missing, is not a regular file,
            cannot be read, or does not hold a YAML mapping.
    """
    path = Path(path)

    if not path.exists():
        raise WorkFileLoadError(f"Work file not found: {path}", str(path))
    if not path.is_file():
        raise WorkFileLoadError(f"Not a file: {path}", str(path))

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise WorkFileLoadError(f"Cannot read work file: {e}", str(path)) from e

    return _read_document(text, str(path))


def parse_work_file(path: str | Path) -> WorkFile:
    """Load a work file from disk and validate its options and records.

    Raises:
        WorkFileLoadError: If the file cannot be read as a YAML mapping.
        WorkFileValidationError: If a record or option is invalid, or a
            relationship names an undefined ref.
    """
    return _validate(load_yaml(path))


def parse_work_from_string(yaml_string: str) -> WorkFile:
    """Validate a work file given as YAML text, e.g. one built in a test.

    Raises:
        WorkFileLoadError: If the text is not a YAML mapping.
        WorkFileValidationError: If a record or option is invalid.
    """
    return _validate(_read_document(yaml_string))


def _read_document(text: str, path: str | None = None) -> dict:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise WorkFileLoadError(f"Invalid YAML: {e}", path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise WorkFileLoadError(
            f"Expected a mapping with 'options' and 'records', got {type(data).__name__}",
            path,
        )
    return data


def _validate(data: dict) -> WorkFile:
    try:
        return WorkFile.model_validate(data)
    except ValidationError as e:
        # Flatten pydantic's error tuples to "records.1.master_id"-style locations
        errors = [
            {
                "loc": ".".join(str(x) for x in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        records = data.get("records")
        count = len(records) if isinstance(records, list) else 0
        raise WorkFileValidationError(
            f"Work file with {count} record(s) failed validation "
            f"with {len(errors)} error(s)",
            errors,
        ) from e
