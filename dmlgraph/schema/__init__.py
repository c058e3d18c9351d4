"""Schema layer for parsing and validating YAML work files."""

from .errors import WorkFileLoadError, WorkFileValidationError
from .models import (
    ExternalIdTarget,
    RecordSpec,
    RelationshipSpec,
    WorkFile,
    WorkOptionsSpec,
)
from .loader import load_yaml, parse_work_file, parse_work_from_string
from .builder import build_unit_of_work

__all__ = [
    "WorkFileLoadError",
    "WorkFileValidationError",
    "ExternalIdTarget",
    "RecordSpec",
    "RelationshipSpec",
    "WorkFile",
    "WorkOptionsSpec",
    "load_yaml",
    "parse_work_file",
    "parse_work_from_string",
    "build_unit_of_work",
]
