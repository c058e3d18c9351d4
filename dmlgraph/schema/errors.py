"""Work file exceptions."""


class WorkFileLoadError(Exception):
    """Raised when a YAML work file cannot be loaded."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class WorkFileValidationError(Exception):
    """Raised when a work file fails schema validation."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        self.errors = errors or []
        super().__init__(message)
