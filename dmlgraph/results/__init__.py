"""Result tree of a commit."""

from .models import (
    ErrorCode,
    OperationResult,
    RecordError,
    RecordOutcome,
    RecordResult,
    Result,
)
from .aggregator import ResultAggregator

__all__ = [
    "ErrorCode",
    "OperationResult",
    "RecordError",
    "RecordOutcome",
    "RecordResult",
    "Result",
    "ResultAggregator",
]
