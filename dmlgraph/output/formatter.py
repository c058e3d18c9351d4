"""Output formatting for schedules and commit results."""

import json
from typing import Any, Literal

from ..graph.registry import NodeRegistry
from ..results.models import RecordResult, Result
from ..scheduler.models import Schedule


def format_schedule(
    schedule: Schedule,
    registry: NodeRegistry,
    format: Literal["text", "json"] = "text",
) -> str:
    """Format an execution schedule for output.

    Args:
        schedule: The schedule to format.
        registry: The nodes the schedule refers to.
        format: Output format ("text" or "json").

    Returns:
        Formatted string representation.
    """
    if format == "json":
        return _schedule_json(schedule, registry)
    return _schedule_text(schedule, registry)


def format_result(result: Result, format: Literal["text", "json"] = "text") -> str:
    """Format a commit result for output."""
    if format == "json":
        return json.dumps(result_to_dict(result), indent=2, default=str)
    return _result_text(result)


def _schedule_text(schedule: Schedule, registry: NodeRegistry) -> str:
    lines: list[str] = []

    for layer in range(schedule.layer_count):
        lines.append(f"LAYER {layer}:")
        for bucket in schedule.layer(layer):
            lines.append(f"  {bucket.key} ({len(bucket)} record(s))")
            for handle in bucket.members:
                lines.append(f"    - {registry[handle].label}")
        lines.append("")

    lines.append(
        f"{schedule.call_count} backend call(s) across {schedule.layer_count} layer(s)"
    )
    return "\n".join(lines)


def _schedule_json(schedule: Schedule, registry: NodeRegistry) -> str:
    data = {
        "call_count": schedule.call_count,
        "layer_count": schedule.layer_count,
        "buckets": [
            {
                "layer": bucket.layer,
                "operation": bucket.kind.value,
                "entity_type": bucket.entity_type,
                "external_id_field": bucket.key.external_id_field,
                "merge_master_id": bucket.key.merge_master_id,
                "members": [registry[h].label for h in bucket.members],
            }
            for bucket in schedule
        ],
    }
    return json.dumps(data, indent=2)


def _result_text(result: Result) -> str:
    lines: list[str] = []

    for op in result:
        lines.append(
            f"{op.kind.value.upper()} {op.entity_type}: "
            f"{len(op.successes)} succeeded, {len(op.failures)} failed"
        )
        for record in op.records:
            lines.append(f"  {_format_record_text(record)}")

    lines.append("")
    if result.has_failures:
        lines.append(f"Commit finished with {len(result.failures)} failed record(s)")
    else:
        lines.append(f"Commit succeeded: {len(result.records)} record(s)")
    return "\n".join(lines)


def _format_record_text(record: RecordResult) -> str:
    symbol = "✔" if record.success else "✘"
    text = f"{symbol} #{record.handle} {record.identifier or '-'}"
    if record.errors:
        text += " " + "; ".join(str(e) for e in record.errors)
    return text


def result_to_dict(result: Result) -> dict[str, Any]:
    """Convert a result to plain data."""
    return {
        "success": not result.has_failures,
        "operations": [
            {
                "operation": op.kind.value,
                "entity_type": op.entity_type,
                "records": [
                    {
                        "handle": r.handle,
                        "success": r.success,
                        "identifier": r.identifier,
                        "fields": r.record.fields,
                        "errors": [
                            {
                                "message": e.message,
                                "status_code": e.status_code,
                                "fields": list(e.fields),
                                "code": e.code.value,
                            }
                            for e in r.errors
                        ],
                    }
                    for r in op.records
                ],
            }
            for op in result
        ],
    }
