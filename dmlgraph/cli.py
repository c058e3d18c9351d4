"""Command-line interface for dmlgraph."""

import sys

import click

from .engine.memory import InMemoryBackend
from .engine.transaction import CommitMode
from .errors import BackendOperationError, DmlError
from .logs import configure_logging
from .output.formatter import format_result, format_schedule
from .schema.builder import build_unit_of_work
from .schema.errors import WorkFileLoadError, WorkFileValidationError
from .schema.loader import parse_work_file

_MODES = {
    "plain": CommitMode.PLAIN,
    "savepoint": CommitMode.SAVEPOINT,
    "dry-run": CommitMode.DRY_RUN,
}


def _load(work_file: str):
    """Load a work file, exiting with code 2 on load or schema errors."""
    try:
        return parse_work_file(work_file)
    except WorkFileLoadError as e:
        click.echo(f"Error loading file: {e}", err=True)
        sys.exit(2)
    except WorkFileValidationError as e:
        click.echo(f"Schema validation error: {e}", err=True)
        for err in e.errors:
            click.echo(f"  - {err['loc']}: {err['msg']}", err=True)
        sys.exit(2)


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log commit progress")
def main(verbose: bool):
    """dmlgraph: batch record operations with dependency-aware scheduling."""
    configure_logging(level="DEBUG" if verbose else "ERROR")


@main.command()
@click.argument("work_file", type=click.Path(exists=True))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def plan(work_file: str, output_format: str):
    """Show the backend calls a work file would need.

    WORK_FILE is the path to a YAML work file.

    Exit codes:
      0 - Schedule built
      2 - File, schema, or structural error
    """
    work = _load(work_file)

    try:
        uow = build_unit_of_work(work)
        schedule = uow.plan()
    except DmlError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    click.echo(format_schedule(schedule, uow.registry, output_format))  # type: ignore
    sys.exit(0)


@main.command()
@click.argument("work_file", type=click.Path(exists=True))
@click.option(
    "--mode",
    type=click.Choice(list(_MODES)),
    default="plain",
    help="Commit mode",
)
@click.option(
    "--partial",
    is_flag=True,
    default=False,
    help="Allow partial success",
)
@click.option(
    "--reject",
    "rejected_types",
    multiple=True,
    help="Entity type whose records the in-memory backend rejects",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def run(
    work_file: str,
    mode: str,
    partial: bool,
    rejected_types: tuple[str, ...],
    output_format: str,
):
    """Commit a work file against an in-memory backend.

    WORK_FILE is the path to a YAML work file.

    Exit codes:
      0 - Every record succeeded
      1 - One or more records failed
      2 - File, schema, structural, or configuration error
    """
    work = _load(work_file)
    rejected = set(rejected_types)

    def reject(record, kind):
        if record.type in rejected:
            return f"{record.type} records are rejected"
        return None

    backend = InMemoryBackend(reject=reject if rejected else None)

    try:
        uow = build_unit_of_work(work, backend)
        if partial:
            uow.allow_partial_success()
        if _MODES[mode] == CommitMode.SAVEPOINT:
            result = uow.transactional_commit()
        elif _MODES[mode] == CommitMode.DRY_RUN:
            result = uow.dry_run()
        else:
            result = uow.commit()
    except BackendOperationError as e:
        click.echo(format_result(e.result, output_format))  # type: ignore
        click.echo(f"Commit aborted: {e}", err=True)
        sys.exit(1)
    except DmlError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    click.echo(format_result(result, output_format))  # type: ignore
    sys.exit(1 if result.has_failures else 0)


if __name__ == "__main__":
    main()
