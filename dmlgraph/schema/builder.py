"""Builder for turning a WorkFile into a UnitOfWork."""

from ..engine.backend import Backend
from ..graph.record import ExternalIdRef, Operation, Record, Registration
from ..mocking.rules import MockRegistry
from ..work import UnitOfWork
from .models import RecordSpec, WorkFile


def build_unit_of_work(
    work_file: WorkFile,
    backend: Backend | None = None,
    mocks: MockRegistry | None = None,
) -> UnitOfWork:
    """Register every record of a work file on a new UnitOfWork.

    Args:
        work_file: The parsed work file.
        backend: The backend to commit against.
        mocks: Mock rules to consult during the commit.

    Returns:
        A unit of work ready to commit.
    """
    options = work_file.options
    uow = UnitOfWork(
        backend,
        identifier=options.identifier,
        allow_partial_success=options.allow_partial_success,
        combine_on_duplicate=options.combine_on_duplicate,
        access_mode=options.access_mode,
        sharing_mode=options.sharing_mode,
        mocks=mocks,
    )

    # Create all records first so relationships can point forward
    records = {
        id(spec): Record(type=spec.type, fields=dict(spec.fields), id=spec.id)
        for spec in work_file.records
    }
    by_ref = {spec.ref: records[id(spec)] for spec in work_file.records if spec.ref}

    for spec in work_file.records:
        registration = Registration.of(records[id(spec)])
        for rel in spec.relationships:
            if rel.target is not None:
                registration.with_relationship(rel.field, by_ref[rel.target])
            else:
                ext = rel.external_id
                registration.with_relationship(
                    rel.field, ExternalIdRef(ext.type, ext.field, ext.value)
                )
        uow.register(registration, _operation_for(spec))

    return uow


def _operation_for(spec: RecordSpec) -> Operation:
    return Operation(
        spec.operation,
        external_id_field=spec.external_id_field,
        merge_master_id=spec.master_id,
    )
