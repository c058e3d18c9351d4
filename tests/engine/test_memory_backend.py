"""Tests for the in-memory backend."""

from dmlgraph.engine.backend import Backend, ExecuteOptions
from dmlgraph.engine.memory import InMemoryBackend
from dmlgraph.graph.node_types import OperationKind
from dmlgraph.graph.record import Record
from dmlgraph.results.models import RecordError

PARTIAL = ExecuteOptions(allow_partial_success=True)


def _run(backend, kind, *records, options=PARTIAL):
    return backend.execute(list(records), OperationKind(kind), options)


class TestOperations:
    def test_satisfies_backend_protocol(self, backend):
        assert isinstance(backend, Backend)

    def test_insert_assigns_ids(self, backend):
        outcomes = _run(backend, "insert", Record("Account", {"Name": "A"}), Record("Account"))

        assert [o.identifier for o in outcomes] == ["ACC000000000001", "ACC000000000002"]
        assert backend.get("Account", "ACC000000000001") == {"Name": "A"}

    def test_insert_with_id_fails(self, backend):
        (outcome,) = _run(backend, "insert", Record("Account", id="X"))

        assert not outcome.success
        assert outcome.errors[0].fields == ("Id",)

    def test_update_and_missing_update(self, backend, seed):
        account_id = seed("Account", Name="A", Phone="1")

        ok, missing = _run(
            backend,
            "update",
            Record("Account", {"Name": "B"}, id=account_id),
            Record("Account", {"Name": "C"}, id="NOPE"),
        )

        assert ok.success
        assert not missing.success
        assert backend.get("Account", account_id) == {"Name": "B", "Phone": "1"}

    def test_upsert_by_external_id(self, backend, seed):
        existing = seed("Account", Ext="1", Name="Old")
        options = ExecuteOptions(allow_partial_success=True, external_id_field="Ext")

        updated, created = _run(
            backend,
            "upsert",
            Record("Account", {"Ext": "1", "Name": "New"}),
            Record("Account", {"Ext": "2"}),
            options=options,
        )

        assert updated.identifier == existing
        assert created.identifier != existing
        assert backend.count("Account") == 2

    def test_delete_then_undelete(self, backend, seed):
        account_id = seed("Account", Name="A")

        _run(backend, "delete", Record("Account", id=account_id))
        assert backend.is_deleted(account_id)
        assert backend.count("Account") == 0

        (restored,) = _run(backend, "undelete", Record("Account", id=account_id))
        assert restored.success
        assert backend.get("Account", account_id) == {"Name": "A"}

    def test_undelete_of_live_record_fails(self, backend, seed):
        account_id = seed("Account")

        (outcome,) = _run(backend, "undelete", Record("Account", id=account_id))

        assert outcome.errors[0].status_code == "UNDELETE_FAILED"

    def test_merge(self, backend, seed):
        master = seed("Account", Name="M")
        duplicate = seed("Account", Name="D")
        options = ExecuteOptions(merge_master_id=master)

        (outcome,) = _run(backend, "merge", Record("Account", id=duplicate), options=options)

        assert outcome.identifier == master
        assert backend.merged_into(duplicate) == master
        assert backend.count("Account") == 1

    def test_publish(self, backend):
        (outcome,) = _run(backend, "publish", Record("OrderEvent", {"Status": "new"}))

        assert backend.events == [(outcome.identifier, "OrderEvent", {"Status": "new"})]


class TestAllOrNone:
    def test_one_failure_rolls_back_the_call(self, backend):
        outcomes = backend.execute(
            [Record("Account", {"Name": "A"}), Record("Account", id="X")],
            OperationKind.INSERT,
            ExecuteOptions(),
        )

        assert not any(o.success for o in outcomes)
        assert outcomes[0].errors[0].status_code == "ALL_OR_NONE_OPERATION_ROLLED_BACK"
        assert backend.count() == 0

    def test_reject_callback(self):
        backend = InMemoryBackend(
            reject=lambda record, kind: RecordError("no", "CUSTOM", ("Name",))
            if record.get("Name") == "bad"
            else None
        )

        good, bad = _run(backend, "insert", Record("Account", {"Name": "ok"}), Record("Account", {"Name": "bad"}))

        assert good.success
        assert bad.errors == (RecordError("no", "CUSTOM", ("Name",)),)


class TestSavepoints:
    def test_rollback_restores_state(self, backend, seed):
        seed("Account", Name="kept")
        savepoint = backend.savepoint()
        _run(backend, "insert", Record("Account", {"Name": "dropped"}))

        backend.rollback(savepoint)

        assert backend.count("Account") == 1
        assert backend.rollbacks == 1
        assert len(backend.calls) == 1

    def test_calls_are_logged(self, backend):
        _run(backend, "insert", Record("Lead"), Record("Lead"))

        call = backend.calls[0]
        assert (call.kind, call.entity_type, call.size) == (OperationKind.INSERT, "Lead", 2)

    def test_rollback_releases_savepoints(self, backend):
        first = backend.savepoint()
        backend.savepoint()

        backend.rollback(first)

        assert backend.savepoint() == first
