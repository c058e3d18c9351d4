"""Tests for the topological scheduler."""

import pytest

from dmlgraph.errors import CyclicDependency
from dmlgraph.graph.dependency_graph import DependencyGraph, build_dependency_graph
from dmlgraph.graph.node_types import OperationKind
from dmlgraph.graph.record import Operation, Record, Registration
from dmlgraph.graph.registry import NodeRegistry
from dmlgraph.scheduler.models import BucketKey
from dmlgraph.scheduler.planner import build_schedule


def _schedule(registry):
    return build_schedule(registry, build_dependency_graph(registry))


def _child(record, **relationships):
    registration = Registration.of(record)
    for field_name, target in relationships.items():
        registration.with_relationship(field_name, target)
    return registration


class TestBuildSchedule:
    def test_parent_children_and_unrelated(self, family):
        registry = NodeRegistry()
        registry.register(family["p1"], Operation.insert())
        registry.register(_child(family["c1"], ParentId=family["p1"]), Operation.insert())
        registry.register(_child(family["c2"], ParentId=family["p1"]), Operation.insert())
        registry.register(family["u1"], Operation.insert())

        schedule = _schedule(registry)

        assert schedule.call_count == 3
        assert schedule.layer_count == 2
        assert [(b.layer, str(b.key), b.members) for b in schedule] == [
            (0, "insert Parent", [0]),
            (0, "insert Unrelated", [3]),
            (1, "insert Child", [1, 2]),
        ]

    def test_bucket_order_follows_earliest_member(self, family):
        registry = NodeRegistry()
        registry.register(family["u1"], Operation.insert())
        registry.register(family["p1"], Operation.insert())

        schedule = _schedule(registry)

        assert [b.entity_type for b in schedule] == ["Unrelated", "Parent"]

    def test_same_key_in_different_layers_splits(self):
        registry = NodeRegistry()
        parent = Record("Account", {"Name": "Parent"})
        registry.register(parent, Operation.insert())
        registry.register(_child(Record("Account"), ParentId=parent), Operation.insert())

        schedule = _schedule(registry)

        assert [(b.layer, b.entity_type) for b in schedule] == [
            (0, "Account"),
            (1, "Account"),
        ]

    def test_upsert_keys_split_by_external_id_field(self):
        registry = NodeRegistry()
        registry.register(Record("Account", {"A": 1}), Operation.upsert("A"))
        registry.register(Record("Account", {"B": 1}), Operation.upsert("B"))
        registry.register(Record("Account", {"A": 2}), Operation.upsert("A"))

        schedule = _schedule(registry)

        assert [b.key.external_id_field for b in schedule] == ["A", "B"]
        assert schedule.buckets[0].members == [0, 2]

    def test_merge_keys_split_by_master(self):
        registry = NodeRegistry()
        registry.register(Record("Account", id="D1"), Operation.merge("M1"))
        registry.register(Record("Account", id="D2"), Operation.merge("M2"))
        registry.register(Record("Account", id="D3"), Operation.merge("M1"))

        schedule = _schedule(registry)

        assert [b.key.merge_master_id for b in schedule] == ["M1", "M2"]
        assert schedule.buckets[0].members == [0, 2]

    def test_bucket_key_operation(self):
        key = BucketKey(OperationKind.UPSERT, "Account", external_id_field="Ext")

        assert key.operation == Operation.upsert("Ext")
        assert str(key) == "upsert[Ext] Account"

    def test_cycle_raises_before_scheduling(self):
        graph = DependencyGraph()
        graph.add_node(0)
        graph.add_node(1)
        graph.add_dependency(0, 1, "a")
        graph.add_dependency(1, 0, "b")
        registry = NodeRegistry()
        registry.register(Record("A"), Operation.insert())
        registry.register(Record("A"), Operation.insert())

        with pytest.raises(CyclicDependency):
            build_schedule(registry, graph)

    def test_empty_registry(self):
        schedule = _schedule(NodeRegistry())

        assert schedule.call_count == 0
        assert schedule.layer_count == 0


class TestScheduleProperties:
    @pytest.fixture
    def wide_registry(self):
        """Accounts, contacts, cases, and tasks with mixed dependencies."""
        registry = NodeRegistry()
        accounts = [Record("Account", {"Name": f"A{i}"}) for i in range(3)]
        for account in accounts:
            registry.register(account, Operation.insert())

        contacts = []
        for i, account in enumerate(accounts):
            contact = Record("Contact", {"LastName": f"C{i}"})
            contacts.append(contact)
            registry.register(_child(contact, AccountId=account), Operation.insert())

        case = Record("Case", {"Subject": "S"})
        registry.register(
            _child(case, AccountId=accounts[0], ContactId=contacts[1]), Operation.insert()
        )
        registry.register(_child(Record("Task"), WhatId=case), Operation.insert())
        registry.register(Record("Task", {"Subject": "free"}), Operation.insert())
        registry.register(Record("Account", {"Name": "X"}, id="ACC9"), Operation.update())
        return registry

    def test_every_node_in_exactly_one_bucket(self, wide_registry):
        schedule = _schedule(wide_registry)

        scheduled = [h for bucket in schedule for h in bucket.members]
        assert sorted(scheduled) == list(range(len(wide_registry)))

    def test_dependents_run_in_later_layers(self, wide_registry):
        graph = build_dependency_graph(wide_registry)
        schedule = build_schedule(wide_registry, graph)

        for dependent, target in graph.graph.edges:
            assert schedule.bucket_of(dependent).layer > schedule.bucket_of(target).layer

    def test_call_count_is_distinct_layer_and_key(self, wide_registry):
        schedule = _schedule(wide_registry)

        distinct = {(b.layer, b.key) for b in schedule}
        assert schedule.call_count == len(distinct)
        # Account inserts + Task(free) + Account update | Contacts | Case | Task
        assert schedule.call_count == 6

    def test_schedule_is_deterministic(self, wide_registry):
        first = _schedule(wide_registry)
        second = _schedule(wide_registry)

        assert [(b.layer, b.key, b.members) for b in first] == [
            (b.layer, b.key, b.members) for b in second
        ]
