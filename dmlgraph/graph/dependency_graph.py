"""Dependency graph between record nodes, backed by networkx."""

from typing import Any

import networkx as nx

from ..errors import CyclicDependency, UnknownRelationshipTarget
from .record import ExternalIdRef, Record
from .registry import NodeHandle, NodeRegistry


class DependencyGraph:
    """A directed graph of record nodes.

    An edge runs from a dependent node to the node whose identifier it needs.
    Nodes are registry handles, so the graph never holds record objects.
    """

    def __init__(self):
        """Initialize an empty dependency graph."""
        self._graph = nx.DiGraph()

    @property
    def graph(self) -> nx.DiGraph:
        """Get the underlying networkx graph."""
        return self._graph

    def add_node(self, handle: NodeHandle, **attrs: Any) -> None:
        """Add a record node."""
        self._graph.add_node(handle, **attrs)

    def add_dependency(
        self, dependent: NodeHandle, target: NodeHandle, field: str
    ) -> None:
        """Add an edge from ``dependent`` to the node it waits for.

        Several fields pointing at the same target share one edge.
        """
        if self._graph.has_edge(dependent, target):
            self._graph.edges[dependent, target]["fields"].append(field)
        else:
            self._graph.add_edge(dependent, target, fields=[field])

    def dependencies(self, handle: NodeHandle) -> list[NodeHandle]:
        """Get the nodes a node waits for."""
        return sorted(self._graph.successors(handle))

    def dependents(self, handle: NodeHandle) -> list[NodeHandle]:
        """Get the nodes waiting directly for a node."""
        return sorted(self._graph.predecessors(handle))

    def transitive_dependents(self, handle: NodeHandle) -> set[NodeHandle]:
        """Get every node that waits, directly or not, for a node."""
        return nx.ancestors(self._graph, handle)

    def has_path(self, source: NodeHandle, target: NodeHandle) -> bool:
        """Check whether ``source`` depends, directly or not, on ``target``."""
        return nx.has_path(self._graph, source, target)

    def find_cycle(self) -> list[NodeHandle] | None:
        """Return the nodes of one cycle, or None if the graph is acyclic."""
        try:
            cycle = nx.find_cycle(self._graph)
        except nx.NetworkXNoCycle:
            return None
        return [edge[0] for edge in cycle]

    def layers(self) -> list[list[NodeHandle]]:
        """Split nodes into dependency layers.

        Layer 0 holds nodes with no dependencies; every node sits one layer
        after the deepest node it waits for. Handles within a layer are in
        registration order.

        Raises:
            CyclicDependency: If the graph contains a cycle.
        """
        try:
            generations = nx.topological_generations(self._graph.reverse(copy=False))
            return [sorted(layer) for layer in generations]
        except nx.NetworkXUnfeasible as e:
            raise CyclicDependency(f"Cannot order records: {e}") from e


def build_dependency_graph(registry: NodeRegistry) -> DependencyGraph:
    """Build the dependency graph for every registered node.

    Resolves each relationship to a node handle (or a literal value when the
    target is outside the unit of work) and checks the result for cycles.

    Args:
        registry: The nodes of one unit of work.

    Returns:
        The acyclic dependency graph.

    Raises:
        UnknownRelationshipTarget: If a relationship points at a record that
            is neither registered nor persisted.
        CyclicDependency: If relationships form a cycle.
    """
    graph = DependencyGraph()

    for node in registry:
        graph.add_node(node.handle, label=node.label)

    external_index = _index_external_ids(registry)

    for node in registry:
        for edge in node.edges:
            edge.target_handle = None
            edge.literal = None
            target = edge.target
            if isinstance(target, ExternalIdRef):
                handle = None
                if _hashable(target.value):
                    handle = external_index.get((target.type, target.field, target.value))
                if handle is None:
                    # Left for the backend to resolve by external id
                    edge.literal = target
                    continue
            elif isinstance(target, Record):
                handle = registry.handle_for(target)
                if handle is None:
                    if not target.id:
                        raise UnknownRelationshipTarget(
                            f"{node.label}: '{edge.field}' points at an unsaved "
                            f"{target.type} that is not registered",
                            field=edge.field,
                        )
                    edge.literal = target.id
                    continue
            else:
                raise TypeError(
                    f"Relationship target must be a Record or ExternalIdRef, "
                    f"got {type(target).__name__}"
                )

            edge.target_handle = handle
            graph.add_dependency(node.handle, handle, edge.field)

    cycle = graph.find_cycle()
    if cycle is not None:
        labels = [registry[h].label for h in cycle]
        raise CyclicDependency(
            "Relationships form a cycle: " + " -> ".join(labels + labels[:1]),
            cycle=labels,
        )

    return graph


def _index_external_ids(
    registry: NodeRegistry,
) -> dict[tuple[str, str, Any], NodeHandle]:
    """Map (type, field, value) to the earliest node carrying it."""
    wanted = {
        (edge.target.type, edge.target.field)
        for node in registry
        for edge in node.edges
        if isinstance(edge.target, ExternalIdRef)
    }
    if not wanted:
        return {}

    index: dict[tuple[str, str, Any], NodeHandle] = {}
    for node in registry:
        fields = node.base_fields()
        for entity_type, field_name in wanted:
            if node.entity_type != entity_type or field_name not in fields:
                continue
            # Multi-value fields cannot be matched by a single external id
            if not _hashable(fields[field_name]):
                continue
            index.setdefault((entity_type, field_name, fields[field_name]), node.handle)
    return index


def _hashable(value: Any) -> bool:
    try:
        hash(value)
    except TypeError:
        return False
    return True
