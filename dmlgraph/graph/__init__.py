"""Graph layer: record nodes and the dependencies between them."""

from .node_types import AccessMode, NodeStatus, OperationKind, SharingMode
from .record import ExternalIdRef, Operation, Record, Registration, RelationshipEdge
from .registry import NodeHandle, NodeRegistry, RecordNode
from .dependency_graph import DependencyGraph, build_dependency_graph

__all__ = [
    "AccessMode",
    "NodeStatus",
    "OperationKind",
    "SharingMode",
    "ExternalIdRef",
    "Operation",
    "Record",
    "Registration",
    "RelationshipEdge",
    "NodeHandle",
    "NodeRegistry",
    "RecordNode",
    "DependencyGraph",
    "build_dependency_graph",
]
