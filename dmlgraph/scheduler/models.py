"""Data models for the execution schedule."""

from dataclasses import dataclass, field
from typing import NamedTuple

from ..graph.node_types import OperationKind
from ..graph.record import Operation
from ..graph.registry import NodeHandle


class BucketKey(NamedTuple):
    """What records must share to travel in one backend call."""

    kind: OperationKind
    entity_type: str
    external_id_field: str | None = None
    merge_master_id: str | None = None

    @property
    def operation(self) -> Operation:
        return Operation(self.kind, self.external_id_field, self.merge_master_id)

    def __str__(self) -> str:
        return f"{self.operation} {self.entity_type}"


@dataclass
class Bucket:
    """Records of one layer executed in a single backend call."""

    key: BucketKey
    layer: int
    members: list[NodeHandle] = field(default_factory=list)

    @property
    def kind(self) -> OperationKind:
        return self.key.kind

    @property
    def entity_type(self) -> str:
        return self.key.entity_type

    def __len__(self) -> int:
        return len(self.members)


@dataclass
class Schedule:
    """Ordered buckets covering every registered node."""

    buckets: list[Bucket] = field(default_factory=list)

    @property
    def layer_count(self) -> int:
        """Number of dependency layers."""
        return max((b.layer for b in self.buckets), default=-1) + 1

    @property
    def call_count(self) -> int:
        """Number of backend calls the schedule needs."""
        return len(self.buckets)

    def layer(self, index: int) -> list[Bucket]:
        """Get the buckets of one layer."""
        return [b for b in self.buckets if b.layer == index]

    def bucket_of(self, handle: NodeHandle) -> Bucket | None:
        """Get the bucket a node was scheduled into."""
        for bucket in self.buckets:
            if handle in bucket.members:
                return bucket
        return None

    def __iter__(self):
        return iter(self.buckets)

    def __len__(self) -> int:
        return len(self.buckets)
