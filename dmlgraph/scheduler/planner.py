"""Turn the dependency graph into an ordered list of buckets."""

from ..graph.dependency_graph import DependencyGraph
from ..graph.registry import NodeRegistry, RecordNode
from .models import Bucket, BucketKey, Schedule


def bucket_key_for(node: RecordNode) -> BucketKey:
    """Get the bucket key of a node."""
    operation = node.operation
    return BucketKey(
        kind=operation.kind,
        entity_type=node.entity_type,
        external_id_field=operation.external_id_field,
        merge_master_id=operation.merge_master_id,
    )


def build_schedule(registry: NodeRegistry, graph: DependencyGraph) -> Schedule:
    """Build the execution schedule.

    Nodes are layered so that every node runs after the nodes it waits for,
    then grouped per layer by bucket key. Within a layer buckets are ordered
    by their earliest member's registration, so the same registrations always
    give the same schedule.

    Args:
        registry: The registered nodes.
        graph: Their dependency graph.

    Returns:
        The schedule, one bucket per distinct (layer, bucket key).

    Raises:
        CyclicDependency: If the graph contains a cycle.
    """
    schedule = Schedule()

    for layer_index, layer in enumerate(graph.layers()):
        buckets: dict[BucketKey, Bucket] = {}
        # Handles are sorted, so insertion order follows earliest member
        for handle in layer:
            key = bucket_key_for(registry[handle])
            if key not in buckets:
                buckets[key] = Bucket(key=key, layer=layer_index)
            buckets[key].members.append(handle)
        schedule.buckets.extend(buckets.values())

    return schedule
