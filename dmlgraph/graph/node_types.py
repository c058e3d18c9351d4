"""Operation and status definitions for record nodes."""

from enum import Enum


class OperationKind(str, Enum):
    """Kinds of record operations a unit of work can batch."""

    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"
    UNDELETE = "undelete"
    MERGE = "merge"
    PUBLISH = "publish"


class NodeStatus(str, Enum):
    """Lifecycle status of a record node during a commit."""

    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class AccessMode(str, Enum):
    """Permission mode forwarded verbatim to the backend."""

    USER = "user"
    SYSTEM = "system"


class SharingMode(str, Enum):
    """Sharing mode forwarded verbatim to the backend."""

    INHERITED = "inherited"
    WITH_SHARING = "with_sharing"
    WITHOUT_SHARING = "without_sharing"


# Operations whose records are identified by primary key.
KEYED_OPERATIONS = frozenset(
    {OperationKind.UPDATE, OperationKind.DELETE, OperationKind.UNDELETE}
)

# Operations whose records are new and identified by object identity.
CREATING_OPERATIONS = frozenset({OperationKind.INSERT, OperationKind.PUBLISH})
