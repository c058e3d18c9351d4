"""Deterministic fake identifiers for mocked records."""

from collections import defaultdict


class FakeIdGenerator:
    """Hands out identifiers that are unique within a run.

    Identifiers look like ``Account-fake-000001``; the counter runs per entity
    type and restarts after ``reset()``.
    """

    def __init__(self, suffix: str = "fake", width: int = 6):
        self.suffix = suffix
        self.width = width
        self._counters: dict[str, int] = defaultdict(int)

    def next_id(self, entity_type: str) -> str:
        """Get the next identifier for an entity type."""
        self._counters[entity_type] += 1
        return f"{entity_type}-{self.suffix}-{self._counters[entity_type]:0{self.width}d}"

    def issued(self, entity_type: str) -> int:
        """Number of identifiers issued for an entity type."""
        return self._counters.get(entity_type, 0)

    def reset(self) -> None:
        """Restart every counter."""
        self._counters.clear()
