"""Mock rules and the registry that holds them."""

from dataclasses import dataclass

from ..errors import MockResultNotFound
from ..graph.node_types import OperationKind
from ..results.models import Result
from .ids import FakeIdGenerator


@dataclass(frozen=True)
class MockRule:
    """Which buckets to intercept under an identifier, and how."""

    identifier: str
    kind: OperationKind | None = None
    entity_type: str | None = None
    inject_failure: bool = False

    def matches(self, kind: OperationKind, entity_type: str) -> bool:
        """Check whether a bucket of this kind and type is intercepted."""
        if self.kind is not None and self.kind != kind:
            return False
        if self.entity_type is not None and self.entity_type != entity_type:
            return False
        return True


class MockRuleBuilder:
    """Fluent builder for one mock rule.

    A builder matches nothing until one of the ``for_*`` methods is called.

    Example:
        mocks.register_mock("seed").for_operation("insert").for_entity_type("Account")
    """

    def __init__(self, identifier: str):
        self.identifier = identifier
        self._active = False
        self._kind: OperationKind | None = None
        self._entity_type: str | None = None
        self._inject_failure = False

    def for_all_operations(self) -> "MockRuleBuilder":
        """Intercept every operation kind."""
        self._active = True
        self._kind = None
        return self

    def for_operation(self, kind: OperationKind | str) -> "MockRuleBuilder":
        """Intercept only one operation kind."""
        self._active = True
        self._kind = OperationKind(kind)
        return self

    def for_entity_type(self, entity_type: str) -> "MockRuleBuilder":
        """Intercept only one entity type."""
        self._active = True
        self._entity_type = entity_type
        return self

    def inject_failure(self) -> "MockRuleBuilder":
        """Make intercepted records fail instead of succeed."""
        self._inject_failure = True
        return self

    def build(self) -> MockRule | None:
        """Snapshot the rule, or None if it matches nothing."""
        if not self._active:
            return None
        return MockRule(
            identifier=self.identifier,
            kind=self._kind,
            entity_type=self._entity_type,
            inject_failure=self._inject_failure,
        )


class MockRegistry:
    """Mock rules and mocked results, keyed by caller-supplied identifier.

    One registry is meant to be owned by a test or run context and handed to
    every unit of work that should see its rules.
    """

    def __init__(self, id_generator: FakeIdGenerator | None = None):
        self.id_generator = id_generator or FakeIdGenerator()
        self._builders: dict[str, list[MockRuleBuilder]] = {}
        self._results: dict[str, Result] = {}

    def register_mock(self, identifier: str) -> MockRuleBuilder:
        """Start a new rule under an identifier."""
        builder = MockRuleBuilder(identifier)
        self._builders.setdefault(identifier, []).append(builder)
        return builder

    def rules_for(self, identifier: str | None) -> list[MockRule]:
        """Snapshot the active rules registered under an identifier."""
        if identifier is None:
            return []
        rules = []
        for builder in self._builders.get(identifier, []):
            rule = builder.build()
            if rule is not None:
                rules.append(rule)
        return rules

    def has_rules(self, identifier: str | None) -> bool:
        return bool(self.rules_for(identifier))

    def record_result(self, identifier: str, result: Result) -> None:
        """Remember the result of a commit made under an identifier."""
        self._results[identifier] = result

    def fetch_mock_result(self, identifier: str) -> Result:
        """Get the result recorded under an identifier.

        Raises:
            MockResultNotFound: If no mocked commit ran under it.
        """
        try:
            return self._results[identifier]
        except KeyError:
            raise MockResultNotFound(
                f"No mocked result recorded for identifier '{identifier}'"
            ) from None

    def reset(self) -> None:
        """Forget every rule, result, and issued identifier."""
        self._builders.clear()
        self._results.clear()
        self.id_generator.reset()
