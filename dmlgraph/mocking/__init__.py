"""Record-level mocking so callers can be tested without a backend."""

from .ids import FakeIdGenerator
from .interceptor import MOCK_FAILURE_STATUS, MockInterceptor
from .rules import MockRegistry, MockRule, MockRuleBuilder

__all__ = [
    "FakeIdGenerator",
    "MOCK_FAILURE_STATUS",
    "MockInterceptor",
    "MockRegistry",
    "MockRule",
    "MockRuleBuilder",
]
