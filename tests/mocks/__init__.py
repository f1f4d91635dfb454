"""Mock objects for testing."""

from .mock_providers import (
    FailingProvider,
    MalformedProvider,
    MockProvider,
    SlowProvider,
    make_result,
)

__all__ = [
    "FailingProvider",
    "MalformedProvider",
    "MockProvider",
    "SlowProvider",
    "make_result",
]
