"""Test configuration hooks."""

from datetime import datetime

import pytest

from insight_router.orchestration import SessionData, ThinkingContext, UserPreferences

# A weekday afternoon: no time-of-day nudges apply
AFTERNOON = datetime(2024, 5, 14, 15, 0, 0)


# Configure anyio to only use asyncio backend (skip trio tests)
@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"


@pytest.fixture
def afternoon_context():
    """Thinking context pinned to an afternoon with balanced preferences."""
    return ThinkingContext(
        timestamp=AFTERNOON,
        session=SessionData(start_time=AFTERNOON),
        preferences=UserPreferences(),
    )
