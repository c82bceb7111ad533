"""
Pytest configuration and fixtures.
"""

import pytest

from swipematch.services.engine import build_engine
from swipematch.tests.helpers import RecordingChannel, seed_directory
from swipematch.utils.db_utils import close_all_connection_pools


@pytest.fixture(autouse=True)
async def cleanup_connection_pools():
    """Close any connection pool a test opened."""
    yield
    await close_all_connection_pools()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
async def engine(channel):
    """In-memory engine seeded with two candidates, two companies and a delegate of F1."""
    engine = build_engine(backend="memory", channel=channel)
    await seed_directory(engine)
    return engine
