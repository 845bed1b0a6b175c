"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from inbox.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def event_bus():
    """Create EventBus."""
    from inbox.event_bus import EventBus

    return EventBus()


@pytest.fixture
def service(storage, event_bus):
    """Create ConversationService over storage and event bus."""
    from inbox.backend import ConversationService

    return ConversationService(storage, event_bus)


@pytest.fixture
def backend():
    """Create mock conversation backend."""
    from inbox.models import ConversationPage

    be = Mock()
    be.list_conversations_for_user = AsyncMock(return_value=ConversationPage())
    be.get_public_profiles = AsyncMock(return_value=[])
    return be


class QueueFeedBackend:
    """Backend whose live feed replays whatever is put on its queue.

    Exceptions put on the queue are raised from the feed.
    """

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.subscriptions = 0
        self.closed = 0
        self.list_conversations_for_user = AsyncMock()
        self.get_public_profiles = AsyncMock(return_value=[])

    async def subscribe_conversations_for_user(self, limit):
        self.subscriptions += 1
        try:
            while True:
                item = await self.queue.get()
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.closed += 1


@pytest.fixture
def feed_backend():
    """Create backend with a queue-driven live feed."""
    return QueueFeedBackend()


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds (or fail after a timeout)."""

    async def _wait_until(predicate, timeout: float = 1.0) -> None:
        async def _poll():
            while not predicate():
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout)

    return _wait_until
