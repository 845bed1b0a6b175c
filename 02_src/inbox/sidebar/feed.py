"""Subscription feed adapter."""

import asyncio
from typing import Callable

from ..backend.base import IConversationBackend
from ..config import DEFAULT_PAGE_SIZE, FEED_RETRY_DELAY
from ..logging_config import get_logger
from ..models import ConversationPage

logger = get_logger(__name__)


SnapshotHandler = Callable[[ConversationPage], None]


class SubscriptionFeedAdapter:
    """Feeds live newest-page snapshots from the backend into a handler.

    Every snapshot is handed over in full; the handler (normally
    ``SidebarController.on_feed_update``) merges it and takes over its
    pagination metadata. If the feed fails or ends it is resubscribed after
    ``retry_delay`` seconds for as long as the adapter runs.
    """

    def __init__(
        self,
        backend: IConversationBackend,
        on_snapshot: SnapshotHandler,
        limit: int = DEFAULT_PAGE_SIZE,
        retry_delay: float = FEED_RETRY_DELAY,
    ):
        self._backend = backend
        self._on_snapshot = on_snapshot
        self._limit = limit
        self._retry_delay = retry_delay
        self._running = False
        self._task: asyncio.Task | None = None
        self._deliveries = 0

    @property
    def deliveries(self) -> int:
        """Number of snapshots applied so far."""
        return self._deliveries

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Subscribe in the background."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the subscription."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        while self._running:
            feed = self._backend.subscribe_conversations_for_user(limit=self._limit)
            try:
                async for snapshot in feed:
                    if not self._running:
                        break
                    self._deliver(snapshot)
                else:
                    logger.info("Conversation feed ended, resubscribing")
                    await asyncio.sleep(self._retry_delay)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Conversation feed error: %s", e, exc_info=True)
                await asyncio.sleep(self._retry_delay)
            finally:
                aclose = getattr(feed, "aclose", None)
                if aclose is not None:
                    await aclose()

    def _deliver(self, snapshot: ConversationPage) -> None:
        try:
            self._on_snapshot(snapshot)
        except Exception as e:
            logger.error("Failed to apply feed snapshot: %s", e, exc_info=True)
            return
        self._deliveries += 1
