"""A mounted sidebar: controller plus live feed over one backend."""

from ..backend.base import IConversationBackend
from ..config import DEFAULT_PAGE_SIZE, FEED_RETRY_DELAY
from ..logging_config import get_logger
from ..models import ParticipantProfile
from .controller import NavigationProvider, SidebarController
from .feed import SubscriptionFeedAdapter
from .profiles import ProfileCache

logger = get_logger(__name__)


class SidebarSession:
    """Seeds a SidebarController from the first page and keeps it live."""

    def __init__(
        self,
        backend: IConversationBackend,
        viewer_id: str,
        viewer_profile: ParticipantProfile | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        navigation: NavigationProvider | None = None,
        profile_cache_size: int | None = None,
        retry_delay: float = FEED_RETRY_DELAY,
    ):
        self._backend = backend
        self._page_size = page_size
        self.controller = SidebarController(
            backend=backend,
            viewer_id=viewer_id,
            viewer_profile=viewer_profile,
            page_size=page_size,
            navigation=navigation,
            profile_cache=ProfileCache(max_entries=profile_cache_size),
        )
        self.feed = SubscriptionFeedAdapter(
            backend=backend,
            on_snapshot=self.controller.on_feed_update,
            limit=page_size,
            retry_delay=retry_delay,
        )

    async def open(self) -> SidebarController:
        """Fetch the first page and profiles, then start the live feed."""
        seed = await self._backend.list_conversations_for_user(limit=self._page_size)
        self.controller.initialize(seed)
        await self.controller.wait_for_profiles()
        await self.feed.start()

        logger.info("Sidebar session opened with %d conversations", len(seed.items))
        return self.controller

    async def close(self) -> None:
        """Stop the feed and discard the controller state."""
        await self.feed.stop()
        await self.controller.close()
        logger.info("Sidebar session closed")

    async def __aenter__(self) -> SidebarController:
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
