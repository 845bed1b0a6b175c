"""Sidebar watcher: a headless sidebar client against the HTTP API."""

import httpx

from inbox.backend import HttpConversationBackend
from inbox.config import (
    DEFAULT_PAGE_SIZE,
    FEED_POLL_INTERVAL,
    resolve_profile_cache_size,
)
from inbox.logging_config import get_logger
from inbox.sidebar import SidebarController, SidebarSession, SidebarView, activity_label

logger = get_logger(__name__)


class SidebarWatcher:
    """Mounts a sidebar for one viewer and logs every list change."""

    def __init__(
        self,
        api_url: str,
        viewer_id: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        poll_interval: float = FEED_POLL_INTERVAL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._viewer_id = viewer_id
        self._backend = HttpConversationBackend(
            base_url=api_url,
            viewer_id=viewer_id,
            poll_interval=poll_interval,
            transport=transport,
        )
        self._session = SidebarSession(
            backend=self._backend,
            viewer_id=viewer_id,
            page_size=page_size,
            profile_cache_size=resolve_profile_cache_size(),
        )
        self._controller: SidebarController | None = None

    async def start(self) -> SidebarController:
        """Open the sidebar session and start logging changes."""
        self._controller = await self._session.open()
        self._controller.add_listener(self._log_view)
        self._log_view(self._controller.view())
        return self._controller

    async def load_all(self) -> int:
        """Page until the backend reports no more conversations. Return pages loaded."""
        if not self._controller:
            raise RuntimeError("SidebarWatcher not started")

        pages = 0
        while await self._controller.load_more():
            pages += 1
        return pages

    async def stop(self) -> None:
        """Close the session and the HTTP client."""
        await self._session.close()
        await self._backend.aclose()

    def _log_view(self, view: SidebarView) -> None:
        if not self._controller:
            return

        display = self._controller.display_profiles
        lines = [
            f"{display[c.id].name if c.id in display else c.title} ({c.type.value}) {activity_label(c)}"
            for c in view.items
        ]
        logger.info(
            "Sidebar for %s: %d conversations%s",
            self._viewer_id,
            len(view.items),
            " (loading)" if view.is_loading_more else "",
            extra={"context": {"items": lines, "is_done": view.is_done}},
        )
