"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .backend import ConversationService, LocalConversationBackend
from .config import resolve_db_path
from .event_bus import EventBus, IEventBus
from .logging_config import get_logger
from .storage import IStorage, Storage

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...

    @property
    def storage(self) -> IStorage:
        ...

    @property
    def service(self) -> ConversationService:
        ...

    def backend_for(self, viewer_id: str) -> LocalConversationBackend:
        ...


class Application:
    """Main application bootstrap."""

    def __init__(self, db_path: str | None = None):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._event_bus: IEventBus | None = None
        self._service: ConversationService | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. EventBus (no dependencies)
        self._event_bus = EventBus()
        logger.info("EventBus initialized")

        # 3. ConversationService (depends on Storage + EventBus)
        self._service = ConversationService(self._storage, self._event_bus)
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        self._service = None
        self._event_bus = None
        if self._storage:
            await self._storage.close()
            self._storage = None
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

    def backend_for(self, viewer_id: str) -> LocalConversationBackend:
        """Conversation backend scoped to one viewer."""
        return LocalConversationBackend(self.storage, self.event_bus, viewer_id)

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def event_bus(self) -> IEventBus:
        """Get event bus instance."""
        if not self._event_bus:
            raise RuntimeError("Application not started")
        return self._event_bus

    @property
    def service(self) -> ConversationService:
        """Get conversation service instance."""
        if not self._service:
            raise RuntimeError("Application not started")
        return self._service
