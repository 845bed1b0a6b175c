"""SidebarController: owns the conversation list of a mounted sidebar."""

import asyncio
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, Sequence

from ..backend.base import IConversationBackend
from ..config import DEFAULT_PAGE_SIZE
from ..logging_config import get_logger
from ..models import (
    ConversationMeta,
    ConversationPage,
    DisplayProfile,
    ParticipantProfile,
)
from .display import derive_display_profile
from .profiles import ProfileCache
from .state import ListState


NavigationProvider = Callable[[], Sequence[str]]


@dataclass(frozen=True)
class SidebarView:
    """What the presentation layer renders."""

    items: tuple[ConversationMeta, ...]
    is_loading_more: bool
    is_done: bool
    can_load_more: bool


SidebarListener = Callable[[SidebarView], None]


class ISidebarController(Protocol):
    """Conversation list state, pagination and lazy profile lookup."""

    def initialize(
        self,
        seed: ConversationPage,
        profiles: Iterable[ParticipantProfile] | None = None,
    ) -> None:
        """Seed ListState from the first page. Called once, at mount."""
        ...

    def on_feed_update(self, snapshot: ConversationPage) -> None:
        """Merge a live newest-page snapshot and take over its cursor."""
        ...

    async def load_more(self) -> bool:
        """Fetch the next page. Return True if a page was applied."""
        ...

    async def close(self) -> None:
        """Stop applying results; the controller is discarded afterwards."""
        ...


class SidebarController:
    """Reconciles pushed snapshots and pulled pages into one ordered list."""

    def __init__(
        self,
        backend: IConversationBackend,
        viewer_id: str,
        viewer_profile: ParticipantProfile | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        navigation: NavigationProvider | None = None,
        profile_cache: ProfileCache | None = None,
    ):
        self._backend = backend
        self._viewer_id = viewer_id
        self._viewer_profile = viewer_profile
        self._log = get_logger(__name__, viewer_id=viewer_id)
        self._page_size = page_size
        self._navigation = navigation
        self._profiles = profile_cache if profile_cache is not None else ProfileCache()

        self._state: ListState | None = None
        self._is_loading_more = False
        self._alive = True
        self._listeners: list[SidebarListener] = []
        self._profile_tasks: set[asyncio.Task] = set()
        self._pending_profile_ids: set[str] = set()

        # Memoized display projection, keyed by (items version, profiles version)
        self._items_version = 0
        self._display_key: tuple[int, int] | None = None
        self._display_profiles: dict[str, DisplayProfile] = {}

    # Lifecycle

    def initialize(
        self,
        seed: ConversationPage,
        profiles: Iterable[ParticipantProfile] | None = None,
    ) -> None:
        """Seed ListState from the first page. Called once, at mount."""
        if self._state is not None:
            raise RuntimeError("SidebarController already initialized")

        self._state = ListState.from_page(seed)
        if profiles:
            self._profiles.add_many(profiles)
        self._items_version += 1

        self._log.debug(
            "Sidebar initialized with %d conversations", len(self._state.items)
        )
        self._schedule_profiles(self._state.items)

    async def close(self) -> None:
        """Stop applying results; in-flight work is dropped."""
        self._alive = False
        self._listeners.clear()

        tasks = list(self._profile_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Mutations

    def on_feed_update(self, snapshot: ConversationPage) -> None:
        """Merge a live newest-page snapshot and take over its cursor."""
        state = self._require_state()
        if not self._alive:
            self._log.debug("Ignoring feed snapshot for closed sidebar")
            return

        state.apply_page(snapshot)
        self._items_version += 1
        self._notify()
        self._schedule_profiles(snapshot.items)

    async def load_more(self) -> bool:
        """
        Fetch the page after the current cursor and merge it.

        A no-op returning False when the backend reports no further pages,
        when no cursor is known, or while another load is in flight. Fetch
        failures leave the list and cursor untouched and propagate.
        """
        state = self._require_state()
        if not self._alive or self._is_loading_more:
            return False
        if not state.pagination.can_load_more():
            return False

        self._is_loading_more = True
        self._notify()
        try:
            page = await self._backend.list_conversations_for_user(
                limit=self._page_size, cursor=state.cursor
            )
            if not self._alive:
                self._log.debug("Dropping page loaded after sidebar closed")
                return False

            state.apply_page(page)
            self._items_version += 1
            self._schedule_profiles(page.items)
            return True
        except Exception as e:
            self._log.warning("Loading more conversations failed: %s", e)
            raise
        finally:
            self._is_loading_more = False
            if self._alive:
                self._notify()

    async def ensure_profiles(self, conversations: Iterable[ConversationMeta]) -> int:
        """
        Fetch profiles of participants not cached yet. Return how many were added.

        Ids already being fetched by another call are skipped.
        """
        missing = self._missing_profile_ids(conversations)
        if not missing:
            return 0

        self._pending_profile_ids.update(missing)
        try:
            fetched = await self._backend.get_public_profiles(missing)
        finally:
            self._pending_profile_ids.difference_update(missing)
        if not self._alive:
            return 0

        added = self._profiles.add_many(fetched)
        if added:
            self._notify()
        return added

    async def wait_for_profiles(self) -> None:
        """Wait until background profile lookups scheduled so far have finished."""
        tasks = list(self._profile_tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Observation

    def add_listener(self, listener: SidebarListener) -> Callable[[], None]:
        """Register a callback run after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def view(self) -> SidebarView:
        return SidebarView(
            items=tuple(self.items),
            is_loading_more=self._is_loading_more,
            is_done=self.is_done,
            can_load_more=self.can_load_more(),
        )

    @property
    def items(self) -> list[ConversationMeta]:
        return list(self._state.items) if self._state else []

    @property
    def cursor(self) -> str | None:
        return self._state.cursor if self._state else None

    @property
    def is_done(self) -> bool:
        return self._state.is_done if self._state else False

    @property
    def is_loading_more(self) -> bool:
        return self._is_loading_more

    @property
    def is_closed(self) -> bool:
        return not self._alive

    def can_load_more(self) -> bool:
        return bool(self._state and self._state.pagination.can_load_more())

    @property
    def active_conversation_id(self) -> str | None:
        """Last segment of the current navigation path, if any."""
        if self._navigation is None:
            return None
        segments = self._navigation()
        return segments[-1] if segments else None

    @property
    def profiles(self) -> dict[str, ParticipantProfile]:
        return self._profiles.snapshot()

    @property
    def display_profiles(self) -> dict[str, DisplayProfile]:
        """Display profile per conversation id; recomputed only after changes."""
        key = (self._items_version, self._profiles.version)
        if key != self._display_key:
            profiles = self._profiles.snapshot()
            self._display_profiles = {
                conversation.id: derive_display_profile(
                    conversation,
                    viewer_id=self._viewer_id,
                    profiles=profiles,
                    viewer_fallback=self._viewer_profile,
                )
                for conversation in self.items
            }
            self._display_key = key
        return self._display_profiles

    # Internals

    def _require_state(self) -> ListState:
        if self._state is None:
            raise RuntimeError("SidebarController not initialized")
        return self._state

    def _missing_profile_ids(self, conversations: Iterable[ConversationMeta]) -> list[str]:
        participant_ids = (
            participant_id
            for conversation in conversations
            for participant_id in conversation.participants
            if participant_id != self._viewer_id
        )
        return [
            participant_id
            for participant_id in self._profiles.missing(participant_ids)
            if participant_id not in self._pending_profile_ids
        ]

    def _schedule_profiles(self, conversations: Iterable[ConversationMeta]) -> None:
        conversations = list(conversations)
        if not self._missing_profile_ids(conversations):
            return

        task = asyncio.create_task(self._resolve_profiles(conversations))
        self._profile_tasks.add(task)
        task.add_done_callback(self._profile_tasks.discard)

    async def _resolve_profiles(self, conversations: list[ConversationMeta]) -> None:
        try:
            await self.ensure_profiles(conversations)
        except Exception as e:
            self._log.warning("Profile resolution failed: %s", e)

    def _notify(self) -> None:
        if not self._listeners:
            return

        view = self.view()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                self._log.error("Sidebar listener failed: %s", e, exc_info=True)
