"""Tests for SidebarController."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from inbox.errors import BackendError
from inbox.models import ConversationMeta, ConversationPage, ParticipantProfile
from inbox.sidebar.controller import SidebarController


def conv(conversation_id: str, last_message_at: int | None = None, **fields) -> ConversationMeta:
    return ConversationMeta(id=conversation_id, last_message_at=last_message_at, **fields)


def seed(*items, cursor="c1", is_done=False) -> ConversationPage:
    return ConversationPage(items=list(items), cursor=cursor, is_done=is_done)


async def drain_profile_tasks(controller: SidebarController) -> None:
    await asyncio.gather(*list(controller._profile_tasks))


@pytest.fixture
def controller(backend):
    """Create SidebarController for viewer "me" over the mock backend."""
    return SidebarController(backend, viewer_id="me", page_size=10)


class TestInitialize:
    """Tests for SidebarController.initialize()."""

    def test_initialize_sets_state(self, controller):
        """Test that the seed page becomes the list state."""
        controller.initialize(seed(conv("a", 10), conv("b", 20)))

        assert [c.id for c in controller.items] == ["b", "a"]
        assert controller.cursor == "c1"
        assert controller.is_done is False
        assert controller.can_load_more()

    def test_initialize_twice_raises(self, controller):
        """Test that initialize() may only run once."""
        controller.initialize(seed())

        with pytest.raises(RuntimeError):
            controller.initialize(seed())

    def test_initialize_with_profiles(self, controller):
        """Test that seed profiles populate the cache."""
        controller.initialize(
            seed(conv("a", 10, participants=["me", "u2"])),
            profiles=[ParticipantProfile(id="u2", name="Bob Jones")],
        )

        assert controller.display_profiles["a"].name == "Bob Jones"

    @pytest.mark.asyncio
    async def test_initialize_resolves_seed_profiles(self, controller, backend):
        """Test that seed participants are looked up without waiting for the feed."""
        backend.get_public_profiles = AsyncMock(
            return_value=[ParticipantProfile(id="u2", name="Bob Jones")]
        )

        controller.initialize(seed(conv("a", 10, participants=["me", "u2"])))
        await controller.wait_for_profiles()

        backend.get_public_profiles.assert_awaited_once_with(["u2"])
        assert controller.display_profiles["a"].name == "Bob Jones"

    @pytest.mark.asyncio
    async def test_load_more_before_initialize_raises(self, controller):
        """Test that load_more() requires initialization."""
        with pytest.raises(RuntimeError):
            await controller.load_more()


class TestFeedUpdate:
    """Tests for SidebarController.on_feed_update()."""

    @pytest.mark.asyncio
    async def test_seed_then_feed_snapshot(self, controller):
        """Test merging a feed snapshot into the seeded list."""
        controller.initialize(seed(conv("a", 10), cursor="c1"))

        controller.on_feed_update(
            ConversationPage(items=[conv("b", 20)], cursor="c2", is_done=False)
        )

        assert [c.id for c in controller.items] == ["b", "a"]
        assert controller.cursor == "c2"
        assert controller.is_done is False

    @pytest.mark.asyncio
    async def test_feed_overlays_existing(self, controller):
        """Test that a snapshot updates an existing conversation in place."""
        controller.initialize(seed(conv("a", 10, title="Old"), conv("b", 20)))

        controller.on_feed_update(seed(conv("a", 30, title="Renamed"), cursor="c1"))

        assert [c.id for c in controller.items] == ["a", "b"]
        assert controller.items[0].title == "Renamed"

    @pytest.mark.asyncio
    async def test_feed_after_close_is_ignored(self, controller):
        """Test that a closed controller no longer applies snapshots."""
        controller.initialize(seed(conv("a", 10)))
        await controller.close()

        controller.on_feed_update(seed(conv("b", 20), cursor="c2"))

        assert [c.id for c in controller.items] == ["a"]
        assert controller.cursor == "c1"

    @pytest.mark.asyncio
    async def test_feed_resolves_missing_profiles(self, controller, backend):
        """Test that unseen participants are looked up in the background."""
        backend.get_public_profiles = AsyncMock(
            return_value=[ParticipantProfile(id="u2", name="Bob Jones")]
        )
        controller.initialize(seed(cursor=None, is_done=True))

        controller.on_feed_update(seed(conv("a", 10, participants=["me", "u2"])))
        await drain_profile_tasks(controller)

        backend.get_public_profiles.assert_awaited_once_with(["u2"])
        assert controller.display_profiles["a"].name == "Bob Jones"
        assert controller.display_profiles["a"].initials == "BJ"

    @pytest.mark.asyncio
    async def test_background_profile_failure_is_contained(self, controller, backend):
        """Test that a failed background lookup leaves state intact."""
        backend.get_public_profiles = AsyncMock(side_effect=BackendError("down"))
        controller.initialize(seed())

        controller.on_feed_update(seed(conv("a", 10, participants=["me", "u2"])))
        await drain_profile_tasks(controller)

        assert [c.id for c in controller.items] == ["a"]
        assert controller.profiles == {}
        assert controller.display_profiles["a"].name == "Conversation"


class TestLoadMore:
    """Tests for SidebarController.load_more()."""

    @pytest.mark.asyncio
    async def test_load_more_merges_page(self, controller, backend):
        """Test that a fetched page is merged and pagination replaced."""
        backend.list_conversations_for_user = AsyncMock(
            return_value=ConversationPage(items=[conv("b", 5)], cursor="c2", is_done=True)
        )
        controller.initialize(seed(conv("a", 10), cursor="c1"))

        loaded = await controller.load_more()

        assert loaded is True
        backend.list_conversations_for_user.assert_awaited_once_with(limit=10, cursor="c1")
        assert [c.id for c in controller.items] == ["a", "b"]
        assert controller.cursor == "c2"
        assert controller.is_done is True
        assert controller.is_loading_more is False

    @pytest.mark.asyncio
    async def test_load_more_noop_when_done(self, controller, backend):
        """Test that no fetch is issued once the backend reported is_done."""
        controller.initialize(seed(conv("a", 10), cursor="c1", is_done=True))

        loaded = await controller.load_more()

        assert loaded is False
        backend.list_conversations_for_user.assert_not_called()
        assert [c.id for c in controller.items] == ["a"]

    @pytest.mark.asyncio
    async def test_load_more_noop_without_cursor(self, controller, backend):
        """Test that no fetch is issued without a cursor."""
        controller.initialize(seed(conv("a", 10), cursor=None))

        assert await controller.load_more() is False
        backend.list_conversations_for_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_feed_marking_done_stops_load_more(self, controller, backend):
        """Test that is_done from a feed snapshot gates load_more()."""
        controller.initialize(seed(conv("a", 10), cursor="c1"))
        controller.on_feed_update(seed(conv("a", 10), cursor="c1", is_done=True))

        assert await controller.load_more() is False
        backend.list_conversations_for_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_second_call_while_loading_is_noop(self, controller, backend):
        """Test the re-entrancy guard: overlapping calls issue one fetch."""
        release = asyncio.Event()

        async def slow_fetch(limit, cursor=None):
            await release.wait()
            return ConversationPage(items=[conv("b", 5)], cursor="c2", is_done=False)

        backend.list_conversations_for_user = AsyncMock(side_effect=slow_fetch)
        controller.initialize(seed(conv("a", 10), cursor="c1"))

        first = asyncio.create_task(controller.load_more())
        await asyncio.sleep(0)
        assert controller.is_loading_more is True

        assert await controller.load_more() is False

        release.set()
        assert await first is True
        backend.list_conversations_for_user.assert_awaited_once()
        assert controller.is_loading_more is False

    @pytest.mark.asyncio
    async def test_failed_load_leaves_state_untouched(self, controller, backend):
        """Test that a rejected fetch propagates and changes nothing."""
        backend.list_conversations_for_user = AsyncMock(side_effect=BackendError("offline"))
        controller.initialize(seed(conv("a", 10), cursor="c1"))

        with pytest.raises(BackendError):
            await controller.load_more()

        assert [c.id for c in controller.items] == ["a"]
        assert controller.cursor == "c1"
        assert controller.is_done is False
        assert controller.is_loading_more is False

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, controller, backend):
        """Test that a failure does not poison later calls."""
        backend.list_conversations_for_user = AsyncMock(
            side_effect=[
                BackendError("offline"),
                ConversationPage(items=[conv("b", 5)], cursor="c2", is_done=True),
            ]
        )
        controller.initialize(seed(conv("a", 10), cursor="c1"))

        with pytest.raises(BackendError):
            await controller.load_more()
        assert await controller.load_more() is True

        assert [c.id for c in controller.items] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_result_after_close_is_dropped(self, controller, backend):
        """Test that a page arriving after close() is not applied."""
        release = asyncio.Event()

        async def slow_fetch(limit, cursor=None):
            await release.wait()
            return ConversationPage(items=[conv("late", 99)], cursor="c9", is_done=False)

        backend.list_conversations_for_user = AsyncMock(side_effect=slow_fetch)
        controller.initialize(seed(conv("a", 10), cursor="c1"))

        task = asyncio.create_task(controller.load_more())
        await asyncio.sleep(0)
        await controller.close()
        release.set()

        assert await task is False
        assert [c.id for c in controller.items] == ["a"]
        assert controller.cursor == "c1"
        assert controller.is_loading_more is False


class TestListeners:
    """Tests for change notification."""

    @pytest.mark.asyncio
    async def test_listener_sees_loading_flag(self, controller, backend):
        """Test that listeners observe loading start and finish."""
        backend.list_conversations_for_user = AsyncMock(
            return_value=ConversationPage(items=[conv("b", 5)], cursor="c2", is_done=True)
        )
        controller.initialize(seed(conv("a", 10), cursor="c1"))
        views = []
        controller.add_listener(views.append)

        await controller.load_more()

        assert views[0].is_loading_more is True
        assert views[-1].is_loading_more is False
        assert [c.id for c in views[-1].items] == ["a", "b"]
        assert views[-1].is_done is True
        assert views[-1].can_load_more is False

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self, controller):
        """Test that one broken listener does not stop the rest."""
        controller.initialize(seed())
        calls = []

        def broken(view):
            raise RuntimeError("render failed")

        controller.add_listener(broken)
        controller.add_listener(calls.append)

        controller.on_feed_update(seed(conv("a", 10)))

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self, controller):
        """Test that an unsubscribed listener is no longer called."""
        controller.initialize(seed())
        calls = []
        unsubscribe = controller.add_listener(calls.append)

        unsubscribe()
        controller.on_feed_update(seed(conv("a", 10)))

        assert calls == []


class TestDerivedViews:
    """Tests for derived, read-only projections."""

    def test_active_conversation_from_navigation(self, backend):
        """Test that the active id is the last navigation segment."""
        segments = ["conversations", "abc"]
        controller = SidebarController(backend, viewer_id="me", navigation=lambda: segments)

        assert controller.active_conversation_id == "abc"

        segments.clear()
        assert controller.active_conversation_id is None

    def test_active_conversation_without_navigation(self, controller):
        """Test that no navigation provider means no active conversation."""
        assert controller.active_conversation_id is None

    @pytest.mark.asyncio
    async def test_display_profiles_memoized(self, controller):
        """Test that the projection is reused until state changes."""
        controller.initialize(seed(conv("a", 10, title="Solo", participants=["me"])))

        first = controller.display_profiles
        assert controller.display_profiles is first

        controller.on_feed_update(seed(conv("b", 20)))
        assert controller.display_profiles is not first
        assert set(controller.display_profiles) == {"a", "b"}

    def test_viewer_fallback_profile(self, backend):
        """Test that a viewer-only conversation shows the viewer profile."""
        controller = SidebarController(
            backend,
            viewer_id="me",
            viewer_profile=ParticipantProfile(id="me", name="Dana Scully", avatar_url="a.png"),
        )
        controller.initialize(seed(conv("a", 10, participants=["me"])))

        display = controller.display_profiles["a"]
        assert display.name == "Dana Scully"
        assert display.avatar_url == "a.png"

    @pytest.mark.asyncio
    async def test_ensure_profiles_skips_viewer_and_cached(self, controller, backend):
        """Test that only unknown non-viewer participants are fetched."""
        backend.get_public_profiles = AsyncMock(
            return_value=[ParticipantProfile(id="u3", name="Carol")]
        )
        controller.initialize(
            seed(), profiles=[ParticipantProfile(id="u2", name="Bob")]
        )

        added = await controller.ensure_profiles([conv("a", participants=["me", "u2", "u3"])])

        assert added == 1
        backend.get_public_profiles.assert_awaited_once_with(["u3"])

    @pytest.mark.asyncio
    async def test_ensure_profiles_propagates_failure(self, controller, backend):
        """Test that a direct profile lookup surfaces backend errors."""
        backend.get_public_profiles = AsyncMock(side_effect=BackendError("down"))
        controller.initialize(seed())

        with pytest.raises(BackendError):
            await controller.ensure_profiles([conv("a", participants=["u2"])])


class TestProfileResolution:
    """Tests for overlapping background profile lookups."""

    @pytest.mark.asyncio
    async def test_in_flight_ids_not_fetched_twice(self, controller, backend):
        """Test that a feed update during a pending lookup does not refetch the same ids."""
        release = asyncio.Event()

        async def slow_profiles(user_ids):
            await release.wait()
            return [ParticipantProfile(id=user_id, name=user_id.upper()) for user_id in user_ids]

        backend.get_public_profiles = AsyncMock(side_effect=slow_profiles)
        controller.initialize(seed(conv("a", 10, participants=["me", "u2"])))
        await asyncio.sleep(0)

        controller.on_feed_update(seed(conv("b", 20, participants=["me", "u2"])))
        assert len(controller._profile_tasks) == 1

        release.set()
        await controller.wait_for_profiles()

        backend.get_public_profiles.assert_awaited_once_with(["u2"])
        assert controller.display_profiles["b"].name == "U2"

    @pytest.mark.asyncio
    async def test_failed_lookup_can_be_retried(self, controller, backend):
        """Test that ids of a failed lookup are fetched again later."""
        backend.get_public_profiles = AsyncMock(
            side_effect=[BackendError("down"), [ParticipantProfile(id="u2", name="Bob")]]
        )
        controller.initialize(seed(conv("a", 10, participants=["me", "u2"])))
        await controller.wait_for_profiles()

        controller.on_feed_update(seed(conv("a", 11, participants=["me", "u2"])))
        await controller.wait_for_profiles()

        assert backend.get_public_profiles.await_count == 2
        assert "u2" in controller.profiles

    @pytest.mark.asyncio
    async def test_log_records_carry_viewer(self, controller, backend, caplog):
        """Test that controller log records are tagged with the viewer id."""
        backend.list_conversations_for_user = AsyncMock(side_effect=BackendError("offline"))
        controller.initialize(seed(conv("a", 10), cursor="c1"))

        with caplog.at_level(logging.WARNING, logger="inbox.sidebar.controller"):
            with pytest.raises(BackendError):
                await controller.load_more()

        record = caplog.records[-1]
        assert record.context == {"viewer_id": "me"}
