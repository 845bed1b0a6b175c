"""In-process conversation backend over Storage and EventBus."""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Protocol

from ..errors import (
    BackendError,
    ConversationNotFoundError,
    InboxError,
    NotParticipantError,
)
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import (
    BusMessage,
    ConversationMeta,
    ConversationPage,
    ConversationType,
    ParticipantProfile,
    Topic,
)
from ..storage import IStorage

logger = get_logger(__name__)

CANONICAL_PARTICIPANT_SEPARATOR = "#"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def build_canonical_key(participant_ids: list[str], gig_id: str | None = None) -> str:
    """Key identifying a conversation by its sorted participants (and gig)."""
    base_key = CANONICAL_PARTICIPANT_SEPARATOR.join(sorted(participant_ids))
    return f"{base_key}|{gig_id}" if gig_id else base_key


class IConversationService(Protocol):
    """Mutations on conversations and profiles."""

    async def ensure_conversation(
        self,
        creator_id: str,
        type: ConversationType,
        title: str,
        participants: list[str],
        gig_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> ConversationMeta:
        """Create a conversation, or reuse the one with the same participants."""
        ...

    async def get_conversation(
        self, conversation_id: str, viewer_id: str
    ) -> ConversationMeta:
        """Fetch one conversation the viewer participates in."""
        ...

    async def record_activity(
        self, conversation_id: str, at: int | None = None
    ) -> ConversationMeta:
        """Move last_message_at forward."""
        ...

    async def archive_conversation(
        self, conversation_id: str, actor_id: str
    ) -> ConversationMeta:
        """Soft-archive a conversation for all participants."""
        ...

    async def save_profile(self, profile: ParticipantProfile) -> None:
        """Create or replace a public profile."""
        ...


class ConversationService:
    """Writes conversations and announces changes on the EventBus."""

    def __init__(self, storage: IStorage, event_bus: IEventBus):
        self._storage = storage
        self._event_bus = event_bus

    async def ensure_conversation(
        self,
        creator_id: str,
        type: ConversationType,
        title: str,
        participants: list[str],
        gig_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> ConversationMeta:
        """
        Create a conversation, or reuse the one with the same participants.

        The creator always participates. A conversation whose canonical key
        already exists gets its title and meta updated instead of being
        duplicated.
        """
        normalized = list(dict.fromkeys([*participants, creator_id]))
        canonical_key = build_canonical_key(normalized, gig_id)
        now = now_ms()

        existing = await self._storage.get_conversation_by_key(canonical_key)
        if existing:
            updates: dict[str, Any] = {}
            if title and existing.title != title:
                updates["title"] = title
            if meta:
                next_meta = {**(existing.meta or {}), **meta}
                if next_meta != (existing.meta or {}):
                    updates["meta"] = next_meta

            conversation = existing
            if updates:
                conversation = existing.model_copy(update=updates)
                await self._storage.update_conversation(conversation)

            await self._storage.link_participants(existing.id, normalized, now)

            if updates:
                await self._publish_change(conversation, "updated")
            return conversation

        conversation = ConversationMeta(
            id=str(uuid.uuid4()),
            type=type,
            title=title,
            participants=normalized,
            created_at=now,
            last_message_at=now,
            gig_id=gig_id,
            meta=meta,
        )
        await self._storage.insert_conversation(
            conversation, canonical_key=canonical_key, created_by=creator_id
        )
        await self._storage.link_participants(conversation.id, normalized, now)

        logger.info(
            "Conversation %s created by %s with %d participants",
            conversation.id,
            creator_id,
            len(normalized),
        )
        await self._publish_change(conversation, "created")
        return conversation

    async def get_conversation(
        self, conversation_id: str, viewer_id: str
    ) -> ConversationMeta:
        """Fetch one conversation; only its participants may read it."""
        conversation = await self._get(conversation_id)
        self._require_participant(conversation, viewer_id)
        return conversation

    async def record_activity(
        self, conversation_id: str, at: int | None = None
    ) -> ConversationMeta:
        """Move last_message_at forward."""
        conversation = await self._get(conversation_id)
        timestamp = at if at is not None else now_ms()

        updated = conversation.model_copy(
            update={"last_message_at": max(timestamp, conversation.last_message_at or 0)}
        )
        await self._storage.update_conversation(updated)
        await self._publish_change(updated, "activity")
        return updated

    async def archive_conversation(
        self, conversation_id: str, actor_id: str
    ) -> ConversationMeta:
        """Soft-archive a conversation for all participants."""
        conversation = await self._get(conversation_id)
        self._require_participant(conversation, actor_id)

        archived = conversation.model_copy(update={"archived_at": now_ms()})
        await self._storage.update_conversation(archived)
        await self._publish_change(archived, "archived")
        return archived

    async def save_profile(self, profile: ParticipantProfile) -> None:
        """Create or replace a public profile and announce it."""
        await self._storage.save_profile(profile)
        await self._event_bus.publish(
            BusMessage(
                id=str(uuid.uuid4()),
                topic=Topic.PROFILES,
                payload={"user_id": profile.id},
                source="conversation_service",
                timestamp=datetime.now(timezone.utc),
            )
        )

    async def _get(self, conversation_id: str) -> ConversationMeta:
        conversation = await self._storage.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    @staticmethod
    def _require_participant(conversation: ConversationMeta, user_id: str) -> None:
        if user_id not in conversation.participants:
            raise NotParticipantError(
                f"{user_id} is not a participant of {conversation.id}"
            )

    async def _publish_change(self, conversation: ConversationMeta, action: str) -> None:
        await self._event_bus.publish(
            BusMessage(
                id=str(uuid.uuid4()),
                topic=Topic.CONVERSATIONS,
                payload={
                    "conversation_id": conversation.id,
                    "participants": list(conversation.participants),
                    "action": action,
                },
                source="conversation_service",
                timestamp=datetime.now(timezone.utc),
            )
        )


class LocalConversationBackend:
    """Conversation backend for one viewer, answered from local Storage."""

    def __init__(self, storage: IStorage, event_bus: IEventBus, viewer_id: str):
        self._storage = storage
        self._event_bus = event_bus
        self._viewer_id = viewer_id

    @property
    def viewer_id(self) -> str:
        return self._viewer_id

    async def list_conversations_for_user(
        self, limit: int, cursor: str | None = None, gig_id: str | None = None
    ) -> ConversationPage:
        """Fetch one page of the viewer's conversations, optionally for one gig."""
        try:
            return await self._storage.list_conversations_for_user(
                self._viewer_id, limit=limit, cursor=cursor, gig_id=gig_id
            )
        except InboxError:
            raise
        except Exception as e:
            raise BackendError(f"Conversation query failed: {e}") from e

    async def subscribe_conversations_for_user(
        self, limit: int
    ) -> AsyncIterator[ConversationPage]:
        """
        Yield the newest page now and again after every change that touches
        the viewer: a conversation they participate in, or the profile of a
        participant on the last yielded page. Changes arriving while a
        snapshot is consumed collapse into one follow-up snapshot.
        """
        changed = asyncio.Event()
        visible_participants: set[str] = set()

        async def on_change(message: BusMessage) -> None:
            if self._viewer_id in message.payload.get("participants", []):
                changed.set()

        async def on_profile(message: BusMessage) -> None:
            if message.payload.get("user_id") in visible_participants:
                changed.set()

        self._event_bus.subscribe(Topic.CONVERSATIONS, on_change)
        self._event_bus.subscribe(Topic.PROFILES, on_profile)
        try:
            while True:
                page = await self.list_conversations_for_user(limit)
                visible_participants.clear()
                visible_participants.update(
                    participant_id
                    for conversation in page.items
                    for participant_id in conversation.participants
                    if participant_id != self._viewer_id
                )
                yield page
                await changed.wait()
                changed.clear()
        finally:
            self._event_bus.unsubscribe(Topic.CONVERSATIONS, on_change)
            self._event_bus.unsubscribe(Topic.PROFILES, on_profile)

    async def get_public_profiles(self, user_ids: list[str]) -> list[ParticipantProfile]:
        """Resolve public profiles for the given user ids."""
        try:
            return await self._storage.get_profiles(list(user_ids))
        except Exception as e:
            raise BackendError(f"Profile lookup failed: {e}") from e
