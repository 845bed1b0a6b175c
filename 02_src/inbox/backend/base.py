"""Conversation backend interface consumed by the sidebar."""

from typing import AsyncIterator, Protocol

from ..models import ConversationPage, ParticipantProfile


class IConversationBackend(Protocol):
    """Query and subscription API for one viewer's conversations."""

    async def list_conversations_for_user(
        self, limit: int, cursor: str | None = None, gig_id: str | None = None
    ) -> ConversationPage:
        """Fetch one page, starting after ``cursor`` when given, optionally for one gig."""
        ...

    def subscribe_conversations_for_user(
        self, limit: int
    ) -> AsyncIterator[ConversationPage]:
        """Live feed of newest-page snapshots (full pages, not deltas)."""
        ...

    async def get_public_profiles(
        self, user_ids: list[str]
    ) -> list[ParticipantProfile]:
        """Resolve public profiles for the given user ids."""
        ...
