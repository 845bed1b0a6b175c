"""Tests for data models."""

import pytest
from pydantic import ValidationError

from inbox.models import (
    ConversationMeta,
    ConversationPage,
    ConversationType,
    ParticipantProfile,
)


class TestConversationMeta:
    """Tests for ConversationMeta model."""

    def test_defaults(self):
        """Test that only the id is required."""
        conversation = ConversationMeta(id="c1")

        assert conversation.title == ""
        assert conversation.type == ConversationType.DIRECT
        assert conversation.participants == []
        assert conversation.last_message_at is None

    def test_wire_aliases(self):
        """Test that camelCase payloads validate."""
        conversation = ConversationMeta.model_validate(
            {"id": "c1", "lastMessageAt": 5, "createdAt": 2, "gigId": "g1", "type": "contract"}
        )

        assert conversation.last_message_at == 5
        assert conversation.created_at == 2
        assert conversation.gig_id == "g1"
        assert conversation.type == ConversationType.CONTRACT

    def test_payload_uses_aliases(self):
        payload = ConversationMeta(id="c1", last_message_at=5).to_payload()

        assert payload["lastMessageAt"] == 5
        assert payload["type"] == "direct"
        assert "last_message_at" not in payload

    def test_participants_deduplicated(self):
        conversation = ConversationMeta(id="c1", participants=["a", "b", "a"])

        assert conversation.participants == ["a", "b"]

    def test_frozen(self):
        conversation = ConversationMeta(id="c1")

        with pytest.raises(ValidationError):
            conversation.title = "changed"

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            ConversationMeta(id="c1", type="broadcast")

    def test_overlay_applies_only_provided_fields(self):
        """Test that a partial record overlays without erasing fields."""
        base = ConversationMeta(id="c1", title="Old", last_message_at=5, participants=["a"])
        patch = ConversationMeta.model_validate({"id": "c1", "lastMessageAt": 9})

        merged = base.overlay(patch)

        assert merged.title == "Old"
        assert merged.participants == ["a"]
        assert merged.last_message_at == 9
        assert base.last_message_at == 5

    def test_overlay_can_clear_a_field(self):
        """Test that an explicitly provided None is applied."""
        base = ConversationMeta(id="c1", archived_at=5)
        patch = ConversationMeta(id="c1", archived_at=None)

        assert base.overlay(patch).archived_at is None


class TestConversationPage:
    """Tests for ConversationPage."""

    def test_from_payload(self):
        page = ConversationPage.from_payload(
            {"items": [{"id": "c1", "lastMessageAt": 3}], "cursor": "x", "isDone": True}
        )

        assert page.items[0].last_message_at == 3
        assert page.cursor == "x"
        assert page.is_done is True

    def test_from_empty_payload(self):
        page = ConversationPage.from_payload({})

        assert page.items == []
        assert page.cursor is None
        assert page.is_done is False

    def test_to_payload(self):
        page = ConversationPage(items=[ConversationMeta(id="c1")], cursor="x", is_done=False)

        payload = page.to_payload()

        assert payload["items"][0]["id"] == "c1"
        assert payload["cursor"] == "x"
        assert payload["isDone"] is False


class TestParticipantProfile:
    """Tests for ParticipantProfile."""

    def test_payload(self):
        profile = ParticipantProfile.from_payload({"id": "u1", "name": "Ann", "avatarUrl": "a.png"})

        assert profile.avatar_url == "a.png"
        assert profile.to_payload() == {"id": "u1", "name": "Ann", "avatarUrl": "a.png"}

    def test_missing_avatar(self):
        profile = ParticipantProfile.from_payload({"id": "u1", "name": "Ann"})

        assert profile.avatar_url is None
