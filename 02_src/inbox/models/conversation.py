"""Conversation data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ConversationType(str, Enum):
    """Category of a conversation."""

    APPLICATION = "application"
    CONTRACT = "contract"
    SUPPORT = "support"
    MENTOR = "mentor"
    DIRECT = "direct"


class ConversationMeta(BaseModel):
    """Metadata of one conversation as listed in the sidebar.

    A record validated from a partial payload only carries the fields that
    were provided (``model_fields_set``). Those are the fields that overlay
    an existing record with the same id when lists are merged.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str
    title: str = ""
    type: ConversationType = ConversationType.DIRECT
    participants: list[str] = Field(default_factory=list)
    created_at: int = 0  # epoch ms
    last_message_at: int | None = None  # epoch ms, None until a message is sent
    gig_id: str | None = None
    meta: dict[str, Any] | None = None
    archived_at: int | None = None

    @field_validator("participants")
    @classmethod
    def _unique_participants(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    def overlay(self, patch: "ConversationMeta") -> "ConversationMeta":
        """Return a copy with the fields provided by ``patch`` applied."""
        return self.model_copy(update=patch.model_dump(exclude_unset=True))

    def to_payload(self) -> dict[str, Any]:
        """Serialize using wire (camelCase) field names."""
        return self.model_dump(by_alias=True, mode="json")


@dataclass
class ConversationPage:
    """One page of conversations plus its pagination metadata."""

    items: list[ConversationMeta] = field(default_factory=list)
    cursor: str | None = None
    is_done: bool = False

    @classmethod
    def from_payload(cls, payload: dict) -> "ConversationPage":
        """Parse a ``{items, cursor, isDone}`` payload."""
        return cls(
            items=[
                ConversationMeta.model_validate(item)
                for item in payload.get("items", [])
            ],
            cursor=payload.get("cursor"),
            is_done=bool(payload.get("isDone", False)),
        )

    def to_payload(self) -> dict:
        return {
            "items": [item.to_payload() for item in self.items],
            "cursor": self.cursor,
            "isDone": self.is_done,
        }
