"""Participant profile models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ParticipantProfile:
    """Public profile of a conversation participant."""

    id: str
    name: str
    avatar_url: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "ParticipantProfile":
        return cls(
            id=payload["id"],
            name=payload["name"],
            avatar_url=payload.get("avatarUrl"),
        )

    def to_payload(self) -> dict:
        return {"id": self.id, "name": self.name, "avatarUrl": self.avatar_url}


@dataclass(frozen=True)
class DisplayProfile:
    """How a conversation is presented in the sidebar."""

    name: str
    initials: str
    avatar_url: str | None = None
    description: str | None = None
