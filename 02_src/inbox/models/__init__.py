"""Data models for the inbox sidebar."""

from .conversation import ConversationMeta, ConversationPage, ConversationType
from .events import BusMessage, Topic
from .profiles import DisplayProfile, ParticipantProfile

__all__ = [
    # Conversations
    "ConversationMeta",
    "ConversationPage",
    "ConversationType",
    # Profiles
    "ParticipantProfile",
    "DisplayProfile",
    # Events
    "BusMessage",
    "Topic",
]
