"""Conversation backends consumed by the sidebar."""

from .base import IConversationBackend
from .http import HttpConversationBackend
from .local import (
    ConversationService,
    IConversationService,
    LocalConversationBackend,
    build_canonical_key,
    now_ms,
)

__all__ = [
    "IConversationBackend",
    "HttpConversationBackend",
    "LocalConversationBackend",
    "IConversationService",
    "ConversationService",
    "build_canonical_key",
    "now_ms",
]
