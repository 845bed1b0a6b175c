"""Inbox sidebar: conversation list synchronization over a live backend."""

from .app import Application, IApplication
from .backend import (
    ConversationService,
    HttpConversationBackend,
    IConversationBackend,
    LocalConversationBackend,
)
from .errors import (
    BackendError,
    ConversationNotFoundError,
    InboxError,
    InvalidCursorError,
    NotParticipantError,
)
from .event_bus import EventBus, IEventBus
from .models import (
    BusMessage,
    ConversationMeta,
    ConversationPage,
    ConversationType,
    DisplayProfile,
    ParticipantProfile,
    Topic,
)
from .sidebar import (
    SidebarController,
    SidebarSession,
    SubscriptionFeedAdapter,
    merge_conversations,
)
from .storage import IStorage, Storage

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "ConversationMeta",
    "ConversationPage",
    "ConversationType",
    "ParticipantProfile",
    "DisplayProfile",
    "BusMessage",
    "Topic",
    # Errors
    "InboxError",
    "BackendError",
    "InvalidCursorError",
    "ConversationNotFoundError",
    "NotParticipantError",
    # Components
    "IStorage",
    "Storage",
    "IEventBus",
    "EventBus",
    "IConversationBackend",
    "LocalConversationBackend",
    "HttpConversationBackend",
    "ConversationService",
    # Sidebar
    "SidebarController",
    "SidebarSession",
    "SubscriptionFeedAdapter",
    "merge_conversations",
]
