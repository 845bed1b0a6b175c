"""Sidebar list synchronization: merge, pagination, live feed and controller."""

from .controller import ISidebarController, SidebarController, SidebarView
from .display import (
    activity_label,
    derive_display_profile,
    get_initials,
    resolve_timestamp_label,
)
from .feed import SubscriptionFeedAdapter
from .merge import merge_conversations, sort_key
from .pagination import PaginationCursor
from .profiles import ProfileCache
from .session import SidebarSession
from .state import ListState

__all__ = [
    "ISidebarController",
    "SidebarController",
    "SidebarView",
    "SidebarSession",
    "SubscriptionFeedAdapter",
    "ListState",
    "PaginationCursor",
    "ProfileCache",
    "merge_conversations",
    "sort_key",
    "derive_display_profile",
    "get_initials",
    "resolve_timestamp_label",
    "activity_label",
]
