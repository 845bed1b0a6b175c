"""API route factories."""

from .control import create_control_router
from .conversations import create_conversations_router
from .profiles import create_profiles_router

__all__ = [
    "create_control_router",
    "create_conversations_router",
    "create_profiles_router",
]
