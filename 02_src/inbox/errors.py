"""Exceptions raised across the inbox package."""


class InboxError(Exception):
    """Base class for inbox errors."""


class BackendError(InboxError, RuntimeError):
    """A call to the conversation backend failed."""


class InvalidCursorError(InboxError, ValueError):
    """A pagination cursor could not be decoded."""


class ConversationNotFoundError(InboxError, LookupError):
    """No conversation exists with the given id."""


class NotParticipantError(InboxError, PermissionError):
    """The acting user does not participate in the conversation."""
