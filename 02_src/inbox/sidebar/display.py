"""Display projections for sidebar entries."""

import math
from datetime import datetime, timezone
from typing import Mapping

from ..logging_config import get_logger
from ..models import ConversationMeta, DisplayProfile, ParticipantProfile

logger = get_logger(__name__)

_SECOND = 1
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_MONTH = 30 * _DAY
_YEAR = 365 * _DAY


def get_initials(name: str, max_initials: int = 2) -> str:
    """Upper-cased first letters of the first ``max_initials`` words."""
    return "".join(part[:1].upper() for part in name.split(" ")[:max_initials])


def derive_display_profile(
    conversation: ConversationMeta,
    viewer_id: str,
    profiles: Mapping[str, ParticipantProfile],
    viewer_fallback: ParticipantProfile | None = None,
) -> DisplayProfile:
    """
    Build the name, initials and avatar shown for a conversation.

    The first participant other than the viewer represents the conversation;
    further participants are summarized as ``+N``. A conversation with nobody
    but the viewer falls back to the viewer's own profile.
    """
    others = [pid for pid in conversation.participants if pid != viewer_id]

    if others:
        primary = profiles.get(others[0])
        extra = len(others) - 1
        base_name = primary.name if primary else "Conversation"
        name = f"{base_name} +{extra}" if extra > 0 else base_name

        description = None
        if extra > 0:
            suffix = "" if extra == 1 else "s"
            description = f"Includes {extra} other participant{suffix}"

        return DisplayProfile(
            name=name,
            initials=get_initials(name) or "??",
            avatar_url=primary.avatar_url if primary else None,
            description=description,
        )

    fallback = viewer_fallback or ParticipantProfile(
        id=viewer_id, name=conversation.title, avatar_url=None
    )
    return DisplayProfile(
        name=fallback.name,
        initials=get_initials(fallback.name) or "YOU",
        avatar_url=fallback.avatar_url,
    )


def _format_distance(moment: datetime, reference: datetime) -> str:
    delta = (moment - reference).total_seconds()
    distance = abs(delta)

    if distance < _MINUTE:
        unit, size = "second", _SECOND
    elif distance < _HOUR:
        unit, size = "minute", _MINUTE
    elif distance < _DAY:
        unit, size = "hour", _HOUR
    elif distance < _MONTH:
        unit, size = "day", _DAY
    elif distance < _YEAR:
        unit, size = "month", _MONTH
    else:
        unit, size = "year", _YEAR

    value = math.floor(distance / size + 0.5)
    text = f"{value} {unit}" if value == 1 else f"{value} {unit}s"
    return f"in {text}" if delta > 0 else f"{text} ago"


def resolve_timestamp_label(
    timestamp: int | None, now: datetime | None = None
) -> str:
    """Relative label such as "5 minutes ago"; empty when unavailable."""
    if not timestamp:
        return ""

    try:
        moment = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
        return _format_distance(moment, now or datetime.now(timezone.utc))
    except (TypeError, ValueError, OverflowError, OSError) as e:
        logger.warning("Failed to format timestamp %r: %s", timestamp, e)
        return ""


def activity_label(conversation: ConversationMeta, now: datetime | None = None) -> str:
    """Label for the latest activity, falling back to the creation time."""
    timestamp = (
        conversation.last_message_at
        if conversation.last_message_at is not None
        else conversation.created_at
    )
    return resolve_timestamp_label(timestamp, now)
