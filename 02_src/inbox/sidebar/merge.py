"""Merge reconciler for conversation lists."""

from itertools import chain
from typing import Iterable

from ..models import ConversationMeta


def sort_key(conversation: ConversationMeta) -> tuple[int, int, str]:
    """Newest activity first; ties by newest creation, then by id."""
    return (
        -(conversation.last_message_at or 0),
        -conversation.created_at,
        conversation.id,
    )


def merge_conversations(
    current: Iterable[ConversationMeta],
    incoming: Iterable[ConversationMeta],
) -> list[ConversationMeta]:
    """
    Merge an incoming batch into the current list.

    Records are keyed by id. An incoming record whose id is already known
    overlays the fields it provides onto the existing record; anything else
    is inserted. The result holds each id once, sorted by ``sort_key``.
    Neither input has to be sorted or deduplicated.
    """
    merged: dict[str, ConversationMeta] = {}

    for item in chain(current, incoming):
        existing = merged.get(item.id)
        merged[item.id] = existing.overlay(item) if existing else item

    return sorted(merged.values(), key=sort_key)
