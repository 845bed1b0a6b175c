"""Participant profile cache."""

from collections import OrderedDict
from typing import Iterable

from ..models import ParticipantProfile


class ProfileCache:
    """Profiles resolved during a sidebar session, keyed by user id.

    Unbounded caches only ever grow for the lifetime of the session. With
    ``max_entries`` set, the oldest entries are evicted past the bound.
    """

    def __init__(self, max_entries: int | None = None):
        self._profiles: OrderedDict[str, ParticipantProfile] = OrderedDict()
        self._max_entries = max_entries
        self._version = 0

    @property
    def version(self) -> int:
        """Counter bumped whenever the cached profiles change."""
        return self._version

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def get(self, user_id: str) -> ParticipantProfile | None:
        return self._profiles.get(user_id)

    def missing(self, user_ids: Iterable[str]) -> list[str]:
        """Unique ids from ``user_ids`` that are not cached, in input order."""
        return [
            user_id
            for user_id in dict.fromkeys(user_ids)
            if user_id not in self._profiles
        ]

    def add_many(self, profiles: Iterable[ParticipantProfile]) -> int:
        """Add profiles; return how many entries changed."""
        changed = 0
        for profile in profiles:
            if self._profiles.get(profile.id) == profile:
                continue
            self._profiles[profile.id] = profile
            self._profiles.move_to_end(profile.id)
            changed += 1

        if self._max_entries is not None:
            while len(self._profiles) > self._max_entries:
                self._profiles.popitem(last=False)

        if changed:
            self._version += 1
        return changed

    def snapshot(self) -> dict[str, ParticipantProfile]:
        return dict(self._profiles)
