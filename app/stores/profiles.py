"""In-memory user profiles, activity logs and preference tables."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace
from typing import Iterable

from ..records import UserActivity, UserPreference, UserProfile

logger = logging.getLogger(__name__)

PreferenceKey = tuple[str, str]


class ProfileStore:
    """Owns user profiles plus each user's activity log and preferences."""

    def __init__(self) -> None:
        self._users: dict[int, UserProfile] = {}
        self._activities: dict[int, list[UserActivity]] = {}
        self._preferences: dict[int, dict[PreferenceKey, UserPreference]] = {}
        self._activity_ids = itertools.count(1)
        self._id_lock = threading.Lock()

    def add_user(self, profile: UserProfile) -> None:
        self._users[profile.id] = profile

    def get_by_id(self, user_id: int) -> UserProfile | None:
        return self._users.get(user_id)

    def record_activity(self, activity: UserActivity) -> UserActivity:
        """Append ``activity`` to its user's log under the next sequential id."""

        with self._id_lock:
            activity_id = next(self._activity_ids)
        stored = replace(activity, id=activity_id)
        self._activities.setdefault(stored.user_id, []).append(stored)
        logger.debug("Stored activity %s for user %s", stored.id, stored.user_id)
        return stored

    def activity_history(
        self, user_id: int, limit: int, since_timestamp: int = 0
    ) -> list[UserActivity]:
        """Return the newest activities at or after ``since_timestamp``, newest first."""

        if limit <= 0:
            return []
        entries = [
            activity
            for activity in list(self._activities.get(user_id, ()))
            if activity.timestamp >= since_timestamp
        ]
        entries.sort(key=lambda activity: activity.timestamp, reverse=True)
        return entries[:limit]

    def upsert_preference(self, preference: UserPreference) -> UserPreference:
        table = self._preferences.setdefault(preference.user_id, {})
        table[(preference.preference_key, preference.preference_value)] = preference
        return preference

    def batch_upsert_preferences(
        self, user_id: int, preferences: Iterable[UserPreference]
    ) -> int:
        """Apply every preference under ``user_id`` and return how many were applied."""

        count = 0
        for preference in preferences:
            if preference.user_id != user_id:
                preference = replace(preference, user_id=user_id)
            self.upsert_preference(preference)
            count += 1
        return count

    def preferences_for_user(self, user_id: int) -> list[UserPreference]:
        return list(self._preferences.get(user_id, {}).values())
