"""Records held by the in-memory stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ActivityType(str, Enum):
    """Kinds of recorded user activity."""

    VIEW = "VIEW"
    RATE = "RATE"
    BOOKMARK = "BOOKMARK"
    WATCH = "WATCH"
    SHARE = "SHARE"

    @classmethod
    def parse(cls, value: "str | ActivityType") -> "ActivityType":
        """Translate a wire label, falling back to ``VIEW`` for unknown kinds."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.VIEW


class EventType(str, Enum):
    """Kinds of live events received on the activity-tracking stream."""

    PAGE_VIEW = "PAGE_VIEW"
    SEARCH = "SEARCH"
    CLICK = "CLICK"
    PLAY = "PLAY"
    PAUSE = "PAUSE"
    FINISH = "FINISH"
    RATE = "RATE"

    @classmethod
    def parse(cls, value: "str | EventType") -> "EventType":
        """Translate a wire label, falling back to ``PAGE_VIEW`` for unknown kinds."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.PAGE_VIEW


@dataclass
class Movie:
    id: int
    title: str
    description: str
    genre: str
    year: int
    director: str
    rating: float


@dataclass
class UserProfile:
    id: int
    username: str
    email: str
    favorite_genres: list[str] = field(default_factory=list)
    account_age_days: int = 0
    activity_level: int = 1


@dataclass
class UserActivity:
    """A single entry in a user's activity log.

    ``id`` is zero until the profile store assigns the next sequential value.
    """

    user_id: int
    movie_id: int
    movie_title: str
    activity_type: ActivityType
    timestamp: int
    id: int = 0


@dataclass
class UserPreference:
    user_id: int
    preference_key: str
    preference_value: str
    weight: float

    @property
    def label(self) -> str:
        return f"{self.preference_key}:{self.preference_value}"
