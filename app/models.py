"""Pydantic models describing the request and response messages of each call."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .records import (
    ActivityType,
    EventType,
    Movie,
    UserActivity,
    UserPreference,
    UserProfile,
)


class WireModel(BaseModel):
    """Base for messages exchanged with callers.

    Fields serialise with camelCase names and accept either spelling on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)


class MovieResponse(WireModel):
    movie_id: int
    title: str
    description: str
    rating: float
    genre: str
    year: int
    director: str

    @classmethod
    def from_record(cls, movie: Movie) -> "MovieResponse":
        return cls(
            movie_id=movie.id,
            title=movie.title,
            description=movie.description,
            rating=movie.rating,
            genre=movie.genre,
            year=movie.year,
            director=movie.director,
        )


class TrendingMoviesRequest(WireModel):
    """Parameters for the trending stream. A non-positive limit means "use the default"."""

    limit: int = 0
    genre: str | None = None


class UpdateRatingRequest(WireModel):
    movie_id: int
    user_id: int
    rating: float


class UpdateRatingBatchResponse(WireModel):
    updated_count: int
    success: bool


class UserEventRequest(WireModel):
    user_id: int
    movie_id: int
    event_type: ActivityType

    @field_validator("event_type", mode="before")
    @classmethod
    def _translate_event_type(cls, value: object) -> ActivityType:
        return ActivityType.parse(value)  # type: ignore[arg-type]


class MovieRecommendation(WireModel):
    movie_id: int
    title: str
    confidence_score: float
    recommendation_reason: str


class UserProfileResponse(WireModel):
    user_id: int
    username: str
    email: str
    favorite_genres: list[str] = Field(default_factory=list)
    account_age_days: int
    activity_level: int

    @classmethod
    def from_record(cls, profile: UserProfile) -> "UserProfileResponse":
        return cls(
            user_id=profile.id,
            username=profile.username,
            email=profile.email,
            favorite_genres=list(profile.favorite_genres),
            account_age_days=profile.account_age_days,
            activity_level=profile.activity_level,
        )


class UserHistoryRequest(WireModel):
    user_id: int
    limit: int = 0
    since_timestamp: int = 0


class UserActivityResponse(WireModel):
    activity_id: int
    user_id: int
    movie_id: int
    movie_title: str
    activity_type: ActivityType
    timestamp: int

    @classmethod
    def from_record(cls, activity: UserActivity) -> "UserActivityResponse":
        return cls(
            activity_id=activity.id,
            user_id=activity.user_id,
            movie_id=activity.movie_id,
            movie_title=activity.movie_title,
            activity_type=activity.activity_type,
            timestamp=activity.timestamp,
        )


class RecordActivityRequest(WireModel):
    """Body for recording a new activity. ``timestamp`` defaults to the current time."""

    movie_id: int
    movie_title: str = ""
    activity_type: ActivityType
    timestamp: int | None = None


class UserPreferenceRequest(WireModel):
    user_id: int
    preference_key: str
    preference_value: str
    weight: float = 0.0


class UserPreferenceResponse(WireModel):
    user_id: int
    preference_key: str
    preference_value: str
    weight: float

    @classmethod
    def from_record(cls, preference: UserPreference) -> "UserPreferenceResponse":
        return cls(
            user_id=preference.user_id,
            preference_key=preference.preference_key,
            preference_value=preference.preference_value,
            weight=preference.weight,
        )


class UpdatePreferencesResponse(WireModel):
    updated_count: int
    success: bool
    updated_preferences: list[str] = Field(default_factory=list)


class UserActivityEvent(WireModel):
    user_id: int
    event_type: EventType
    event_data: str = ""
    timestamp: int = 0

    @field_validator("event_type", mode="before")
    @classmethod
    def _translate_event_type(cls, value: object) -> EventType:
        return EventType.parse(value)  # type: ignore[arg-type]


class UserInsightResponse(WireModel):
    user_id: int
    insight_type: str
    insight_data: str
    confidence_score: float
