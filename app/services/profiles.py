"""Profile calls: lookup, activity history, preference batches and live insights."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterable, AsyncIterator

from ..config import Settings
from ..models import (
    RecordActivityRequest,
    UpdatePreferencesResponse,
    UserActivityEvent,
    UserActivityResponse,
    UserHistoryRequest,
    UserInsightResponse,
    UserPreferenceRequest,
    UserPreferenceResponse,
    UserProfileResponse,
)
from ..records import EventType, UserActivity, UserPreference
from ..stores.profiles import ProfileStore
from .calls import CallState
from .errors import NotFoundError
from .registry import SubscriberRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InsightRule:
    insight_type: str
    message: str
    payload_key: str
    confidence: float


INSIGHT_RULES: dict[EventType, InsightRule] = {
    EventType.PLAY: InsightRule("engagement", "User started watching content", "content", 0.8),
    EventType.PAUSE: InsightRule("engagement", "User paused content", "content", 0.7),
    EventType.FINISH: InsightRule("engagement", "User completed content", "content", 0.9),
    EventType.RATE: InsightRule("preference_shift", "User rated content", "content", 0.85),
    EventType.SEARCH: InsightRule("interest", "User searched for content", "query", 0.75),
}
DEFAULT_INSIGHT_TYPE = "activity"
DEFAULT_INSIGHT_CONFIDENCE = 0.6


def build_insight(event: UserActivityEvent) -> UserInsightResponse:
    """Derive the insight for one tracked event.

    ``insightData`` is a JSON object carrying a ``message`` plus either the
    event's own data string or, for kinds without a rule, the kind's label.
    """

    kind = EventType.parse(event.event_type)
    rule = INSIGHT_RULES.get(kind)
    if rule is None:
        insight_type = DEFAULT_INSIGHT_TYPE
        confidence = DEFAULT_INSIGHT_CONFIDENCE
        data = {"message": "User activity detected", "activity": kind.value}
    else:
        insight_type = rule.insight_type
        confidence = rule.confidence
        data = {"message": rule.message, rule.payload_key: event.event_data}
    return UserInsightResponse(
        user_id=event.user_id,
        insight_type=insight_type,
        insight_data=json.dumps(data, ensure_ascii=False),
        confidence_score=confidence,
    )


@dataclass
class PreferenceBatch:
    """State of one preference-update call.

    The user id of the first message applies to the whole batch.
    """

    state: CallState = CallState.AWAITING_FIRST
    user_id: int | None = None
    preferences: list[UserPreference] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)


@dataclass(eq=False)
class TrackingSession:
    """Outbound side of one activity-tracking call, as held by the registry."""

    state: CallState = CallState.AWAITING_FIRST
    user_id: int | None = None
    delivered: int = 0


class ProfileService:
    """Serves the four profile calls on top of a :class:`ProfileStore`."""

    def __init__(
        self,
        settings: Settings,
        store: ProfileStore,
        registry: SubscriberRegistry[TrackingSession] | None = None,
    ):
        self._settings = settings
        self._store = store
        self._registry: SubscriberRegistry[TrackingSession] = (
            registry if registry is not None else SubscriberRegistry()
        )

    @property
    def store(self) -> ProfileStore:
        return self._store

    @property
    def registry(self) -> SubscriberRegistry[TrackingSession]:
        return self._registry

    async def get_profile(self, user_id: int) -> UserProfileResponse:
        logger.info("Received request for user with ID: %s", user_id)
        profile = self._store.get_by_id(user_id)
        if profile is None:
            logger.warning("User with ID %s not found", user_id)
            raise NotFoundError(f"User with ID {user_id} not found")
        return UserProfileResponse.from_record(profile)

    async def stream_activity_history(
        self, request: UserHistoryRequest
    ) -> AsyncIterator[UserActivityResponse]:
        logger.info(
            "Streaming activity history for user %s. Limit: %s, since: %s",
            request.user_id,
            request.limit,
            request.since_timestamp,
        )
        for activity in self._store.activity_history(
            request.user_id, request.limit, request.since_timestamp
        ):
            yield UserActivityResponse.from_record(activity)

    async def record_activity(
        self, user_id: int, request: RecordActivityRequest
    ) -> UserActivityResponse:
        timestamp = request.timestamp
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        stored = self._store.record_activity(
            UserActivity(
                user_id=user_id,
                movie_id=request.movie_id,
                movie_title=request.movie_title,
                activity_type=request.activity_type,
                timestamp=timestamp,
            )
        )
        logger.info(
            "Recorded %s activity %s for user %s",
            stored.activity_type.value,
            stored.id,
            user_id,
        )
        return UserActivityResponse.from_record(stored)

    async def list_preferences(self, user_id: int) -> list[UserPreferenceResponse]:
        return [
            UserPreferenceResponse.from_record(preference)
            for preference in self._store.preferences_for_user(user_id)
        ]

    async def update_preferences(
        self, requests: AsyncIterable[UserPreferenceRequest]
    ) -> UpdatePreferencesResponse:
        """Buffer every inbound preference and apply them together at the end.

        Nothing is written if ``requests`` raises. Messages after the first
        are stored under the first message's user id without checking theirs.
        """

        batch = PreferenceBatch()
        try:
            async for request in requests:
                if batch.state is CallState.AWAITING_FIRST:
                    batch.user_id = request.user_id
                    batch.state = CallState.ACCUMULATING
                elif request.user_id != batch.user_id:
                    logger.warning(
                        "Preference for user %s recorded under batch user %s",
                        request.user_id,
                        batch.user_id,
                    )
                batch.preferences.append(
                    UserPreference(
                        user_id=batch.user_id,  # type: ignore[arg-type]
                        preference_key=request.preference_key,
                        preference_value=request.preference_value,
                        weight=request.weight,
                    )
                )
                batch.labels.append(f"{request.preference_key}:{request.preference_value}")
        except Exception as exc:
            batch.state = CallState.CLOSED
            logger.warning("Error updating user preferences: %s", exc)
            raise

        batch.state = CallState.FINALIZING
        updated_count = 0
        if batch.user_id is not None:
            updated_count = self._store.batch_upsert_preferences(
                batch.user_id, batch.preferences
            )
        logger.info(
            "Completed preference batch for user %s. Updated %s preferences",
            batch.user_id,
            updated_count,
        )
        batch.state = CallState.CLOSED
        return UpdatePreferencesResponse(
            updated_count=updated_count,
            success=updated_count > 0,
            updated_preferences=batch.labels,
        )

    async def track_activity(
        self, events: AsyncIterable[UserActivityEvent]
    ) -> AsyncIterator[UserInsightResponse]:
        """Turn each tracked event into one insight on this call's own stream.

        The call is registered under the first event's user id and released
        when the stream finishes, fails or is closed by the consumer.
        """

        session = TrackingSession()
        try:
            async for event in events:
                if session.state is CallState.AWAITING_FIRST:
                    session.user_id = event.user_id
                    self._registry.register(event.user_id, session)
                    session.state = CallState.ACCUMULATING
                insight = build_insight(event)
                session.delivered += 1
                yield insight
        except Exception as exc:
            logger.warning(
                "Error tracking user activity for user %s: %s", session.user_id, exc
            )
            raise
        finally:
            session.state = CallState.CLOSED
            if session.user_id is not None:
                self._registry.unregister(session.user_id, session)
        logger.info(
            "Completed activity tracking for user %s after %s insights",
            session.user_id,
            session.delivered,
        )
