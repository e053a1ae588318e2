"""Catalog calls: movie lookup, trending stream, rating batches and live recommendations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterable, AsyncIterator

from ..config import Settings
from ..models import (
    MovieRecommendation,
    MovieResponse,
    TrendingMoviesRequest,
    UpdateRatingBatchResponse,
    UpdateRatingRequest,
    UserEventRequest,
)
from ..records import ActivityType, Movie
from ..stores.catalog import CatalogStore
from .calls import CallState
from .errors import NotFoundError

logger = logging.getLogger(__name__)

EVENT_MULTIPLIERS: dict[ActivityType, float] = {
    ActivityType.RATE: 1.2,
    ActivityType.WATCH: 1.1,
    ActivityType.BOOKMARK: 1.0,
}
DEFAULT_EVENT_MULTIPLIER = 0.8


def confidence_score(movie: Movie, event_type: ActivityType) -> float:
    """Scale the movie's rating into [0, 1] and weight it by the event's signal strength."""

    multiplier = EVENT_MULTIPLIERS.get(event_type, DEFAULT_EVENT_MULTIPLIER)
    return min(1.0, (movie.rating / 10.0) * multiplier)


def recommendation_reason(movie: Movie, event_type: ActivityType) -> str:
    if event_type is ActivityType.RATE:
        return f"recommended because you rated movies in the {movie.genre} genre"
    if event_type is ActivityType.WATCH:
        return f"recommended because you watched movies directed by {movie.director}"
    if event_type is ActivityType.BOOKMARK:
        return f"recommended because you bookmarked similar {movie.genre} movies"
    return f"recommended based on your interest in {movie.genre} movies"


@dataclass
class RatingBatch:
    """State of one rating-update call."""

    state: CallState = CallState.AWAITING_FIRST
    received: int = 0
    updated: int = 0


@dataclass
class RecommendationSession:
    """State of one recommendation call.

    ``preferred_genres`` lives only as long as the call and is never written
    back to a store.
    """

    state: CallState = CallState.AWAITING_FIRST
    preferred_genres: dict[int, str] = field(default_factory=dict)


class CatalogService:
    """Serves the four catalog calls on top of a :class:`CatalogStore`."""

    def __init__(self, settings: Settings, store: CatalogStore):
        self._settings = settings
        self._store = store

    @property
    def store(self) -> CatalogStore:
        return self._store

    async def get_movie(self, movie_id: int) -> MovieResponse:
        logger.info("Received request for movie with ID: %s", movie_id)
        movie = self._store.get_by_id(movie_id)
        if movie is None:
            logger.warning("Movie with ID %s not found", movie_id)
            raise NotFoundError(f"Movie with ID {movie_id} not found")
        return MovieResponse.from_record(movie)

    async def stream_trending(
        self, request: TrendingMoviesRequest
    ) -> AsyncIterator[MovieResponse]:
        """Yield trending movies in rank order, pacing messages apart.

        The pause between messages is an ``asyncio.sleep`` so a caller that
        stops consuming cancels the stream without waiting out the delay.
        """

        limit = request.limit if request.limit > 0 else self._settings.trending_default_limit
        genre = request.genre or None
        logger.info("Streaming trending movies. Limit: %s, Genre: %s", limit, genre)

        delay = self._settings.trending_stream_delay_seconds
        for index, movie in enumerate(self._store.trending(limit, genre)):
            if index and delay:
                await asyncio.sleep(delay)
            yield MovieResponse.from_record(movie)

    async def update_ratings(
        self, requests: AsyncIterable[UpdateRatingRequest]
    ) -> UpdateRatingBatchResponse:
        """Apply every inbound rating, then answer once with the number applied.

        An error raised by ``requests`` propagates and no response is produced.
        Ratings applied before the error stay applied.
        """

        batch = RatingBatch()
        try:
            async for request in requests:
                batch.state = CallState.ACCUMULATING
                batch.received += 1
                logger.info(
                    "Updating rating for movie ID: %s by user ID: %s with rating: %s",
                    request.movie_id,
                    request.user_id,
                    request.rating,
                )
                if await self._store.update_rating(
                    request.movie_id, request.user_id, request.rating
                ):
                    batch.updated += 1
        except Exception:
            batch.state = CallState.CLOSED
            logger.exception("Error while updating movie ratings")
            raise

        batch.state = CallState.FINALIZING
        logger.info(
            "Completed batch update of ratings. Updated %s of %s",
            batch.updated,
            batch.received,
        )
        response = UpdateRatingBatchResponse(
            updated_count=batch.updated, success=batch.updated > 0
        )
        batch.state = CallState.CLOSED
        return response

    async def personalized_recommendations(
        self, events: AsyncIterable[UserEventRequest]
    ) -> AsyncIterator[MovieRecommendation]:
        """Answer each user event with recommendations from the event movie's genre.

        Events for unknown movies produce nothing. The stream ends when
        ``events`` ends and re-raises any error it raises.
        """

        session = RecommendationSession()
        try:
            async for event in events:
                session.state = CallState.ACCUMULATING
                logger.info(
                    "Received event from user ID: %s, movie ID: %s, event type: %s",
                    event.user_id,
                    event.movie_id,
                    event.event_type.value,
                )
                movie = self._store.get_by_id(event.movie_id)
                if movie is None:
                    continue

                session.preferred_genres[event.user_id] = movie.genre
                recommendations = self._store.recommend_for_user(
                    session.preferred_genres[event.user_id]
                )
                for recommended in recommendations:
                    yield MovieRecommendation(
                        movie_id=recommended.id,
                        title=recommended.title,
                        confidence_score=confidence_score(recommended, event.event_type),
                        recommendation_reason=recommendation_reason(
                            recommended, event.event_type
                        ),
                    )
        except Exception:
            logger.exception("Error in personalized recommendations stream")
            raise
        finally:
            session.state = CallState.CLOSED
        logger.info("Completed personalized recommendations stream")
