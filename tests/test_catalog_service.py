from __future__ import annotations

import asyncio
import time

import pytest

from app.models import (
    TrendingMoviesRequest,
    UpdateRatingRequest,
    UserEventRequest,
)
from app.records import ActivityType, Movie
from app.services.catalog import confidence_score, recommendation_reason
from app.services.errors import NotFoundError

from helpers import collect, failing_messages, make_catalog_service, messages


def _movie(rating: float, genre: str = "Drama", director: str = "Someone") -> Movie:
    return Movie(
        id=1,
        title="Example",
        description="",
        genre=genre,
        year=2000,
        director=director,
        rating=rating,
    )


def test_confidence_score_weights_event_kinds() -> None:
    assert confidence_score(_movie(9.0), ActivityType.RATE) == pytest.approx(1.0)
    assert confidence_score(_movie(5.0), ActivityType.WATCH) == pytest.approx(0.55)
    assert confidence_score(_movie(5.0), ActivityType.BOOKMARK) == pytest.approx(0.5)
    assert confidence_score(_movie(5.0), ActivityType.VIEW) == pytest.approx(0.4)
    assert confidence_score(_movie(5.0), ActivityType.SHARE) == pytest.approx(0.4)


def test_recommendation_reason_templates() -> None:
    movie = _movie(8.0, genre="Sci-Fi", director="Christopher Nolan")

    assert (
        recommendation_reason(movie, ActivityType.RATE)
        == "recommended because you rated movies in the Sci-Fi genre"
    )
    assert (
        recommendation_reason(movie, ActivityType.WATCH)
        == "recommended because you watched movies directed by Christopher Nolan"
    )
    assert (
        recommendation_reason(movie, ActivityType.BOOKMARK)
        == "recommended because you bookmarked similar Sci-Fi movies"
    )
    assert (
        recommendation_reason(movie, ActivityType.VIEW)
        == "recommended based on your interest in Sci-Fi movies"
    )


def test_get_movie_returns_full_record() -> None:
    service = make_catalog_service()

    movie = asyncio.run(service.get_movie(3))

    assert movie.title == "The Dark Knight"
    assert movie.director == "Christopher Nolan"
    assert movie.to_payload()["movieId"] == 3


def test_get_movie_unknown_id_raises_not_found() -> None:
    service = make_catalog_service()

    with pytest.raises(NotFoundError, match="Movie with ID 77 not found"):
        asyncio.run(service.get_movie(77))


def test_stream_trending_uses_default_limit_for_non_positive_values() -> None:
    service = make_catalog_service(TRENDING_DEFAULT_LIMIT=4)

    movies = asyncio.run(collect(service.stream_trending(TrendingMoviesRequest(limit=0))))

    assert [movie.movie_id for movie in movies] == [1, 2, 3, 5]


def test_stream_trending_with_genre() -> None:
    service = make_catalog_service()

    movies = asyncio.run(
        collect(service.stream_trending(TrendingMoviesRequest(limit=2, genre="drama")))
    )

    assert [movie.title for movie in movies] == ["The Shawshank Redemption", "Fight Club"]


def test_stream_trending_stops_promptly_when_cancelled() -> None:
    service = make_catalog_service(TRENDING_STREAM_DELAY_MS=5_000)

    async def scenario() -> float:
        stream = service.stream_trending(TrendingMoviesRequest(limit=5))
        first = await stream.__anext__()
        assert first.movie_id == 1

        started = time.monotonic()
        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0.05)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        return time.monotonic() - started

    assert asyncio.run(scenario()) < 1.0


def test_update_ratings_counts_successful_updates() -> None:
    service = make_catalog_service()
    requests = [
        UpdateRatingRequest(movie_id=1, user_id=10, rating=8.0),
        UpdateRatingRequest(movie_id=1, user_id=11, rating=10.0),
        UpdateRatingRequest(movie_id=999, user_id=10, rating=1.0),
    ]

    response = asyncio.run(service.update_ratings(messages(requests)))

    assert response.updated_count == 2
    assert response.success is True
    assert service.store.get_by_id(1).rating == pytest.approx(9.0)


def test_update_ratings_with_only_unknown_movies_reports_failure() -> None:
    service = make_catalog_service()

    response = asyncio.run(
        service.update_ratings(
            messages([UpdateRatingRequest(movie_id=500, user_id=1, rating=3.0)])
        )
    )

    assert response.updated_count == 0
    assert response.success is False


def test_update_ratings_propagates_inbound_error() -> None:
    service = make_catalog_service()
    inbound = failing_messages(
        [UpdateRatingRequest(movie_id=2, user_id=1, rating=5.0)],
        RuntimeError("client went away"),
    )

    with pytest.raises(RuntimeError, match="client went away"):
        asyncio.run(service.update_ratings(inbound))

    # Ratings applied before the failure are kept.
    assert service.store.get_by_id(2).rating == pytest.approx(5.0)


def test_personalized_recommendations_follow_event_movie_genre() -> None:
    service = make_catalog_service()
    events = [
        UserEventRequest(user_id=1, movie_id=3, event_type=ActivityType.RATE),
        UserEventRequest(user_id=1, movie_id=404, event_type=ActivityType.VIEW),
        UserEventRequest(user_id=1, movie_id=2, event_type=ActivityType.WATCH),
    ]

    recommendations = asyncio.run(
        collect(service.personalized_recommendations(messages(events)))
    )

    assert [item.movie_id for item in recommendations] == [3, 2, 5, 7]
    dark_knight = recommendations[0]
    assert dark_knight.confidence_score == pytest.approx(1.0)
    assert (
        dark_knight.recommendation_reason
        == "recommended because you rated movies in the Action genre"
    )
    pulp_fiction = recommendations[2]
    assert pulp_fiction.confidence_score == pytest.approx(0.89 * 1.1)
    assert (
        pulp_fiction.recommendation_reason
        == "recommended because you watched movies directed by Quentin Tarantino"
    )


def test_personalized_recommendations_unknown_event_kind_scores_as_view() -> None:
    service = make_catalog_service()
    event = UserEventRequest.model_validate(
        {"userId": 4, "movieId": 10, "eventType": "SOMETHING_NEW"}
    )

    recommendations = asyncio.run(
        collect(service.personalized_recommendations(messages([event])))
    )

    assert event.event_type is ActivityType.VIEW
    assert [item.movie_id for item in recommendations] == [4, 6, 10]
    assert recommendations[0].confidence_score == pytest.approx(0.88 * 0.8)


def test_personalized_recommendations_propagate_inbound_error() -> None:
    service = make_catalog_service()
    inbound = failing_messages(
        [UserEventRequest(user_id=1, movie_id=3, event_type=ActivityType.BOOKMARK)],
        ValueError("bad frame"),
    )

    async def scenario() -> list[int]:
        received: list[int] = []
        with pytest.raises(ValueError, match="bad frame"):
            async for item in service.personalized_recommendations(inbound):
                received.append(item.movie_id)
        return received

    assert asyncio.run(scenario()) == [3]
