from app.models import MovieResponse, UserActivityEvent, UserEventRequest, UserPreferenceRequest
from app.records import ActivityType, EventType, Movie


def test_movie_response_serialises_camel_case() -> None:
    movie = Movie(
        id=8,
        title="Fight Club",
        description="Soap",
        genre="Drama",
        year=1999,
        director="David Fincher",
        rating=8.8,
    )

    payload = MovieResponse.from_record(movie).to_payload()

    assert payload["movieId"] == 8
    assert payload["director"] == "David Fincher"
    assert "movie_id" not in payload


def test_messages_accept_snake_and_camel_case() -> None:
    camel = UserPreferenceRequest.model_validate(
        {"userId": 1, "preferenceKey": "genre", "preferenceValue": "Drama", "weight": 0.5}
    )
    snake = UserPreferenceRequest.model_validate(
        {"user_id": 1, "preference_key": "genre", "preference_value": "Drama", "weight": 0.5}
    )

    assert camel == snake


def test_event_kinds_translate_with_fallbacks() -> None:
    assert UserEventRequest(user_id=1, movie_id=2, event_type="watch").event_type is ActivityType.WATCH
    assert UserEventRequest(user_id=1, movie_id=2, event_type="LIKE").event_type is ActivityType.VIEW
    assert UserActivityEvent(user_id=1, event_type="finish").event_type is EventType.FINISH
    assert UserActivityEvent(user_id=1, event_type="HOVER").event_type is EventType.PAGE_VIEW
