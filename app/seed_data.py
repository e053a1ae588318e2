"""Sample movies, users, activities and preferences loaded at startup."""

from __future__ import annotations

import logging
import time

from .records import ActivityType, Movie, UserActivity, UserPreference, UserProfile
from .stores.catalog import CatalogStore
from .stores.profiles import ProfileStore

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

SAMPLE_MOVIES: tuple[tuple[int, str, str, float, str, int, str], ...] = (
    (1, "The Shawshank Redemption", "Two imprisoned men bond over a number of years", 9.3, "Drama", 1994, "Frank Darabont"),
    (2, "The Godfather", "The aging patriarch of an organized crime dynasty transfers control", 9.2, "Crime", 1972, "Francis Ford Coppola"),
    (3, "The Dark Knight", "The menace known as the Joker wreaks havoc on Gotham City", 9.0, "Action", 2008, "Christopher Nolan"),
    (4, "Inception", "A thief who steals corporate secrets through dream-sharing technology", 8.8, "Sci-Fi", 2010, "Christopher Nolan"),
    (5, "Pulp Fiction", "The lives of two mob hitmen, a boxer, a gangster and his wife", 8.9, "Crime", 1994, "Quentin Tarantino"),
    (6, "The Matrix", "A computer hacker learns about the true nature of reality", 8.7, "Sci-Fi", 1999, "Lana Wachowski"),
    (7, "Goodfellas", "The story of Henry Hill and his life in the mob", 8.7, "Crime", 1990, "Martin Scorsese"),
    (8, "Fight Club", "An insomniac office worker and a devil-may-care soapmaker form an underground fight club", 8.8, "Drama", 1999, "David Fincher"),
    (9, "Forrest Gump", "The presidencies of Kennedy and Johnson, the Vietnam War, and Watergate through the eyes of Forrest Gump", 8.8, "Drama", 1994, "Robert Zemeckis"),
    (10, "Interstellar", "A team of explorers travel through a wormhole in space", 8.6, "Sci-Fi", 2014, "Christopher Nolan"),
)


def sample_movies() -> list[Movie]:
    return [
        Movie(
            id=movie_id,
            title=title,
            description=description,
            rating=rating,
            genre=genre,
            year=year,
            director=director,
        )
        for movie_id, title, description, rating, genre, year, director in SAMPLE_MOVIES
    ]


def sample_users() -> list[UserProfile]:
    return [
        UserProfile(
            id=1,
            username="john_doe",
            email="john@example.com",
            favorite_genres=["Action", "Sci-Fi"],
            account_age_days=365,
            activity_level=8,
        ),
        UserProfile(
            id=2,
            username="jane_smith",
            email="jane@example.com",
            favorite_genres=["Drama", "Romance"],
            account_age_days=180,
            activity_level=5,
        ),
        UserProfile(
            id=3,
            username="bob_johnson",
            email="bob@example.com",
            favorite_genres=["Comedy", "Action"],
            account_age_days=90,
            activity_level=7,
        ),
    ]


def seed_catalog(store: CatalogStore) -> None:
    for movie in sample_movies():
        store.add_movie(movie)
    logger.info("Seeded %s sample movies", len(SAMPLE_MOVIES))


def seed_profiles(store: ProfileStore, *, now_ms: int | None = None) -> None:
    """Load the sample users along with activities timed relative to ``now_ms``."""

    now = now_ms if now_ms is not None else int(time.time() * 1000)
    users = sample_users()
    for profile in users:
        store.add_user(profile)

    store.record_activity(
        UserActivity(
            user_id=1,
            movie_id=1,
            movie_title="The Shawshank Redemption",
            activity_type=ActivityType.WATCH,
            timestamp=now - DAY_MS,
        )
    )
    store.record_activity(
        UserActivity(
            user_id=1,
            movie_id=3,
            movie_title="The Dark Knight",
            activity_type=ActivityType.RATE,
            timestamp=now - 12 * HOUR_MS,
        )
    )
    store.record_activity(
        UserActivity(
            user_id=2,
            movie_id=5,
            movie_title="Pulp Fiction",
            activity_type=ActivityType.BOOKMARK,
            timestamp=now - 2 * DAY_MS,
        )
    )

    store.upsert_preference(UserPreference(1, "genre", "Action", 0.8))
    store.upsert_preference(UserPreference(1, "director", "Christopher Nolan", 0.9))
    store.upsert_preference(UserPreference(2, "genre", "Drama", 0.7))
    logger.info("Seeded %s sample users", len(users))
