"""In-memory movie catalog with per-user rating ledgers."""

from __future__ import annotations

import asyncio
import logging
from statistics import fmean

from ..records import Movie

logger = logging.getLogger(__name__)

DEFAULT_RECOMMENDATION_LIMIT = 5


def _ranked(movies: list[Movie]) -> list[Movie]:
    # Equal ratings fall back to ascending id so repeated calls agree.
    return sorted(movies, key=lambda movie: (-movie.rating, movie.id))


def _matches_genre(movie: Movie, genre: str | None) -> bool:
    if not genre:
        return True
    return movie.genre.casefold() == genre.casefold()


class CatalogStore:
    """Owns the movie map and the rating ledger behind each movie's rating.

    The ledger maps ``movie_id -> {user_id: latest rating}``. A movie's rating
    is its seed value until the first rating arrives, then the mean of the
    ledger.
    """

    def __init__(self, *, recommendation_limit: int = DEFAULT_RECOMMENDATION_LIMIT):
        self._movies: dict[int, Movie] = {}
        self._ledgers: dict[int, dict[int, float]] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._recommendation_limit = recommendation_limit

    def __len__(self) -> int:
        return len(self._movies)

    def add_movie(self, movie: Movie) -> None:
        self._movies[movie.id] = movie

    def get_by_id(self, movie_id: int) -> Movie | None:
        return self._movies.get(movie_id)

    def trending(self, limit: int, genre: str | None = None) -> list[Movie]:
        """Return up to ``limit`` movies ranked by rating, optionally for one genre."""

        if limit <= 0:
            return []
        candidates = [
            movie for movie in list(self._movies.values()) if _matches_genre(movie, genre)
        ]
        return _ranked(candidates)[:limit]

    async def update_rating(self, movie_id: int, user_id: int, rating: float) -> bool:
        """Record ``user_id``'s rating and recompute the movie's mean rating.

        Returns ``False`` without side effects when the movie is unknown.
        Updates to one movie are serialised; different movies never wait on
        each other.
        """

        movie = self._movies.get(movie_id)
        if movie is None:
            return False

        lock = self._locks.setdefault(movie_id, asyncio.Lock())
        async with lock:
            ledger = self._ledgers.setdefault(movie_id, {})
            ledger[user_id] = float(rating)
            movie.rating = fmean(ledger.values())
        logger.debug(
            "Movie %s rating is now %.3f from %s ratings",
            movie_id,
            movie.rating,
            len(ledger),
        )
        return True

    def recommend_for_user(self, preferred_genre: str | None) -> list[Movie]:
        """Return the top-rated movies in ``preferred_genre`` (all genres when empty)."""

        candidates = [
            movie
            for movie in list(self._movies.values())
            if _matches_genre(movie, preferred_genre)
        ]
        return _ranked(candidates)[: self._recommendation_limit]
