"""Async HTTP client for the catalog and profile routes."""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator, Iterable, TypeVar

import httpx
from pydantic import BaseModel

from ..models import (
    MovieResponse,
    UpdatePreferencesResponse,
    UpdateRatingBatchResponse,
    UpdateRatingRequest,
    UserActivityResponse,
    UserPreferenceRequest,
    UserProfileResponse,
    WireModel,
)
from ..utils import NDJSON_MEDIA_TYPE, parse_json_line, to_ndjson_line
from .errors import NotFoundError

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


async def _encode_messages(
    messages: Iterable[WireModel] | AsyncIterable[WireModel],
) -> AsyncIterator[bytes]:
    if hasattr(messages, "__aiter__"):
        async for message in messages:  # type: ignore[union-attr]
            yield to_ndjson_line(message.to_payload()).encode("utf-8")
    else:
        for message in messages:  # type: ignore[union-attr]
            yield to_ndjson_line(message.to_payload()).encode("utf-8")


class CineStreamClient:
    """Thin wrapper around the service's HTTP routes.

    Websocket calls are not covered; only the unary, server-streaming and
    client-streaming routes are.
    """

    def __init__(self, http_client: httpx.AsyncClient):
        self._client = http_client

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code == 404:
            detail = "Not found"
            try:
                detail = str(response.json().get("detail", detail))
            except ValueError:
                pass
            raise NotFoundError(detail)
        response.raise_for_status()

    async def _stream_lines(
        self, path: str, params: dict[str, object], model: type[ResponseT]
    ) -> AsyncIterator[ResponseT]:
        async with self._client.stream("GET", path, params=params) as response:
            if response.is_error:
                await response.aread()
            self._raise_for_status(response)
            async for line in response.aiter_lines():
                if line.strip():
                    yield model.model_validate(parse_json_line(line))

    async def _post_stream(
        self,
        path: str,
        messages: Iterable[WireModel] | AsyncIterable[WireModel],
        model: type[ResponseT],
    ) -> ResponseT:
        logger.debug("Streaming request messages to %s", path)
        response = await self._client.post(
            path,
            content=_encode_messages(messages),
            headers={"Content-Type": NDJSON_MEDIA_TYPE},
        )
        self._raise_for_status(response)
        return model.model_validate(response.json())

    async def get_movie(self, movie_id: int) -> MovieResponse:
        response = await self._client.get(f"/movies/{movie_id}")
        self._raise_for_status(response)
        return MovieResponse.model_validate(response.json())

    async def trending_movies(
        self, limit: int = 0, genre: str | None = None
    ) -> AsyncIterator[MovieResponse]:
        params: dict[str, object] = {"limit": limit}
        if genre:
            params["genre"] = genre
        async for movie in self._stream_lines("/movies/trending", params, MovieResponse):
            yield movie

    async def update_ratings(
        self,
        ratings: Iterable[UpdateRatingRequest] | AsyncIterable[UpdateRatingRequest],
    ) -> UpdateRatingBatchResponse:
        return await self._post_stream(
            "/movies/ratings", ratings, UpdateRatingBatchResponse
        )

    async def get_profile(self, user_id: int) -> UserProfileResponse:
        response = await self._client.get(f"/users/{user_id}")
        self._raise_for_status(response)
        return UserProfileResponse.model_validate(response.json())

    async def activity_history(
        self, user_id: int, limit: int = 0, since_timestamp: int = 0
    ) -> AsyncIterator[UserActivityResponse]:
        params: dict[str, object] = {"limit": limit, "since": since_timestamp}
        async for activity in self._stream_lines(
            f"/users/{user_id}/activity", params, UserActivityResponse
        ):
            yield activity

    async def update_preferences(
        self,
        preferences: Iterable[UserPreferenceRequest]
        | AsyncIterable[UserPreferenceRequest],
    ) -> UpdatePreferencesResponse:
        return await self._post_stream(
            "/users/preferences", preferences, UpdatePreferencesResponse
        )
