"""Entry point for the FastAPI-powered catalog and profile services."""

from __future__ import annotations

import json
import logging
from contextlib import aclosing, asynccontextmanager
from typing import Any, AsyncIterator, TypeVar

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ValidationError
from starlette.websockets import WebSocketState

from .config import Settings, settings
from .models import (
    RecordActivityRequest,
    TrendingMoviesRequest,
    UpdateRatingRequest,
    UserActivityEvent,
    UserEventRequest,
    UserHistoryRequest,
    UserPreferenceRequest,
    WireModel,
)
from .seed_data import seed_catalog, seed_profiles
from .services.catalog import CatalogService
from .services.errors import NotFoundError
from .services.profiles import ProfileService
from .stores.catalog import CatalogStore
from .stores.profiles import ProfileStore
from .utils import NDJSON_MEDIA_TYPE, iter_ndjson, to_ndjson_line

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

MessageT = TypeVar("MessageT", bound=BaseModel)

# Close codes from RFC 6455.
CLOSE_NORMAL = 1000
CLOSE_INVALID_PAYLOAD = 1007
CLOSE_REASON_LIMIT = 120

app: FastAPI


def build_services(config: Settings) -> tuple[CatalogService, ProfileService]:
    """Create the stores and the services that own them."""

    catalog_store = CatalogStore(recommendation_limit=config.recommendation_limit)
    profile_store = ProfileStore()
    if config.seed_sample_data:
        seed_catalog(catalog_store)
        seed_profiles(profile_store)
    return CatalogService(config, catalog_store), ProfileService(config, profile_store)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    catalog_service, profile_service = build_services(settings)
    fastapi_app.state.catalog_service = catalog_service
    fastapi_app.state.profile_service = profile_service
    logger.info(
        "%s ready with %s movies", settings.app_name, len(catalog_service.store)
    )
    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        open_streams = profile_service.registry.active_users()
        if open_streams:
            logger.warning("Shutting down with open tracking streams for %s", open_streams)


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Movie catalog and user profile calls over HTTP streams and websockets",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_catalog_service(app: FastAPI) -> CatalogService:
    service = getattr(app.state, "catalog_service", None)
    if not isinstance(service, CatalogService):
        raise RuntimeError("Catalog service not initialised")
    return service


def get_profile_service(app: FastAPI) -> ProfileService:
    service = getattr(app.state, "profile_service", None)
    if not isinstance(service, ProfileService):
        raise RuntimeError("Profile service not initialised")
    return service


async def _request_messages(
    request: Request, model: type[MessageT]
) -> AsyncIterator[MessageT]:
    """Decode a streamed NDJSON request body one message at a time."""

    async for payload in iter_ndjson(request.stream()):
        yield model.model_validate(payload)


async def _ndjson_stream(messages: AsyncIterator[WireModel]) -> AsyncIterator[str]:
    async with aclosing(messages) as stream:
        async for message in stream:
            yield to_ndjson_line(message.to_payload())


async def _socket_messages(
    websocket: WebSocket, model: type[MessageT]
) -> AsyncIterator[MessageT]:
    """Read inbound frames until the client half-closes or disconnects.

    A ``{"complete": true}`` frame ends the inbound side gracefully. Binary
    frames are rejected as invalid payloads.
    """

    while True:
        frame = await websocket.receive()
        if frame["type"] == "websocket.disconnect":
            return
        text = frame.get("text")
        if text is None:
            raise ValueError("Expected a JSON text frame")
        payload: Any = json.loads(text)
        if isinstance(payload, dict) and payload.get("complete") is True:
            return
        yield model.model_validate(payload)


async def _pump_socket(
    websocket: WebSocket, outbound: AsyncIterator[WireModel]
) -> None:
    """Send every outbound message, then close the socket to match the inbound side."""

    async with aclosing(outbound) as stream:
        try:
            async for message in stream:
                await websocket.send_json(message.to_payload())
        except WebSocketDisconnect:
            return
        except ValueError as exc:
            if websocket.client_state is not WebSocketState.DISCONNECTED:
                await websocket.close(
                    code=CLOSE_INVALID_PAYLOAD, reason=str(exc)[:CLOSE_REASON_LIMIT]
                )
            return
    if websocket.client_state is not WebSocketState.DISCONNECTED:
        await websocket.close(code=CLOSE_NORMAL)


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/movies/trending")
    async def trending_movies(
        limit: int = 0, genre: str | None = None
    ) -> StreamingResponse:
        service = get_catalog_service(fastapi_app)
        request = TrendingMoviesRequest(limit=limit, genre=genre)
        return StreamingResponse(
            _ndjson_stream(service.stream_trending(request)),
            media_type=NDJSON_MEDIA_TYPE,
        )

    @fastapi_app.get("/movies/{movie_id}")
    async def get_movie(movie_id: int) -> JSONResponse:
        service = get_catalog_service(fastapi_app)
        try:
            movie = await service.get_movie(movie_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return JSONResponse(movie.to_payload())

    @fastapi_app.post("/movies/ratings")
    async def update_movie_ratings(request: Request) -> JSONResponse:
        service = get_catalog_service(fastapi_app)
        try:
            response = await service.update_ratings(
                _request_messages(request, UpdateRatingRequest)
            )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse(response.to_payload())

    @fastapi_app.websocket("/movies/recommendations")
    async def personalized_recommendations(websocket: WebSocket) -> None:
        service = get_catalog_service(fastapi_app)
        await websocket.accept()
        await _pump_socket(
            websocket,
            service.personalized_recommendations(
                _socket_messages(websocket, UserEventRequest)
            ),
        )

    @fastapi_app.post("/users/preferences")
    async def update_user_preferences(request: Request) -> JSONResponse:
        service = get_profile_service(fastapi_app)
        try:
            response = await service.update_preferences(
                _request_messages(request, UserPreferenceRequest)
            )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse(response.to_payload())

    @fastapi_app.websocket("/users/activity/track")
    async def track_user_activity(websocket: WebSocket) -> None:
        service = get_profile_service(fastapi_app)
        await websocket.accept()
        await _pump_socket(
            websocket,
            service.track_activity(_socket_messages(websocket, UserActivityEvent)),
        )

    @fastapi_app.get("/users/{user_id}")
    async def get_user_profile(user_id: int) -> JSONResponse:
        service = get_profile_service(fastapi_app)
        try:
            profile = await service.get_profile(user_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return JSONResponse(profile.to_payload())

    @fastapi_app.get("/users/{user_id}/activity")
    async def user_activity_history(
        user_id: int, limit: int = 0, since: int = 0
    ) -> StreamingResponse:
        service = get_profile_service(fastapi_app)
        request = UserHistoryRequest(user_id=user_id, limit=limit, since_timestamp=since)
        return StreamingResponse(
            _ndjson_stream(service.stream_activity_history(request)),
            media_type=NDJSON_MEDIA_TYPE,
        )

    @fastapi_app.post("/users/{user_id}/activities")
    async def record_user_activity(user_id: int, request: Request) -> JSONResponse:
        service = get_profile_service(fastapi_app)
        try:
            payload = await request.json()
            body = RecordActivityRequest.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid payload") from exc
        activity = await service.record_activity(user_id, body)
        return JSONResponse(activity.to_payload(), status_code=201)

    @fastapi_app.get("/users/{user_id}/preferences")
    async def user_preferences(user_id: int) -> JSONResponse:
        service = get_profile_service(fastapi_app)
        preferences = await service.list_preferences(user_id)
        return JSONResponse([preference.to_payload() for preference in preferences])


app = create_app()
