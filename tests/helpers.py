"""Shared builders for service and route tests."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Iterable, TypeVar

from app.config import Settings
from app.seed_data import seed_catalog, seed_profiles
from app.services.catalog import CatalogService
from app.services.profiles import ProfileService
from app.stores.catalog import CatalogStore
from app.stores.profiles import ProfileStore

T = TypeVar("T")

NOW = 1_700_000_000_000


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "TRENDING_STREAM_DELAY_MS": 0,
        "SEED_SAMPLE_DATA": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[arg-type]


def make_catalog_service(**overrides: object) -> CatalogService:
    settings = make_settings(**overrides)
    store = CatalogStore(recommendation_limit=settings.recommendation_limit)
    seed_catalog(store)
    return CatalogService(settings, store)


def make_profile_service(**overrides: object) -> ProfileService:
    store = ProfileStore()
    seed_profiles(store, now_ms=NOW)
    return ProfileService(make_settings(**overrides), store)


async def messages(items: Iterable[T]) -> AsyncIterator[T]:
    for item in items:
        yield item


async def failing_messages(items: Iterable[T], error: Exception) -> AsyncIterator[T]:
    for item in items:
        yield item
    raise error


async def queued_messages(queue: "asyncio.Queue[T | None]") -> AsyncIterator[T]:
    """Yield queued items until a ``None`` sentinel arrives."""

    while True:
        item = await queue.get()
        if item is None:
            return
        yield item


async def collect(stream: AsyncIterator[T]) -> list[T]:
    return [item async for item in stream]
