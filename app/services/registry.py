"""Bookkeeping for open activity-tracking streams."""

from __future__ import annotations

import logging
import threading
from typing import Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

ChannelT = TypeVar("ChannelT", bound=Hashable)


class SubscriberRegistry(Generic[ChannelT]):
    """Map each user id to the outbound channels currently open for it.

    A user may hold several channels at once. The entry for a user disappears
    as soon as its last channel is released.
    """

    def __init__(self) -> None:
        self._channels: dict[int, set[ChannelT]] = {}
        self._lock = threading.Lock()

    def register(self, user_id: int, channel: ChannelT) -> None:
        with self._lock:
            self._channels.setdefault(user_id, set()).add(channel)
            open_count = len(self._channels[user_id])
        logger.debug("Registered channel for user %s (%s open)", user_id, open_count)

    def unregister(self, user_id: int, channel: ChannelT) -> bool:
        """Release ``channel``; return ``False`` if it was not registered."""

        with self._lock:
            channels = self._channels.get(user_id)
            if channels is None or channel not in channels:
                return False
            channels.discard(channel)
            if not channels:
                del self._channels[user_id]
        logger.debug("Released channel for user %s", user_id)
        return True

    def channels_for(self, user_id: int) -> tuple[ChannelT, ...]:
        with self._lock:
            return tuple(self._channels.get(user_id, ()))

    def active_users(self) -> list[int]:
        with self._lock:
            return sorted(self._channels)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._channels

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)
