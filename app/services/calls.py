"""Per-call state shared by the streaming calls."""

from __future__ import annotations

from enum import Enum


class CallState(str, Enum):
    """Lifecycle of a client-streaming or duplex call."""

    AWAITING_FIRST = "awaiting-first-message"
    ACCUMULATING = "accumulating"
    FINALIZING = "finalizing"
    CLOSED = "closed"
