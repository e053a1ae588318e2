"""Utility helpers for newline-delimited JSON streams."""

from __future__ import annotations

import json
from typing import Any, AsyncIterable, AsyncIterator

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def parse_json_line(line: bytes | str) -> dict[str, Any]:
    """Parse a single NDJSON line into a JSON object."""

    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid JSON line in stream") from exc
    if not isinstance(payload, dict):
        raise ValueError("Each stream line must be a JSON object")
    return payload


async def iter_ndjson(chunks: AsyncIterable[bytes]) -> AsyncIterator[dict[str, Any]]:
    """Yield one JSON object per line as raw chunks arrive.

    Lines may be split across chunks; blank lines are skipped.
    """

    buffer = b""
    async for chunk in chunks:
        if not chunk:
            continue
        buffer += chunk
        *lines, buffer = buffer.split(b"\n")
        for line in lines:
            if line.strip():
                yield parse_json_line(line)
    if buffer.strip():
        yield parse_json_line(buffer)


def to_ndjson_line(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":")) + "\n"
