"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off transport handlers as coverage expands.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass, field
import json
from typing import Any

import httpx

PROJECT = "test-project"
LOCATION = "us-central1"
MODEL_PATH = "publishers/google/models/gemini-2.0-flash"


@dataclass
class FakeTokenSource:
    """TokenSource double that counts resolutions."""

    token: str = "test-token"
    calls: int = 0

    async def resolve(self) -> str:
        self.calls += 1
        return self.token


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivered in exactly the given chunks; records release."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self.chunks = list(chunks)
        self.chunks_read = 0
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            self.chunks_read += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class RecordingHandler:
    """MockTransport handler returning scripted responses and keeping requests."""

    script: list[httpx.Response | Exception] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.script:
            raise AssertionError("unexpected HTTP request")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def last_json(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_response(payload: Any, status_code: int = 200, **kwargs: Any) -> httpx.Response:
    return httpx.Response(status_code, json=payload, **kwargs)


def stream_response(chunks: Iterable[bytes]) -> tuple[httpx.Response, ChunkStream]:
    stream = ChunkStream(chunks)
    return httpx.Response(200, stream=stream), stream


def text_candidate(text: str, **extra: Any) -> dict[str, Any]:
    return {"content": {"role": "model", "parts": [{"text": text}]}, **extra}


def frame(records: Iterable[dict[str, Any]], *, sse: bool = False) -> bytes:
    prefix = "data: " if sse else ""
    sep = "\n\n" if sse else "\n"
    return "".join(f"{prefix}{json.dumps(r)}{sep}" for r in records).encode("utf-8")
