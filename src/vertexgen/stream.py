"""Lazy, single-pass stream of partial responses with an aggregate view."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
import logging
from typing import TYPE_CHECKING

from vertexgen.aggregate import MergeStrategy, aggregate_responses
from vertexgen.errors import RequestFailedError, StreamClosedError, VertexGenError
from vertexgen.response import GenerateContentResponse, iter_records

if TYPE_CHECKING:
    from types import TracebackType

    from vertexgen.transport import RawResponse

logger = logging.getLogger(__name__)


class StreamGenerateContentResult:
    """Partial responses as they arrive, plus ``aggregate()`` once exhausted.

    Iterate with ``async for``. Stopping early should go through ``aclose()``
    (or ``async with``) so the HTTP connection is released immediately.

    Example:
        async with await generate_content_stream(...) as result:
            async for partial in result:
                print(partial.text, end="")
        final = await result.aggregate()
    """

    def __init__(
        self,
        responses: AsyncGenerator[GenerateContentResponse, None],
        *,
        release: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._responses = responses
        self._release = release
        self._emitted: list[GenerateContentResponse] = []
        self._exhausted = False
        self._closed = False
        self._error: BaseException | None = None

    def __aiter__(self) -> StreamGenerateContentResult:
        return self

    async def __anext__(self) -> GenerateContentResponse:
        if self._closed:
            raise StopAsyncIteration
        try:
            item = await anext(self._responses)
        except StopAsyncIteration:
            self._exhausted = True
            self._closed = True
            raise
        except BaseException as e:
            self._closed = True
            self._error = e
            raise
        self._emitted.append(item)
        return item

    @property
    def emitted(self) -> tuple[GenerateContentResponse, ...]:
        """Partials delivered so far."""
        return tuple(self._emitted)

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    async def aggregate(
        self, strategy: MergeStrategy | None = None
    ) -> GenerateContentResponse:
        """Drain the stream if needed and merge every partial into one response.

        Raises:
            StreamClosedError: If the stream was closed early or failed.
        """
        if not self._exhausted:
            if self._closed:
                raise StreamClosedError(
                    "Stream was closed before it was exhausted",
                    hint="Call aggregate() before closing, or consume the whole stream.",
                ) from self._error
            async for _ in self:
                pass
        return aggregate_responses(self._emitted, strategy)

    async def aclose(self) -> None:
        """Stop reading and release the connection. Idempotent."""
        if not self._closed:
            self._closed = True
            logger.debug("Stream closed after %d partials", len(self._emitted))
        try:
            await self._responses.aclose()
        finally:
            # An unstarted generator never reaches its finally block.
            if self._release is not None:
                await self._release()

    async def __aenter__(self) -> StreamGenerateContentResult:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


async def _iter_responses(
    raw: RawResponse,
) -> AsyncGenerator[GenerateContentResponse, None]:
    try:
        async for record in iter_records(raw.aiter_bytes()):
            yield GenerateContentResponse(record)
    except (asyncio.CancelledError, VertexGenError):
        raise
    except Exception as e:
        raise RequestFailedError(f"exception reading stream: {e}") from e
    finally:
        await raw.aclose()


def decode_stream(raw: RawResponse) -> StreamGenerateContentResult:
    """Wrap an open, successful streaming response. Nothing is read yet."""
    return StreamGenerateContentResult(_iter_responses(raw), release=raw.aclose)
