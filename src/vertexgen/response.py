"""Phase 3: Response decoding.

Unary bodies are parsed in one go. Streaming bodies arrive as newline-framed
JSON records (optionally with an SSE ``data:`` prefix) that may be split
across, or packed into, arbitrary byte chunks.
"""

from __future__ import annotations

import codecs
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
import json
import logging
import re
from typing import TYPE_CHECKING, Any

from vertexgen.errors import MalformedResponseError

if TYPE_CHECKING:
    from vertexgen.transport import RawResponse

logger = logging.getLogger(__name__)

_SSE_IGNORED_FIELD_RE = re.compile(r"^(event|id|retry)\s*:")


@dataclass(frozen=True)
class GenerateContentResponse:
    """A decoded generate-content payload (full response or stream partial)."""

    raw: dict[str, Any]

    @property
    def candidates(self) -> list[dict[str, Any]]:
        candidates = self.raw.get("candidates")
        return candidates if isinstance(candidates, list) else []

    @property
    def prompt_feedback(self) -> dict[str, Any] | None:
        return self.raw.get("promptFeedback")

    @property
    def usage_metadata(self) -> dict[str, Any] | None:
        return self.raw.get("usageMetadata")

    @property
    def text(self) -> str:
        """Concatenated text of the primary candidate ("" when there is none).

        Thought-summary parts are excluded.
        """
        candidate = self._primary_candidate()
        if candidate is None:
            return ""
        return "".join(
            part["text"]
            for part in _parts(candidate)
            if isinstance(part.get("text"), str) and not part.get("thought")
        )

    @property
    def function_calls(self) -> list[dict[str, Any]]:
        candidate = self._primary_candidate()
        if candidate is None:
            return []
        return [
            part["functionCall"]
            for part in _parts(candidate)
            if isinstance(part.get("functionCall"), dict)
        ]

    def _primary_candidate(self) -> dict[str, Any] | None:
        for candidate in self.candidates:
            if isinstance(candidate, dict) and candidate.get("index", 0) == 0:
                return candidate
        return None


def _parts(candidate: dict[str, Any]) -> list[dict[str, Any]]:
    content = candidate.get("content")
    if not isinstance(content, dict):
        return []
    parts = content.get("parts")
    if not isinstance(parts, list):
        return []
    return [p for p in parts if isinstance(p, dict)]


def check_response_shape(payload: Any, *, where: str) -> dict[str, Any]:
    """Ensure *payload* has the object structure the accessors rely on.

    Candidates must be objects; a candidate's ``content`` must be an object
    whose ``parts`` is a list of objects.
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"Expected a JSON object in {where}, got {type(payload).__name__}"
        )
    candidates = payload.get("candidates")
    if candidates is None:
        return payload
    if not isinstance(candidates, list):
        raise MalformedResponseError(f"'candidates' in {where} is not a list")
    for i, candidate in enumerate(candidates):
        if not isinstance(candidate, dict):
            raise MalformedResponseError(f"candidates[{i}] in {where} is not an object")
        content = candidate.get("content")
        if content is None:
            continue
        if not isinstance(content, dict):
            raise MalformedResponseError(
                f"candidates[{i}].content in {where} is not an object"
            )
        parts = content.get("parts")
        if parts is None:
            continue
        if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
            raise MalformedResponseError(
                f"candidates[{i}].content.parts in {where} is not a list of objects"
            )
    return payload


def parse_response_body(body: bytes | str) -> GenerateContentResponse:
    """Parse a complete unary response body."""
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedResponseError(
            f"Response body is not valid JSON: {e}",
            hint="The endpoint accepted the request but sent an unreadable reply.",
        ) from e
    return GenerateContentResponse(check_response_shape(payload, where="response body"))


async def decode_response(raw: RawResponse) -> GenerateContentResponse:
    """Read a unary response to completion and decode it."""
    try:
        body = await raw.aread()
    finally:
        await raw.aclose()
    return parse_response_body(body)


class RecordDecoder:
    """Incremental framing decoder: bytes in, complete JSON records out.

    Partial records stay buffered until the line break that ends them arrives.
    Only newly arrived text is scanned for line breaks, so a large record
    delivered in many small chunks is decoded in linear time.
    """

    def __init__(self) -> None:
        self._text = codecs.getincrementaldecoder("utf-8")()
        # Text after the last line break, none of it containing "\n".
        self._pending: list[str] = []
        self.records_decoded = 0

    def feed(self, chunk: bytes) -> list[dict[str, Any]]:
        """Append *chunk* and return every record it completed, in order."""
        try:
            text = self._text.decode(chunk)
        except UnicodeDecodeError as e:
            raise MalformedResponseError(f"Stream is not valid UTF-8: {e}") from e
        return self._drain(text)

    def close(self) -> list[dict[str, Any]]:
        """Signal end of stream; fail if an unterminated record remains."""
        try:
            text = self._text.decode(b"", final=True)
        except UnicodeDecodeError as e:
            raise MalformedResponseError(
                f"Stream ended inside a UTF-8 sequence: {e}"
            ) from e
        records = self._drain(text)
        leftover = "".join(self._pending)
        self._pending = []
        if leftover.strip():
            preview = leftover.strip()[:80]
            raise MalformedResponseError(
                f"Stream ended with an incomplete record: {preview!r}",
                hint="The connection may have been cut before the reply finished.",
            )
        return records

    def _drain(self, text: str) -> list[dict[str, Any]]:
        if "\n" not in text:
            if text:
                self._pending.append(text)
            return []
        buffer = "".join([*self._pending, text])
        self._pending = []
        records: list[dict[str, Any]] = []
        start = 0
        while True:
            end = buffer.find("\n", start)
            if end < 0:
                break
            record = self._parse_line(buffer[start:end])
            start = end + 1
            if record is not None:
                records.append(record)
        if start < len(buffer):
            self._pending.append(buffer[start:])
        self.records_decoded += len(records)
        return records

    def _parse_line(self, line: str) -> dict[str, Any] | None:
        line = line.strip()
        if not line or line.startswith(":") or _SSE_IGNORED_FIELD_RE.match(line):
            return None
        if line.startswith("data:"):
            line = line[len("data:") :].strip()
            if not line:
                return None
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(
                f"Stream record is not valid JSON: {line[:80]!r}"
            ) from e
        return check_response_shape(payload, where="stream record")


async def iter_records(chunks: AsyncIterable[bytes]) -> AsyncIterator[dict[str, Any]]:
    """Yield JSON records from a byte stream as soon as each one completes."""
    decoder = RecordDecoder()
    async for chunk in chunks:
        for record in decoder.feed(chunk):
            yield record
    for record in decoder.close():
        yield record
    logger.debug("Stream finished after %d records", decoder.records_decoded)
