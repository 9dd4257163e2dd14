"""Exception hierarchy for vertexgen."""

from __future__ import annotations

from typing import Any


class VertexGenError(Exception):
    """Base exception for all vertexgen errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(VertexGenError):
    """Configuration validation or resolution failed."""


class InvalidArgumentError(VertexGenError):
    """The request failed pre-flight validation; nothing was sent."""


class RequestFailedError(VertexGenError):
    """The HTTP call could not be completed (DNS, connection, timeout, auth)."""


class HttpError(VertexGenError):
    """The endpoint answered with a non-2xx status.

    ``body`` is the parsed JSON error payload when the server sent one, and the
    raw response text otherwise.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: Any = None,
        hint: str | None = None,
        retry_after_s: float | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.body = body
        self.retry_after_s = retry_after_s

    @property
    def error_status(self) -> str | None:
        """Return the Google RPC status name (e.g. ``RESOURCE_EXHAUSTED``)."""
        if isinstance(self.body, dict):
            error = self.body.get("error")
            if isinstance(error, dict) and isinstance(error.get("status"), str):
                return error["status"]
        return None


class RateLimitError(HttpError):
    """Rate limit or quota exceeded (HTTP 429)."""


class MalformedResponseError(VertexGenError):
    """The server accepted the request but the reply could not be decoded."""


class StreamClosedError(VertexGenError):
    """The stream was closed before it was exhausted."""
