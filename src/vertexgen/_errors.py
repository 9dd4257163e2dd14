"""Helpers that turn non-2xx responses into HttpError with stable metadata."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

from vertexgen.errors import HttpError, RateLimitError

if TYPE_CHECKING:
    from collections.abc import Mapping

_PROTO_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)s$")


def parse_error_body(body: bytes) -> Any:
    """Return the JSON error payload if the body is JSON-shaped, else the text."""
    text = body.decode("utf-8", errors="replace")
    stripped = text.strip()
    if stripped[:1] in ("{", "["):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            pass
    return text


def _retry_info_seconds(body: Any) -> float | None:
    """Extract the delay from a Google API ``RetryInfo`` error detail.

    Error bodies are shaped like::

        {"error": {"details": [{"@type": "...RetryInfo", "retryDelay": "8s"}]}}

    The ``retryDelay`` value is a protobuf Duration string (e.g. ``"8s"``,
    ``"8.352104981s"``).
    """
    if not isinstance(body, dict):
        return None
    error: Any = body.get("error")
    if not isinstance(error, dict):
        return None
    detail_list: Any = error.get("details")
    if not isinstance(detail_list, list):
        return None
    for entry in detail_list:
        if not isinstance(entry, dict):
            continue
        at_type = entry.get("@type", "")
        if not isinstance(at_type, str) or "RetryInfo" not in at_type:
            continue
        delay_raw = entry.get("retryDelay")
        if not isinstance(delay_raw, str):
            continue
        m = _PROTO_DURATION_RE.match(delay_raw)
        if m:
            return float(m.group(1))
    return None


def extract_retry_after_s(headers: Mapping[str, str], body: Any) -> float | None:
    """Find a server-suggested delay in ``Retry-After`` or the error details."""
    raw = headers.get("Retry-After")
    if isinstance(raw, str) and raw.strip():
        try:
            seconds = float(raw)
        except ValueError:
            seconds = None
        if seconds is not None and seconds >= 0:
            return seconds
    return _retry_info_seconds(body)


def status_hint(status_code: int) -> str | None:
    """Suggest a fix for the status codes callers commonly hit."""
    if status_code in {401, 403}:
        return (
            "Check credentials/permissions (refresh the access token or run "
            "`gcloud auth application-default login`)."
        )
    if status_code == 404:
        return "Check the project, location and model name."
    if status_code == 429:
        return "Quota or rate limit exceeded; slow down or request more quota."
    if status_code == 400:
        return "The server rejected the request body; see HttpError.body."
    return None


def _error_detail(body: Any) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        return json.dumps(body)
    return str(body).strip()


def http_error_from_response(
    status_code: int,
    reason: str,
    headers: Mapping[str, str],
    body: bytes,
) -> HttpError:
    """Build the HttpError (or RateLimitError) for a non-2xx response."""
    parsed = parse_error_body(body)
    detail = _error_detail(parsed)
    message = f"got status: {status_code} {reason}".rstrip()
    if detail:
        message = f"{message}. {detail}"

    err_cls: type[HttpError] = RateLimitError if status_code == 429 else HttpError
    return err_cls(
        message,
        status_code=status_code,
        body=parsed,
        hint=status_hint(status_code),
        retry_after_s=extract_retry_after_s(headers, parsed),
    )
