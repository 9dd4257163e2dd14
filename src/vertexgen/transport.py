"""Phase 2: Transport. One descriptor in, one HTTP response out."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
import logging
from typing import Any

import httpx

from vertexgen._errors import http_error_from_response
from vertexgen._http import JSON_CONTENT_TYPE, USER_AGENT
from vertexgen.auth import TokenSource
from vertexgen.constants import (
    API_VERSION,
    DEFAULT_ENDPOINT_TEMPLATE,
    STREAMING_GENERATE_CONTENT_METHOD,
)
from vertexgen.errors import RequestFailedError, VertexGenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestOptions:
    """Per-call transport options, passed through to httpx."""

    #: ``None`` leaves the call unbounded (or uses an injected client's default).
    timeout_s: float | None = None
    headers: Mapping[str, str] | None = None


@dataclass(frozen=True)
class TransportDescriptor:
    """Everything needed to issue exactly one HTTP call."""

    region: str
    project: str
    resource_path: str
    resource_method: str
    token_source: TokenSource
    data: dict[str, Any]
    api_endpoint: str | None = None
    request_options: RequestOptions | None = None

    @property
    def is_streaming(self) -> bool:
        return self.resource_method == STREAMING_GENERATE_CONTENT_METHOD


class RawResponse:
    """An HTTP response plus the per-call client that owns its connection."""

    def __init__(
        self,
        response: httpx.Response,
        *,
        owned_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._response = response
        self._owned_client = owned_client
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def reason_phrase(self) -> str:
        return self._response.reason_phrase

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def is_success(self) -> bool:
        return self._response.is_success

    @property
    def closed(self) -> bool:
        return self._closed

    async def aread(self) -> bytes:
        return await self._response.aread()

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self._response.aiter_bytes()

    async def aclose(self) -> None:
        """Release the connection (and the per-call client, if any). Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            if self._owned_client is not None:
                await self._owned_client.aclose()


def resolve_api_endpoint(region: str, api_endpoint: str | None = None) -> str:
    """Return the explicit endpoint host, or the regional default."""
    if api_endpoint:
        return api_endpoint
    return DEFAULT_ENDPOINT_TEMPLATE.format(region=region)


def build_url(descriptor: TransportDescriptor) -> str:
    host = resolve_api_endpoint(descriptor.region, descriptor.api_endpoint)
    return (
        f"https://{host}/{API_VERSION}/projects/{descriptor.project}"
        f"/locations/{descriptor.region}/{descriptor.resource_path}"
        f":{descriptor.resource_method}"
    )


def _wrap_transport_error(exc: Exception, what: str) -> RequestFailedError:
    hint = None
    if isinstance(exc, httpx.TimeoutException):
        hint = "The call timed out; raise RequestOptions.timeout_s if needed."
    elif isinstance(exc, httpx.RequestError):
        hint = "Check network connectivity and the api_endpoint host."
    cause = str(exc) or type(exc).__name__
    return RequestFailedError(f"exception {what}: {cause}", hint=hint)


async def post_request(
    descriptor: TransportDescriptor,
    *,
    client: httpx.AsyncClient | None = None,
) -> RawResponse:
    """Send the descriptor's request and return the (unchecked) response.

    Unary calls are read into memory and their connection released before
    returning. Streaming calls return with the body still open; the caller
    owns the RawResponse and must ``aclose()`` it.
    """
    try:
        token = await descriptor.token_source.resolve()
    except (asyncio.CancelledError, VertexGenError):
        raise
    except Exception as e:
        raise _wrap_transport_error(e, "resolving access token") from e

    options = descriptor.request_options or RequestOptions()
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": JSON_CONTENT_TYPE,
        "User-Agent": USER_AGENT,
    }
    if options.headers:
        headers.update(options.headers)

    url = build_url(descriptor)
    params = {"alt": "sse"} if descriptor.is_streaming else None

    owned = client is None
    http = httpx.AsyncClient(timeout=None) if client is None else client
    timeout: Any = (
        options.timeout_s if options.timeout_s is not None else httpx.USE_CLIENT_DEFAULT
    )

    logger.debug("POST %s (streaming=%s)", url, descriptor.is_streaming)
    raw: RawResponse | None = None
    try:
        request = http.build_request(
            "POST",
            url,
            json=descriptor.data,
            headers=headers,
            params=params,
            timeout=timeout,
        )
        response = await http.send(request, stream=True)
        raw = RawResponse(response, owned_client=http if owned else None)
        if not descriptor.is_streaming:
            await raw.aread()
            await raw.aclose()
    except (asyncio.CancelledError, VertexGenError):
        await _release(raw, http if owned else None)
        raise
    except Exception as e:
        await _release(raw, http if owned else None)
        raise _wrap_transport_error(e, "posting request") from e

    logger.debug("Response %s from %s", raw.status_code, url)
    return raw


async def _release(raw: RawResponse | None, owned: httpx.AsyncClient | None) -> None:
    if raw is not None:
        await raw.aclose()
    elif owned is not None:
        await owned.aclose()


async def raise_for_status(raw: RawResponse) -> None:
    """Gate: raise HttpError for any non-2xx response, after releasing it."""
    if raw.is_success:
        return
    try:
        body = await raw.aread()
    except (asyncio.CancelledError, VertexGenError):
        raise
    except Exception as e:
        raise _wrap_transport_error(e, "reading error response") from e
    finally:
        await raw.aclose()

    err = http_error_from_response(
        raw.status_code, raw.reason_phrase, raw.headers, body
    )
    logger.debug("HTTP %s: %s", raw.status_code, err)
    raise err


async def invoke(
    descriptor: TransportDescriptor,
    *,
    client: httpx.AsyncClient | None = None,
) -> RawResponse:
    """Post the request and pass only successful responses on."""
    raw = await post_request(descriptor, client=client)
    await raise_for_status(raw)
    return raw
