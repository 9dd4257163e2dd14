"""Entry points: normalize, invoke, decode.

Each call is independent: it builds its own descriptor and response and keeps
nothing afterwards.
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping, Sequence
import logging
from typing import TYPE_CHECKING, Any

from vertexgen.auth import TokenSource, as_token_source, credentials_token_source
from vertexgen.constants import (
    GENERATE_CONTENT_METHOD,
    STREAMING_GENERATE_CONTENT_METHOD,
)
from vertexgen.request import normalize_request
from vertexgen.response import GenerateContentResponse, decode_response
from vertexgen.stream import StreamGenerateContentResult, decode_stream
from vertexgen.transport import RequestOptions, TransportDescriptor, invoke

if TYPE_CHECKING:
    import httpx

    from vertexgen.content import GenerationConfigInput, SafetySettingInput
    from vertexgen.request import RequestInput, ValidatedRequest

logger = logging.getLogger(__name__)

TokenInput = str | Awaitable[str] | TokenSource


async def generate_content(
    location: str,
    project: str,
    publisher_model_endpoint: str,
    token: TokenInput,
    request: RequestInput,
    generation_config: GenerationConfigInput | None = None,
    safety_settings: Sequence[SafetySettingInput] | None = None,
    tools: Sequence[Mapping[str, Any]] | None = None,
    *,
    api_endpoint: str | None = None,
    request_options: RequestOptions | None = None,
    client: httpx.AsyncClient | None = None,
) -> GenerateContentResponse:
    """Make a unary generate-content call.

    Args:
        location: Region, e.g. ``us-central1``.
        project: Google Cloud project id.
        publisher_model_endpoint: Resource path, e.g.
            ``publishers/google/models/gemini-2.0-flash``.
        token: Bearer token, an awaitable of one, or a TokenSource.
        request: Prompt string, GenerateContentRequest, or equivalent dict.
        generation_config: Fallback when the request carries none.
        safety_settings: Fallback when the request carries none.
        tools: Fallback when the request carries none.
        api_endpoint: Host override; defaults to the regional endpoint.
        request_options: Timeout and extra headers for this call.
        client: Optional httpx client to send through (not closed here).

    Returns:
        The decoded response.

    Raises:
        InvalidArgumentError: Before any network activity, if the request is invalid.
        RequestFailedError: If the call could not be made.
        HttpError: If the endpoint returned a non-2xx status.
        MalformedResponseError: If the body could not be decoded.

    Example:
        response = await generate_content(
            "us-central1", "my-project",
            "publishers/google/models/gemini-2.0-flash",
            token, "Explain gravity",
        )
        print(response.text)
    """
    normalized = normalize_request(request, generation_config, safety_settings, tools)
    return await _generate_unary(
        location,
        project,
        publisher_model_endpoint,
        as_token_source(token),
        normalized,
        api_endpoint=api_endpoint,
        request_options=request_options,
        client=client,
    )


async def generate_content_with_credentials(
    location: str,
    project: str,
    publisher_model_endpoint: str,
    credentials: Any,
    request: RequestInput,
    generation_config: GenerationConfigInput | None = None,
    safety_settings: Sequence[SafetySettingInput] | None = None,
    tools: Sequence[Mapping[str, Any]] | None = None,
    *,
    api_endpoint: str | None = None,
    request_options: RequestOptions | None = None,
    client: httpx.AsyncClient | None = None,
) -> GenerateContentResponse:
    """Same as ``generate_content`` but mints the token from *credentials*.

    *credentials* is a ``google.auth`` credentials object (refreshed on
    demand) or any TokenSource.
    """
    normalized = normalize_request(request, generation_config, safety_settings, tools)
    return await _generate_unary(
        location,
        project,
        publisher_model_endpoint,
        credentials_token_source(credentials),
        normalized,
        api_endpoint=api_endpoint,
        request_options=request_options,
        client=client,
    )


async def generate_content_stream(
    location: str,
    project: str,
    publisher_model_endpoint: str,
    token: TokenInput,
    request: RequestInput,
    generation_config: GenerationConfigInput | None = None,
    safety_settings: Sequence[SafetySettingInput] | None = None,
    tools: Sequence[Mapping[str, Any]] | None = None,
    *,
    api_endpoint: str | None = None,
    request_options: RequestOptions | None = None,
    client: httpx.AsyncClient | None = None,
) -> StreamGenerateContentResult:
    """Make a streaming generate-content call.

    Returns once the response status is known; partials are decoded lazily as
    the caller iterates. Arguments and errors are as for ``generate_content``,
    except that ``MalformedResponseError`` and ``RequestFailedError`` may also
    surface mid-iteration, after some partials were delivered.
    """
    normalized = normalize_request(request, generation_config, safety_settings, tools)
    descriptor = TransportDescriptor(
        region=location,
        project=project,
        resource_path=publisher_model_endpoint,
        resource_method=STREAMING_GENERATE_CONTENT_METHOD,
        token_source=as_token_source(token),
        data=normalized.to_payload(),
        api_endpoint=api_endpoint,
        request_options=request_options,
    )
    raw = await invoke(descriptor, client=client)
    return decode_stream(raw)


async def _generate_unary(
    location: str,
    project: str,
    publisher_model_endpoint: str,
    token_source: TokenSource,
    normalized: ValidatedRequest,
    *,
    api_endpoint: str | None,
    request_options: RequestOptions | None,
    client: httpx.AsyncClient | None,
) -> GenerateContentResponse:
    descriptor = TransportDescriptor(
        region=location,
        project=project,
        resource_path=publisher_model_endpoint,
        resource_method=GENERATE_CONTENT_METHOD,
        token_source=token_source,
        data=normalized.to_payload(),
        api_endpoint=api_endpoint,
        request_options=request_options,
    )
    raw = await invoke(descriptor, client=client)
    response = await decode_response(raw)
    logger.debug("Decoded response with %d candidates", len(response.candidates))
    return response
