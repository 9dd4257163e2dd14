"""vertexgen: async client for Vertex AI generate-content endpoints.

Public API:
    - generate_content(): Unary call, one decoded response
    - generate_content_stream(): Streaming call, lazy partials plus aggregate
    - generate_content_with_credentials(): Unary call with google-auth credentials
    - GenerativeModel: The same calls bound to a Config
"""

from __future__ import annotations

import logging

from vertexgen._http import PACKAGE_VERSION as __version__
from vertexgen.aggregate import MergeStrategy, aggregate_responses
from vertexgen.auth import CredentialsTokenSource, StaticToken, TokenSource
from vertexgen.config import Config
from vertexgen.content import GenerateContentRequest, GenerationConfig, SafetySetting
from vertexgen.errors import (
    ConfigurationError,
    HttpError,
    InvalidArgumentError,
    MalformedResponseError,
    RateLimitError,
    RequestFailedError,
    StreamClosedError,
    VertexGenError,
)
from vertexgen.generate import (
    generate_content,
    generate_content_stream,
    generate_content_with_credentials,
)
from vertexgen.model import GenerativeModel
from vertexgen.request import ValidatedRequest, normalize_request
from vertexgen.response import GenerateContentResponse
from vertexgen.stream import StreamGenerateContentResult
from vertexgen.transport import RequestOptions

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("vertexgen").addHandler(logging.NullHandler())

__all__ = [
    "Config",
    "ConfigurationError",
    "CredentialsTokenSource",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "GenerationConfig",
    "GenerativeModel",
    "HttpError",
    "InvalidArgumentError",
    "MalformedResponseError",
    "MergeStrategy",
    "RateLimitError",
    "RequestFailedError",
    "RequestOptions",
    "SafetySetting",
    "StaticToken",
    "StreamClosedError",
    "StreamGenerateContentResult",
    "TokenSource",
    "ValidatedRequest",
    "VertexGenError",
    "__version__",
    "aggregate_responses",
    "generate_content",
    "generate_content_stream",
    "generate_content_with_credentials",
    "normalize_request",
]
