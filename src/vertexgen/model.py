"""GenerativeModel: generate calls bound to one Config."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from vertexgen.auth import CredentialsTokenSource, StaticToken, TokenSource
from vertexgen.generate import generate_content, generate_content_stream

if TYPE_CHECKING:
    import httpx

    from vertexgen.config import Config
    from vertexgen.content import GenerationConfigInput, SafetySettingInput
    from vertexgen.request import RequestInput
    from vertexgen.response import GenerateContentResponse
    from vertexgen.stream import StreamGenerateContentResult


class GenerativeModel:
    """A model endpoint plus default generation parameters.

    Defaults given here apply only when a request does not carry its own value.

    Example:
        model = GenerativeModel(Config(model="gemini-2.0-flash"))
        response = await model.generate_content("Explain gravity")
        print(response.text)
    """

    def __init__(
        self,
        config: Config,
        *,
        generation_config: GenerationConfigInput | None = None,
        safety_settings: Sequence[SafetySettingInput] | None = None,
        tools: Sequence[Mapping[str, Any]] | None = None,
        token_source: TokenSource | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.generation_config = generation_config
        self.safety_settings = safety_settings
        self.tools = tools
        self._token_source = token_source
        self._client = client

    def _get_token_source(self) -> TokenSource:
        """Lazy-initialize the token source (ADC lookup can hit the disk)."""
        if self._token_source is None:
            if self.config.access_token:
                self._token_source = StaticToken(self.config.access_token)
            else:
                self._token_source = CredentialsTokenSource.from_default()
        return self._token_source

    async def generate_content(self, request: RequestInput) -> GenerateContentResponse:
        """Unary call; see ``vertexgen.generate_content``."""
        return await generate_content(
            self.config.location,
            self.config.project,
            self.config.resource_path,
            self._get_token_source(),
            request,
            self.generation_config,
            self.safety_settings,
            self.tools,
            api_endpoint=self.config.api_endpoint,
            request_options=self.config.request_options(),
            client=self._client,
        )

    async def generate_content_stream(
        self, request: RequestInput
    ) -> StreamGenerateContentResult:
        """Streaming call; see ``vertexgen.generate_content_stream``."""
        return await generate_content_stream(
            self.config.location,
            self.config.project,
            self.config.resource_path,
            self._get_token_source(),
            request,
            self.generation_config,
            self.safety_settings,
            self.tools,
            api_endpoint=self.config.api_endpoint,
            request_options=self.config.request_options(),
            client=self._client,
        )

    def __repr__(self) -> str:
        return f"GenerativeModel(config={self.config})"
