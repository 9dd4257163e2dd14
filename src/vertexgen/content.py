"""Request-side data types.

Content turns, parts and tool declarations are API-owned JSON shapes and stay
plain dicts. Only the two blocks with a closed vocabulary, generation config
and safety settings, are modelled so they can be validated before sending.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from vertexgen.constants import (
    CANDIDATE_COUNT_RANGE,
    DEFAULT_CANDIDATE_COUNT,
    MAX_STOP_SEQUENCES,
    PENALTY_RANGE,
    TEMPERATURE_RANGE,
    TOP_K_RANGE,
    TOP_P_RANGE,
)
from vertexgen.errors import InvalidArgumentError

HarmCategory = Literal[
    "HARM_CATEGORY_UNSPECIFIED",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_CIVIC_INTEGRITY",
]
HarmBlockThreshold = Literal[
    "HARM_BLOCK_THRESHOLD_UNSPECIFIED",
    "BLOCK_LOW_AND_ABOVE",
    "BLOCK_MEDIUM_AND_ABOVE",
    "BLOCK_ONLY_HIGH",
    "BLOCK_NONE",
    "OFF",
]
HarmBlockMethod = Literal["SEVERITY", "PROBABILITY"]
ResponseMimeType = Literal["text/plain", "application/json", "text/x.enum"]

_SCHEMA_MIME_TYPES = frozenset({"application/json", "text/x.enum"})


class _WireModel(BaseModel):
    """Accepts snake_case or camelCase keys; serializes camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GenerationConfig(_WireModel):
    """Sampling and output-shape parameters for one generate call."""

    temperature: float | None = Field(
        default=None, ge=TEMPERATURE_RANGE[0], le=TEMPERATURE_RANGE[1]
    )
    top_p: float | None = Field(default=None, ge=TOP_P_RANGE[0], le=TOP_P_RANGE[1])
    top_k: int | None = Field(default=None, ge=TOP_K_RANGE[0], le=TOP_K_RANGE[1])
    candidate_count: int = Field(
        default=DEFAULT_CANDIDATE_COUNT,
        ge=CANDIDATE_COUNT_RANGE[0],
        le=CANDIDATE_COUNT_RANGE[1],
    )
    max_output_tokens: int | None = Field(default=None, ge=1)
    stop_sequences: list[str] | None = Field(default=None, max_length=MAX_STOP_SEQUENCES)
    presence_penalty: float | None = Field(
        default=None, ge=PENALTY_RANGE[0], le=PENALTY_RANGE[1]
    )
    frequency_penalty: float | None = Field(
        default=None, ge=PENALTY_RANGE[0], le=PENALTY_RANGE[1]
    )
    seed: int | None = None
    response_mime_type: ResponseMimeType | None = None
    response_schema: dict[str, Any] | None = None
    response_json_schema: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _check_response_shape(self) -> GenerationConfig:
        if self.response_schema is not None and self.response_json_schema is not None:
            raise ValueError(
                "response_schema and response_json_schema are mutually exclusive"
            )
        has_schema = (
            self.response_schema is not None or self.response_json_schema is not None
        )
        if has_schema and self.response_mime_type not in _SCHEMA_MIME_TYPES:
            raise ValueError(
                "a response schema requires response_mime_type "
                "'application/json' or 'text/x.enum'"
            )
        return self


class SafetySetting(_WireModel):
    """Blocking threshold for a single harm category."""

    category: HarmCategory
    threshold: HarmBlockThreshold
    method: HarmBlockMethod | None = None


GenerationConfigInput = GenerationConfig | Mapping[str, Any]
SafetySettingInput = SafetySetting | Mapping[str, Any]

_REQUEST_KEYS: dict[str, str] = {
    "contents": "contents",
    "generation_config": "generation_config",
    "generationConfig": "generation_config",
    "safety_settings": "safety_settings",
    "safetySettings": "safety_settings",
    "tools": "tools",
}


@dataclass(frozen=True)
class GenerateContentRequest:
    """A structured generate-content request as supplied by the caller."""

    contents: Sequence[Mapping[str, Any]]
    generation_config: GenerationConfigInput | None = None
    safety_settings: Sequence[SafetySettingInput] | None = None
    tools: Sequence[Mapping[str, Any]] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GenerateContentRequest:
        """Build a request from a JSON-shaped dict (snake_case or camelCase keys)."""
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            field_name = _REQUEST_KEYS.get(key)
            if field_name is None:
                raise InvalidArgumentError(
                    f"Unknown request field: {key!r}",
                    hint="Supported fields: contents, generation_config, "
                    "safety_settings, tools.",
                )
            if field_name in kwargs:
                raise InvalidArgumentError(
                    f"Request field {field_name!r} was given twice",
                    hint="Use either the snake_case or the camelCase key, not both.",
                )
            kwargs[field_name] = value
        if "contents" not in kwargs:
            raise InvalidArgumentError(
                "Request is missing 'contents'",
                hint="Pass a prompt string or {'contents': [{'role': 'user', ...}]}.",
            )
        return cls(**kwargs)
