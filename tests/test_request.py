"""Request normalization boundary tests: wrapping, precedence, validation."""

from __future__ import annotations

from typing import Any

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from vertexgen.content import GenerateContentRequest, GenerationConfig, SafetySetting
from vertexgen.errors import InvalidArgumentError
from vertexgen.request import (
    normalize_request,
    prefer,
    validate_generation_config,
)

pytestmark = pytest.mark.unit

USER_TURN = {"role": "user", "parts": [{"text": "hi"}]}
SAFETY = [{"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_ONLY_HIGH"}]
TOOLS = [{"functionDeclarations": [{"name": "get_weather"}]}]


# =============================================================================
# String wrapping
# =============================================================================


def test_string_request_becomes_single_user_turn() -> None:
    validated = normalize_request("Explain gravity")

    assert validated.contents == (
        {"role": "user", "parts": [{"text": "Explain gravity"}]},
    )
    assert validated.generation_config is None
    assert validated.safety_settings is None
    assert validated.tools is None


@given(prompt=st.text(max_size=50))
@settings(max_examples=25, deadline=None, derandomize=True)
def test_string_request_equals_explicit_single_turn(prompt: str) -> None:
    """Property: a bare string is the same as that string as one user turn."""
    explicit = GenerateContentRequest(
        contents=[{"role": "user", "parts": [{"text": prompt}]}]
    )
    assert normalize_request(prompt) == normalize_request(explicit)


# =============================================================================
# Precedence
# =============================================================================


def test_prefer_returns_request_value_when_present() -> None:
    assert prefer("request", "fallback") == "request"
    assert prefer(None, "fallback") == "fallback"
    assert prefer([], ["fallback"]) == []


def test_request_values_win_over_call_arguments() -> None:
    request = GenerateContentRequest(
        contents=[USER_TURN],
        generation_config={"temperature": 0.1},
        safety_settings=SAFETY,
        tools=TOOLS,
    )

    validated = normalize_request(
        request,
        generation_config={"temperature": 0.9},
        safety_settings=[
            {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"}
        ],
        tools=[{"functionDeclarations": [{"name": "other"}]}],
    )

    assert validated.generation_config is not None
    assert validated.generation_config.temperature == 0.1
    assert validated.safety_settings is not None
    assert [s.category for s in validated.safety_settings] == [
        "HARM_CATEGORY_HARASSMENT"
    ]
    assert validated.tools == tuple(TOOLS)


def test_call_arguments_fill_each_missing_field_independently() -> None:
    request = GenerateContentRequest(
        contents=[USER_TURN], generation_config={"top_k": 5}
    )

    validated = normalize_request(
        request,
        generation_config={"top_k": 30},
        safety_settings=SAFETY,
        tools=TOOLS,
    )

    assert validated.generation_config is not None
    assert validated.generation_config.top_k == 5
    assert validated.safety_settings == (SafetySetting.model_validate(SAFETY[0]),)
    assert validated.tools == tuple(TOOLS)


def test_mapping_request_accepts_camel_case_keys() -> None:
    validated = normalize_request(
        {"contents": [USER_TURN], "generationConfig": {"maxOutputTokens": 64}}
    )

    assert validated.generation_config is not None
    assert validated.generation_config.max_output_tokens == 64


@pytest.mark.parametrize(
    "payload",
    [
        {"contents": [USER_TURN], "system": "x"},
        {"contents": [USER_TURN], "tools": [], "generationConfig": {}, "generation_config": {}},
        {"generation_config": {}},
    ],
    ids=["unknown-field", "duplicate-field", "missing-contents"],
)
def test_mapping_request_rejects_bad_shapes(payload: dict[str, Any]) -> None:
    with pytest.raises(InvalidArgumentError):
        normalize_request(payload)


def test_unsupported_request_type_is_rejected() -> None:
    with pytest.raises(InvalidArgumentError, match="Unsupported request type"):
        normalize_request(42)  # type: ignore[arg-type]


# =============================================================================
# Contents validation
# =============================================================================


@pytest.mark.parametrize(
    "contents",
    [
        [],
        "hello",
        [{"role": "admin", "parts": [{"text": "x"}]}],
        [{"parts": [{"text": "x"}]}],
        [{"role": "user", "parts": []}],
        [{"role": "user", "parts": "x"}],
        [{"role": "user", "parts": [{}]}],
        ["not a turn"],
    ],
    ids=[
        "empty",
        "string",
        "bad-role",
        "missing-role",
        "empty-parts",
        "string-parts",
        "empty-part",
        "non-mapping-turn",
    ],
)
def test_malformed_contents_are_rejected(contents: Any) -> None:
    with pytest.raises(InvalidArgumentError):
        normalize_request(GenerateContentRequest(contents=contents))


def test_function_turn_requires_preceding_function_call() -> None:
    contents = [
        USER_TURN,
        {"role": "function", "parts": [{"functionResponse": {"name": "f"}}]},
    ]

    with pytest.raises(InvalidArgumentError, match="function response") as exc:
        normalize_request(GenerateContentRequest(contents=contents))
    assert exc.value.hint is not None


def test_function_turn_after_model_function_call_is_accepted() -> None:
    contents = [
        USER_TURN,
        {"role": "model", "parts": [{"functionCall": {"name": "f", "args": {}}}]},
        {"role": "function", "parts": [{"functionResponse": {"name": "f"}}]},
    ]

    validated = normalize_request(GenerateContentRequest(contents=contents))

    assert len(validated.contents) == 3


# =============================================================================
# Generation config validation
# =============================================================================


@pytest.mark.parametrize(
    "config",
    [
        {"temperature": 2.5},
        {"temperature": -0.1},
        {"top_p": 1.5},
        {"top_k": 0},
        {"top_k": 41},
        {"candidate_count": 0},
        {"candidate_count": 9},
        {"max_output_tokens": 0},
        {"presence_penalty": 3.0},
        {"frequency_penalty": -2.5},
        {"stop_sequences": ["a", "b", "c", "d", "e", "f"]},
        {"response_mime_type": "text/html"},
        {"unknown_knob": 1},
    ],
)
def test_out_of_range_generation_config_is_rejected(config: dict[str, Any]) -> None:
    with pytest.raises(InvalidArgumentError, match="Invalid generation_config"):
        validate_generation_config(config)


@given(
    temperature=st.one_of(
        st.floats(max_value=-1e-6, allow_nan=False, allow_infinity=False),
        st.floats(min_value=2.000001, allow_nan=False, allow_infinity=False),
    )
)
@settings(max_examples=25, deadline=None, derandomize=True)
def test_any_out_of_range_temperature_is_rejected(temperature: float) -> None:
    """Property: temperatures outside [0, 2] never validate."""
    with pytest.raises(InvalidArgumentError):
        normalize_request("hi", generation_config={"temperature": temperature})


def test_mutually_exclusive_schemas_are_rejected() -> None:
    with pytest.raises(InvalidArgumentError, match="mutually exclusive"):
        validate_generation_config(
            {
                "response_mime_type": "application/json",
                "response_schema": {"type": "OBJECT"},
                "response_json_schema": {"type": "object"},
            }
        )


def test_schema_requires_json_mime_type() -> None:
    with pytest.raises(InvalidArgumentError, match="response_mime_type"):
        validate_generation_config({"response_schema": {"type": "OBJECT"}})


def test_generation_config_fills_defaults_and_renders_camel_case() -> None:
    config = validate_generation_config({"temperature": 0.2, "topK": 10})

    assert config.candidate_count == 1
    assert config.to_wire() == {"temperature": 0.2, "topK": 10, "candidateCount": 1}


def test_generation_config_model_instance_passes_through() -> None:
    config = GenerationConfig(temperature=1.0)
    assert validate_generation_config(config) is config


# =============================================================================
# Safety settings and tools
# =============================================================================


@pytest.mark.parametrize(
    "safety",
    [
        [{"category": "HARM_CATEGORY_MADE_UP", "threshold": "BLOCK_NONE"}],
        [{"category": "HARM_CATEGORY_HARASSMENT"}],
        [{"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_SOME"}],
        [SAFETY[0], SAFETY[0]],
        {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    ],
    ids=["bad-category", "missing-threshold", "bad-threshold", "duplicate", "not-a-list"],
)
def test_malformed_safety_settings_are_rejected(safety: Any) -> None:
    with pytest.raises(InvalidArgumentError):
        normalize_request("hi", safety_settings=safety)


@pytest.mark.parametrize(
    "tools",
    [
        [{}],
        ["search"],
        [{"functionDeclarations": [{"description": "no name"}]}],
        [{"function_declarations": [{"name": "  "}]}],
        [{"functionDeclarations": "get_weather"}],
        {"functionDeclarations": []},
    ],
)
def test_malformed_tools_are_rejected(tools: Any) -> None:
    with pytest.raises(InvalidArgumentError):
        normalize_request("hi", tools=tools)


def test_payload_uses_wire_field_names_and_omits_absent_fields() -> None:
    validated = normalize_request(
        "hi",
        generation_config={"temperature": 0.5},
        safety_settings=SAFETY,
    )

    assert validated.to_payload() == {
        "contents": [{"role": "user", "parts": [{"text": "hi"}]}],
        "generationConfig": {"temperature": 0.5, "candidateCount": 1},
        "safetySettings": [
            {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_ONLY_HIGH"}
        ],
    }
