"""Phase 1: Request normalization and pre-flight validation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from vertexgen.constants import FUNCTION_ROLE, MODEL_ROLE, USER_ROLE, VALID_ROLES
from vertexgen.content import GenerateContentRequest, GenerationConfig, SafetySetting
from vertexgen.errors import InvalidArgumentError

if TYPE_CHECKING:
    from vertexgen.content import GenerationConfigInput, SafetySettingInput

T = TypeVar("T")

RequestInput = str | GenerateContentRequest | Mapping[str, Any]


@dataclass(frozen=True)
class ValidatedRequest:
    """Merged request that passed validation and is ready to send."""

    contents: tuple[dict[str, Any], ...]
    generation_config: GenerationConfig | None = None
    safety_settings: tuple[SafetySetting, ...] | None = None
    tools: tuple[dict[str, Any], ...] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Render the JSON request body."""
        payload: dict[str, Any] = {"contents": [dict(c) for c in self.contents]}
        if self.generation_config is not None:
            payload["generationConfig"] = self.generation_config.to_wire()
        if self.safety_settings is not None:
            payload["safetySettings"] = [s.to_wire() for s in self.safety_settings]
        if self.tools is not None:
            payload["tools"] = [dict(t) for t in self.tools]
        return payload


def prefer(request_value: T | None, fallback: T | None) -> T | None:
    """Return the request's own value, or *fallback* when it is absent."""
    return request_value if request_value is not None else fallback


def normalize_request(
    request: RequestInput,
    generation_config: GenerationConfigInput | None = None,
    safety_settings: Sequence[SafetySettingInput] | None = None,
    tools: Sequence[Mapping[str, Any]] | None = None,
) -> ValidatedRequest:
    """Validate and normalize caller input into a ValidatedRequest.

    Args:
        request: A prompt string, a GenerateContentRequest, or an equivalent dict.
        generation_config: Used only when the request carries none.
        safety_settings: Used only when the request carries none.
        tools: Used only when the request carries none.

    Returns:
        ValidatedRequest ready for the transport.

    Raises:
        InvalidArgumentError: If any part of the merged request is invalid.
    """
    structured = _as_structured(request)

    contents = validate_contents(structured.contents)
    merged_config = prefer(structured.generation_config, generation_config)
    merged_safety = prefer(structured.safety_settings, safety_settings)
    merged_tools = prefer(structured.tools, tools)

    return ValidatedRequest(
        contents=contents,
        generation_config=(
            validate_generation_config(merged_config)
            if merged_config is not None
            else None
        ),
        safety_settings=(
            validate_safety_settings(merged_safety)
            if merged_safety is not None
            else None
        ),
        tools=validate_tools(merged_tools) if merged_tools is not None else None,
    )


def _as_structured(request: RequestInput) -> GenerateContentRequest:
    if isinstance(request, str):
        return GenerateContentRequest(
            contents=[{"role": USER_ROLE, "parts": [{"text": request}]}]
        )
    if isinstance(request, GenerateContentRequest):
        return request
    if isinstance(request, Mapping):
        return GenerateContentRequest.from_mapping(request)
    raise InvalidArgumentError(
        f"Unsupported request type: {type(request).__name__}",
        hint="Pass a prompt string, a GenerateContentRequest, or a dict.",
    )


def validate_contents(contents: Any) -> tuple[dict[str, Any], ...]:
    """Check turn structure and role ordering."""
    if isinstance(contents, (str, bytes)) or not isinstance(contents, Sequence):
        raise InvalidArgumentError(
            "contents must be a list of content turns",
            hint="Pass contents=[{'role': 'user', 'parts': [{'text': '...'}]}].",
        )
    if not contents:
        raise InvalidArgumentError(
            "contents is empty",
            hint="A request needs at least one content turn.",
        )

    turns: list[dict[str, Any]] = []
    for i, turn in enumerate(contents):
        if not isinstance(turn, Mapping):
            raise InvalidArgumentError(
                f"contents[{i}] must be a mapping, got {type(turn).__name__}"
            )
        role = turn.get("role")
        if role not in VALID_ROLES:
            raise InvalidArgumentError(
                f"contents[{i}] has invalid role {role!r}",
                hint=f"Role must be one of: {', '.join(sorted(VALID_ROLES))}.",
            )
        parts = turn.get("parts")
        if (
            isinstance(parts, (str, bytes))
            or not isinstance(parts, Sequence)
            or not parts
        ):
            raise InvalidArgumentError(
                f"contents[{i}].parts must be a non-empty list",
                hint="Each turn needs parts like [{'text': '...'}].",
            )
        for j, part in enumerate(parts):
            if not isinstance(part, Mapping) or not part:
                raise InvalidArgumentError(
                    f"contents[{i}].parts[{j}] must be a non-empty mapping"
                )
        if role == FUNCTION_ROLE and not _is_function_call_turn(turns[-1] if turns else None):
            raise InvalidArgumentError(
                f"contents[{i}] is a function response without a preceding function call",
                hint="A 'function' turn must directly follow a 'model' turn "
                "containing a functionCall part.",
            )
        turns.append(dict(turn))
    return tuple(turns)


def _is_function_call_turn(turn: Mapping[str, Any] | None) -> bool:
    if turn is None or turn.get("role") != MODEL_ROLE:
        return False
    return any(
        "functionCall" in part or "function_call" in part for part in turn["parts"]
    )


def validate_generation_config(config: GenerationConfigInput) -> GenerationConfig:
    """Validate sampling bounds and option exclusivity; fill in defaults."""
    if isinstance(config, GenerationConfig):
        return config
    if not isinstance(config, Mapping):
        raise InvalidArgumentError(
            f"generation_config must be a mapping, got {type(config).__name__}"
        )
    try:
        return GenerationConfig.model_validate(dict(config))
    except ValidationError as e:
        raise InvalidArgumentError(
            f"Invalid generation_config: {_describe(e)}",
            hint="Check sampling parameter ranges (e.g. temperature 0-2, top_k 1-40).",
        ) from e


def validate_safety_settings(
    settings: Sequence[SafetySettingInput],
) -> tuple[SafetySetting, ...]:
    """Parse safety settings and reject duplicate categories."""
    if isinstance(settings, (str, bytes, Mapping)) or not isinstance(settings, Sequence):
        raise InvalidArgumentError("safety_settings must be a list of settings")

    parsed: list[SafetySetting] = []
    seen: set[str] = set()
    for i, item in enumerate(settings):
        try:
            setting = (
                item
                if isinstance(item, SafetySetting)
                else SafetySetting.model_validate(item)
            )
        except ValidationError as e:
            raise InvalidArgumentError(
                f"Invalid safety_settings[{i}]: {_describe(e)}",
                hint="Each setting needs a HARM_CATEGORY_* category and a threshold.",
            ) from e
        if setting.category in seen:
            raise InvalidArgumentError(
                f"Duplicate safety setting for {setting.category}"
            )
        seen.add(setting.category)
        parsed.append(setting)
    return tuple(parsed)


def validate_tools(tools: Sequence[Mapping[str, Any]]) -> tuple[dict[str, Any], ...]:
    """Check tool entries and the names of their function declarations."""
    if isinstance(tools, (str, bytes, Mapping)) or not isinstance(tools, Sequence):
        raise InvalidArgumentError("tools must be a list of tool declarations")

    checked: list[dict[str, Any]] = []
    for i, tool in enumerate(tools):
        if not isinstance(tool, Mapping) or not tool:
            raise InvalidArgumentError(f"tools[{i}] must be a non-empty mapping")
        declarations = tool.get("functionDeclarations", tool.get("function_declarations"))
        if declarations is not None:
            if isinstance(declarations, (str, bytes)) or not isinstance(
                declarations, Sequence
            ):
                raise InvalidArgumentError(
                    f"tools[{i}] function declarations must be a list"
                )
            for j, decl in enumerate(declarations):
                name = decl.get("name") if isinstance(decl, Mapping) else None
                if not isinstance(name, str) or not name.strip():
                    raise InvalidArgumentError(
                        f"tools[{i}] function declaration {j} has no name",
                        hint="Every function declaration needs a non-empty 'name'.",
                    )
        checked.append(dict(tool))
    return tuple(checked)


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "value"
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)
