"""Fold streamed partial responses into one composite response.

Text is concatenated in emission order. Metadata fields go through a
``MergeStrategy`` whose defaults are:

- ``safetyRatings``: merged per category, the latest rating for a category wins;
  ratings without a category are all kept.
- ``citationMetadata.citations``: concatenated.
- ``usageMetadata`` / ``promptFeedback``: the latest value wins (the server
  reports cumulative usage on each chunk).

Callers who need different rules replace individual callables.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import copy
from dataclasses import dataclass
from typing import Any

from vertexgen.response import GenerateContentResponse, check_response_shape

Merge = Callable[[Any, Any], Any]


def merge_safety_ratings(
    current: list[dict[str, Any]] | None, update: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Union by category; a newer rating replaces an older one in place.

    Ratings without a category are kept as they are, in arrival order.
    """
    merged: list[Any] = []
    positions: dict[str, int] = {}
    for rating in [*(current or []), *update]:
        category = rating.get("category") if isinstance(rating, dict) else None
        if category is None:
            merged.append(rating)
        elif category in positions:
            merged[positions[category]] = rating
        else:
            positions[category] = len(merged)
            merged.append(rating)
    return merged


def concat_lists(current: list[Any] | None, update: list[Any]) -> list[Any]:
    return [*(current or []), *update]


def last_wins(current: Any, update: Any) -> Any:
    del current
    return update


@dataclass(frozen=True)
class MergeStrategy:
    """Per-field rules for combining metadata across stream chunks."""

    safety_ratings: Merge = merge_safety_ratings
    citations: Merge = concat_lists
    usage_metadata: Merge = last_wins
    prompt_feedback: Merge = last_wins


def aggregate_responses(
    responses: Iterable[GenerateContentResponse | dict[str, Any]],
    strategy: MergeStrategy | None = None,
) -> GenerateContentResponse:
    """Merge partial responses, in order, into a single response.

    Raises:
        MalformedResponseError: If a partial does not have the response shape.
    """
    strategy = strategy or MergeStrategy()
    merged: dict[str, Any] = {}
    candidates: dict[int, dict[str, Any]] = {}

    for response in responses:
        raw = response.raw if isinstance(response, GenerateContentResponse) else response
        check_response_shape(raw, where="aggregated response")
        for position, candidate in enumerate(raw.get("candidates") or []):
            index = candidate.get("index", position)
            target = candidates.setdefault(index, {})
            _merge_candidate(target, candidate, strategy)

        for key, value in raw.items():
            if key == "candidates":
                continue
            if key == "usageMetadata":
                merged[key] = strategy.usage_metadata(merged.get(key), value)
            elif key == "promptFeedback":
                merged[key] = strategy.prompt_feedback(merged.get(key), value)
            else:
                merged[key] = copy.deepcopy(value)

    if candidates:
        merged["candidates"] = [candidates[i] for i in sorted(candidates)]
    return GenerateContentResponse(merged)


def _merge_candidate(
    target: dict[str, Any], candidate: dict[str, Any], strategy: MergeStrategy
) -> None:
    for key, value in candidate.items():
        if key == "content" and isinstance(value, dict):
            content = target.setdefault("content", {"parts": []})
            if "role" in value:
                content["role"] = value["role"]
            for part in value.get("parts") or []:
                _append_part(content["parts"], part)
        elif key == "safetyRatings":
            target[key] = strategy.safety_ratings(target.get(key), value or [])
        elif key == "citationMetadata" and isinstance(value, dict):
            previous = target.get(key, {})
            target[key] = {
                **previous,
                **copy.deepcopy(value),
                "citations": strategy.citations(
                    previous.get("citations"), value.get("citations") or []
                ),
            }
        else:
            # finishReason, finishMessage, index, avgLogprobs, ...
            target[key] = copy.deepcopy(value)


def _append_part(parts: list[dict[str, Any]], part: dict[str, Any]) -> None:
    """Extend the trailing text part when *part* continues it; else append."""
    if (
        parts
        and isinstance(part.get("text"), str)
        and isinstance(parts[-1].get("text"), str)
        and parts[-1].keys() == part.keys()
        and all(parts[-1][k] == part[k] for k in part if k != "text")
    ):
        parts[-1] = {**parts[-1], "text": parts[-1]["text"] + part["text"]}
        return
    parts.append(copy.deepcopy(part))
