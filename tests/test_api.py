"""Real Vertex AI calls.

- ENABLE_API_TESTS=1 is required to run any API tests
- GOOGLE_CLOUD_PROJECT and Application Default Credentials (or
  VERTEX_ACCESS_TOKEN) must be available

Kept deliberately small: one unary call and one streaming call.
"""

from __future__ import annotations

import os

import pytest

from vertexgen import Config, GenerativeModel

pytestmark = pytest.mark.api


@pytest.fixture
def model() -> GenerativeModel:
    name = os.environ.get("VERTEX_TEST_MODEL", "gemini-2.0-flash")
    return GenerativeModel(
        Config(model=name, timeout_s=60),
        generation_config={"temperature": 0, "max_output_tokens": 32},
    )


@pytest.mark.asyncio
async def test_unary_call_returns_text(model: GenerativeModel) -> None:
    response = await model.generate_content("Reply with the single word: pong")

    assert "pong" in response.text.lower()
    assert response.usage_metadata is not None


@pytest.mark.asyncio
async def test_stream_aggregate_matches_partials(model: GenerativeModel) -> None:
    async with await model.generate_content_stream("Count from 1 to 5.") as result:
        partials = [p.text async for p in result]
        aggregated = await result.aggregate()

    assert partials
    assert aggregated.text == "".join(partials)
