"""Wire-level constants for the Vertex AI generate-content endpoints."""

from __future__ import annotations

API_VERSION = "v1"
DEFAULT_LOCATION = "us-central1"
DEFAULT_ENDPOINT_TEMPLATE = "{region}-aiplatform.googleapis.com"

# Resource methods: the only transport-level difference between call modes.
GENERATE_CONTENT_METHOD = "generateContent"
STREAMING_GENERATE_CONTENT_METHOD = "streamGenerateContent"

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# ==============================================================================
# Content roles
# ==============================================================================

USER_ROLE = "user"
MODEL_ROLE = "model"
FUNCTION_ROLE = "function"
VALID_ROLES: frozenset[str] = frozenset({USER_ROLE, MODEL_ROLE, FUNCTION_ROLE})

# ==============================================================================
# Generation config bounds
# ==============================================================================

TEMPERATURE_RANGE = (0.0, 2.0)
TOP_P_RANGE = (0.0, 1.0)
TOP_K_RANGE = (1, 40)
CANDIDATE_COUNT_RANGE = (1, 8)
PENALTY_RANGE = (-2.0, 2.0)
MAX_STOP_SEQUENCES = 5
DEFAULT_CANDIDATE_COUNT = 1

RESPONSE_MIME_TYPES: frozenset[str] = frozenset(
    {"text/plain", "application/json", "text/x.enum"}
)
