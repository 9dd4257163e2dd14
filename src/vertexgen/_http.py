"""Small HTTP-related values shared across vertexgen.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

import httpx

try:
    PACKAGE_VERSION = version("vertexgen")
except PackageNotFoundError:
    PACKAGE_VERSION = "0.0.0+unknown"

USER_AGENT = f"vertexgen/{PACKAGE_VERSION} httpx/{httpx.__version__}"
JSON_CONTENT_TYPE = "application/json"
