"""Configuration: frozen Config with environment fallbacks."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from vertexgen.constants import DEFAULT_LOCATION
from vertexgen.errors import ConfigurationError
from vertexgen.transport import RequestOptions

load_dotenv()

_PROJECT_ENV_VARS = ("GOOGLE_CLOUD_PROJECT",)
_LOCATION_ENV_VARS = ("GOOGLE_CLOUD_LOCATION", "GOOGLE_CLOUD_REGION")
_ENDPOINT_ENV_VAR = "VERTEX_API_ENDPOINT"
_TOKEN_ENV_VAR = "VERTEX_ACCESS_TOKEN"


def _first_env(names: tuple[str, ...]) -> str | None:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


@dataclass(frozen=True)
class Config:
    """Immutable call-site configuration for GenerativeModel.

    The model is required. Project, location, endpoint and access token are
    auto-resolved from the environment when not passed explicitly.

    Example:
        config = Config(model="gemini-2.0-flash")
        # project from GOOGLE_CLOUD_PROJECT, location from GOOGLE_CLOUD_LOCATION
    """

    model: str
    #: Auto-resolved from ``GOOGLE_CLOUD_PROJECT`` when *None*.
    project: str | None = None
    #: Auto-resolved from ``GOOGLE_CLOUD_LOCATION``; defaults to us-central1.
    location: str | None = None
    #: Host override, e.g. a private service connect endpoint.
    api_endpoint: str | None = None
    #: Pre-fetched bearer token; Application Default Credentials when *None*.
    access_token: str | None = None
    timeout_s: float | None = None

    def __post_init__(self) -> None:
        """Auto-resolve environment values and validate configuration."""
        if not isinstance(self.model, str) or not self.model.strip():
            raise ConfigurationError(
                "model is required",
                hint="Pass Config(model='gemini-2.0-flash').",
            )

        if self.project is None:
            object.__setattr__(self, "project", _first_env(_PROJECT_ENV_VARS))
        if not self.project:
            raise ConfigurationError(
                "Google Cloud project required",
                hint="Set GOOGLE_CLOUD_PROJECT environment variable or pass project=...",
            )

        if self.location is None:
            object.__setattr__(
                self, "location", _first_env(_LOCATION_ENV_VARS) or DEFAULT_LOCATION
            )
        if self.api_endpoint is None:
            object.__setattr__(self, "api_endpoint", os.environ.get(_ENDPOINT_ENV_VAR))
        if self.access_token is None:
            object.__setattr__(self, "access_token", os.environ.get(_TOKEN_ENV_VAR))

        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
                hint="Omit timeout_s to leave calls unbounded.",
            )

    @property
    def resource_path(self) -> str:
        """Publisher model path, unless the model is already a resource path."""
        if "/" in self.model:
            return self.model
        return f"publishers/google/models/{self.model}"

    def request_options(self) -> RequestOptions | None:
        if self.timeout_s is None:
            return None
        return RequestOptions(timeout_s=self.timeout_s)

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(model={self.model!r}, project={self.project!r}, "
            f"location={self.location!r}, api_endpoint={self.api_endpoint!r}, "
            f"access_token={'[REDACTED]' if self.access_token else None}, "
            f"timeout_s={self.timeout_s!r})"
        )

    __repr__ = __str__
