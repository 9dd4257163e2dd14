"""Token sources: the two ways a bearer token reaches the transport."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
import inspect
import logging
from typing import Any, Protocol, runtime_checkable

from vertexgen.constants import CLOUD_PLATFORM_SCOPE
from vertexgen.errors import ConfigurationError, RequestFailedError

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenSource(Protocol):
    """Anything that can produce a bearer token on demand."""

    async def resolve(self) -> str:
        """Return a bearer token for the next request."""
        ...


class StaticToken:
    """A pre-fetched bearer token, or an awaitable that yields one.

    The awaited value is cached per instance. A coroutine can be awaited only
    once, so it can back a single call; to share one token fetch between
    calls, pass a task or future (e.g. ``asyncio.ensure_future(fetch())``).
    """

    def __init__(self, token: str | Awaitable[str]) -> None:
        self._token = token

    async def resolve(self) -> str:
        token = self._token
        if (
            inspect.iscoroutine(token)
            and inspect.getcoroutinestate(token) != inspect.CORO_CREATED
        ):
            raise ConfigurationError(
                "Token coroutine was already used by another call",
                hint="Pass a task (asyncio.ensure_future(...)) to share one token "
                "fetch between calls.",
            )
        if inspect.isawaitable(token):
            token = await token
            # Awaitables can only be consumed once.
            self._token = token
        if not isinstance(token, str) or not token:
            raise RequestFailedError(
                "Access token is empty",
                hint="Pass a non-empty bearer token or use credentials instead.",
            )
        return token

    def __repr__(self) -> str:
        return "StaticToken([REDACTED])"


class CredentialsTokenSource:
    """Mint tokens from a ``google.auth`` credentials object.

    Refreshing is blocking I/O in google-auth, so it runs in a worker thread.
    """

    def __init__(self, credentials: Any) -> None:
        self._credentials = credentials

    @classmethod
    def from_default(cls) -> CredentialsTokenSource:
        """Use Application Default Credentials."""
        import google.auth
        from google.auth.exceptions import DefaultCredentialsError

        try:
            credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
        except DefaultCredentialsError as e:
            raise ConfigurationError(
                "No Application Default Credentials found",
                hint="Run `gcloud auth application-default login` or set "
                "VERTEX_ACCESS_TOKEN.",
            ) from e
        return cls(credentials)

    async def resolve(self) -> str:
        credentials = self._credentials
        if not getattr(credentials, "valid", False):
            logger.debug("Refreshing credentials for access token")
            await asyncio.to_thread(self._refresh)
        token = getattr(credentials, "token", None)
        if not isinstance(token, str) or not token:
            raise RequestFailedError("Credentials did not produce an access token")
        return token

    def _refresh(self) -> None:
        from google.auth.transport.requests import Request

        self._credentials.refresh(Request())


def as_token_source(token: str | Awaitable[str] | TokenSource) -> TokenSource:
    """Coerce the accepted token forms into a TokenSource."""
    if isinstance(token, TokenSource):
        return token
    if isinstance(token, str) or inspect.isawaitable(token):
        return StaticToken(token)
    raise ConfigurationError(
        f"Unsupported token type: {type(token).__name__}",
        hint="Pass a bearer token string, an awaitable of one, or a TokenSource.",
    )


def credentials_token_source(credentials: Any) -> TokenSource:
    """Wrap a google-auth credentials object (or pass a TokenSource through)."""
    if isinstance(credentials, TokenSource):
        return credentials
    if not callable(getattr(credentials, "refresh", None)):
        raise ConfigurationError(
            f"Unsupported credentials type: {type(credentials).__name__}",
            hint="Pass google.auth credentials or a TokenSource.",
        )
    return CredentialsTokenSource(credentials)
