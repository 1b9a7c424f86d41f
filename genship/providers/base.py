"""Shared types for code-generation backends.

Backends never raise for transport problems: like every other async client in
this package they return a ``ProviderResponse`` with ``success=False`` and an
error string. The gateway turns those into ``ProviderError``.
"""

from __future__ import annotations

import abc
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, Field

# What a JSON body of the wrong shape raises while being read. pydantic's
# ValidationError is a ValueError.
MALFORMED_RESPONSE_ERRORS = (AttributeError, TypeError, KeyError, IndexError, ValueError)


class ProviderErrorKind(str, Enum):
    NO_PROVIDER_CONFIGURED = "no_provider_configured"
    EMPTY_RESPONSE = "empty_response"
    BACKEND_FAILURE = "backend_failure"


class ProviderError(Exception):
    """Raised by the gateway when no usable generation could be obtained."""

    def __init__(self, kind: ProviderErrorKind, message: str, backend: str = "") -> None:
        self.kind = kind
        self.message = message
        self.backend = backend
        super().__init__(message)


class ProviderResponse(BaseModel):
    """Normalised response from a generation backend."""

    text: str = Field(default="", description="Generated text")
    model: str = Field(default="", description="Model that produced the response")
    backend: str = Field(default="", description="Backend name, e.g. 'openai'")
    tokens_used: int = Field(default=0, description="Prompt + completion tokens, if reported")
    duration_ms: float = Field(default=0.0, description="Generation time in ms")
    success: bool = Field(default=True, description="Whether the request succeeded")
    error: str | None = Field(default=None, description="Error message on failure")


class GenerationBackend(abc.ABC):
    """A remote model that turns a system + user prompt into text."""

    name: str = ""

    def __init__(self, base_url: str, model: str, timeout: int = 120) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    @abc.abstractmethod
    def is_configured(self) -> bool:
        """Whether enough settings are present to attempt a call."""

    @abc.abstractmethod
    async def complete(self, system: str, prompt: str) -> ProviderResponse:
        """Generate text for *prompt* under the *system* instruction."""

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self, headers: dict[str, str] | None = None) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
        )

    async def _post_json(
        self,
        path: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> tuple[dict[str, Any] | None, str | None]:
        """POST *payload* and return ``(json_body, None)`` or ``(None, error)``."""
        try:
            async with self._client(headers) as client:
                response = await client.post(path, json=payload, params=params)
                response.raise_for_status()
                body = response.json()
            if not isinstance(body, dict):
                return None, (
                    f"Malformed {self.name} response: expected a JSON object, "
                    f"got {type(body).__name__}"
                )
            return body, None
        except httpx.ConnectError:
            return None, f"Cannot connect to {self.name} at {self.base_url}."
        except httpx.TimeoutException:
            return None, f"Request to {self.name} timed out after {self.timeout}s."
        except httpx.HTTPStatusError as exc:
            return None, (
                f"{self.name} returned HTTP {exc.response.status_code}: "
                f"{exc.response.text[:500]}"
            )
        except Exception as exc:  # noqa: BLE001
            return None, f"Unexpected error calling {self.name}: {exc}"

    def _failure(self, error: str) -> ProviderResponse:
        return ProviderResponse(
            model=self.model, backend=self.name, success=False, error=error
        )
