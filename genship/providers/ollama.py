"""Backend for a local Ollama server (``/api/generate``)."""

from __future__ import annotations

from genship.providers.base import (
    MALFORMED_RESPONSE_ERRORS,
    GenerationBackend,
    ProviderResponse,
)


class OllamaBackend(GenerationBackend):
    """Non-streaming generation against an Ollama server."""

    name = "ollama"

    def is_configured(self) -> bool:
        return bool(self.base_url)

    @staticmethod
    def _extract_text(data: dict) -> str:
        """Ollama's non-streaming response puts the full text in ``"response"``."""
        return data.get("response", "") or ""

    @staticmethod
    def _extract_duration_ms(data: dict) -> float:
        """The API returns ``total_duration`` in **nanoseconds**."""
        ns = data.get("total_duration", 0) or 0
        return ns / 1_000_000.0

    @staticmethod
    def _extract_tokens(data: dict) -> int:
        return int(data.get("prompt_eval_count", 0) or 0) + int(data.get("eval_count", 0) or 0)

    async def complete(self, system: str, prompt: str) -> ProviderResponse:
        payload: dict = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        if system:
            payload["system"] = system

        data, error = await self._post_json("/api/generate", payload)
        if data is None:
            return self._failure(error or "Unknown Ollama error")

        try:
            return ProviderResponse(
                text=self._extract_text(data),
                model=data.get("model", self.model),
                backend=self.name,
                tokens_used=self._extract_tokens(data),
                duration_ms=self._extract_duration_ms(data),
                success=True,
            )
        except MALFORMED_RESPONSE_ERRORS as exc:
            return self._failure(f"Malformed {self.name} response: {exc}")
