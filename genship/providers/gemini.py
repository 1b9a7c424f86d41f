"""Backend for the Google Gemini ``generateContent`` REST API."""

from __future__ import annotations

import time

from genship.providers.base import (
    MALFORMED_RESPONSE_ERRORS,
    GenerationBackend,
    ProviderResponse,
)


class GeminiBackend(GenerationBackend):
    """Sends the system instruction and the prompt as two content parts."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-pro",
        timeout: int = 120,
        max_tokens: int = 4000,
        temperature: float = 0.3,
    ) -> None:
        super().__init__(base_url=base_url, model=model, timeout=timeout)
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.temperature = temperature

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @staticmethod
    def _extract_text(data: dict) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    @staticmethod
    def _extract_tokens(data: dict) -> int:
        usage = data.get("usageMetadata") or {}
        return int(usage.get("totalTokenCount", 0) or 0)

    async def complete(self, system: str, prompt: str) -> ProviderResponse:
        payload = {
            "contents": [
                {"role": "user", "parts": [{"text": system}, {"text": prompt}]},
            ],
            "generationConfig": {
                "maxOutputTokens": self.max_tokens,
                "temperature": self.temperature,
            },
        }

        start = time.monotonic()
        data, error = await self._post_json(
            f"/models/{self.model}:generateContent",
            payload,
            params={"key": self.api_key},
        )
        if data is None:
            return self._failure(error or "Unknown Gemini error")

        try:
            return ProviderResponse(
                text=self._extract_text(data),
                model=data.get("modelVersion", self.model),
                backend=self.name,
                tokens_used=self._extract_tokens(data),
                duration_ms=(time.monotonic() - start) * 1000.0,
                success=True,
            )
        except MALFORMED_RESPONSE_ERRORS as exc:
            return self._failure(f"Malformed {self.name} response: {exc}")
