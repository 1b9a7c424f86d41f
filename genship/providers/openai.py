"""Backend for the OpenAI chat completions API."""

from __future__ import annotations

import time

from genship.providers.base import (
    MALFORMED_RESPONSE_ERRORS,
    GenerationBackend,
    ProviderResponse,
)


class OpenAIBackend(GenerationBackend):
    """Calls ``POST /chat/completions`` with a system and a user message."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4",
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
        choices = data.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return message.get("content") or ""

    @staticmethod
    def _extract_tokens(data: dict) -> int:
        usage = data.get("usage") or {}
        return int(usage.get("total_tokens", 0) or 0)

    async def complete(self, system: str, prompt: str) -> ProviderResponse:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        start = time.monotonic()
        data, error = await self._post_json("/chat/completions", payload, headers=headers)
        if data is None:
            return self._failure(error or "Unknown OpenAI error")

        try:
            return ProviderResponse(
                text=self._extract_text(data),
                model=data.get("model", self.model),
                backend=self.name,
                tokens_used=self._extract_tokens(data),
                duration_ms=(time.monotonic() - start) * 1000.0,
                success=True,
            )
        except MALFORMED_RESPONSE_ERRORS as exc:
            return self._failure(f"Malformed {self.name} response: {exc}")
