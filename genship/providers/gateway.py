"""Provider gateway: picks a generation backend and normalises its output.

Backends are consulted in a fixed priority order and the first configured one
is used. Falling back to the next configured backend after a failure is off
by default and enabled with ``fallback_enabled``.
"""

from __future__ import annotations

import logging

from genship.config import ProviderConfig
from genship.models import GenerationMetadata, GenerationResult, OutputMode, Stack
from genship.parser import ContentParser
from genship.providers.base import (
    GenerationBackend,
    ProviderError,
    ProviderErrorKind,
    ProviderResponse,
)
from genship.providers.gemini import GeminiBackend
from genship.providers.ollama import OllamaBackend
from genship.providers.openai import OpenAIBackend
from genship.stacks import get_profile

logger = logging.getLogger(__name__)

_BASE_INSTRUCTION = """You are an expert software developer. Generate clean, production-ready code that follows best practices and security standards.

IMPORTANT: Return ONLY valid, runnable code. Do not include any explanatory text, comments about the code, or markdown formatting unless it's part of the actual code.

For {stack} projects, ensure:
- Modern coding standards and best practices
- Proper error handling
- Security considerations
- Clean, readable code structure
- Appropriate dependencies and imports"""

_PREVIEW_INSTRUCTION = (
    "Generate a simple, functional example that demonstrates the core features. "
    "Keep it minimal but complete."
)

_MULTI_FILE_INSTRUCTION = """Return every file of the project as a separate fenced code block whose info string names the file path relative to the project root, for example:

```json path=package.json
{{ "name": "app", "version": "1.0.0" }}
```

Include the dependency manifest for the stack ({manifest})."""


def build_system_prompt(
    stack: Stack | str,
    output_mode: OutputMode | str,
    multi_file: bool = False,
) -> str:
    """Build the system instruction for a stack and output mode.

    Preview mode asks for a minimal example; deploy and download ask for
    full production-style output.
    """
    profile = get_profile(stack)
    sections = [_BASE_INSTRUCTION.format(stack=profile.stack.value)]
    if OutputMode(output_mode) is OutputMode.PREVIEW:
        sections.append(_PREVIEW_INSTRUCTION)
    if multi_file:
        manifest = "requirements.txt" if profile.language == "python" else "package.json"
        sections.append(_MULTI_FILE_INSTRUCTION.format(manifest=manifest))
    return "\n\n".join(sections)


class ProviderGateway:
    """Selects a backend, calls it and parses the result."""

    def __init__(
        self,
        backends: list[GenerationBackend],
        parser: ContentParser | None = None,
        fallback_enabled: bool = False,
    ) -> None:
        self.backends = backends
        self.parser = parser or ContentParser()
        self.fallback_enabled = fallback_enabled

    @classmethod
    def from_config(
        cls, config: ProviderConfig, parser: ContentParser | None = None
    ) -> "ProviderGateway":
        """Instantiate the backends named in ``config.priority``, in that order."""
        factories = {
            "openai": lambda: OpenAIBackend(
                api_key=config.openai_api_key,
                base_url=config.openai_url,
                model=config.openai_model,
                timeout=config.timeout,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
            ),
            "gemini": lambda: GeminiBackend(
                api_key=config.gemini_api_key,
                base_url=config.gemini_url,
                model=config.gemini_model,
                timeout=config.timeout,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
            ),
            "ollama": lambda: OllamaBackend(
                base_url=config.ollama_url,
                model=config.ollama_model,
                timeout=config.timeout,
            ),
        }
        backends: list[GenerationBackend] = []
        for name in config.priority:
            factory = factories.get(name)
            if factory is None:
                logger.warning("Ignoring unknown provider %r in priority list", name)
                continue
            backends.append(factory())
        return cls(backends, parser=parser, fallback_enabled=config.fallback_enabled)

    def configured_backends(self) -> list[GenerationBackend]:
        return [b for b in self.backends if b.is_configured()]

    async def complete(
        self,
        prompt: str,
        stack: Stack | str,
        output_mode: OutputMode | str,
    ) -> ProviderResponse:
        """Call the selected backend and return its non-empty response.

        Raises:
            ProviderError: No backend configured, backend failure, or an
                empty response.
        """
        candidates = self.configured_backends()
        if not candidates:
            raise ProviderError(
                ProviderErrorKind.NO_PROVIDER_CONFIGURED, "No AI provider configured"
            )
        if not self.fallback_enabled:
            candidates = candidates[:1]

        system = build_system_prompt(stack, output_mode, multi_file=self.parser.multi_file)
        errors: list[ProviderError] = []

        for backend in candidates:
            logger.info("Generating %s code with %s (%s)", Stack(stack).value, backend.name, backend.model)
            response = await backend.complete(system, prompt)

            if not response.success:
                logger.error("Backend %s failed: %s", backend.name, response.error)
                errors.append(ProviderError(
                    ProviderErrorKind.BACKEND_FAILURE,
                    response.error or f"{backend.name} request failed",
                    backend=backend.name,
                ))
                continue

            if not response.text.strip():
                logger.error("Backend %s returned no content", backend.name)
                errors.append(ProviderError(
                    ProviderErrorKind.EMPTY_RESPONSE,
                    "No content generated",
                    backend=backend.name,
                ))
                continue

            return response

        raise errors[-1]

    async def generate(
        self,
        prompt: str,
        stack: Stack | str,
        output_mode: OutputMode | str,
    ) -> GenerationResult:
        """Generate and parse code for *prompt*; attaches call telemetry."""
        response = await self.complete(prompt, stack, output_mode)
        result = self.parser.parse(response.text, stack)
        result.metadata = GenerationMetadata(
            tokens_used=response.tokens_used,
            generation_time_ms=int(response.duration_ms),
            model_used=response.model,
        )
        return result
