"""Code-generation backends and the gateway that selects between them.

Key classes:
    ProviderGateway  - Backend selection, system prompt, parsing
    OpenAIBackend    - OpenAI chat completions
    GeminiBackend    - Google Gemini generateContent
    OllamaBackend    - Local Ollama server
"""

from .base import GenerationBackend, ProviderError, ProviderErrorKind, ProviderResponse
from .gateway import ProviderGateway, build_system_prompt
from .gemini import GeminiBackend
from .ollama import OllamaBackend
from .openai import OpenAIBackend

__all__ = [
    "GenerationBackend",
    "ProviderError",
    "ProviderErrorKind",
    "ProviderResponse",
    "ProviderGateway",
    "build_system_prompt",
    "GeminiBackend",
    "OllamaBackend",
    "OpenAIBackend",
]
