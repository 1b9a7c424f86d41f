"""genship configuration.

Centralised, typed configuration for the generation pipeline, the HTTP API
and the CLI. All settings use Pydantic v2 models so they can be validated at
construction time and serialised to/from JSON or environment variables
without boiler-plate.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from genship.utils import ensure_dir


class ProviderConfig(BaseModel):
    """Code-generation backends and how they are selected."""

    openai_api_key: str = Field(default="")
    openai_url: str = Field(default="https://api.openai.com/v1")
    openai_model: str = Field(default="gpt-4")
    gemini_api_key: str = Field(default="")
    gemini_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    gemini_model: str = Field(default="gemini-pro")
    ollama_url: str = Field(default="", description="Empty disables the Ollama backend")
    ollama_model: str = Field(default="qwen2.5-coder:14b")

    priority: list[str] = Field(
        default=["openai", "gemini", "ollama"],
        description="Backend names in selection order; the first configured one wins",
    )
    fallback_enabled: bool = Field(
        default=False,
        description="Try the next configured backend when the selected one fails",
    )
    max_tokens: int = Field(default=4000, ge=1)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout: int = Field(default=120, ge=1, description="Per-request timeout in seconds")


class ValidationConfig(BaseModel):
    """Syntax-check tooling used by the validator."""

    node_command: str = Field(default="node")
    python_command: str = Field(default_factory=lambda: sys.executable or "python")
    node_check_extensions: list[str] = Field(default=[".js", ".mjs", ".cjs"])
    check_timeout: int = Field(default=30, ge=1, description="Per-file check timeout in seconds")


class DeliveryConfig(BaseModel):
    """Delivery strategy settings."""

    public_domain: str = Field(default="genship.dev")
    image_prefix: str = Field(default="genship")
    exposed_ports: list[int] = Field(default=[3000, 80, 8000])
    build_timeout: int = Field(default=900, ge=1, description="Docker image build timeout in seconds")
    run_timeout: int = Field(default=120, ge=1, description="Docker container start timeout in seconds")
    archive_timeout: int = Field(default=120, ge=1, description="Archive creation timeout in seconds")
    cleanup_on_failure: bool = Field(
        default=True,
        description="Remove a half-started container or built image when deployment fails",
    )


class PipelineConfig(BaseModel):
    """Orchestration knobs."""

    stage_timeout: int = Field(
        default=600, ge=1, description="Upper bound in seconds for the generate and validate stages"
    )
    block_on_security_issues: bool = Field(
        default=False,
        description="Treat a non-empty security_issues list as a validation failure",
    )
    multi_file: bool = Field(
        default=False,
        description="Extract annotated fenced blocks as separate files instead of one file",
    )


class Config(BaseModel):
    """Global genship configuration.

    Instances are typically created once by the CLI or the API factory and
    then passed to every component that needs them.
    """

    data_dir: Path = Field(default=Path("./data"))
    database_url: str = Field(default="")
    log_level: str = Field(default="INFO")
    providers: ProviderConfig = Field(default_factory=ProviderConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def staging_dir(self) -> Path:
        """Root under which per-invocation validation directories are created."""
        return self.data_dir / "temp-validation"

    @property
    def deployments_dir(self) -> Path:
        """Root of the per-deployment build contexts."""
        return self.data_dir / "deployments"

    @property
    def downloads_dir(self) -> Path:
        """Directory that receives the generated zip archives."""
        return self.data_dir / "downloads"

    @property
    def resolved_database_url(self) -> str:
        """The configured database URL, or a SQLite file inside ``data_dir``."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{(self.data_dir / 'genship.db').as_posix()}"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<data_dir>/config.json``.

        Returns:
            The path where the file was written.
        """
        target = path or (self.data_dir / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            GENSHIP_DATA_DIR, GENSHIP_DATABASE_URL, GENSHIP_LOG_LEVEL,
            OPENAI_API_KEY, GENSHIP_OPENAI_MODEL, GEMINI_API_KEY,
            GENSHIP_GEMINI_MODEL, OLLAMA_URL, GENSHIP_OLLAMA_MODEL,
            GENSHIP_PROVIDER_PRIORITY, GENSHIP_PROVIDER_FALLBACK,
            GENSHIP_PROVIDER_TIMEOUT, GENSHIP_PUBLIC_DOMAIN,
            GENSHIP_BUILD_TIMEOUT, GENSHIP_BLOCK_ON_SECURITY,
            GENSHIP_MULTI_FILE.
        """
        provider_kwargs: dict[str, Any] = {}
        if os.environ.get("OPENAI_API_KEY"):
            provider_kwargs["openai_api_key"] = os.environ["OPENAI_API_KEY"]
        if os.environ.get("GENSHIP_OPENAI_MODEL"):
            provider_kwargs["openai_model"] = os.environ["GENSHIP_OPENAI_MODEL"]
        if os.environ.get("GEMINI_API_KEY"):
            provider_kwargs["gemini_api_key"] = os.environ["GEMINI_API_KEY"]
        if os.environ.get("GENSHIP_GEMINI_MODEL"):
            provider_kwargs["gemini_model"] = os.environ["GENSHIP_GEMINI_MODEL"]
        if os.environ.get("OLLAMA_URL"):
            provider_kwargs["ollama_url"] = os.environ["OLLAMA_URL"]
        if os.environ.get("GENSHIP_OLLAMA_MODEL"):
            provider_kwargs["ollama_model"] = os.environ["GENSHIP_OLLAMA_MODEL"]
        if os.environ.get("GENSHIP_PROVIDER_PRIORITY"):
            provider_kwargs["priority"] = [
                p.strip() for p in os.environ["GENSHIP_PROVIDER_PRIORITY"].split(",") if p.strip()
            ]
        if os.environ.get("GENSHIP_PROVIDER_FALLBACK"):
            provider_kwargs["fallback_enabled"] = _env_flag("GENSHIP_PROVIDER_FALLBACK")
        if os.environ.get("GENSHIP_PROVIDER_TIMEOUT"):
            provider_kwargs["timeout"] = int(os.environ["GENSHIP_PROVIDER_TIMEOUT"])

        delivery_kwargs: dict[str, Any] = {}
        if os.environ.get("GENSHIP_PUBLIC_DOMAIN"):
            delivery_kwargs["public_domain"] = os.environ["GENSHIP_PUBLIC_DOMAIN"]
        if os.environ.get("GENSHIP_BUILD_TIMEOUT"):
            delivery_kwargs["build_timeout"] = int(os.environ["GENSHIP_BUILD_TIMEOUT"])

        pipeline_kwargs: dict[str, Any] = {}
        if os.environ.get("GENSHIP_BLOCK_ON_SECURITY"):
            pipeline_kwargs["block_on_security_issues"] = _env_flag("GENSHIP_BLOCK_ON_SECURITY")
        if os.environ.get("GENSHIP_MULTI_FILE"):
            pipeline_kwargs["multi_file"] = _env_flag("GENSHIP_MULTI_FILE")

        return cls(
            data_dir=Path(os.environ.get("GENSHIP_DATA_DIR", "./data")),
            database_url=os.environ.get("GENSHIP_DATABASE_URL", ""),
            log_level=os.environ.get("GENSHIP_LOG_LEVEL", "INFO"),
            providers=ProviderConfig(**provider_kwargs),
            delivery=DeliveryConfig(**delivery_kwargs),
            pipeline=PipelineConfig(**pipeline_kwargs),
        )

    def ensure_directories(self) -> None:
        """Create all derived directories that must exist before the pipeline runs."""
        for directory in (
            self.data_dir,
            self.staging_dir,
            self.deployments_dir,
            self.downloads_dir,
        ):
            ensure_dir(directory)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}
