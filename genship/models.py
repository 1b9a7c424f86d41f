"""Pydantic v2 models shared across the generation pipeline.

Defines the enumerations that drive stage dispatch (stack, output mode,
record status) and the value objects passed between the provider gateway,
the parser, the validator and the delivery router.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Stack(str, Enum):
    """Target technology the generated code is written for."""
    REACT = "react"
    VUE = "vue"
    ANGULAR = "angular"
    NODE = "node"
    PYTHON = "python"
    HTML_CSS_JS = "html-css-js"
    REACT_NATIVE = "react-native"
    ELECTRON = "electron"
    NODE_REACT_FULLSTACK = "node-react-fullstack"


class OutputMode(str, Enum):
    """Delivery channel for generated code."""
    PREVIEW = "preview"
    DEPLOY = "deploy"
    DOWNLOAD = "download"


class GenerationStatus(str, Enum):
    """Lifecycle state of a generation record."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationStatus.COMPLETED, GenerationStatus.FAILED)


class _CamelModel(BaseModel):
    """Base for models serialised to API clients with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class GeneratedFile(_CamelModel):
    """A single generated source file."""
    filename: str = Field(..., description="Path relative to the project root")
    content: str = Field(default="", description="File content")
    language: str = Field(default="", description="Language tag, e.g. 'javascript'")


class GenerationMetadata(_CamelModel):
    """Best-effort telemetry about a generation call."""
    tokens_used: int = Field(default=0, ge=0)
    generation_time_ms: int = Field(default=0, ge=0)
    model_used: str = Field(default="")


class GenerationResult(_CamelModel):
    """Structured output of the parser."""
    files: list[GeneratedFile] = Field(default_factory=list)
    documentation: Optional[str] = None
    installation_script: Optional[str] = None
    metadata: GenerationMetadata = Field(default_factory=GenerationMetadata)


# ---------------------------------------------------------------------------
# Validation & delivery
# ---------------------------------------------------------------------------

class ValidationResult(_CamelModel):
    """Accumulated validator findings.

    ``is_valid`` reflects ``errors`` only; warnings and security issues are
    reported but never flip it.
    """
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    security_issues: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        """Return a human-readable summary."""
        status = "VALID" if self.is_valid else "INVALID"
        return (
            f"Validation: {status} "
            f"({len(self.errors)} errors, {len(self.warnings)} warnings, "
            f"{len(self.security_issues)} security issues)"
        )


class DeliveryResult(_CamelModel):
    """Strategy-specific delivery artefacts; at most one URL is set."""
    preview_url: Optional[str] = None
    deployment_url: Optional[str] = None
    download_url: Optional[str] = None
    commit_hash: Optional[str] = None


# ---------------------------------------------------------------------------
# Record projections
# ---------------------------------------------------------------------------

class GenerationRecordView(_CamelModel):
    """Read-only projection of a persisted generation record."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    user_id: str
    prompt: str
    stack: Stack
    output_mode: OutputMode
    status: GenerationStatus
    files: Optional[list[GeneratedFile]] = None
    preview_url: Optional[str] = None
    deployment_url: Optional[str] = None
    download_url: Optional[str] = None
    commit_hash: Optional[str] = None
    installation_script: Optional[str] = None
    documentation: Optional[str] = None
    error: Optional[str] = None
    metadata: GenerationMetadata = Field(default_factory=GenerationMetadata)
    created_at: datetime
    updated_at: datetime


class Pagination(_CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class GenerationPage(_CamelModel):
    """One page of a user's records, newest first, without file payloads."""
    generations: list[GenerationRecordView]
    pagination: Pagination
