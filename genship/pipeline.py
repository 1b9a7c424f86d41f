"""genship generation pipeline orchestrator.

Runs one generation request through its stages:

GENERATE -- Call the provider gateway and parse the response into files.
VALIDATE -- Syntax checks and the security scan over a staged copy.
DELIVER  -- Preview URL, container deployment or zip archive.

The record is created ``pending``, moved to ``generating`` and always ends
``completed`` or ``failed``. Stage exceptions are logged with full detail and
persisted as an opaque message; the caller receives a ``GenerationOutcome``
naming the stage that failed.

Usage::

    pipeline = GenerationPipeline.from_config(Config.from_env())
    outcome = await pipeline.run("user-1", "Build a todo app", "react", "preview")
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from genship.config import Config, PipelineConfig
from genship.delivery import DeliveryError, OutputRouter
from genship.lifecycle import GenerationLifecycle
from genship.models import (
    DeliveryResult,
    GenerationRecordView,
    GenerationResult,
    GenerationStatus,
    OutputMode,
    Stack,
    ValidationResult,
)
from genship.parser import ContentParser
from genship.providers import ProviderError, ProviderGateway
from genship.rendering import TemplateRenderer
from genship.store import GenerationRepository, create_session_factory, to_view
from genship.utils import format_duration
from genship.validation import Validator

logger = logging.getLogger(__name__)

GENERATION_FAILED = "Code generation failed"
VALIDATION_FAILED = "Generated code validation failed"
DEPLOYMENT_FAILED = "Deployment failed"


# ---------------------------------------------------------------------------
# Exceptions & outcome
# ---------------------------------------------------------------------------


class PipelineStage(str, Enum):
    GENERATE = "generate"
    VALIDATE = "validate"
    DELIVER = "deliver"


class PipelineError(Exception):
    """Raised when a stage fails; ``message`` is safe to persist and return."""

    def __init__(
        self,
        stage: PipelineStage,
        message: str,
        validation: ValidationResult | None = None,
    ) -> None:
        self.stage = stage
        self.message = message
        self.validation = validation
        super().__init__(f"Stage {stage.value}: {message}")


class GenerationOutcome(BaseModel):
    """Terminal record state plus what the caller needs to build a response."""

    record: GenerationRecordView
    validation: Optional[ValidationResult] = None
    failed_stage: Optional[PipelineStage] = None

    @property
    def succeeded(self) -> bool:
        return self.record.status is GenerationStatus.COMPLETED


# ---------------------------------------------------------------------------
# GenerationPipeline
# ---------------------------------------------------------------------------


class GenerationPipeline:
    """Sequences generate, validate and deliver around one persisted record.

    All collaborators are injected; ``from_config`` wires the defaults.
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        validator: Validator,
        router: OutputRouter,
        repository: GenerationRepository,
        config: PipelineConfig | None = None,
    ) -> None:
        self.gateway = gateway
        self.validator = validator
        self.router = router
        self.repository = repository
        self.lifecycle = GenerationLifecycle(repository)
        self.config = config or PipelineConfig()

    @classmethod
    def from_config(
        cls, config: Config, repository: GenerationRepository | None = None
    ) -> "GenerationPipeline":
        config.ensure_directories()
        renderer = TemplateRenderer()
        parser = ContentParser(renderer=renderer, multi_file=config.pipeline.multi_file)
        if repository is None:
            repository = GenerationRepository(create_session_factory(config.resolved_database_url))
        return cls(
            gateway=ProviderGateway.from_config(config.providers, parser=parser),
            validator=Validator(config.validation, config.staging_dir),
            router=OutputRouter.from_config(config, renderer=renderer),
            repository=repository,
            config=config.pipeline,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        user_id: str,
        prompt: str,
        stack: Stack | str,
        output_mode: OutputMode | str,
    ) -> GenerationOutcome:
        """Run one generation request to a terminal state.

        Returns:
            The outcome. Never raises for stage failures; persistence errors
            propagate.
        """
        # The repository is synchronous; keep its I/O off the event loop.
        record = await asyncio.to_thread(
            self.repository.create, user_id, prompt, stack, output_mode
        )
        generation_id = record.id
        await asyncio.to_thread(self.lifecycle.mark_generating, generation_id)
        started = time.monotonic()
        logger.info("Generation %s started (%s, %s)", generation_id, Stack(stack).value, OutputMode(output_mode).value)

        validation: ValidationResult | None = None
        try:
            result = await self._generate(prompt, stack, output_mode)
            validation = await self._validate(result, stack)
            delivery = await self._deliver(output_mode, result, stack)
        except PipelineError as exc:
            failed = await asyncio.to_thread(
                self.lifecycle.mark_failed, generation_id, self._record_error(exc)
            )
            logger.warning(
                "Generation %s failed at %s after %s",
                generation_id, exc.stage.value, format_duration(time.monotonic() - started),
            )
            return GenerationOutcome(
                record=to_view(failed),
                validation=exc.validation or validation,
                failed_stage=exc.stage,
            )

        completed = await asyncio.to_thread(
            self.lifecycle.mark_completed, generation_id, result, delivery
        )
        logger.info(
            "Generation %s completed in %s",
            generation_id, format_duration(time.monotonic() - started),
        )
        return GenerationOutcome(record=to_view(completed), validation=validation)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _generate(
        self, prompt: str, stack: Stack | str, output_mode: OutputMode | str
    ) -> GenerationResult:
        try:
            result = await asyncio.wait_for(
                self.gateway.generate(prompt, stack, output_mode),
                timeout=self.config.stage_timeout,
            )
        except ProviderError as exc:
            logger.error("Provider error (%s): %s", exc.kind.value, exc.message)
            raise PipelineError(PipelineStage.GENERATE, GENERATION_FAILED) from exc
        except asyncio.TimeoutError as exc:
            logger.error("Generation timed out after %ss", self.config.stage_timeout)
            raise PipelineError(PipelineStage.GENERATE, GENERATION_FAILED) from exc
        except Exception as exc:
            logger.exception("Unexpected generation failure")
            raise PipelineError(PipelineStage.GENERATE, GENERATION_FAILED) from exc

        if not result.files:
            logger.error("Parser produced no files")
            raise PipelineError(PipelineStage.GENERATE, GENERATION_FAILED)
        return result

    async def _validate(self, result: GenerationResult, stack: Stack | str) -> ValidationResult:
        try:
            validation = await asyncio.wait_for(
                self.validator.validate(result.files, stack),
                timeout=self.config.stage_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Validation timed out after %ss", self.config.stage_timeout)
            raise PipelineError(PipelineStage.VALIDATE, GENERATION_FAILED) from exc
        except Exception as exc:
            logger.exception("Unexpected validation failure")
            raise PipelineError(PipelineStage.VALIDATE, GENERATION_FAILED) from exc

        if not validation.is_valid:
            raise PipelineError(PipelineStage.VALIDATE, VALIDATION_FAILED, validation=validation)
        if self.config.block_on_security_issues and validation.security_issues:
            raise PipelineError(PipelineStage.VALIDATE, VALIDATION_FAILED, validation=validation)
        return validation

    async def _deliver(
        self, output_mode: OutputMode | str, result: GenerationResult, stack: Stack | str
    ) -> DeliveryResult:
        try:
            return await self.router.dispatch(output_mode, result.files, stack)
        except DeliveryError as exc:
            logger.error("Delivery error (%s): %s", exc.kind.value, exc.message)
            raise PipelineError(PipelineStage.DELIVER, DEPLOYMENT_FAILED) from exc
        except Exception as exc:
            logger.exception("Unexpected delivery failure")
            raise PipelineError(PipelineStage.DELIVER, DEPLOYMENT_FAILED) from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _record_error(exc: PipelineError) -> str:
        """The message persisted on a failed record.

        Validation failures keep the findings that caused them; every other
        stage stores only the opaque stage message.
        """
        validation = exc.validation
        if validation is not None:
            if validation.errors:
                return ", ".join(validation.errors)
            if validation.security_issues:
                return ", ".join(validation.security_issues)
        return exc.message
