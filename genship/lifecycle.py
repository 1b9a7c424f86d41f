"""State machine for generation records.

``pending -> generating -> completed | failed`` plus ``pending -> failed``.
Every allowed transition is listed in ``ALLOWED_TRANSITIONS``; terminal
states have no outgoing edges.
"""

from __future__ import annotations

import logging

from genship.models import (
    DeliveryResult,
    GenerationResult,
    GenerationStatus,
)
from genship.store import Generation, GenerationRepository, RecordNotFoundError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[GenerationStatus, frozenset[GenerationStatus]] = {
    GenerationStatus.PENDING: frozenset({GenerationStatus.GENERATING, GenerationStatus.FAILED}),
    GenerationStatus.GENERATING: frozenset({GenerationStatus.COMPLETED, GenerationStatus.FAILED}),
    GenerationStatus.COMPLETED: frozenset(),
    GenerationStatus.FAILED: frozenset(),
}


class InvalidTransitionError(Exception):
    """A status change that the transition table does not allow."""

    def __init__(self, current: GenerationStatus, target: GenerationStatus) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move generation from {current.value} to {target.value}")


def check_transition(current: GenerationStatus | str, target: GenerationStatus | str) -> None:
    """Raise ``InvalidTransitionError`` unless *current* -> *target* is allowed."""
    current = GenerationStatus(current)
    target = GenerationStatus(target)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)


class GenerationLifecycle:
    """Applies guarded status transitions through the repository."""

    def __init__(self, repository: GenerationRepository) -> None:
        self.repository = repository

    def _transition(self, generation_id: str, target: GenerationStatus, **fields) -> Generation:
        record = self.repository.get(generation_id)
        if record is None:
            raise RecordNotFoundError(generation_id)
        check_transition(record.status, target)
        logger.debug("Generation %s: %s -> %s", generation_id, record.status, target.value)
        return self.repository.update(generation_id, status=target.value, **fields)

    def mark_generating(self, generation_id: str) -> Generation:
        return self._transition(generation_id, GenerationStatus.GENERATING)

    def mark_completed(
        self,
        generation_id: str,
        result: GenerationResult,
        delivery: DeliveryResult,
    ) -> Generation:
        """Persist files, artefacts and delivery URLs; requires at least one file."""
        if not result.files:
            raise ValueError("A completed generation must carry at least one file")
        return self._transition(
            generation_id,
            GenerationStatus.COMPLETED,
            files=[f.model_dump() for f in result.files],
            documentation=result.documentation,
            installation_script=result.installation_script,
            tokens_used=result.metadata.tokens_used,
            generation_time_ms=result.metadata.generation_time_ms,
            model_used=result.metadata.model_used,
            preview_url=delivery.preview_url,
            deployment_url=delivery.deployment_url,
            download_url=delivery.download_url,
            commit_hash=delivery.commit_hash,
            error=None,
        )

    def mark_failed(self, generation_id: str, error: str) -> Generation:
        if not error:
            raise ValueError("A failed generation must carry an error message")
        return self._transition(generation_id, GenerationStatus.FAILED, error=error, files=None)
