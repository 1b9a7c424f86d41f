"""Preview delivery: an identifier and a URL, nothing else."""

from __future__ import annotations

import logging

from genship.config import DeliveryConfig
from genship.delivery.base import DeliveryStrategy
from genship.models import DeliveryResult, GeneratedFile, Stack
from genship.utils import generate_commit_hash, make_identifier

logger = logging.getLogger(__name__)


class PreviewStrategy(DeliveryStrategy):
    """Issues a preview URL. No backing service is started."""

    name = "preview"

    def __init__(self, config: DeliveryConfig) -> None:
        self.config = config

    async def deliver(self, files: list[GeneratedFile], stack: Stack | str) -> DeliveryResult:
        preview_id = make_identifier("preview")
        logger.info("Preview %s issued for %d file(s)", preview_id, len(files))
        return DeliveryResult(
            preview_url=f"https://preview.{self.config.public_domain}/{preview_id}",
            commit_hash=generate_commit_hash(),
        )
