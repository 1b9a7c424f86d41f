"""Dispatches validated files to the strategy for an output mode."""

from __future__ import annotations

import logging

from genship.config import Config
from genship.delivery.base import DeliveryError, DeliveryErrorKind, DeliveryStrategy
from genship.delivery.deploy import DeployStrategy
from genship.delivery.download import DownloadStrategy
from genship.delivery.preview import PreviewStrategy
from genship.models import DeliveryResult, GeneratedFile, OutputMode, Stack
from genship.rendering import TemplateRenderer

logger = logging.getLogger(__name__)


class OutputRouter:
    """Maps each ``OutputMode`` to one ``DeliveryStrategy``."""

    def __init__(self, strategies: dict[OutputMode, DeliveryStrategy]) -> None:
        self.strategies = strategies

    @classmethod
    def from_config(
        cls, config: Config, renderer: TemplateRenderer | None = None
    ) -> "OutputRouter":
        renderer = renderer or TemplateRenderer()
        return cls({
            OutputMode.PREVIEW: PreviewStrategy(config.delivery),
            OutputMode.DEPLOY: DeployStrategy(config.delivery, config.deployments_dir, renderer),
            OutputMode.DOWNLOAD: DownloadStrategy(config.delivery, config.downloads_dir, renderer),
        })

    async def dispatch(
        self,
        output_mode: OutputMode | str,
        files: list[GeneratedFile],
        stack: Stack | str,
    ) -> DeliveryResult:
        """Deliver *files* through the strategy registered for *output_mode*.

        Raises:
            DeliveryError: Unknown output mode or a strategy failure.
        """
        try:
            mode = OutputMode(output_mode)
        except ValueError:
            raise DeliveryError(
                DeliveryErrorKind.UNSUPPORTED_OUTPUT, f"Unsupported output type: {output_mode}"
            ) from None

        strategy = self.strategies.get(mode)
        if strategy is None:
            raise DeliveryError(
                DeliveryErrorKind.UNSUPPORTED_OUTPUT, f"Unsupported output type: {mode.value}"
            )

        logger.info("Delivering %d file(s) via %s", len(files), strategy.name or mode.value)
        return await strategy.deliver(files, stack)
