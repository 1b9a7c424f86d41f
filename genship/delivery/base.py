"""Delivery strategy interface and errors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from genship.models import DeliveryResult, GeneratedFile, Stack


class DeliveryErrorKind(str, Enum):
    DEPLOYMENT_FAILED = "deployment_failed"
    ARCHIVE_FAILED = "archive_failed"
    UNSUPPORTED_OUTPUT = "unsupported_output"


class DeliveryError(Exception):
    """Raised by a delivery strategy or the router."""

    def __init__(self, kind: DeliveryErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(f"[{kind.value}] {message}")


class DeliveryStrategy(ABC):
    """Turns validated files into a delivery artefact."""

    name: str = ""

    @abstractmethod
    async def deliver(self, files: list[GeneratedFile], stack: Stack | str) -> DeliveryResult:
        """Deliver *files*; raises ``DeliveryError`` on failure."""
