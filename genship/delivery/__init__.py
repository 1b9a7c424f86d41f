"""Delivery of validated files.

Key classes:
    OutputRouter      - Output mode to strategy dispatch
    PreviewStrategy   - Preview URL only
    DeployStrategy    - Docker image build and detached container
    DownloadStrategy  - Zip archive with README and install script
"""

from .base import DeliveryError, DeliveryErrorKind, DeliveryStrategy
from .deploy import DeployStrategy
from .download import DownloadStrategy, archive_name
from .preview import PreviewStrategy
from .router import OutputRouter

__all__ = [
    "OutputRouter",
    "DeliveryStrategy",
    "DeliveryError",
    "DeliveryErrorKind",
    "PreviewStrategy",
    "DeployStrategy",
    "DownloadStrategy",
    "archive_name",
]
