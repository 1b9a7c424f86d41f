"""Container deployment through the Docker SDK.

Writes the files and a rendered Dockerfile into a per-deployment build
context, builds an image and starts a detached container with dynamically
assigned host ports. The Docker SDK is synchronous, so every call runs in a
worker thread under its own timeout.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Any

import docker
from docker.errors import DockerException, NotFound

from genship.config import DeliveryConfig
from genship.delivery.base import DeliveryError, DeliveryErrorKind, DeliveryStrategy
from genship.models import DeliveryResult, GeneratedFile, Stack
from genship.rendering import TemplateRenderer
from genship.stacks import StackProfile, exposed_ports, get_profile
from genship.utils import generate_commit_hash, make_identifier, write_files

logger = logging.getLogger(__name__)


class DeployStrategy(DeliveryStrategy):
    """Builds and runs one container per deployment.

    Args:
        config: Delivery settings (domain, timeouts, ports, cleanup).
        deployments_dir: Parent of the per-deployment build contexts.
        renderer: Dockerfile renderer.
        client: A ``docker.DockerClient``; created lazily with
            ``docker.from_env()`` when omitted.
    """

    name = "deploy"

    def __init__(
        self,
        config: DeliveryConfig,
        deployments_dir: Path,
        renderer: TemplateRenderer | None = None,
        client: Any = None,
    ) -> None:
        self.config = config
        self.deployments_dir = Path(deployments_dir)
        self.renderer = renderer or TemplateRenderer()
        self._client = client

    def _docker(self) -> Any:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def port_bindings(self, profile: StackProfile) -> dict[str, None]:
        """Container ports mapped to ``None`` so Docker picks free host ports."""
        ports = list(self.config.exposed_ports)
        for port in exposed_ports(profile):
            if port not in ports:
                ports.append(port)
        return {f"{port}/tcp": None for port in ports}

    async def deliver(self, files: list[GeneratedFile], stack: Stack | str) -> DeliveryResult:
        profile = get_profile(stack)
        deployment_id = make_identifier("deploy")
        context_dir = self.deployments_dir / deployment_id
        image_tag = f"{self.config.image_prefix}-{deployment_id}"
        client = None

        try:
            await asyncio.to_thread(self._write_context, context_dir, files, profile)
            client = await asyncio.to_thread(self._docker)

            logger.info("Building image %s", image_tag)
            await asyncio.wait_for(
                asyncio.to_thread(
                    client.images.build, path=str(context_dir), tag=image_tag, rm=True
                ),
                timeout=self.config.build_timeout,
            )

            logger.info("Starting container %s", deployment_id)
            await asyncio.wait_for(
                asyncio.to_thread(
                    client.containers.run,
                    image_tag,
                    name=deployment_id,
                    detach=True,
                    ports=self.port_bindings(profile),
                ),
                timeout=self.config.run_timeout,
            )
        except Exception as exc:
            logger.exception("Deployment %s failed", deployment_id)
            if self.config.cleanup_on_failure:
                await asyncio.to_thread(
                    self._cleanup, client, deployment_id, image_tag, context_dir
                )
            raise DeliveryError(
                DeliveryErrorKind.DEPLOYMENT_FAILED, f"Deployment failed: {exc}"
            ) from exc

        return DeliveryResult(
            deployment_url=f"https://{deployment_id}.{self.config.public_domain}",
            commit_hash=generate_commit_hash(),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _write_context(
        self, context_dir: Path, files: list[GeneratedFile], profile: StackProfile
    ) -> None:
        """Materialise the build context. A generated Dockerfile is kept as-is."""
        context_dir.mkdir(parents=True, exist_ok=False)
        rejected, failed = write_files(context_dir, [(f.filename, f.content) for f in files])
        if rejected:
            raise ValueError(f"Unsafe file paths: {', '.join(rejected)}")
        if failed:
            raise OSError(f"Could not write: {', '.join(failed)}")

        dockerfile = context_dir / "Dockerfile"
        if not dockerfile.exists():
            dockerfile.write_text(self.renderer.dockerfile(profile), encoding="utf-8")

    def _cleanup(
        self, client: Any, container_name: str, image_tag: str, context_dir: Path
    ) -> None:
        """Best-effort removal of whatever a failed deployment left behind."""
        if client is not None:
            try:
                client.containers.get(container_name).remove(force=True)
                logger.info("Removed container %s", container_name)
            except NotFound:
                pass
            except DockerException as exc:
                logger.warning("Could not remove container %s: %s", container_name, exc)

            try:
                client.images.remove(image_tag, force=True)
                logger.info("Removed image %s", image_tag)
            except NotFound:
                pass
            except DockerException as exc:
                logger.warning("Could not remove image %s: %s", image_tag, exc)

        shutil.rmtree(context_dir, ignore_errors=True)
