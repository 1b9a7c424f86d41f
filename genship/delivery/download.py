"""Download delivery: a DEFLATE zip archive of the project."""

from __future__ import annotations

import asyncio
import logging
import time
import zipfile
from pathlib import Path, PurePosixPath

from genship.config import DeliveryConfig
from genship.delivery.base import DeliveryError, DeliveryErrorKind, DeliveryStrategy
from genship.models import DeliveryResult, GeneratedFile, Stack
from genship.rendering import TemplateRenderer
from genship.stacks import StackProfile, get_profile
from genship.utils import generate_commit_hash, make_identifier

logger = logging.getLogger(__name__)

_COMPRESS_LEVEL = 9


def archive_name(filename: str) -> str:
    """Normalise *filename* to a zip entry name.

    Raises:
        ValueError: If the path is absolute or climbs out of the archive root.
    """
    name = filename.replace("\\", "/")
    path = PurePosixPath(name)
    if not name or path.is_absolute() or ".." in path.parts:
        raise ValueError(f"Unsafe archive entry: {filename!r}")
    parts = [p for p in path.parts if p not in ("", ".")]
    if not parts:
        raise ValueError(f"Unsafe archive entry: {filename!r}")
    return "/".join(parts)


class DownloadStrategy(DeliveryStrategy):
    """Writes ``<downloads_dir>/<id>.zip`` and returns its public URL.

    The archive holds one entry per file plus a root ``README.md`` and an
    executable ``install.sh``; a generated file with either name replaces the
    synthesized one.
    """

    name = "download"

    def __init__(
        self,
        config: DeliveryConfig,
        downloads_dir: Path,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.downloads_dir = Path(downloads_dir)
        self.renderer = renderer or TemplateRenderer()

    async def deliver(self, files: list[GeneratedFile], stack: Stack | str) -> DeliveryResult:
        profile = get_profile(stack)
        download_id = make_identifier("download")
        archive_path = self.downloads_dir / f"{download_id}.zip"

        try:
            await asyncio.wait_for(
                asyncio.to_thread(self.write_archive, archive_path, files, profile),
                timeout=self.config.archive_timeout,
            )
        except Exception as exc:
            logger.exception("Archive %s failed", archive_path.name)
            archive_path.unlink(missing_ok=True)
            raise DeliveryError(
                DeliveryErrorKind.ARCHIVE_FAILED, f"Archive creation failed: {exc}"
            ) from exc

        logger.info("Archive %s written (%d file(s))", archive_path.name, len(files))
        return DeliveryResult(
            download_url=f"https://downloads.{self.config.public_domain}/{download_id}.zip",
            commit_hash=generate_commit_hash(),
        )

    def write_archive(
        self, archive_path: Path, files: list[GeneratedFile], profile: StackProfile
    ) -> None:
        """Write the archive; returns only after it is closed."""
        entries = [(archive_name(f.filename), f.content) for f in files]
        names = [name for name, _ in entries]

        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(
            archive_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=_COMPRESS_LEVEL
        ) as archive:
            for name, content in entries:
                if name == "install.sh":
                    archive.writestr(
                        _executable_entry(name), content, compresslevel=_COMPRESS_LEVEL
                    )
                else:
                    archive.writestr(name, content)

            if "README.md" not in names:
                archive.writestr("README.md", self.renderer.readme(profile, names))
            if "install.sh" not in names:
                archive.writestr(
                    _executable_entry("install.sh"),
                    self.renderer.install_script(profile),
                    compresslevel=_COMPRESS_LEVEL,
                )


def _executable_entry(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=time.localtime(time.time())[:6])
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o100755 << 16
    return info
