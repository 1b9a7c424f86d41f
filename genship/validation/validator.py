"""Stack-specific syntax checks plus the security scan.

Each ``validate`` call materialises the files into its own ``mkdtemp``
staging directory, runs the check selected by the stack, runs the security
scan over everything, and removes the staging directory on every exit path.
Findings are accumulated in a ``ValidationResult``; nothing is raised.

Findings name files by their path relative to the project root, and tool
diagnostics have the staging path stripped, so validating the same files
twice yields identical findings.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import tempfile
from pathlib import Path

from genship.config import ValidationConfig
from genship.models import GeneratedFile, Stack, ValidationResult
from genship.stacks import StackFamily, get_profile
from genship.utils import run_command, write_files
from genship.validation.security import SecurityScanner

logger = logging.getLogger(__name__)


class Validator:
    """Validates generated files for a stack.

    Args:
        config: Tool commands and per-check timeout.
        staging_root: Parent directory for per-invocation staging directories.
        scanner: Security scanner; defaults to the standard rule set.
    """

    def __init__(
        self,
        config: ValidationConfig,
        staging_root: Path,
        scanner: SecurityScanner | None = None,
    ) -> None:
        self.config = config
        self.staging_root = Path(staging_root)
        self.scanner = scanner or SecurityScanner()

    async def validate(self, files: list[GeneratedFile], stack: Stack | str) -> ValidationResult:
        """Validate *files* for *stack*.

        Returns:
            The accumulated findings. A staging-area setup failure is
            reported as a single error.
        """
        result = ValidationResult()

        try:
            self.staging_root.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix="validation-", dir=self.staging_root))
        except OSError as exc:
            logger.error("Could not create validation staging area: %s", exc)
            result.errors.append(f"Validation failed: {exc}")
            return result

        try:
            await self._materialize(staging, files, result)

            try:
                await self._run_stack_checks(staging, stack, result)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Stack checks crashed for %s", stack)
                result.errors.append(f"Validation failed: {exc}")

            try:
                findings = await asyncio.to_thread(self.scanner.scan_directory, staging)
                self.scanner.apply(findings, result)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Security scan crashed")
                result.warnings.append(f"Security scan failed: {exc}")
        finally:
            await asyncio.to_thread(shutil.rmtree, staging, True)
            if staging.exists():
                logger.error("Staging directory %s could not be removed", staging)

        logger.info(result.summary())
        return result

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    async def _materialize(
        self, staging: Path, files: list[GeneratedFile], result: ValidationResult
    ) -> None:
        pairs = [(f.filename, f.content) for f in files]
        rejected, failed = await asyncio.to_thread(write_files, staging, pairs)
        for name in rejected:
            result.errors.append(f"Unsafe file path rejected: {name}")
        for name, reason in failed.items():
            result.errors.append(f"Could not write {name}: {reason}")

    # ------------------------------------------------------------------
    # Stack dispatch
    # ------------------------------------------------------------------

    async def _run_stack_checks(
        self, staging: Path, stack: Stack | str, result: ValidationResult
    ) -> None:
        try:
            profile = get_profile(stack)
        except ValueError:
            name = stack.value if isinstance(stack, Stack) else stack
            result.warnings.append(f"No specific validation available for stack: {name}")
            return

        if profile.family is StackFamily.JAVASCRIPT:
            await self._validate_javascript(staging, staging, result)
        elif profile.family is StackFamily.PYTHON:
            await self._validate_python(staging, result)
        elif profile.family is StackFamily.STATIC:
            self._validate_html(staging, result)
        elif profile.family is StackFamily.FULLSTACK:
            await self._validate_fullstack(staging, result)

    async def _validate_javascript(
        self, project_dir: Path, staging: Path, result: ValidationResult, label: str = ""
    ) -> None:
        """Manifest checks plus ``node --check`` on every checkable file."""
        prefix = f"{label}: " if label else ""
        manifest = project_dir / "package.json"
        if not manifest.is_file():
            result.errors.append(f"{prefix}Missing package.json file")
            return

        try:
            package = json.loads(manifest.read_text(encoding="utf-8"))
        except ValueError as exc:
            result.errors.append(f"{prefix}Invalid package.json: {exc}")
            package = None

        if package is not None and (
            not isinstance(package, dict) or not package.get("name") or not package.get("version")
        ):
            result.errors.append(f"{prefix}Invalid package.json: missing name or version")

        extensions = {ext.lower() for ext in self.config.node_check_extensions}
        for path in _find_files(project_dir, extensions):
            await self._check_syntax(
                [self.config.node_command, "--check", str(path)], path, staging, result
            )

    async def _validate_python(self, staging: Path, result: ValidationResult) -> None:
        for path in _find_files(staging, {".py"}):
            await self._check_syntax(
                [self.config.python_command, "-m", "py_compile", str(path)], path, staging, result
            )

        if not (staging / "requirements.txt").is_file():
            result.warnings.append("Missing requirements.txt file")

    def _validate_html(self, staging: Path, result: ValidationResult) -> None:
        """Structural tag checks; warnings only."""
        for path in _find_files(staging, {".html", ".htm"}):
            rel = path.relative_to(staging).as_posix()
            content = path.read_text(encoding="utf-8", errors="replace").lower()

            if "<!doctype html" not in content and "<html" not in content:
                result.warnings.append(f"{rel}: Missing DOCTYPE or html tag")
            if "<head" not in content:
                result.warnings.append(f"{rel}: Missing head tag")
            if "<body" not in content:
                result.warnings.append(f"{rel}: Missing body tag")

    async def _validate_fullstack(self, staging: Path, result: ValidationResult) -> None:
        subtrees = (("frontend", staging / "frontend"), ("backend", staging / "backend"))

        for name, path in subtrees:
            if not path.is_dir():
                result.errors.append(f"Missing {name} directory for full-stack project")

        for name, path in subtrees:
            if path.is_dir():
                await self._validate_javascript(path, staging, result, label=name)

    # ------------------------------------------------------------------
    # Subprocess checks
    # ------------------------------------------------------------------

    async def _check_syntax(
        self, cmd: list[str], path: Path, staging: Path, result: ValidationResult
    ) -> None:
        rel = path.relative_to(staging).as_posix()
        returncode, stdout, stderr = await run_command(
            cmd, cwd=staging, timeout=self.config.check_timeout
        )
        if returncode == 0:
            return
        diagnostic = _scrub(stderr or stdout or f"exit code {returncode}", staging)
        result.errors.append(f"Syntax error in {rel}: {diagnostic}")


def _find_files(root: Path, extensions: set[str]) -> list[Path]:
    """Files under *root* with one of *extensions*, in sorted order."""
    return sorted(
        p for p in root.rglob("*")
        if p.is_file() and p.suffix.lower() in extensions and "node_modules" not in p.parts
    )


def _scrub(text: str, staging: Path) -> str:
    """Remove the staging directory prefix from tool output."""
    for root in {str(staging.resolve()), str(staging)}:
        text = text.replace(root + "/", "").replace(root + "\\", "").replace(root, ".")
    return text.strip()
