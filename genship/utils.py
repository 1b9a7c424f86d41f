"""Shared utility functions for genship.

Provides async command execution, identifier generation, file-system helpers,
logging setup and Rich-based console reporting used by the CLI.
"""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def setup_logging(level: str = "INFO") -> None:
    """Route the ``genship`` logger hierarchy through a Rich handler.

    Safe to call more than once; only the first call installs the handler.
    """
    logger = logging.getLogger("genship")
    logger.setLevel(level.upper())
    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float = 120.0,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously without a shell.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple. A missing executable or a
        timeout is reported as returncode ``-1`` with an explanatory stderr.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    except FileNotFoundError:
        return -1, "", f"Command not found: {cmd[0]}"

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        await _kill(process)
        return -1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}"
    except BaseException:
        # Cancellation must not leave the child running.
        await asyncio.shield(_kill(process))
        raise

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def make_identifier(prefix: str) -> str:
    """Return ``<prefix>-<epoch ms>-<9 random base36 chars>``.

    Examples::

        make_identifier("deploy") -> "deploy-1760880000000-k3f9z0a1q"
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def generate_commit_hash() -> str:
    """Return a 40-hex-char opaque token shaped like a git commit id.

    Random, not derived from content.
    """
    return secrets.token_hex(20)


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path.resolve()


def safe_join(root: Path, relative: str) -> Path | None:
    """Join *relative* onto *root*, or return ``None`` if it would escape *root*.

    A path that resolves to *root* itself is rejected too.
    """
    if not relative or relative.startswith(("/", "\\")) or Path(relative).is_absolute():
        return None
    candidate = (root / relative).resolve()
    base = root.resolve()
    if base not in candidate.parents:
        return None
    return candidate


def write_files(
    root: Path, files: list[tuple[str, str]]
) -> tuple[list[str], dict[str, str]]:
    """Write ``(relative_path, content)`` pairs under *root*.

    Every file is attempted; one failure does not stop the rest.

    Returns:
        ``(rejected, failed)``: the relative paths rejected because they
        escape *root*, and a mapping of relative path to OS error text for
        files that could not be written (e.g. a file and a directory with
        the same name).
    """
    rejected: list[str] = []
    failed: dict[str, str] = {}
    for relative, content in files:
        target = safe_join(root, relative)
        if target is None:
            rejected.append(relative)
            continue
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            failed[relative] = exc.strerror or type(exc).__name__
    return rejected, failed


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
