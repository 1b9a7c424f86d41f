"""Turns raw model output into a structured file set.

The parser is pure: no I/O, no exceptions. By default the whole response
becomes the stack's single default file. In multi-file mode, fenced code
blocks annotated with a relative path are extracted as individual files;
when none are found the parser degrades to the single-file policy.

Recognised annotations::

    ```jsx path=src/App.jsx          (also ``filename=``)
    ```js
    // file: server.js               (also ``# file:`` and ``<!-- file: -->``)
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from genship.models import GeneratedFile, GenerationResult, Stack
from genship.rendering import TemplateRenderer
from genship.stacks import get_profile

_FENCE_RE = re.compile(r"```([^\n`]*)\n(.*?)```", re.DOTALL)
_INFO_PATH_RE = re.compile(r"(?:path|filename|file)\s*=\s*[\"']?([^\s\"']+)")
_FIRST_LINE_PATH_RE = re.compile(
    r"^\s*(?://|#|<!--)\s*file(?:name)?\s*:\s*([^\s>]+)\s*(?:-->)?\s*$", re.IGNORECASE
)

_EXTENSION_LANGUAGES: dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".vue": "javascript",
    ".py": "python",
    ".html": "html",
    ".css": "css",
    ".json": "json",
    ".md": "markdown",
    ".sh": "shell",
    ".txt": "text",
    ".yml": "yaml",
    ".yaml": "yaml",
}


class ContentParser:
    """Parses raw generated text into a ``GenerationResult``."""

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        multi_file: bool = False,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.multi_file = multi_file

    def parse(self, raw_text: str, stack: Stack | str) -> GenerationResult:
        """Parse *raw_text* generated for *stack*.

        Args:
            raw_text: The normalised model output.
            stack: Target stack; drives default filename, language and the
                documentation/install-script templates.

        Returns:
            A result with at least one file.
        """
        profile = get_profile(stack)
        text = raw_text or ""

        files: list[GeneratedFile] = []
        if self.multi_file:
            files = self._extract_files(text, profile.language)
            if not files:
                text = _strip_single_fence(text)

        if not files:
            files = [
                GeneratedFile(
                    filename=profile.default_filename,
                    content=text.strip(),
                    language=profile.language,
                )
            ]

        return GenerationResult(
            files=files,
            documentation=self.renderer.documentation(profile),
            installation_script=self.renderer.install_script(profile),
        )

    # ------------------------------------------------------------------
    # Multi-file extraction
    # ------------------------------------------------------------------

    def _extract_files(self, text: str, default_language: str) -> list[GeneratedFile]:
        files: list[GeneratedFile] = []
        seen: dict[str, int] = {}

        for match in _FENCE_RE.finditer(text):
            info, body = match.group(1).strip(), match.group(2)
            path = None

            info_match = _INFO_PATH_RE.search(info)
            if info_match:
                path = info_match.group(1)
            else:
                first_line, _, rest = body.partition("\n")
                line_match = _FIRST_LINE_PATH_RE.match(first_line)
                if line_match:
                    path = line_match.group(1)
                    body = rest

            path = _normalise_path(path)
            if path is None:
                continue

            generated = GeneratedFile(
                filename=path,
                content=body.rstrip() + "\n",
                language=_language_for(path, default_language),
            )
            # A later block for the same path replaces the earlier one.
            if path in seen:
                files[seen[path]] = generated
            else:
                seen[path] = len(files)
                files.append(generated)

        return files


def _normalise_path(path: str | None) -> str | None:
    """Return a clean relative POSIX path, or ``None`` if unusable."""
    if not path:
        return None
    path = path.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    pure = PurePosixPath(path)
    if not path or not pure.parts or pure.is_absolute() or ".." in pure.parts:
        return None
    return str(pure)


def _language_for(path: str, default: str) -> str:
    return _EXTENSION_LANGUAGES.get(PurePosixPath(path).suffix.lower(), default)


def _strip_single_fence(text: str) -> str:
    """Unwrap a response that is exactly one fenced block."""
    stripped = text.strip()
    matches = list(_FENCE_RE.finditer(stripped))
    if len(matches) == 1 and matches[0].span() == (0, len(stripped)):
        return matches[0].group(2)
    return text
