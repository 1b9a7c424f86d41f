"""Unit tests for ContentParser (genship.parser).

Tests cover:
- Single-file policy (default filename, language, trimming)
- Documentation and install script attached per stack
- Multi-file extraction from annotated fenced blocks
- Fallback to the single-file policy
"""

from __future__ import annotations

import pytest

from genship.models import Stack
from genship.parser import ContentParser


@pytest.fixture
def parser(renderer) -> ContentParser:
    return ContentParser(renderer)


@pytest.fixture
def multi_parser(renderer) -> ContentParser:
    return ContentParser(renderer, multi_file=True)


# ---------------------------------------------------------------------------
# Single-file policy
# ---------------------------------------------------------------------------


class TestSingleFile:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "stack, filename, language",
        [
            (Stack.REACT, "App.jsx", "javascript"),
            (Stack.PYTHON, "app.py", "python"),
            (Stack.HTML_CSS_JS, "index.html", "html"),
            (Stack.ANGULAR, "app.component.ts", "typescript"),
        ],
    )
    def test_default_file(self, parser, stack, filename, language):
        result = parser.parse("  some code\n\n", stack)

        assert len(result.files) == 1
        assert result.files[0].filename == filename
        assert result.files[0].language == language
        assert result.files[0].content == "some code"

    @pytest.mark.unit
    def test_empty_text_still_yields_a_file(self, parser):
        result = parser.parse("", Stack.NODE)
        assert result.files[0].filename == "server.js"
        assert result.files[0].content == ""

    @pytest.mark.unit
    def test_annotations_ignored_without_multi_file(self, parser):
        text = "```js path=server.js\nconsole.log(1);\n```"
        result = parser.parse(text, Stack.NODE)
        assert [f.filename for f in result.files] == ["server.js"]
        assert result.files[0].content == text

    @pytest.mark.unit
    def test_documentation_and_script(self, parser):
        result = parser.parse("print('hi')", "python")
        assert "**Framework**: python" in result.documentation
        assert result.installation_script.startswith("#!/bin/bash")
        assert "pip install -r requirements.txt" in result.installation_script

    @pytest.mark.unit
    def test_unknown_stack(self, parser):
        with pytest.raises(ValueError):
            parser.parse("code", "cobol")


# ---------------------------------------------------------------------------
# Multi-file extraction
# ---------------------------------------------------------------------------


class TestMultiFile:
    @pytest.mark.unit
    def test_info_string_paths(self, multi_parser):
        text = (
            "Here is the project.\n\n"
            "```json path=package.json\n{\"name\": \"demo\", \"version\": \"1.0.0\"}\n```\n\n"
            "```jsx filename=\"src/App.jsx\"\nexport default function App() {}\n```\n"
        )
        result = multi_parser.parse(text, Stack.REACT)

        assert [f.filename for f in result.files] == ["package.json", "src/App.jsx"]
        assert result.files[0].language == "json"
        assert result.files[1].language == "javascript"
        assert result.files[1].content == "export default function App() {}\n"

    @pytest.mark.unit
    def test_first_line_comment_paths(self, multi_parser):
        text = (
            "```js\n// file: server.js\nrequire('http');\n```\n"
            "```python\n# file: tools/seed.py\nprint('seed')\n```\n"
            "```html\n<!-- file: public/index.html -->\n<!DOCTYPE html>\n```\n"
        )
        result = multi_parser.parse(text, Stack.NODE)

        assert [f.filename for f in result.files] == ["server.js", "tools/seed.py", "public/index.html"]
        assert result.files[0].content == "require('http');\n"
        assert result.files[1].language == "python"

    @pytest.mark.unit
    def test_unannotated_blocks_skipped(self, multi_parser):
        text = "```js path=server.js\na();\n```\n```bash\nnpm install\n```\n"
        result = multi_parser.parse(text, Stack.NODE)
        assert [f.filename for f in result.files] == ["server.js"]

    @pytest.mark.unit
    def test_later_block_replaces_earlier(self, multi_parser):
        text = "```js path=server.js\nfirst();\n```\n```js path=./server.js\nsecond();\n```\n"
        result = multi_parser.parse(text, Stack.NODE)

        assert len(result.files) == 1
        assert result.files[0].content == "second();\n"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "path", ["/etc/passwd", "../escape.js", "src/../../escape.js", ".", "./", "././"]
    )
    def test_unsafe_paths_dropped(self, multi_parser, path):
        text = f"```js path={path}\nx();\n```\n"
        result = multi_parser.parse(text, Stack.NODE)
        assert [f.filename for f in result.files] == ["server.js"]

    @pytest.mark.unit
    def test_root_path_block_skipped_others_kept(self, multi_parser):
        text = (
            "```html path=.\n<html></html>\n```\n"
            "```js path=server.js\nrequire('http');\n```\n"
        )
        result = multi_parser.parse(text, Stack.NODE)
        assert [f.filename for f in result.files] == ["server.js"]
        assert result.files[0].content == "require('http');\n"

    @pytest.mark.unit
    def test_single_unannotated_fence_unwrapped(self, multi_parser):
        result = multi_parser.parse("```python\nprint('hi')\n```", Stack.PYTHON)

        assert result.files[0].filename == "app.py"
        assert result.files[0].content == "print('hi')"

    @pytest.mark.unit
    def test_plain_text_falls_back(self, multi_parser):
        result = multi_parser.parse("<html></html>", Stack.HTML_CSS_JS)
        assert result.files[0].filename == "index.html"
        assert result.files[0].content == "<html></html>"
