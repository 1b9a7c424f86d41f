"""Shared pytest fixtures for the genship test suite.

Provides reusable fixtures for:
- Temporary data directories and configuration
- An in-memory SQLite repository
- Mocked httpx clients for the generation backends
- Mock subprocess helpers
- Sample generated files per stack
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from genship.config import Config, ValidationConfig
from genship.models import GeneratedFile
from genship.rendering import TemplateRenderer
from genship.store import GenerationRepository, create_session_factory


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Paths & configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Temporary data directory (auto-cleanup)."""
    path = tmp_path / "data"
    path.mkdir()
    yield path


@pytest.fixture
def config(data_dir: Path) -> Config:
    """Config rooted in a temp directory with an in-memory database."""
    cfg = Config(data_dir=data_dir, database_url="sqlite://")
    cfg.ensure_directories()
    return cfg


@pytest.fixture
def validation_config() -> ValidationConfig:
    return ValidationConfig(check_timeout=5)


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

@pytest.fixture
def repository() -> GenerationRepository:
    """Repository over a fresh in-memory SQLite database."""
    return GenerationRepository(create_session_factory("sqlite://"))


# ---------------------------------------------------------------------------
# Mock HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """Factory patching ``httpx.AsyncClient`` to return canned responses.

    Usage:
        def test_backend(mock_http):
            patcher, client = mock_http({"response": "code"})
            with patcher:
                ...
            payload = client.post.call_args[1]["json"]
    """
    def factory(json_data: Any = None, side_effect: Exception | None = None):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = json_data
        mock_response.raise_for_status = MagicMock()

        mock_client = AsyncMock()
        if side_effect is not None:
            mock_client.post = AsyncMock(side_effect=side_effect)
        else:
            mock_client.post = AsyncMock(return_value=mock_response)
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)

        return patch("httpx.AsyncClient", return_value=mock_client), mock_client

    return factory


@pytest.fixture
def http_status_error():
    """Factory building an ``httpx.HTTPStatusError`` for a status code."""
    def factory(status_code: int = 500, text: str = "Internal Server Error"):
        request = httpx.Request("POST", "http://backend.test/generate")
        response = httpx.Response(status_code, text=text, request=request)
        return httpx.HTTPStatusError("error", request=request, response=response)

    return factory


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


# ---------------------------------------------------------------------------
# Sample generated files
# ---------------------------------------------------------------------------

@pytest.fixture
def package_json() -> GeneratedFile:
    return GeneratedFile(
        filename="package.json",
        content=json.dumps({"name": "demo-app", "version": "1.0.0"}),
        language="json",
    )


@pytest.fixture
def node_files(package_json: GeneratedFile) -> list[GeneratedFile]:
    """A minimal valid Node.js project."""
    return [
        package_json,
        GeneratedFile(
            filename="server.js",
            content="const http = require('http');\nhttp.createServer((req, res) => res.end('ok')).listen(3000);\n",
            language="javascript",
        ),
    ]


@pytest.fixture
def static_files() -> list[GeneratedFile]:
    return [
        GeneratedFile(
            filename="index.html",
            content="<!DOCTYPE html>\n<html><head><title>Demo</title></head><body><h1>Hi</h1></body></html>\n",
            language="html",
        )
    ]


@pytest.fixture
def security_corpus() -> Path:
    """Directory of source files with known security findings."""
    return FIXTURES_DIR / "security"
