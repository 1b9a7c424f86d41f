"""Unit tests for the command-line interface (genship.cli)."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from genship.cli import build_parser, main
from genship.models import (
    GenerationMetadata,
    GenerationRecordView,
    GenerationStatus,
    OutputMode,
    Stack,
    ValidationResult,
)
from genship.pipeline import GenerationOutcome, PipelineStage
from genship.store import GenerationRepository, create_session_factory


def _outcome(status: GenerationStatus, **kwargs) -> GenerationOutcome:
    now = datetime.now(timezone.utc)
    record = GenerationRecordView(
        id="c" * 32,
        user_id="cli",
        prompt="Build a todo app",
        stack=Stack.REACT,
        output_mode=OutputMode.DOWNLOAD,
        status=status,
        created_at=now,
        updated_at=now,
        download_url="https://downloads.genship.dev/download-1-abc.zip" if status is GenerationStatus.COMPLETED else None,
        error="Missing package.json file" if status is GenerationStatus.FAILED else None,
    )
    return GenerationOutcome(record=record, **kwargs)


class TestBuildParser:
    @pytest.mark.unit
    def test_generate_defaults(self):
        args = build_parser().parse_args(["generate", "Build a todo app", "--stack", "react"])
        assert args.command == "generate"
        assert args.prompt == "Build a todo app"
        assert args.stack == "react"
        assert args.output == "preview"
        assert args.user == "cli"

    @pytest.mark.unit
    def test_generate_rejects_unknown_stack(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["generate", "Build a todo app", "--stack", "cobol"])

    @pytest.mark.unit
    def test_serve_options(self):
        args = build_parser().parse_args(["serve", "--host", "0.0.0.0", "--port", "9000"])
        assert args.host == "0.0.0.0"
        assert args.port == 9000

    @pytest.mark.unit
    def test_global_options(self):
        args = build_parser().parse_args(["--data-dir", "/tmp/gs", "list", "--page", "2"])
        assert args.data_dir == "/tmp/gs"
        assert args.page == 2
        assert args.limit == 10

    @pytest.mark.unit
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestGenerateCommand:
    @pytest.mark.unit
    def test_success_exit_code(self, tmp_path: Path):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=_outcome(GenerationStatus.COMPLETED, validation=ValidationResult()))

        with patch.dict(os.environ, {}, clear=True), \
             patch("genship.cli.GenerationPipeline.from_config", return_value=pipeline):
            with pytest.raises(SystemExit) as exc_info:
                main(["--data-dir", str(tmp_path), "generate", "Build a todo app", "-s", "react", "-o", "download"])

        assert exc_info.value.code == 0
        pipeline.run.assert_awaited_once_with("cli", "Build a todo app", "react", "download")

    @pytest.mark.unit
    def test_failure_exit_code(self, tmp_path: Path):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(
            return_value=_outcome(
                GenerationStatus.FAILED,
                validation=ValidationResult(errors=["Missing package.json file"]),
                failed_stage=PipelineStage.VALIDATE,
            )
        )

        with patch.dict(os.environ, {}, clear=True), \
             patch("genship.cli.GenerationPipeline.from_config", return_value=pipeline):
            with pytest.raises(SystemExit) as exc_info:
                main(["--data-dir", str(tmp_path), "generate", "Build a todo app", "--stack", "react"])

        assert exc_info.value.code == 1

    @pytest.mark.unit
    def test_summary_shows_generation_time(self, tmp_path: Path):
        outcome = _outcome(GenerationStatus.COMPLETED, validation=ValidationResult())
        outcome.record.metadata = GenerationMetadata(
            tokens_used=42, generation_time_ms=65200, model_used="gpt-4"
        )
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=outcome)

        with patch.dict(os.environ, {}, clear=True), \
             patch("genship.cli.GenerationPipeline.from_config", return_value=pipeline), \
             patch("genship.cli.print_summary_table") as summary_table:
            with pytest.raises(SystemExit):
                main(["--data-dir", str(tmp_path), "generate", "Build a todo app", "-s", "react"])

        summary = summary_table.call_args[0][0]
        assert summary["Generation time"] == "1m 5s"
        assert summary["Tokens"] == "42"
        assert summary["Model"] == "gpt-4"


class TestListCommand:
    @pytest.mark.unit
    def test_lists_records(self, tmp_path: Path):
        url = f"sqlite:///{(tmp_path / 'genship.db').as_posix()}"
        repository = GenerationRepository(create_session_factory(url))
        repository.create("alice", "Build a todo app", "react", "preview")

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(SystemExit) as exc_info:
                main(["--data-dir", str(tmp_path), "list", "--user", "alice"])

        assert exc_info.value.code == 0

    @pytest.mark.unit
    def test_empty(self, tmp_path: Path):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(SystemExit) as exc_info:
                main(["--data-dir", str(tmp_path), "list", "--user", "nobody"])

        assert exc_info.value.code == 0


class TestServeCommand:
    @pytest.mark.unit
    def test_runs_uvicorn(self, tmp_path: Path):
        with patch.dict(os.environ, {}, clear=True), patch("uvicorn.run") as run:
            with pytest.raises(SystemExit) as exc_info:
                main(["--data-dir", str(tmp_path), "serve", "--port", "9001"])

        assert exc_info.value.code == 0
        assert run.call_args[1]["port"] == 9001
        assert run.call_args[1]["host"] == "127.0.0.1"
