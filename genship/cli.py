"""Command-line entry point.

Usage::

    genship generate "Build a todo list with local storage" --stack react --output download
    genship serve --port 8000
    genship list --user alice
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.panel import Panel
from rich.table import Table

from genship.config import Config
from genship.models import GenerationStatus, OutputMode, Stack
from genship.pipeline import GenerationOutcome, GenerationPipeline
from genship.store import GenerationRepository, create_session_factory
from genship.utils import (
    console,
    format_duration,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    setup_logging,
)


def _load_config(args: argparse.Namespace) -> Config:
    if args.config:
        config = Config.load(Path(args.config))
    else:
        config = Config.from_env()
    if args.data_dir:
        config.data_dir = Path(args.data_dir)
    setup_logging(config.log_level)
    return config


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def cmd_generate(args: argparse.Namespace) -> int:
    config = _load_config(args)
    pipeline = GenerationPipeline.from_config(config)

    console.print(
        Panel(
            f"[bold bright_cyan]genship[/bold bright_cyan]\n"
            f"Stack  : {args.stack}\n"
            f"Output : {args.output}",
            title="[bold]Generation[/bold]",
            border_style="bright_cyan",
        )
    )

    outcome = asyncio.run(pipeline.run(args.user, args.prompt, args.stack, args.output))
    _print_outcome(outcome)
    return 0 if outcome.succeeded else 1


def _print_outcome(outcome: GenerationOutcome) -> None:
    record = outcome.record
    summary = {
        "Generation": record.id,
        "Status": record.status.value,
        "Model": record.metadata.model_used or "-",
        "Tokens": str(record.metadata.tokens_used),
        "Generation time": format_duration(record.metadata.generation_time_ms / 1000),
    }
    for label, value in (
        ("Preview URL", record.preview_url),
        ("Deployment URL", record.deployment_url),
        ("Download URL", record.download_url),
        ("Commit", record.commit_hash),
    ):
        if value:
            summary[label] = value
    if record.files:
        summary["Files"] = ", ".join(f.filename for f in record.files)
    print_summary_table(summary, title="Generation Summary")

    validation = outcome.validation
    if validation is not None:
        for message in validation.errors:
            print_error(f"  error: {message}")
        for message in validation.security_issues:
            print_warning(f"  security: {message}")
        for message in validation.warnings:
            console.print(f"  [dim]warning: {message}[/dim]")

    if outcome.succeeded:
        print_success("Generation completed.")
    else:
        stage = outcome.failed_stage.value if outcome.failed_stage else "unknown"
        print_error(f"Generation failed at stage {stage}: {record.error}")


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from genship.api import create_app

    config = _load_config(args)
    uvicorn.run(create_app(config), host=args.host, port=args.port, log_level=config.log_level.lower())
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    config = _load_config(args)
    repository = GenerationRepository(create_session_factory(config.resolved_database_url))
    records, total = repository.list_for_user(args.user, page=args.page, limit=args.limit)

    if not records:
        print_warning(f"No generations found for {args.user}.")
        return 0

    table = Table(title=f"Generations for {args.user} ({total} total)", show_lines=False)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Created")
    table.add_column("Stack")
    table.add_column("Output")
    table.add_column("Status")
    table.add_column("Prompt")

    colors = {
        GenerationStatus.COMPLETED.value: "green",
        GenerationStatus.FAILED.value: "red",
    }
    for record in records:
        color = colors.get(record.status, "yellow")
        prompt = record.prompt if len(record.prompt) <= 48 else record.prompt[:45] + "..."
        table.add_row(
            record.id,
            record.created_at.strftime("%Y-%m-%d %H:%M"),
            record.stack,
            record.output_mode,
            f"[{color}]{record.status}[/{color}]",
            prompt,
        )
    console.print(table)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genship",
        description="genship -- generate, validate and deliver code from a prompt",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            '  genship generate "Build a todo app" --stack react\n'
            "  genship serve --host 0.0.0.0 --port 8000\n"
            "  genship list --user alice --page 2\n"
        ),
    )
    parser.add_argument("--config", default=None, help="Path to a JSON config file")
    parser.add_argument("--data-dir", default=None, help="Override the data directory")

    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Run one generation request")
    gen.add_argument("prompt", help="Natural-language description of the application")
    gen.add_argument("--stack", "-s", required=True, choices=[s.value for s in Stack])
    gen.add_argument(
        "--output", "-o", default=OutputMode.PREVIEW.value, choices=[m.value for m in OutputMode]
    )
    gen.add_argument("--user", default="cli", help="Owner recorded on the generation (default: cli)")
    gen.set_defaults(func=cmd_generate)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    lst = sub.add_parser("list", help="List a user's generations")
    lst.add_argument("--user", default="cli")
    lst.add_argument("--page", type=int, default=1)
    lst.add_argument("--limit", type=int, default=10)
    lst.set_defaults(func=cmd_list)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``genship`` and ``python -m genship``."""
    args = build_parser().parse_args(argv)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
