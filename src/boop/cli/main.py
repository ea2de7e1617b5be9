"""Boop CLI application."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated

import typer
from rich import print as rprint

import boop as boop_pkg


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    human = "human"
    json = "json"


class FixThreshold(StrEnum):
    """Severity threshold accepted by --min-fix-severity."""

    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


app = typer.Typer(
    name="boop",
    help="Adversarial multi-agent code review with auto-fix.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        rprint(f"boop {boop_pkg.__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level (default: BOOP_LOG_LEVEL or WARNING)"),
    ] = None,
) -> None:
    """Boop: adversarial review loop for AI-written code."""
    from dotenv import load_dotenv

    from boop.config import ReviewConfig
    from boop.log import setup_logging

    load_dotenv()
    setup_logging(log_level or ReviewConfig.from_env().log_level)


@app.command("review")
def review(
    project_root: Annotated[
        str | None,
        typer.Option("--project-root", "-p", help="Project root directory"),
    ] = None,
    epic: Annotated[
        int,
        typer.Option("--epic", "-e", min=1, help="Epic number (artifact directory)"),
    ] = 1,
    max_iterations: Annotated[
        int | None,
        typer.Option("--max-iterations", min=1, help="Override the tier's iteration budget"),
    ] = None,
    min_fix_severity: Annotated[
        FixThreshold | None,
        typer.Option("--min-fix-severity", help="Override the tier's fix threshold"),
    ] = None,
    base_branch: Annotated[
        str | None,
        typer.Option("--base-branch", "-b", help="Branch to diff against for changed files"),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model for the coding agent"),
    ] = None,
    interactive: Annotated[
        bool,
        typer.Option(
            "--interactive/--no-interactive",
            help="Ask for approval before fixing when the tier requires it (else auto-approve)",
        ),
    ] = True,
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.human,
) -> None:
    """Review, verify, and auto-fix the changes on the current branch."""
    from pathlib import Path
    from typing import cast

    from boop.review.cli import review_command
    from boop.review.models import FixSeverity

    root = Path(project_root) if project_root else Path.cwd()
    threshold = cast(FixSeverity, min_fix_severity.value) if min_fix_severity else None

    exit_code = review_command(
        project_root=root,
        epic_number=epic,
        max_iterations=max_iterations,
        min_fix_severity=threshold,
        base_branch=base_branch,
        model=model,
        interactive=interactive,
        format=format.value,
    )
    raise typer.Exit(exit_code)


@app.command("policy")
def policy(
    files: Annotated[
        list[str] | None,
        typer.Option("--files", help="Changed files (branch diff if not specified)"),
    ] = None,
    project_root: Annotated[
        str | None,
        typer.Option("--project-root", "-p", help="Project root directory"),
    ] = None,
    base_branch: Annotated[
        str,
        typer.Option("--base-branch", "-b", help="Branch to diff against"),
    ] = "main",
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.human,
) -> None:
    """Show the risk tier the changed files resolve to."""
    from pathlib import Path

    from boop.review.cli import policy_command

    root = Path(project_root) if project_root else Path.cwd()

    exit_code = policy_command(
        project_root=root,
        files=files,
        base_branch=base_branch,
        format=format.value,
    )
    raise typer.Exit(exit_code)
