"""CLI commands for the adversarial review loop."""

import asyncio
import json
import logging
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from boop.config import ReviewConfig
from boop.errors import BoopError
from boop.review.models import FixSeverity, LoopResult, Severity

logger = logging.getLogger(__name__)

console = Console()


def review_command(
    project_root: Path,
    epic_number: int = 1,
    max_iterations: int | None = None,
    min_fix_severity: FixSeverity | None = None,
    base_branch: str | None = None,
    model: str | None = None,
    interactive: bool = True,
    format: str = "human",
    config: ReviewConfig | None = None,
) -> int:
    """Run the adversarial review loop on a project.

    Args:
        project_root: Root directory of the project (the working tree)
        epic_number: Epic the review belongs to (selects the artifact directory)
        max_iterations: Override the tier's iteration budget
        min_fix_severity: Override the tier's fix threshold
        base_branch: Branch to diff against for changed files
        model: Model passed to the coding agent
        interactive: Ask for approval when the tier requires it (otherwise auto-approve)
        format: Output format: "human" or "json"
        config: Base configuration (defaults to ``ReviewConfig.from_env()``)

    Returns:
        Exit code (0 = no blocking issues, 1 = blocking issues or error)
    """
    from boop.executor.git import GitClient
    from boop.review.approval import AutoApproveGate, InteractiveApprovalGate
    from boop.review.loop import LoopOptions, run_adversarial_loop
    from boop.review.review_rules import learn_from_result, load_review_rules
    from boop.review.summary import blocking_issues, generate_summary
    from boop.validation.runner import ShellTestSuiteRunner

    try:
        if not project_root.exists():
            _error(f"Project root does not exist: {project_root}", format)
            return 1

        cfg = config or ReviewConfig.from_env()

        def on_progress(iteration: int, phase: str, message: str) -> None:
            if format == "human":
                console.print(f"[dim][{iteration}] {phase}:[/dim] {escape(message)}")

        # JSON mode keeps stdout for the payload, so the gate prompts on stderr
        gate = (
            InteractiveApprovalGate(console if format == "human" else Console(stderr=True))
            if interactive
            else AutoApproveGate()
        )

        options = LoopOptions(
            project_dir=project_root,
            epic_number=epic_number,
            test_suite_runner=ShellTestSuiteRunner(
                command=cfg.test_command, timeout_seconds=cfg.test_timeout_seconds
            ),
            git=GitClient(project_root),
            review_rules=load_review_rules(cfg.memory_dir),
            approval_gate=gate,
            on_progress=on_progress,
            max_iterations=max_iterations,
            min_fix_severity=min_fix_severity or cfg.min_fix_severity,
            base_branch=base_branch or cfg.base_branch,
            model=model or cfg.model,
            review_model=cfg.review_model,
            max_fix_attempts=cfg.max_fix_attempts,
            fix_timeout_seconds=cfg.fix_timeout_seconds,
        )
        result = asyncio.run(run_adversarial_loop(options))
        if cfg.learn_rules:
            try:
                learn_from_result(result, project_root.resolve().name, cfg.memory_dir)
            except OSError as e:
                logger.warning("Could not save review rules: %s", e)
        summary = generate_summary(project_root, epic_number, result)
        blocking = blocking_issues(result)

        if format == "json":
            payload = json.loads(result.model_dump_json())
            payload["blocking_issues"] = blocking
            payload["summary_path"] = str(summary.saved_path)
            print(json.dumps(payload, indent=2))
        else:
            _output_human(result, blocking, summary.saved_path)

        return 0 if not blocking else 1

    except KeyboardInterrupt:
        if format == "human":
            console.print("\n[yellow]Review cancelled by user[/yellow]")
        return 130
    except BoopError as e:
        _error(str(e), format)
        return 1


def policy_command(
    project_root: Path,
    files: list[str] | None = None,
    base_branch: str = "main",
    format: str = "human",
) -> int:
    """Show which risk tier a change set resolves to.

    Args:
        project_root: Root directory of the project
        files: Changed files (defaults to the branch diff against ``base_branch``)
        base_branch: Branch to diff against when ``files`` is not given
        format: Output format: "human" or "json"

    Returns:
        Exit code (0 = success, 1 = failure)
    """
    from boop.executor.git import GitClient
    from boop.review.risk_policy import load_or_default_policy, resolve_risk_tier

    if not project_root.exists():
        _error(f"Project root does not exist: {project_root}", format)
        return 1

    try:
        changed = files if files else GitClient(project_root).changed_files(base_branch)
    except BoopError as e:
        _error(str(e), format)
        return 1

    resolved = resolve_risk_tier(load_or_default_policy(project_root), changed)
    tier = resolved.tier

    if format == "json":
        print(
            json.dumps(
                {
                    "tier": resolved.tier_name,
                    "files": changed,
                    **tier.model_dump(by_alias=True),
                },
                indent=2,
            )
        )
        return 0

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Tier", resolved.tier_name)
    table.add_row("Changed files", str(len(changed)))
    table.add_row("Max iterations", str(tier.max_iterations))
    table.add_row("Fix threshold", tier.min_fix_severity)
    table.add_row("Agents", ", ".join(tier.agents))
    table.add_row("Approval required", "yes" if tier.require_approval else "no")
    console.print(table)
    return 0


def _error(message: str, format: str) -> None:
    if format == "human":
        console.print(f"[red]Error:[/red] {escape(message)}")
    else:
        print(json.dumps({"error": message}))


def _output_human(result: LoopResult, blocking: list[str], summary_path: Path) -> None:
    """Output result in human-readable format."""
    from boop.review.summary import exit_reason_label

    label = exit_reason_label(result.exit_reason)
    if not blocking:
        console.print(
            Panel(f"[green]✓ {label}[/green]", title="Adversarial Review", border_style="green")
        )
    else:
        console.print(
            Panel(f"[red]✗ {label}[/red]", title="Adversarial Review", border_style="red")
        )

    console.print(
        f"Tier [bold]{result.tier_name}[/bold], {len(result.iterations)} iteration(s): "
        f"{result.total_findings} found, {result.total_fixed} fixed, "
        f"{result.total_discarded} discarded, {len(result.deferred_findings)} deferred"
    )

    if result.unresolved_findings:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Id", style="cyan")
        table.add_column("Severity", justify="center")
        table.add_column("File", style="magenta")
        table.add_column("Title")
        for finding in result.unresolved_findings:
            severity_style = (
                "red bold"
                if finding.severity in (Severity.CRITICAL, Severity.HIGH)
                else "yellow"
                if finding.severity == Severity.MEDIUM
                else "dim"
            )
            table.add_row(
                finding.id,
                f"[{severity_style}]{finding.severity.value}[/{severity_style}]",
                finding.file or "-",
                escape(finding.title),
            )
        console.print()
        console.print(table)

    if blocking:
        console.print("\n[bold red]Blocking issues:[/bold red]")
        for issue in blocking:
            console.print(f"  [red]✗[/red] {escape(issue)}")

    console.print(f"\n[dim]Summary written to {summary_path}[/dim]")
