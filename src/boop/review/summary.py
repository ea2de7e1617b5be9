"""Consolidated markdown report for a finished review loop."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

from boop.errors import ArtifactWriteError
from boop.review.artifacts import IterationArtifactStore
from boop.review.models import ExitReason, Finding, LoopResult, Severity

SUMMARY_FILENAME = "adversarial-summary.md"

_EXIT_LABELS = {
    ExitReason.CONVERGED: "Converged (zero findings)",
    ExitReason.MAX_ITERATIONS: "Max iterations reached",
    ExitReason.STUCK: "Stuck (same findings repeated)",
    ExitReason.DIVERGING: "Diverging (finding count increasing, stopped early)",
    ExitReason.TEST_FAILURE: "Tests failing after fixes",
    ExitReason.ABORTED: "Aborted at approval gate",
}


class ReviewSummary(BaseModel):
    """Rendered summary and where it was written."""

    markdown: str
    all_resolved: bool
    saved_path: Path


def exit_reason_label(reason: ExitReason) -> str:
    return _EXIT_LABELS.get(reason, str(reason))


def _severity_table(findings: list[Finding]) -> list[str]:
    counts = Counter(f.severity for f in findings)
    if not counts:
        return ["No findings.", ""]
    lines = ["| Severity | Count |", "| -------- | ----- |"]
    for severity in Severity:
        if counts[severity]:
            lines.append(f"| {severity} | {counts[severity]} |")
    lines.append("")
    return lines


def render_summary(
    epic_number: int, result: LoopResult, generated_at: datetime | None = None
) -> str:
    """Render the loop result as markdown.

    Sections: header, overview counts, per-iteration breakdown, auto-fixed
    findings (short SHA), unresolved findings (with the fix error when one was
    recorded), and deferred findings.
    """
    timestamp = (generated_at or datetime.now(UTC)).isoformat()
    lines = [
        f"# Epic {epic_number} Adversarial Review Summary",
        "",
        f"**Date:** {timestamp}",
        f"**Risk tier:** {result.tier_name}",
        f"**Iterations:** {len(result.iterations)}",
        f"**Status:** {exit_reason_label(result.exit_reason)}",
        f"**All Resolved:** {'Yes' if result.converged else 'No'}",
        "",
        "## Overview",
        "",
        "| Metric | Count |",
        "| ------ | ----- |",
        f"| Total findings (all iterations) | {result.total_findings} |",
        f"| Auto-fixed | {result.total_fixed} |",
        f"| Deferred (below fix threshold) | {len(result.deferred_findings)} |",
        f"| Discarded (hallucinations) | {result.total_discarded} |",
        f"| Unresolved | {len(result.unresolved_findings)} |",
        "",
        "## Iteration Breakdown",
        "",
    ]

    for record in result.iterations:
        raw_count = sum(len(report.findings) for report in record.agent_results)
        lines.append(f"### Iteration {record.iteration}")
        lines.append("")
        lines.append(f"- **Findings:** {raw_count}")
        lines.append(f"- **Verified:** {record.verification.stats.verified}")
        lines.append(f"- **Discarded:** {record.verification.stats.discarded}")
        if record.fix_result is not None:
            lines.append(f"- **Fixed:** {len(record.fix_result.fixed)}")
            lines.append(f"- **Unfixed:** {len(record.fix_result.unfixed)}")
        lines.append(f"- **Tests pass:** {'Yes' if record.tests_pass else 'No'}")
        lines.append("")
        for report in record.agent_results:
            status = "completed" if report.success else "failed"
            lines.append(f"**{report.agent_id}** ({status}): {len(report.findings)} findings")
        lines.append("")

    fixed_results = [r for r in result.all_fix_results if r.fixed]
    if fixed_results:
        lines.append("## Auto-Fixed Findings")
        lines.append("")
        for fix in fixed_results:
            sha = f" ({fix.commit_sha[:7]})" if fix.commit_sha else ""
            lines.append(f"- **[{fix.finding.severity.upper()}]** {fix.finding.title}{sha}")
            if fix.finding.file:
                lines.append(f"  - File: `{fix.finding.file}`")
        lines.append("")

    if result.unresolved_findings:
        lines.append("## Unresolved Findings")
        lines.append("")
        lines.append(
            f"The following {len(result.unresolved_findings)} findings could not be "
            f"auto-fixed after {len(result.iterations)} iterations:"
        )
        lines.append("")
        for finding in result.unresolved_findings:
            lines.append(f"### [{finding.severity.upper()}] {finding.title}")
            lines.append("")
            if finding.file:
                lines.append(f"**File:** `{finding.file}`")
            lines.append(f"**Source:** {finding.source}")
            lines.append("")
            if finding.description:
                lines.append(finding.description)
                lines.append("")
            failed = next(
                (
                    r
                    for r in result.all_fix_results
                    if r.finding.id == finding.id and not r.fixed
                ),
                None,
            )
            if failed is not None and failed.error:
                lines.append(f"**Fix error:** {failed.error}")
                lines.append(f"**Attempts:** {failed.attempts}")
                lines.append("")

        lines.append("### Unresolved by Severity")
        lines.append("")
        lines.extend(_severity_table(result.unresolved_findings))

    if result.deferred_findings:
        lines.append("## Deferred Findings (Future Improvements)")
        lines.append("")
        lines.append(
            "The following findings were below the auto-fix severity threshold. "
            "They are captured here for future reference but were not auto-fixed."
        )
        lines.append("")
        for finding in result.deferred_findings:
            lines.append(f"- **[{finding.severity.upper()}]** {finding.title}")
            if finding.file:
                lines.append(f"  - File: `{finding.file}`")
            if finding.description:
                lines.append(f"  - {finding.description}")
        lines.append("")

    return "\n".join(lines)


def generate_summary(
    project_dir: Path,
    epic_number: int,
    result: LoopResult,
    generated_at: datetime | None = None,
) -> ReviewSummary:
    """Render the summary and save it next to the iteration artifacts.

    Raises:
        ArtifactWriteError: If the summary file cannot be written
    """
    markdown = render_summary(epic_number, result, generated_at)
    reviews_dir = IterationArtifactStore(project_dir, epic_number).reviews_dir
    path = reviews_dir / SUMMARY_FILENAME
    try:
        reviews_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(markdown, encoding="utf-8")
    except OSError as exc:
        raise ArtifactWriteError(f"Could not write review summary {path}: {exc}") from exc
    return ReviewSummary(markdown=markdown, all_resolved=result.converged, saved_path=path)


def blocking_issues(result: LoopResult) -> list[str]:
    """Issues that should stop the work from advancing.

    Unresolved critical/high findings, plus a failing test suite or a last
    iteration in which no review agent succeeded.
    """
    issues = [
        f"[{f.severity}] {f.title}" + (f" in {f.file}" if f.file else "")
        for f in result.unresolved_findings
        if f.severity in (Severity.CRITICAL, Severity.HIGH)
    ]
    if result.iterations and not result.iterations[-1].tests_pass:
        issues.append("Test suite failing after adversarial review fixes")
    if result.iterations and not any(r.success for r in result.iterations[-1].agent_results):
        issues.append("No review agent completed successfully")
    return issues
