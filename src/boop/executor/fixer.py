"""Auto-fixer — applies fixes for verified findings one at a time.

For each finding the coding agent edits the working tree, the test suite
guards against regressions, and a passing attempt is committed. A failed
agent run or a failing test run is retried up to ``max_attempts`` times.

Findings are processed strictly sequentially: every fix mutates the same
working tree, so concurrent edits are never attempted.
"""

from __future__ import annotations

import logging
from pathlib import Path

from boop.errors import GitError
from boop.executor.coding_agent import ClaudeCliAgent
from boop.executor.git import GitClient
from boop.review.agents import read_file_content
from boop.review.models import Finding, FixBatchResult, FixResult
from boop.review.ports import CodingAgent, TestSuiteRunner
from boop.review.prompts import build_fix_prompt
from boop.review.severity import sort_by_severity

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_TIMEOUT_SECONDS = 300


def commit_message(finding: Finding) -> str:
    """Commit message for a fix."""
    return f"fix(review): {finding.id} - {finding.title}"


def _commit_fix(git: GitClient, finding: Finding) -> str | None:
    """Stage everything and commit if the staged diff is non-empty.

    Returns:
        The commit SHA, or None when there was nothing to commit or git failed
    """
    try:
        git.stage_all()
        if not git.has_staged_changes():
            logger.info("%s: tests pass with no diff, nothing to commit", finding.id)
            return None
        return git.commit(commit_message(finding))
    except GitError as exc:
        logger.warning("%s: fix passed tests but could not be committed: %s", finding.id, exc)
        return None


def _fix_one(
    finding: Finding,
    *,
    project_dir: Path,
    test_suite_runner: TestSuiteRunner,
    coding_agent: CodingAgent,
    git: GitClient,
    max_attempts: int,
    model: str | None,
    timeout_seconds: int,
) -> FixResult:
    last_error = ""

    for attempt in range(1, max_attempts + 1):
        # Re-read each attempt: a failed attempt may have left edits behind.
        file_content = read_file_content(project_dir, finding.file) if finding.file else ""
        prompt = build_fix_prompt(finding, file_content)
        run = coding_agent.apply(
            prompt, project_dir, model=model, timeout_seconds=timeout_seconds
        )
        if not run.success:
            last_error = run.output
            logger.info("%s: agent attempt %d failed: %s", finding.id, attempt, last_error)
            continue

        test_result = test_suite_runner.run(project_dir)
        if test_result.passed:
            sha = _commit_fix(git, finding)
            return FixResult(finding=finding, fixed=True, commit_sha=sha, attempts=attempt)

        last_error = f"Tests failed after fix attempt {attempt}"
        logger.info("%s: %s", finding.id, last_error)

    return FixResult(finding=finding, fixed=False, error=last_error, attempts=max_attempts)


def fix_findings(
    findings: list[Finding],
    *,
    project_dir: Path,
    test_suite_runner: TestSuiteRunner,
    coding_agent: CodingAgent | None = None,
    git: GitClient | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    model: str | None = None,
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
) -> FixBatchResult:
    """Auto-fix a batch of verified findings.

    Findings are processed critical first (stable within a severity). After
    the last finding the test suite runs once more so ``final_test_result``
    reflects the tree as it is left, whatever the individual outcomes were.

    Args:
        findings: Findings that cleared the severity gate
        project_dir: Working tree the agent edits
        test_suite_runner: Test suite guard
        coding_agent: Agent applying fixes (defaults to the claude CLI)
        git: Git client for commits (defaults to one rooted at project_dir)
        max_attempts: Attempts per finding
        model: Model passed to the coding agent
        timeout_seconds: Timeout per agent attempt

    Returns:
        FixBatchResult with one result per finding in processed order

    Raises:
        ValueError: If max_attempts is not positive
    """
    if max_attempts <= 0:
        raise ValueError("max_attempts must be positive")

    agent = coding_agent or ClaudeCliAgent()
    git_client = git or GitClient(project_dir)

    results: list[FixResult] = []
    fixed: list[Finding] = []
    unfixed: list[Finding] = []

    for finding in sort_by_severity(findings):
        result = _fix_one(
            finding,
            project_dir=project_dir,
            test_suite_runner=test_suite_runner,
            coding_agent=agent,
            git=git_client,
            max_attempts=max_attempts,
            model=model,
            timeout_seconds=timeout_seconds,
        )
        results.append(result)
        if result.fixed:
            fixed.append(finding)
        else:
            unfixed.append(finding)

    final_test_result = test_suite_runner.run(project_dir)

    return FixBatchResult(
        results=results,
        fixed=fixed,
        unfixed=unfixed,
        final_test_result=final_test_result,
    )
