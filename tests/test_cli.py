"""Tests for the boop CLI."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from boop.cli.main import app
from boop.review.approval import AutoApproveGate, InteractiveApprovalGate
from boop.review.models import (
    AgentReport,
    ExitReason,
    Finding,
    IterationRecord,
    LoopResult,
    Severity,
    VerificationResult,
)
from boop.review.review_rules import load_review_rules

runner = CliRunner()


def _result(unresolved: list[Finding] | None = None) -> LoopResult:
    return LoopResult(
        iterations=[
            IterationRecord(
                iteration=1,
                agent_results=[AgentReport(agent_id="code-quality", success=True)],
                verification=VerificationResult(),
            )
        ],
        converged=not unresolved,
        exit_reason=ExitReason.MAX_ITERATIONS if unresolved else ExitReason.CONVERGED,
        unresolved_findings=unresolved or [],
    )


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0-dev" in result.output


def test_help() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for cmd in ("review", "policy"):
        assert cmd in result.output


class TestReviewCommand:
    """Test `boop review` with the loop patched out."""

    @patch("boop.review.loop.run_adversarial_loop", new_callable=AsyncMock)
    def test_clean_run_exits_zero(self, mock_loop: AsyncMock, tmp_path: Path) -> None:
        mock_loop.return_value = _result()

        result = runner.invoke(app, ["review", "--project-root", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "Converged" in result.output
        assert (tmp_path / ".boop" / "reviews" / "epic-1" / "adversarial-summary.md").exists()

    @patch("boop.review.loop.run_adversarial_loop", new_callable=AsyncMock)
    def test_blocking_exits_one(self, mock_loop: AsyncMock, tmp_path: Path) -> None:
        finding = Finding(
            id="sec-1", title="Token in log", severity=Severity.HIGH, source="security"
        )
        mock_loop.return_value = _result([finding])

        result = runner.invoke(app, ["review", "-p", str(tmp_path), "--no-interactive"])

        assert result.exit_code == 1
        assert "Token in log" in result.output

    @patch("boop.review.loop.run_adversarial_loop", new_callable=AsyncMock)
    def test_json_output(self, mock_loop: AsyncMock, tmp_path: Path) -> None:
        mock_loop.return_value = _result()

        result = runner.invoke(
            app, ["review", "-p", str(tmp_path), "--epic", "4", "--format", "json"]
        )

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["exit_reason"] == "converged"
        assert payload["blocking_issues"] == []
        assert payload["summary_path"].endswith("epic-4/adversarial-summary.md")

    @patch("boop.review.loop.run_adversarial_loop", new_callable=AsyncMock)
    def test_options_forwarded(self, mock_loop: AsyncMock, tmp_path: Path) -> None:
        mock_loop.return_value = _result()

        runner.invoke(
            app,
            [
                "review",
                "-p",
                str(tmp_path),
                "--max-iterations",
                "2",
                "--min-fix-severity",
                "medium",
                "--base-branch",
                "dev",
                "--model",
                "opus",
                "--no-interactive",
            ],
        )

        options = mock_loop.call_args.args[0]
        assert options.project_dir == tmp_path
        assert options.max_iterations == 2
        assert options.min_fix_severity == "medium"
        assert options.base_branch == "dev"
        assert options.model == "opus"
        assert isinstance(options.approval_gate, AutoApproveGate)

    @patch("boop.review.loop.run_adversarial_loop", new_callable=AsyncMock)
    def test_json_mode_prompts_on_stderr(self, mock_loop: AsyncMock, tmp_path: Path) -> None:
        mock_loop.return_value = _result()

        runner.invoke(app, ["review", "-p", str(tmp_path), "--format", "json"])

        gate = mock_loop.call_args.args[0].approval_gate
        assert isinstance(gate, InteractiveApprovalGate)
        assert gate.console.stderr is True

    @patch("boop.review.loop.run_adversarial_loop", new_callable=AsyncMock)
    def test_review_rules_learned_and_loaded(
        self, mock_loop: AsyncMock, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        memory = tmp_path / "memory"
        monkeypatch.setenv("BOOP_MEMORY_DIR", str(memory))
        finding = Finding(
            id="sec-1", title="Token in log", severity=Severity.HIGH, source="security"
        )
        mock_loop.return_value = _result([finding])
        project = tmp_path / "shop"
        project.mkdir()

        runner.invoke(app, ["review", "-p", str(project), "--no-interactive"])
        runner.invoke(app, ["review", "-p", str(project), "--no-interactive"])

        rules = load_review_rules(memory)
        assert [r.key for r in rules] == ["security--token-in-log"]
        assert rules[0].times_seen == 2
        assert rules[0].projects == ["shop"]
        second_options = mock_loop.call_args.args[0]
        assert [r.key for r in second_options.review_rules] == ["security--token-in-log"]

    @patch("boop.review.loop.run_adversarial_loop", new_callable=AsyncMock)
    def test_learning_disabled(
        self, mock_loop: AsyncMock, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        memory = tmp_path / "memory"
        monkeypatch.setenv("BOOP_MEMORY_DIR", str(memory))
        monkeypatch.setenv("BOOP_LEARN_RULES", "false")
        mock_loop.return_value = _result()

        runner.invoke(app, ["review", "-p", str(tmp_path), "--no-interactive"])

        assert not (memory / "review-rules.yaml").exists()

    def test_missing_project_root(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["review", "-p", str(tmp_path / "nope")])
        assert result.exit_code == 1
        assert "does not exist" in result.output


class TestPolicyCommand:
    """Test `boop policy`."""

    def test_explicit_files(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["policy", "-p", str(tmp_path), "--files", "src/auth/login.ts"]
        )
        assert result.exit_code == 0, result.output
        assert "high" in result.output

    def test_json(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            ["policy", "-p", str(tmp_path), "--files", "docs/a.md", "--format", "json"],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["tier"] == "low"
        assert payload["maxIterations"] == 1
        assert payload["files"] == ["docs/a.md"]
