"""Tests for review loop models."""

from collections.abc import Callable

import pytest
from pydantic import ValidationError

from boop.review.models import (
    AgentReport,
    ExitReason,
    Finding,
    FixBatchResult,
    FixResult,
    IterationRecord,
    LineRange,
    LoopResult,
    Severity,
    TestSuiteResult,
    VerificationResult,
    slugify,
)


class TestSeverity:
    """Test Severity enum."""

    def test_ranks_most_severe_first(self) -> None:
        assert [s.rank for s in Severity] == [0, 1, 2, 3, 4]
        assert Severity.CRITICAL.rank < Severity.INFO.rank

    def test_string_values(self) -> None:
        assert Severity("critical") is Severity.CRITICAL
        assert Severity.INFO == "info"


class TestSlugify:
    """Test title normalization."""

    def test_lowercases_and_dashes(self) -> None:
        assert slugify("SQL Injection in `login()`!") == "sql-injection-in-login"

    def test_trims_leading_and_trailing_punctuation(self) -> None:
        assert slugify("  --Hello, World--  ") == "hello-world"


class TestFinding:
    """Test Finding model."""

    def test_key_with_file(self, make_finding: Callable[..., Finding]) -> None:
        finding = make_finding(title="Missing Null Check", file="src/a.ts")
        assert finding.key == "code-quality--missing-null-check--src/a.ts"

    def test_key_without_file(self, make_finding: Callable[..., Finding]) -> None:
        finding = make_finding(title="Missing Null Check", file=None)
        assert finding.key == "code-quality--missing-null-check"

    def test_key_ignores_id(self, make_finding: Callable[..., Finding]) -> None:
        """Ids are ephemeral, keys are stable across iterations."""
        assert make_finding(id="cq-1").key == make_finding(id="cq-7").key

    def test_accepts_camel_case_line_range(self) -> None:
        finding = Finding.model_validate(
            {
                "id": "sec-1",
                "title": "Hardcoded secret",
                "severity": "critical",
                "source": "security",
                "lineRange": {"start": 3, "end": 5},
            }
        )
        assert finding.line_range == LineRange(start=3, end=5)

    def test_is_frozen(self, make_finding: Callable[..., Finding]) -> None:
        finding = make_finding()
        with pytest.raises(ValidationError):
            finding.title = "changed"  # type: ignore[misc]

    def test_invalid_severity_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Finding(id="x-1", title="t", severity="urgent", source="x")  # type: ignore[arg-type]


class TestLineRange:
    """Test LineRange validation."""

    def test_end_before_start_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must not precede"):
            LineRange(start=10, end=2)

    def test_single_line(self) -> None:
        assert LineRange(start=4, end=4).end == 4


class TestVerificationResult:
    """Test VerificationResult.from_partition."""

    def test_stats_computed(self, make_finding: Callable[..., Finding]) -> None:
        from boop.review.models import DiscardedFinding

        kept = [make_finding(id="cq-1")]
        dropped = [DiscardedFinding(finding=make_finding(id="cq-2"), reason="gone")]

        result = VerificationResult.from_partition(kept, dropped)

        assert result.stats.total == 2
        assert result.stats.verified == 1
        assert result.stats.discarded == 1


class TestIterationRecord:
    """Test IterationRecord helpers."""

    def test_verified_keys_and_fixed_count(self, make_finding: Callable[..., Finding]) -> None:
        finding = make_finding()
        record = IterationRecord(
            iteration=1,
            verification=VerificationResult.from_partition([finding], []),
            fix_result=FixBatchResult(
                results=[FixResult(finding=finding, fixed=True, attempts=1)],
                fixed=[finding],
                final_test_result=TestSuiteResult(passed=True),
            ),
        )
        assert record.verified_keys == frozenset({finding.key})
        assert record.fixed_count == 1

    def test_fixed_count_without_fix_result(self) -> None:
        record = IterationRecord(iteration=1, verification=VerificationResult())
        assert record.fixed_count == 0

    def test_unresolved_excluded_from_dump(self, make_finding: Callable[..., Finding]) -> None:
        record = IterationRecord(
            iteration=1,
            verification=VerificationResult(),
            unresolved=[make_finding()],
            unresolved_ids=["cq-1"],
        )
        dumped = record.model_dump()
        assert "unresolved" not in dumped
        assert dumped["unresolved_ids"] == ["cq-1"]


class TestLoopResult:
    """Test LoopResult."""

    def test_tests_pass_defaults_true(self) -> None:
        result = LoopResult(converged=True, exit_reason=ExitReason.CONVERGED)
        assert result.tests_pass is True

    def test_tests_pass_follows_last_iteration(self) -> None:
        result = LoopResult(
            iterations=[
                IterationRecord(iteration=1, verification=VerificationResult(), tests_pass=True),
                IterationRecord(iteration=2, verification=VerificationResult(), tests_pass=False),
            ],
            converged=False,
            exit_reason=ExitReason.TEST_FAILURE,
        )
        assert result.tests_pass is False

    def test_exit_reason_values(self) -> None:
        assert {r.value for r in ExitReason} == {
            "converged",
            "max-iterations",
            "stuck",
            "diverging",
            "test-failure",
            "aborted",
        }


class TestAgentReport:
    """Test AgentReport aliases."""

    def test_dump_by_alias(self) -> None:
        report = AgentReport(agent_id="security", success=False, raw_report="boom")
        dumped = report.model_dump(by_alias=True)
        assert dumped["agentId"] == "security"
        assert dumped["rawReport"] == "boom"
        assert dumped["findings"] == []
