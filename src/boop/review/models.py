"""Review loop data models.

Findings flow review agent → verifier → severity gate → fixer. Finding ids are
ephemeral (regenerated on every agent call); anything that compares findings
across iterations must use ``Finding.key``.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Severity(StrEnum):
    """Severity of a finding, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Rank for ordering: critical=0 ... info=4 (lower is more severe)."""
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.INFO,
]

# Thresholds exclude "info": info findings are never fix-eligible.
FixSeverity = Literal["critical", "high", "medium", "low"]


def slugify(text: str) -> str:
    """Lowercase, collapse non-alphanumerics to dashes, trim dashes."""
    return re.sub(r"[^a-z0-9]+", "-", text.strip().lower()).strip("-")


class LineRange(BaseModel):
    """Approximate 1-based line range reported by an agent."""

    start: int = Field(ge=1)
    end: int = Field(ge=1)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _ordered(self) -> LineRange:
        if self.end < self.start:
            raise ValueError("line range end must not precede start")
        return self


class Finding(BaseModel):
    """A single issue reported by a review agent."""

    id: str
    title: str
    severity: Severity
    source: str = Field(description="Id of the review agent that produced the finding")
    description: str = ""
    file: str | None = None
    line_range: LineRange | None = Field(default=None, alias="lineRange")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def key(self) -> str:
        """Normalized identity: ``<source>--<slug(title)>[--<file>]``."""
        key = f"{self.source}--{slugify(self.title)}"
        if self.file:
            key = f"{key}--{self.file}"
        return key


class AgentReport(BaseModel):
    """Output of one review agent for one iteration."""

    agent_id: str = Field(alias="agentId")
    success: bool
    findings: list[Finding] = Field(default_factory=list)
    raw_report: str = Field(default="", alias="rawReport")

    model_config = ConfigDict(populate_by_name=True)


class DiscardedFinding(BaseModel):
    """A finding the verifier rejected, with the reason."""

    finding: Finding
    reason: str

    model_config = ConfigDict(frozen=True)


class VerificationStats(BaseModel):
    """Counts from one verification pass."""

    total: int = 0
    verified: int = 0
    discarded: int = 0


class VerificationResult(BaseModel):
    """Verified vs discarded (hallucinated) findings."""

    verified: list[Finding] = Field(default_factory=list)
    discarded: list[DiscardedFinding] = Field(default_factory=list)
    stats: VerificationStats = Field(default_factory=VerificationStats)

    @classmethod
    def from_partition(
        cls, verified: list[Finding], discarded: list[DiscardedFinding]
    ) -> VerificationResult:
        """Build a result with stats computed from the two lists."""
        return cls(
            verified=verified,
            discarded=discarded,
            stats=VerificationStats(
                total=len(verified) + len(discarded),
                verified=len(verified),
                discarded=len(discarded),
            ),
        )


class TestSuiteResult(BaseModel):
    """Outcome of one test-suite run."""

    __test__ = False  # not a pytest test class

    passed: bool
    output: str = ""

    model_config = ConfigDict(frozen=True)


class FixResult(BaseModel):
    """Outcome of fixing (or failing to fix) a single finding."""

    finding: Finding
    fixed: bool
    commit_sha: str | None = Field(default=None, alias="commitSha")
    error: str | None = None
    attempts: int = Field(ge=1)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FixBatchResult(BaseModel):
    """Outcome of one fixer run over a batch of findings."""

    results: list[FixResult] = Field(default_factory=list)
    fixed: list[Finding] = Field(default_factory=list)
    unfixed: list[Finding] = Field(default_factory=list)
    final_test_result: TestSuiteResult = Field(alias="finalTestResult")

    model_config = ConfigDict(populate_by_name=True)


class ExitReason(StrEnum):
    """Why the review loop stopped."""

    CONVERGED = "converged"
    MAX_ITERATIONS = "max-iterations"
    STUCK = "stuck"
    DIVERGING = "diverging"
    TEST_FAILURE = "test-failure"
    ABORTED = "aborted"


class IterationRecord(BaseModel):
    """Audit record of a single loop iteration."""

    iteration: int = Field(ge=1)
    agent_results: list[AgentReport] = Field(default_factory=list)
    verification: VerificationResult
    fix_result: FixBatchResult | None = None
    tests_pass: bool = True
    unresolved_ids: list[str] = Field(default_factory=list)
    unresolved: list[Finding] = Field(default_factory=list, exclude=True)

    @property
    def verified_keys(self) -> frozenset[str]:
        """Normalized keys of this iteration's verified findings."""
        return frozenset(f.key for f in self.verification.verified)

    @property
    def fixed_count(self) -> int:
        """Number of findings fixed in this iteration."""
        return len(self.fix_result.fixed) if self.fix_result else 0


class LoopResult(BaseModel):
    """Terminal outcome of one review loop invocation."""

    iterations: list[IterationRecord] = Field(default_factory=list)
    converged: bool
    exit_reason: ExitReason
    tier_name: str = "low"
    total_findings: int = 0
    total_fixed: int = 0
    total_discarded: int = 0
    unresolved_findings: list[Finding] = Field(default_factory=list)
    deferred_findings: list[Finding] = Field(default_factory=list)
    all_fix_results: list[FixResult] = Field(default_factory=list)

    @property
    def tests_pass(self) -> bool:
        """Test status after the last iteration (True when nothing ran)."""
        if not self.iterations:
            return True
        return self.iterations[-1].tests_pass


class ApprovalAction(StrEnum):
    """Human decision before the fixer runs."""

    APPROVE = "approve"
    SKIP = "skip"
    ABORT = "abort"
    FILTER = "filter"


class ApprovalDecision(BaseModel):
    """Decision returned by an approval gate.

    ``approved_ids`` is only meaningful for ``FILTER``.
    """

    action: ApprovalAction
    approved_ids: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ApprovalContext(BaseModel):
    """What the approval gate is shown."""

    iteration: int
    max_iterations: int
    fixable: list[Finding]
    deferred: list[Finding]
