"""Adversarial review loop: review → verify → gate → (approve) → fix, repeated.

Each iteration:
  1. Run the tier's review agents concurrently
  2. Verify findings against the working tree (drop hallucinations)
  3. Exit early when clean (converged) or when findings grow (diverging);
     an iteration where no agent succeeded is never clean
  4. Split verified findings by the tier's fix threshold
  5. Ask the approval gate, when the tier requires one
  6. Fix the approved findings one by one
  7. Exit on a failing test suite, a stuck loop, or the iteration budget

The risk tier is resolved once, from the change set at loop start, and is not
re-evaluated when fixes touch other files.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from boop.errors import GitError
from boop.executor.fixer import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT_SECONDS, fix_findings
from boop.executor.git import GitClient
from boop.review.agents import build_review_agents, run_review_agents
from boop.review.artifacts import IterationArtifactStore
from boop.review.models import (
    AgentReport,
    ApprovalAction,
    ApprovalContext,
    ExitReason,
    Finding,
    FixBatchResult,
    FixResult,
    FixSeverity,
    IterationRecord,
    LoopResult,
    VerificationResult,
)
from boop.review.ports import (
    ApprovalGate,
    CodingAgent,
    ProgressCallback,
    ReviewAgent,
    ReviewContext,
    TestSuiteRunner,
    Verifier,
)
from boop.review.review_rules import ReviewRule
from boop.review.risk_policy import (
    ResolvedRiskTier,
    RiskPolicy,
    load_or_default_policy,
    resolve_risk_tier,
)
from boop.review.severity import partition_by_severity
from boop.review.verifier import FileVerifier

logger = logging.getLogger(__name__)

DEFAULT_REVIEW_MODEL = "anthropic:claude-opus-4-6"


@dataclass
class LoopOptions:
    """Inputs for one loop invocation.

    Only ``project_dir`` and ``test_suite_runner`` are required; every other
    collaborator has a default adapter.
    """

    project_dir: Path
    test_suite_runner: TestSuiteRunner
    epic_number: int = 1
    review_agents: Sequence[ReviewAgent] | None = None
    verifier: Verifier | None = None
    coding_agent: CodingAgent | None = None
    git: GitClient | None = None
    approval_gate: ApprovalGate | None = None
    on_progress: ProgressCallback | None = None
    changed_files: list[str] | None = None
    policy: RiskPolicy | None = None
    review_rules: list[ReviewRule] | None = None
    max_iterations: int | None = None
    min_fix_severity: FixSeverity | None = None
    base_branch: str = "main"
    model: str | None = None
    review_model: str = DEFAULT_REVIEW_MODEL
    max_fix_attempts: int = DEFAULT_MAX_ATTEMPTS
    fix_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS


@dataclass
class _LoopState:
    iterations: list[IterationRecord] = field(default_factory=list)
    all_fix_results: list[FixResult] = field(default_factory=list)
    deferred: dict[str, Finding] = field(default_factory=dict)
    total_findings: int = 0
    total_fixed: int = 0
    total_discarded: int = 0

    @property
    def previous(self) -> IterationRecord | None:
        return self.iterations[-1] if self.iterations else None

    def defer(self, findings: list[Finding]) -> None:
        for finding in findings:
            self.deferred.setdefault(finding.key, finding)


def _dedupe(findings: list[Finding]) -> list[Finding]:
    unique: dict[str, Finding] = {}
    for finding in findings:
        unique.setdefault(finding.key, finding)
    return list(unique.values())


class LoopController:
    """Runs the adversarial review loop for one epic."""

    def __init__(self, options: LoopOptions) -> None:
        if options.max_iterations is not None and options.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        self.options = options
        self.store = IterationArtifactStore(options.project_dir, options.epic_number)

    # -- setup -------------------------------------------------------------

    def _changed_files(self) -> list[str]:
        if self.options.changed_files is not None:
            return list(self.options.changed_files)
        git = self.options.git or GitClient(self.options.project_dir)
        try:
            return git.changed_files(self.options.base_branch)
        except GitError as exc:
            logger.warning("Could not list changed files: %s", exc)
            return []

    def resolve_tier(self, changed_files: list[str]) -> ResolvedRiskTier:
        """Resolve the risk tier for this invocation."""
        policy = self.options.policy or load_or_default_policy(self.options.project_dir)
        return resolve_risk_tier(policy, changed_files)

    def _agents_for(self, resolved: ResolvedRiskTier) -> list[ReviewAgent]:
        wanted = resolved.tier.agents
        if self.options.review_agents is None:
            return build_review_agents(wanted, self.options.review_model)
        agents = [a for a in self.options.review_agents if a.agent_id in wanted]
        if not agents:
            logger.warning(
                "None of the supplied review agents are in the %s tier (%s)",
                resolved.tier_name,
                ", ".join(wanted),
            )
        return agents

    def _progress(self, iteration: int, phase: str, message: str) -> None:
        logger.info("[iteration %d] %s: %s", iteration, phase, message)
        if self.options.on_progress is not None:
            self.options.on_progress(iteration, phase, message)

    def _record(
        self,
        state: _LoopState,
        iteration: int,
        agent_results: list[AgentReport],
        verification: VerificationResult,
        fix_result: FixBatchResult | None,
        tests_pass: bool,
        unresolved: list[Finding],
    ) -> IterationRecord:
        record = IterationRecord(
            iteration=iteration,
            agent_results=agent_results,
            verification=verification,
            fix_result=fix_result,
            tests_pass=tests_pass,
            unresolved_ids=[f.id for f in unresolved],
            unresolved=unresolved,
        )
        self.store.save(record)
        state.iterations.append(record)
        return record

    # -- main loop ---------------------------------------------------------

    async def run(self) -> LoopResult:
        """Run iterations until an exit condition is met.

        Returns:
            LoopResult; business failures (tests, aborts, stuck) are encoded
            in ``exit_reason``

        Raises:
            ArtifactWriteError: If an iteration artifact cannot be written
        """
        opts = self.options
        changed_files = self._changed_files()
        resolved = self.resolve_tier(changed_files)
        tier = resolved.tier
        max_iterations = opts.max_iterations or tier.max_iterations
        min_fix_severity = opts.min_fix_severity or tier.min_fix_severity
        agents = self._agents_for(resolved)
        verifier = opts.verifier or FileVerifier(opts.project_dir)
        context = ReviewContext(
            project_dir=opts.project_dir,
            epic_number=opts.epic_number,
            changed_files=changed_files,
            review_rules=opts.review_rules or [],
        )
        logger.info(
            "Review tier %s: %d iteration(s), fixing %s+ with %d agent(s)",
            resolved.tier_name,
            max_iterations,
            min_fix_severity,
            len(agents),
        )

        state = _LoopState()
        exit_reason = ExitReason.MAX_ITERATIONS

        for i in range(1, max_iterations + 1):
            previous = state.previous
            carried_tests_pass = previous.tests_pass if previous else True

            # Review
            self._progress(
                i, "review", f"Running {len(agents)} agent(s), iteration {i}/{max_iterations}"
            )
            agent_results = await run_review_agents(agents, context)
            findings = [f for report in agent_results for f in report.findings]
            state.total_findings += len(findings)

            # Verify
            verification = verifier.verify(findings)
            state.total_discarded += verification.stats.discarded
            verified = verification.verified
            self._progress(
                i,
                "verify",
                f"{len(findings)} finding(s): {verification.stats.verified} verified, "
                f"{verification.stats.discarded} discarded",
            )

            reviewed = any(report.success for report in agent_results)
            if not reviewed:
                logger.warning("Iteration %d: no review agent completed successfully", i)

            if not verified and reviewed:
                self._progress(i, "fix", "Nothing verified, fix skipped")
                self._record(state, i, agent_results, verification, None, carried_tests_pass, [])
                exit_reason = ExitReason.CONVERGED
                self._progress(i, "done", "Converged: zero verified findings")
                break

            if previous is not None and len(verified) > len(previous.verification.verified):
                self._progress(i, "fix", "Findings growing, fix skipped")
                outstanding = partition_by_severity(verified, min_fix_severity).fixable
                self._record(
                    state, i, agent_results, verification, None, carried_tests_pass, outstanding
                )
                exit_reason = ExitReason.DIVERGING
                self._progress(
                    i,
                    "done",
                    f"Diverging: verified findings grew from "
                    f"{len(previous.verification.verified)} to {len(verified)}",
                )
                break

            # Gate
            fixable, deferred = partition_by_severity(verified, min_fix_severity)
            state.defer(deferred)

            # Approval
            if tier.require_approval and opts.approval_gate is not None and fixable:
                decision = opts.approval_gate.ask(
                    ApprovalContext(
                        iteration=i,
                        max_iterations=max_iterations,
                        fixable=fixable,
                        deferred=deferred,
                    )
                )
                if decision.action is ApprovalAction.ABORT:
                    self._progress(i, "fix", "Aborted at approval gate")
                    self._record(
                        state, i, agent_results, verification, None, carried_tests_pass, fixable
                    )
                    exit_reason = ExitReason.ABORTED
                    self._progress(i, "done", "Aborted by approver")
                    break
                if decision.action is ApprovalAction.SKIP:
                    self._progress(i, "fix", "Fixes skipped by approver")
                    self._record(
                        state, i, agent_results, verification, None, carried_tests_pass, fixable
                    )
                    self._progress(i, "done", "Iteration skipped")
                    continue
                if decision.action is ApprovalAction.FILTER:
                    approved_ids = set(decision.approved_ids)
                    rejected = [f for f in fixable if f.id not in approved_ids]
                    fixable = [f for f in fixable if f.id in approved_ids]
                    state.defer(rejected)
                    deferred = deferred + rejected

            # Fix
            fix_result: FixBatchResult | None = None
            if fixable:
                self._progress(i, "fix", f"Fixing {len(fixable)} finding(s) ({min_fix_severity}+)")
                fix_result = fix_findings(
                    fixable,
                    project_dir=opts.project_dir,
                    test_suite_runner=opts.test_suite_runner,
                    coding_agent=opts.coding_agent,
                    git=opts.git,
                    max_attempts=opts.max_fix_attempts,
                    model=opts.model,
                    timeout_seconds=opts.fix_timeout_seconds,
                )
                state.total_fixed += len(fix_result.fixed)
                state.all_fix_results.extend(fix_result.results)
                tests_pass = fix_result.final_test_result.passed
                unresolved = list(fix_result.unfixed)
            else:
                skipped = (
                    f"No findings at {min_fix_severity}+ severity, fix skipped"
                    if reviewed
                    else "No review agent succeeded, fix skipped"
                )
                self._progress(i, "fix", skipped)
                tests_pass = carried_tests_pass
                unresolved = []

            record = self._record(
                state, i, agent_results, verification, fix_result, tests_pass, unresolved
            )

            if not tests_pass:
                exit_reason = ExitReason.TEST_FAILURE
                self._progress(i, "done", "Tests failing after fixes")
                break

            if (
                previous is not None
                and record.verified_keys == previous.verified_keys
                and record.fixed_count == 0
            ):
                exit_reason = ExitReason.STUCK
                self._progress(i, "done", "Stuck: same findings as last iteration, none fixed")
                break

            if i == max_iterations:
                if fix_result is not None and not unresolved and not deferred:
                    exit_reason = ExitReason.CONVERGED
                    self._progress(i, "done", "Converged: every verified finding fixed")
                else:
                    exit_reason = ExitReason.MAX_ITERATIONS
                    self._progress(i, "done", "Iteration budget exhausted")
                break

            self._progress(i, "done", "Re-reviewing")

        last = state.previous
        return LoopResult(
            iterations=state.iterations,
            converged=exit_reason is ExitReason.CONVERGED,
            exit_reason=exit_reason,
            tier_name=resolved.tier_name,
            total_findings=state.total_findings,
            total_fixed=state.total_fixed,
            total_discarded=state.total_discarded,
            unresolved_findings=_dedupe(last.unresolved) if last else [],
            deferred_findings=list(state.deferred.values()),
            all_fix_results=state.all_fix_results,
        )


async def run_adversarial_loop(options: LoopOptions) -> LoopResult:
    """Run the adversarial review loop once. See LoopController.run."""
    return await LoopController(options).run()
