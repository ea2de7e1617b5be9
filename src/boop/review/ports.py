"""Interfaces for the loop's external collaborators.

The loop and the fixer only talk to these protocols, so every process- or
network-backed piece (LLM review agents, the coding agent CLI, the test
suite, a human at the terminal) can be swapped for a fake in tests.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from boop.review.models import (
    AgentReport,
    ApprovalContext,
    ApprovalDecision,
    Finding,
    TestSuiteResult,
    VerificationResult,
)
from boop.review.review_rules import ReviewRule


class ReviewContext(BaseModel):
    """What a review agent is asked to look at."""

    project_dir: Path
    epic_number: int
    changed_files: list[str]
    review_rules: list[ReviewRule] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class CodingAgentRun(BaseModel):
    """Outcome of one coding agent invocation."""

    success: bool
    output: str = ""

    model_config = ConfigDict(frozen=True)


@runtime_checkable
class ReviewAgent(Protocol):
    """Adversarial reviewer producing raw findings."""

    agent_id: str

    async def run(self, context: ReviewContext) -> AgentReport: ...


class Verifier(Protocol):
    """Confirms findings against the real code."""

    def verify(self, findings: list[Finding]) -> VerificationResult: ...


class TestSuiteRunner(Protocol):
    """Runs the project's tests. Must be safe to call repeatedly."""

    def run(self, project_dir: Path) -> TestSuiteResult: ...


class CodingAgent(Protocol):
    """Edits the working tree to address a fix prompt."""

    def apply(
        self,
        prompt: str,
        project_dir: Path,
        *,
        model: str | None = None,
        timeout_seconds: int = 300,
    ) -> CodingAgentRun: ...


class ApprovalGate(Protocol):
    """Human-in-the-loop check between the severity gate and the fixer."""

    def ask(self, context: ApprovalContext) -> ApprovalDecision: ...


ProgressCallback = Callable[[int, str, str], None]
