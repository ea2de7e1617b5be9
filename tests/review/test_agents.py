"""Tests for LLM review agents and the concurrent fan-out."""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from boop.providers.base import AgentProvider, InvocationResult, TokenUsage
from boop.providers.pydantic_ai import PydanticAIProvider
from boop.review.agents import (
    LLMReviewAgent,
    UnknownReviewAgent,
    build_review_agents,
    read_file_content,
    run_review_agents,
)
from boop.review.models import AgentReport, Severity
from boop.review.ports import ReviewAgent, ReviewContext
from boop.review.review_rules import ReviewRule

FINDING_LINE = json.dumps(
    {
        "title": "Unchecked `open`",
        "severity": "high",
        "file": "app.py",
        "description": "`open` result never closed",
    }
)


class RecordingProvider(AgentProvider[str]):
    """Provider returning canned text and remembering prompts."""

    def __init__(self, output: str) -> None:
        self.output = output
        self.prompts: list[str] = []

    async def invoke(self, prompt: str, **kwargs: Any) -> InvocationResult[str]:
        self.prompts.append(prompt)
        return InvocationResult(
            output=self.output,
            usage=TokenUsage(),
            model="fake",
            provider="test",
            duration_ms=1,
        )


class ExplodingAgent:
    agent_id = "security"

    async def run(self, context: ReviewContext) -> AgentReport:
        raise RuntimeError("rate limited")


@pytest.fixture
def context(tmp_path: Path) -> ReviewContext:
    (tmp_path / "app.py").write_text("f = open('x')\n")
    return ReviewContext(project_dir=tmp_path, epic_number=1, changed_files=["app.py"])


class TestReadFileContent:
    """Test read_file_content."""

    def test_reads(self, context: ReviewContext) -> None:
        assert "open" in read_file_content(context.project_dir, "app.py")

    def test_missing_is_empty(self, tmp_path: Path) -> None:
        assert read_file_content(tmp_path, "nope.py") == ""


class TestLLMReviewAgent:
    """Test LLMReviewAgent.run."""

    @pytest.mark.asyncio
    async def test_parses_findings(self, context: ReviewContext) -> None:
        provider = RecordingProvider(f"Intro\n{FINDING_LINE}\n## Summary\nOne issue.")
        agent = LLMReviewAgent("code-quality", provider)

        report = await agent.run(context)

        assert report.success is True
        assert report.agent_id == "code-quality"
        assert [f.id for f in report.findings] == ["cod-1"]
        assert report.findings[0].source == "code-quality"
        assert "## Summary" in report.raw_report

    @pytest.mark.asyncio
    async def test_prompt_contains_file(self, context: ReviewContext) -> None:
        provider = RecordingProvider("")
        await LLMReviewAgent("security", provider).run(context)
        assert "### File: app.py" in provider.prompts[0]
        assert "f = open('x')" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_no_files_skips_provider(self, tmp_path: Path) -> None:
        provider = RecordingProvider(FINDING_LINE)
        empty = ReviewContext(project_dir=tmp_path, epic_number=1, changed_files=[])

        report = await LLMReviewAgent("security", provider).run(empty)

        assert report.success is True
        assert report.findings == []
        assert report.raw_report == "No files to review."
        assert provider.prompts == []

    @pytest.mark.asyncio
    async def test_with_pydantic_ai_test_model(self, context: ReviewContext) -> None:
        from pydantic_ai.models.test import TestModel

        provider: PydanticAIProvider[str] = PydanticAIProvider(
            model=TestModel(custom_output_text=FINDING_LINE), output_type=str
        )
        report = await LLMReviewAgent("security", provider).run(context)
        assert [f.title for f in report.findings] == ["Unchecked `open`"]

    @pytest.mark.asyncio
    async def test_promoted_rules_in_prompt(self, context: ReviewContext) -> None:
        seen = datetime(2026, 1, 1, tzinfo=UTC)
        rules = [
            ReviewRule(
                key=key,
                description=description,
                severity=Severity.HIGH,
                source_agent=source,
                times_seen=3,
                projects=["shop"],
                first_seen=seen,
                last_seen=seen,
            )
            for key, description, source in [
                ("security--token-in-log", "Tokens written to logs", "security"),
                ("code-quality--race", "Unlocked shared counter", "code-quality"),
            ]
        ]
        provider = RecordingProvider("")

        await LLMReviewAgent("security", provider).run(
            context.model_copy(update={"review_rules": rules})
        )

        assert "## Known Recurring Issues from Past Projects" in provider.prompts[0]
        assert "Tokens written to logs" in provider.prompts[0]
        assert "Unlocked shared counter" not in provider.prompts[0]

    def test_satisfies_protocol(self) -> None:
        assert isinstance(LLMReviewAgent("security", RecordingProvider("")), ReviewAgent)


class TestBuildReviewAgents:
    """Test build_review_agents."""

    def test_known_ids_get_llm_agents(self) -> None:
        agents = build_review_agents(["security", "code-quality"], "test")
        assert [a.agent_id for a in agents] == ["security", "code-quality"]
        assert all(isinstance(a, LLMReviewAgent) for a in agents)

    @pytest.mark.asyncio
    async def test_unknown_id_reports_failure(self, context: ReviewContext) -> None:
        agents = build_review_agents(["security", "performance"], "test")

        assert [a.agent_id for a in agents] == ["security", "performance"]
        assert isinstance(agents[1], UnknownReviewAgent)
        report = await agents[1].run(context)
        assert report.success is False
        assert report.findings == []
        assert "Unknown agent 'performance'" in report.raw_report

    def test_empty(self) -> None:
        assert build_review_agents([], "test") == []


class TestRunReviewAgents:
    """Test run_review_agents."""

    @pytest.mark.asyncio
    async def test_failure_isolated(self, context: ReviewContext) -> None:
        good = LLMReviewAgent("code-quality", RecordingProvider(FINDING_LINE))

        reports = await run_review_agents([good, ExplodingAgent()], context)

        assert [r.agent_id for r in reports] == ["code-quality", "security"]
        assert reports[0].success is True
        assert len(reports[0].findings) == 1
        assert reports[1].success is False
        assert reports[1].findings == []
        assert reports[1].raw_report == "Agent failed: rate limited"

    @pytest.mark.asyncio
    async def test_no_agents(self, context: ReviewContext) -> None:
        assert await run_review_agents([], context) == []
