"""Adversarial review agents and their concurrent fan-out.

Each agent has one lens (code quality, test coverage, security) and reviews
the files changed in the current epic. Agents run concurrently; a failing
agent yields an unsuccessful report with zero findings and never takes its
siblings down.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from boop.providers.base import AgentProvider
from boop.review.models import AgentReport
from boop.review.parser import parse_findings
from boop.review.ports import ReviewAgent, ReviewContext
from boop.review.prompts import KNOWN_AGENTS, build_review_prompt, get_agent_system_prompt
from boop.review.review_rules import build_rules_prompt_section

logger = logging.getLogger(__name__)


def read_file_content(project_dir: Path, relative_path: str) -> str:
    """Read a project file as text, returning "" when it cannot be read."""
    try:
        return (project_dir / relative_path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


class LLMReviewAgent:
    """Review agent backed by an LLM provider."""

    def __init__(self, agent_id: str, provider: AgentProvider[str]) -> None:
        """Initialize agent.

        Args:
            agent_id: Agent lens, e.g. "security" (becomes Finding.source)
            provider: Provider already configured with this agent's system prompt
        """
        self.agent_id = agent_id
        self.provider = provider

    async def run(self, context: ReviewContext) -> AgentReport:
        """Review the changed files and parse findings from the response."""
        files = [
            (path, read_file_content(context.project_dir, path))
            for path in context.changed_files
        ]
        if not files:
            return AgentReport(
                agent_id=self.agent_id,
                success=True,
                findings=[],
                raw_report="No files to review.",
            )

        rules_section = build_rules_prompt_section(context.review_rules, self.agent_id)
        result = await self.provider.invoke(build_review_prompt(files, rules_section))
        text = result.output
        findings = parse_findings(text, self.agent_id)
        logger.info(
            "%s: %d finding(s) in %dms", self.agent_id, len(findings), result.duration_ms
        )
        return AgentReport(
            agent_id=self.agent_id,
            success=True,
            findings=findings,
            raw_report=text,
        )


class UnknownReviewAgent:
    """Stands in for an agent id no review agent exists for.

    Always reports failure, so a tier naming only unknown agents can never
    look like a clean review.
    """

    def __init__(self, agent_id: str) -> None:
        self.agent_id = agent_id

    async def run(self, context: ReviewContext) -> AgentReport:
        known = ", ".join(KNOWN_AGENTS)
        return AgentReport(
            agent_id=self.agent_id,
            success=False,
            findings=[],
            raw_report=f"Unknown agent '{self.agent_id}' (known: {known})",
        )


def build_review_agents(agent_ids: Sequence[str], model: str) -> list[ReviewAgent]:
    """Create LLM agents for the given ids.

    Args:
        agent_ids: Agent ids from the resolved risk tier
        model: pydantic-ai model string, e.g. "anthropic:claude-opus-4-6"

    Returns:
        One agent per id, in the given order: an LLMReviewAgent for known ids,
        an UnknownReviewAgent otherwise
    """
    from boop.providers.pydantic_ai import PydanticAIProvider

    agents: list[ReviewAgent] = []
    for agent_id in agent_ids:
        if agent_id not in KNOWN_AGENTS:
            logger.warning("Unknown review agent %r, it will report failure", agent_id)
            agents.append(UnknownReviewAgent(agent_id))
            continue
        provider: PydanticAIProvider[str] = PydanticAIProvider(
            model=model,
            output_type=str,
            system_prompt=get_agent_system_prompt(agent_id),
        )
        agents.append(LLMReviewAgent(agent_id, provider))
    return agents


async def _run_isolated(agent: ReviewAgent, context: ReviewContext) -> AgentReport:
    try:
        return await agent.run(context)
    except Exception as exc:
        logger.warning("Review agent %s failed: %s", agent.agent_id, exc)
        return AgentReport(
            agent_id=agent.agent_id,
            success=False,
            findings=[],
            raw_report=f"Agent failed: {exc}",
        )


async def run_review_agents(
    agents: Sequence[ReviewAgent], context: ReviewContext
) -> list[AgentReport]:
    """Run all agents concurrently and wait for every one of them.

    Returns:
        One report per agent, in the order the agents were given
    """
    return list(await asyncio.gather(*(_run_isolated(a, context) for a in agents)))
