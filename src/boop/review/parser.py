"""Strict line-oriented parser for review agent output.

Agents emit one JSON object per finding, each on its own line, surrounded by
free-form prose. Every candidate line is validated against ``RawFinding``;
lines that are not JSON or fail validation are skipped, never raised.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from boop.review.models import Finding, LineRange, Severity

logger = logging.getLogger(__name__)


class RawFinding(BaseModel):
    """Schema of a single finding line as emitted by an agent.

    Agent-supplied ids and sources are ignored: ids are reassigned per call
    and the source is always the agent that produced the text.
    """

    title: str = Field(min_length=1)
    severity: Severity
    description: str
    file: str | None = None
    line_range: LineRange | None = Field(default=None, alias="lineRange")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def id_prefix(agent_id: str) -> str:
    """Short id prefix for an agent: first three characters of its id."""
    return agent_id[:3]


def parse_findings(text: str, agent_id: str) -> list[Finding]:
    """Parse findings from an agent's response text.

    Args:
        text: Raw agent response
        agent_id: Agent that produced the text (becomes ``Finding.source``)

    Returns:
        Findings in output order with ids ``<prefix>-1``, ``<prefix>-2``, ...
    """
    findings: list[Finding] = []
    skipped = 0
    prefix = id_prefix(agent_id)

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped.startswith("{"):
            continue
        try:
            raw = RawFinding.model_validate_json(stripped)
        except ValidationError:
            skipped += 1
            continue

        findings.append(
            Finding(
                id=f"{prefix}-{len(findings) + 1}",
                title=raw.title,
                severity=raw.severity,
                source=agent_id,
                description=raw.description,
                file=raw.file or None,
                line_range=raw.line_range,
            )
        )

    if skipped:
        logger.debug("%s: skipped %d invalid finding line(s)", agent_id, skipped)
    return findings

