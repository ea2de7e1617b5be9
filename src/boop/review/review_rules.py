"""Review rules — recurring finding patterns remembered across reviews.

After a loop finishes, every finding it saw is folded into
``~/.boop/memory/review-rules.yaml``. Patterns seen often enough are
"promoted": later reviews show them to the agent that found them, so it
looks for them specifically.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from boop.review.models import Finding, LoopResult, Severity, slugify

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_DIR = Path.home() / ".boop" / "memory"
RULES_FILENAME = "review-rules.yaml"
DEFAULT_PROMOTION_THRESHOLD = 2
MAX_RULES_PER_AGENT = 10


class ReviewRule(BaseModel):
    """A finding pattern and how often it has been seen."""

    key: str
    description: str
    severity: Severity
    source_agent: str = Field(alias="sourceAgent")
    times_seen: int = Field(default=1, ge=1, alias="timesSeen")
    projects: list[str] = Field(default_factory=list)
    first_seen: datetime = Field(alias="firstSeen")
    last_seen: datetime = Field(alias="lastSeen")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


def rule_key(source: str, title: str) -> str:
    """``<agent>--<slug(title)>``: Finding.key without the file part."""
    return f"{source}--{slugify(title)}"


def extract_rule_candidates(
    result: LoopResult, project_name: str, now: datetime | None = None
) -> list[ReviewRule]:
    """One candidate rule per distinct pattern in a loop result.

    Counts every raw agent finding of every iteration, plus the deferred and
    unresolved findings, so a pattern that survived the loop weighs more.

    Args:
        result: Finished loop result
        project_name: Project the review ran on
        now: Timestamp for first/last seen (defaults to the current time)

    Returns:
        Candidates in first-seen order
    """
    timestamp = now or datetime.now(UTC)
    findings: list[Finding] = [
        finding
        for iteration in result.iterations
        for report in iteration.agent_results
        for finding in report.findings
    ]
    findings.extend(result.deferred_findings)
    findings.extend(result.unresolved_findings)

    grouped: dict[str, tuple[Finding, int]] = {}
    for finding in findings:
        key = rule_key(finding.source, finding.title)
        first, count = grouped.get(key, (finding, 0))
        grouped[key] = (first, count + 1)

    return [
        ReviewRule(
            key=key,
            description=finding.description or finding.title,
            severity=finding.severity,
            source_agent=finding.source,
            times_seen=count,
            projects=[project_name],
            first_seen=timestamp,
            last_seen=timestamp,
        )
        for key, (finding, count) in grouped.items()
    ]


def merge_rules(
    existing: Iterable[ReviewRule], candidates: Iterable[ReviewRule]
) -> list[ReviewRule]:
    """Fold candidates into existing rules. Never drops a rule.

    A candidate with a known key adds to ``times_seen``, moves ``last_seen``
    forward and adds its projects; an unknown key is appended.
    """
    merged: dict[str, ReviewRule] = {rule.key: rule for rule in existing}
    for candidate in candidates:
        found = merged.get(candidate.key)
        if found is None:
            merged[candidate.key] = candidate
            continue
        projects = found.projects + [p for p in candidate.projects if p not in found.projects]
        merged[candidate.key] = found.model_copy(
            update={
                "times_seen": found.times_seen + candidate.times_seen,
                "last_seen": candidate.last_seen,
                "projects": projects,
            }
        )
    return list(merged.values())


def load_review_rules(memory_dir: Path | None = None) -> list[ReviewRule]:
    """Load rules from ``<memory_dir>/review-rules.yaml``.

    Returns an empty list when the file is missing or unreadable, or is not a
    list of rules. Individual entries that fail validation are skipped.
    """
    path = (memory_dir or DEFAULT_MEMORY_DIR) / RULES_FILENAME
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        return []
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable review rules %s: %s", path, exc)
        return []

    if not isinstance(raw, list):
        return []

    rules: list[ReviewRule] = []
    for entry in raw:
        try:
            rules.append(ReviewRule.model_validate(entry))
        except ValidationError:
            logger.debug("Skipping invalid review rule entry in %s: %r", path, entry)
    return rules


def save_review_rules(rules: Iterable[ReviewRule], memory_dir: Path | None = None) -> Path:
    """Write rules to ``<memory_dir>/review-rules.yaml``, creating the directory.

    Returns:
        Path of the written file

    Raises:
        OSError: If the directory or file cannot be written
    """
    directory = memory_dir or DEFAULT_MEMORY_DIR
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / RULES_FILENAME
    data = [rule.model_dump(mode="json", by_alias=True) for rule in rules]
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    return path


def build_rules_prompt_section(
    rules: Iterable[ReviewRule],
    agent_id: str,
    promotion_threshold: int = DEFAULT_PROMOTION_THRESHOLD,
) -> str:
    """Prompt section listing one agent's promoted rules.

    Only rules from ``agent_id`` seen at least ``promotion_threshold`` times
    qualify, most frequent first, at most ten. Returns "" when none qualify.
    """
    own = [r for r in rules if r.source_agent == agent_id]
    qualified = sorted(
        (r for r in own if r.times_seen >= promotion_threshold),
        key=lambda r: r.times_seen,
        reverse=True,
    )[:MAX_RULES_PER_AGENT]
    if not qualified:
        return ""

    lines = [
        "## Known Recurring Issues from Past Projects",
        "The following patterns have been found repeatedly in past reviews. "
        "Pay special attention to these:",
        "",
    ]
    for number, rule in enumerate(qualified, start=1):
        project_count = len(rule.projects)
        plural = "" if project_count == 1 else "s"
        lines.append(
            f"{number}. **{rule.description}** (severity: {rule.severity}, "
            f"seen {rule.times_seen} times across {project_count} project{plural})"
        )
    return "\n".join(lines)


def learn_from_result(
    result: LoopResult, project_name: str, memory_dir: Path | None = None
) -> Path:
    """Merge a finished loop's patterns into the stored rules and save them."""
    existing = load_review_rules(memory_dir)
    merged = merge_rules(existing, extract_rule_candidates(result, project_name))
    return save_review_rules(merged, memory_dir)
