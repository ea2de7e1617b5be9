"""Risk-tiered review policy.

A project may ship ``.boop/risk-policy.json`` mapping file globs to risk
tiers. The loop resolves one tier from the changed files at start-up and uses
its iteration budget, fix threshold, agent set and approval requirement.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path
from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from boop.review.models import FixSeverity

logger = logging.getLogger(__name__)

RISK_POLICY_FILE = Path(".boop") / "risk-policy.json"

RiskTierName = Literal["high", "medium", "low"]

# Highest risk first; the first tier with any matching file wins.
TIER_ORDER: tuple[RiskTierName, ...] = ("high", "medium", "low")

CATCH_ALL_PATTERNS = frozenset({"**", "**/*"})


class RiskTier(BaseModel):
    """Review settings for one bucket of file paths."""

    paths: list[str]
    max_iterations: int = Field(alias="maxIterations", ge=1)
    min_fix_severity: FixSeverity = Field(alias="minFixSeverity")
    agents: list[str]
    require_approval: bool = Field(default=False, alias="requireApproval")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class RiskTiers(BaseModel):
    """The three named tiers of a policy."""

    high: RiskTier
    medium: RiskTier
    low: RiskTier

    model_config = ConfigDict(frozen=True)


class RiskPolicy(BaseModel):
    """Versioned risk policy contract.

    The low tier must carry a catch-all glob so every non-empty change set
    resolves to some tier.
    """

    version: str
    tiers: RiskTiers

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _low_tier_catch_all(self) -> RiskPolicy:
        if not CATCH_ALL_PATTERNS.intersection(self.tiers.low.paths):
            raise ValueError("low tier paths must include a catch-all pattern ('**')")
        return self

    def tier(self, name: RiskTierName) -> RiskTier:
        """Return the tier with the given name."""
        tier: RiskTier = getattr(self.tiers, name)
        return tier


class ResolvedRiskTier(NamedTuple):
    """The tier selected for a change set."""

    tier_name: RiskTierName
    tier: RiskTier


def default_risk_policy() -> RiskPolicy:
    """Built-in policy used when the project ships none (or a broken one)."""
    return RiskPolicy(
        version="1",
        tiers=RiskTiers(
            high=RiskTier(
                paths=["src/api/**", "src/auth/**", "src/middleware/**", "db/**"],
                max_iterations=3,
                min_fix_severity="medium",
                agents=["code-quality", "test-coverage", "security"],
                require_approval=True,
            ),
            medium=RiskTier(
                paths=["src/components/**", "src/routes/**", "src/pages/**"],
                max_iterations=2,
                min_fix_severity="high",
                agents=["code-quality", "test-coverage"],
            ),
            low=RiskTier(
                paths=["**"],
                max_iterations=1,
                min_fix_severity="critical",
                agents=["code-quality"],
            ),
        ),
    )


def load_risk_policy(project_dir: Path) -> RiskPolicy | None:
    """Load ``<project_dir>/.boop/risk-policy.json``.

    Args:
        project_dir: Project root

    Returns:
        The parsed policy, or None if the file is missing, unreadable,
        not JSON, or fails schema validation
    """
    path = project_dir / RISK_POLICY_FILE
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No risk policy at %s, using defaults", path)
        return None
    except OSError as exc:
        logger.warning("Could not read risk policy %s: %s", path, exc)
        return None

    try:
        return RiskPolicy.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "Ignoring malformed risk policy %s (%d errors)", path, exc.error_count()
        )
        return None


def load_or_default_policy(project_dir: Path) -> RiskPolicy:
    """Project policy if valid, otherwise the built-in default."""
    return load_risk_policy(project_dir) or default_risk_policy()


def resolve_risk_tier(policy: RiskPolicy, changed_files: Iterable[str]) -> ResolvedRiskTier:
    """Resolve the tier for a set of changed files.

    Tiers are checked high → medium → low. The first tier with ANY glob
    matching ANY file wins, so a single high-risk file puts the whole review
    at high tier. Falls back to low when nothing matches (only reachable for
    an empty change set, given the catch-all invariant).

    Args:
        policy: Risk policy to apply
        changed_files: Repository-relative paths

    Returns:
        ResolvedRiskTier(tier_name, tier)
    """
    files = [_normalize_path(f) for f in changed_files]
    for name in TIER_ORDER:
        tier = policy.tier(name)
        if any(path_matches(f, tier.paths) for f in files):
            return ResolvedRiskTier(name, tier)

    return ResolvedRiskTier("low", policy.tiers.low)


def path_matches(path: str, patterns: Iterable[str]) -> bool:
    """True if ``path`` matches any of the glob ``patterns``."""
    return any(_compile_glob(p).fullmatch(path) for p in patterns)


def _normalize_path(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a path glob.

    Supported syntax: ``**`` (any number of segments, including none), ``*``
    (within one segment), ``?`` (one non-separator character), ``[abc]`` /
    ``[a-z]`` / ``[!abc]`` character classes, and ``{a,b}`` alternation, which
    may nest. Extglobs (``+(a|b)``) and POSIX classes (``[[:alpha:]]``) are not
    supported; unmatched brackets and braces are taken literally.
    """
    return re.compile(_translate(pattern))


def _translate(pattern: str) -> str:
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    # "**/" matches zero or more whole segments
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            close = _class_end(pattern, i)
            if close == -1:
                out.append(re.escape(c))
            else:
                out.append(_translate_class(pattern[i + 1 : close]))
                i = close
        elif c == "{":
            close = _brace_end(pattern, i)
            if close == -1:
                out.append(re.escape(c))
            else:
                alternatives = _split_alternatives(pattern[i + 1 : close])
                out.append("(?:" + "|".join(_translate(a) for a in alternatives) + ")")
                i = close
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def _class_end(pattern: str, start: int) -> int:
    """Index of the ``]`` closing the class opened at ``start``, or -1."""
    i = start + 1
    if i < len(pattern) and pattern[i] in "!^":
        i += 1
    # a "]" right after the opening bracket is a literal member
    if i < len(pattern) and pattern[i] == "]":
        i += 1
    return pattern.find("]", i)


def _translate_class(body: str) -> str:
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]
    members = body.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")
    if negate:
        return f"[^/{members}]"
    if members.startswith("^"):
        members = "\\" + members
    return f"[{members}]"


def _brace_end(pattern: str, start: int) -> int:
    """Index of the ``}`` matching the ``{`` at ``start``, or -1."""
    depth = 0
    for i in range(start, len(pattern)):
        if pattern[i] == "{":
            depth += 1
        elif pattern[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _split_alternatives(body: str) -> list[str]:
    """Split a brace body on its top-level commas."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for c in body:
        if c == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
        current.append(c)
    parts.append("".join(current))
    return parts
