"""Prompt templates for the adversarial review agents and the fix agent.

Every agent emits one JSON object per finding on its own line so the output
can be parsed with ``boop.review.parser.parse_findings``.
"""

from __future__ import annotations

from boop.review.models import Finding

REVIEW_FILE_CHAR_LIMIT = 10_000
FIX_CONTEXT_CHAR_LIMIT = 20_000
FIX_CONTEXT_LINES = 50

_FINDING_FORMAT = (
    '{{"title":"Short title","severity":"critical|high|medium|low",'
    '"file":"path/to/file","lineRange":{{"start":10,"end":15}},'
    '"description":"{description_hint}"}}'
)

_COMMON_RULES = """Rules:
- ONLY report issues you are confident about. Do NOT guess or speculate.
- Every file path must be real. If you are not sure a file exists, do not reference it.
- Every line number must reference code you can see in the provided content.
- Quote the offending identifiers in backticks so the finding can be checked.
- Severity: {severity_guide}
- After all findings, output "## Summary" followed by a brief overview."""

_AGENT_PROMPTS: dict[str, tuple[str, str, str, str]] = {
    "code-quality": (
        "You are an adversarial code quality reviewer. Your job is to find REAL bugs, "
        "not style nits.",
        """- Logic errors and edge cases that will cause runtime failures
- Error handling gaps (unhandled rejections, swallowed exceptions)
- Antipatterns (double-resolve, race conditions, resource leaks)
- Naming inconsistencies and API contract violations
- Duplication that introduces maintenance risk""",
        "Detailed explanation with the exact code that is wrong and why",
        "critical=data loss/crash, high=bugs, medium=antipatterns, low=minor improvements",
    ),
    "test-coverage": (
        "You are an adversarial test coverage reviewer. Your job is to find untested paths "
        "and weak assertions.",
        """- Functions and branches with no test coverage
- Missing edge case tests (empty input, null, boundary values, error paths)
- Tests that assert too little
- Integration gaps between modules tested only in isolation
- Missing negative tests""",
        "Detailed explanation of what is untested and why it matters",
        "critical=untested crash path, high=untested error handling, "
        "medium=missing edge case, low=could be more thorough",
    ),
    "security": (
        "You are an adversarial security reviewer. Your job is to find real vulnerabilities, "
        "not theoretical risks.",
        """- Injection vectors (command injection, path traversal, template injection)
- Credential or secret exposure (hardcoded keys, secrets in logs, tokens in URLs)
- Unsanitized user input reaching sensitive operations
- Known vulnerable dependency patterns
- Authentication and authorization bypasses""",
        "Detailed explanation with the exact attack vector and remediation",
        "critical=RCE/data breach, high=injection/auth bypass, "
        "medium=info leak/missing validation, low=defense-in-depth",
    ),
}

KNOWN_AGENTS = tuple(_AGENT_PROMPTS)


def get_agent_system_prompt(agent_id: str) -> str:
    """System prompt for one adversarial agent.

    Raises:
        KeyError: If the agent id is unknown
    """
    intro, focus, description_hint, severity_guide = _AGENT_PROMPTS[agent_id]
    finding_format = _FINDING_FORMAT.format(description_hint=description_hint)
    rules = _COMMON_RULES.format(severity_guide=severity_guide)
    return (
        f"{intro}\n\nFocus on:\n{focus}\n\n"
        f"For each finding, output a JSON object on its own line:\n{finding_format}\n\n{rules}"
    )


def truncate(text: str, max_chars: int) -> str:
    """Cut text to ``max_chars`` and mark the cut."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "\n... (truncated)"


def build_review_prompt(files: list[tuple[str, str]], rules_section: str = "") -> str:
    """User message listing the files under review.

    Args:
        files: (path, content) pairs
        rules_section: Promoted review rules for this agent, appended when set

    Returns:
        Prompt text with each file in a fenced block
    """
    parts = [
        "Review the following source files. "
        "For each issue found, output a JSON finding line.\n"
    ]
    for path, content in files:
        parts.append(f"### File: {path}\n")
        parts.append(f"```\n{truncate(content, REVIEW_FILE_CHAR_LIMIT)}\n```\n")
    if rules_section:
        parts.append(rules_section)
    return "\n".join(parts)


def extract_code_context(finding: Finding, file_content: str) -> str:
    """Code shown to the fix agent.

    A ±50-line window around the finding's line range when it has one,
    otherwise the whole file; either way capped at 20,000 characters.
    """
    context = file_content
    if finding.line_range is not None:
        lines = file_content.split("\n")
        start = max(0, finding.line_range.start - FIX_CONTEXT_LINES)
        end = min(len(lines), finding.line_range.end + FIX_CONTEXT_LINES)
        context = "\n".join(lines[start:end])
    return context[:FIX_CONTEXT_CHAR_LIMIT]


def build_fix_prompt(finding: Finding, file_content: str) -> str:
    """Prompt asking the coding agent to fix exactly one finding."""
    code_context = extract_code_context(finding, file_content)
    return f"""Fix the following issue in the codebase.

## Finding: [{finding.severity.upper()}] {finding.title}

**File:** {finding.file or "unknown"}
**Source:** {finding.source} review
**Description:** {finding.description}

## Current Code

```
{code_context}
```

## Instructions

1. Fix ONLY this specific issue. Do not refactor other code.
2. Keep changes minimal and focused.
3. Run the project's type checks and tests after fixing.
4. If tests fail, fix the test failures too.
5. Do NOT commit. The pipeline handles commits."""
