"""Human-in-the-loop approval gate.

Sits between the severity gate and the fixer: a human sees the fixable and
deferred findings and decides to approve, filter, skip, or abort.

Implementations:
- no gate (None): autonomous mode
- AutoApproveGate: always approves (useful for scripted runs of high tiers)
- InteractiveApprovalGate: rich prompts in the terminal
"""

from __future__ import annotations

import re

from rich.console import Console
from rich.markdown import Markdown
from rich.prompt import Prompt

from boop.review.models import ApprovalAction, ApprovalContext, ApprovalDecision, Finding

_APPROVE_WORDS = frozenset({"approve", "approved", "yes", "lgtm", "ok"})
_ABORT_WORDS = frozenset({"abort", "stop", "cancel"})
_FILTER_REPLY = re.compile(r"^filter[:\s]+(.+)")


def _location(finding: Finding, with_range: bool = False) -> str:
    if not finding.file:
        return ""
    location = f" in {finding.file}"
    if with_range and finding.line_range is not None:
        location += f":{finding.line_range.start}-{finding.line_range.end}"
    return location


def format_findings_for_approval(fixable: list[Finding], deferred: list[Finding]) -> str:
    """Markdown listing numbered fixable findings and bulleted deferred ones."""
    lines = [f"## Findings to Fix ({len(fixable)})"]
    for number, finding in enumerate(fixable, start=1):
        lines.append(
            f"{number}. [{finding.id}] **{finding.title}** ({finding.severity})"
            f"{_location(finding, with_range=True)}"
        )

    if deferred:
        lines.append("")
        lines.append(f"## Deferred ({len(deferred)})")
        for finding in deferred:
            lines.append(
                f"- [{finding.id}] {finding.title} ({finding.severity}){_location(finding)}"
            )

    return "\n".join(lines)


def parse_approval_reply(text: str) -> ApprovalDecision:
    """Parse a free-text reply into a decision.

    Accepted:
    - "approve" / "approved" / "yes" / "lgtm" / "ok" → approve
    - "skip" → skip
    - "abort" / "stop" / "cancel" → abort
    - "filter: cq-1, sec-1" or "filter cq-1 sec-1" → filter

    Anything else approves, matching the sign-off timeout behavior.
    """
    normalized = text.strip().lower()

    if normalized in _APPROVE_WORDS:
        return ApprovalDecision(action=ApprovalAction.APPROVE)
    if normalized == "skip":
        return ApprovalDecision(action=ApprovalAction.SKIP)
    if normalized in _ABORT_WORDS:
        return ApprovalDecision(action=ApprovalAction.ABORT)

    match = _FILTER_REPLY.match(normalized)
    if match:
        ids = [part for part in re.split(r"[\s,]+", match.group(1)) if part]
        if ids:
            return ApprovalDecision(action=ApprovalAction.FILTER, approved_ids=ids)

    return ApprovalDecision(action=ApprovalAction.APPROVE)


class AutoApproveGate:
    """Approves every batch without asking."""

    def ask(self, context: ApprovalContext) -> ApprovalDecision:
        return ApprovalDecision(action=ApprovalAction.APPROVE)


class InteractiveApprovalGate:
    """Asks the user at the terminal.

    Replies are free text, parsed by ``parse_approval_reply``. Pass a stderr
    console when stdout carries machine-readable output.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def ask(self, context: ApprovalContext) -> ApprovalDecision:
        """Show findings and prompt for approve / skip / abort / filter."""
        self.console.print()
        listing = format_findings_for_approval(context.fixable, context.deferred)
        self.console.print(Markdown(listing))
        self.console.print()

        reply = Prompt.ask(
            f"Iteration {context.iteration}/{context.max_iterations}: "
            f"fix {len(context.fixable)} findings? "
            "(approve, skip, abort, or filter: <ids>)",
            default="approve",
            console=self.console,
        )
        decision = parse_approval_reply(reply)
        if decision.action is not ApprovalAction.FILTER:
            return decision

        known_ids = {f.id for f in context.fixable}
        approved = [i for i in decision.approved_ids if i in known_ids]
        if not approved:
            return ApprovalDecision(action=ApprovalAction.SKIP)
        return ApprovalDecision(action=ApprovalAction.FILTER, approved_ids=approved)
