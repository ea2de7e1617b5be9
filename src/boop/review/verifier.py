"""Finding verifier — deterministic hallucination filter.

NOT an LLM call. Each finding is checked against the working tree:
- does the referenced file exist and read?
- does any identifier quoted in the finding appear in that file?

Findings that fail are discarded with a reason; only verified findings go on
to the severity gate.
"""

from __future__ import annotations

import re
from pathlib import Path

from boop.review.models import DiscardedFinding, Finding, VerificationResult

_QUOTED_TERM = re.compile(r"[\"'`]([a-zA-Z_$][\w$.]*(?:\(\))?)[`\"']")


def extract_key_terms(text: str) -> list[str]:
    """Identifiers quoted with "", '' or `` in the text, without trailing ``()``."""
    terms: list[str] = []
    for match in _QUOTED_TERM.finditer(text):
        term = match.group(1).removesuffix("()")
        if term not in terms:
            terms.append(term)
    return terms


class FileVerifier:
    """Verifies findings against files under a project root."""

    def __init__(self, project_dir: Path) -> None:
        self.project_dir = project_dir

    def verify(self, findings: list[Finding]) -> VerificationResult:
        """Split findings into verified and discarded."""
        verified: list[Finding] = []
        discarded: list[DiscardedFinding] = []

        for finding in findings:
            reason = self._rejection_reason(finding)
            if reason is None:
                verified.append(finding)
            else:
                discarded.append(DiscardedFinding(finding=finding, reason=reason))

        return VerificationResult.from_partition(verified, discarded)

    def _rejection_reason(self, finding: Finding) -> str | None:
        # Findings without a file cannot be file-verified; keep them.
        if not finding.file:
            return None

        path = self.project_dir / finding.file
        if not path.is_file():
            return f"File does not exist: {finding.file}"

        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return f"File unreadable: {finding.file}"

        terms = extract_key_terms(finding.description)
        terms += [t for t in extract_key_terms(finding.title) if t not in terms]

        # Nothing to check against: benefit of the doubt.
        if not terms:
            return None

        if any(term in content for term in terms):
            return None

        return f"None of the key terms [{', '.join(terms)}] found in {finding.file}"
