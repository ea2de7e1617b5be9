"""Severity gate — splits verified findings into fixable and deferred."""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple

from boop.review.models import Finding, FixSeverity, Severity


class SeverityPartition(NamedTuple):
    """Findings that clear the fix threshold vs those left for the summary."""

    fixable: list[Finding]
    deferred: list[Finding]


def partition_by_severity(
    findings: Iterable[Finding], min_fix_severity: FixSeverity | Severity
) -> SeverityPartition:
    """Partition findings by a minimum fix severity.

    A finding is fixable iff its rank is <= the threshold's rank
    (critical=0, high=1, medium=2, low=3, info=4). ``info`` is rejected as a
    threshold, so info findings are never fixable. Input order is preserved
    within each side.

    Args:
        findings: Verified findings
        min_fix_severity: Least severe level still sent to the fixer

    Returns:
        SeverityPartition(fixable, deferred)

    Raises:
        ValueError: If the threshold is not critical/high/medium/low
    """
    threshold = Severity(min_fix_severity)
    if threshold is Severity.INFO:
        raise ValueError("info is not a valid fix threshold")

    fixable: list[Finding] = []
    deferred: list[Finding] = []
    for finding in findings:
        if finding.severity.rank <= threshold.rank:
            fixable.append(finding)
        else:
            deferred.append(finding)
    return SeverityPartition(fixable, deferred)


def sort_by_severity(findings: Iterable[Finding]) -> list[Finding]:
    """Stable sort, critical first."""
    return sorted(findings, key=lambda f: f.severity.rank)
