"""Adversarial review — multi-agent review, verification, and auto-fix loop.

Public API exports for the review data layer. The loop itself lives in
``boop.review.loop`` (it depends on the executor, which depends on this
package).
"""

from boop.review.models import (
    AgentReport,
    ApprovalAction,
    ApprovalDecision,
    ExitReason,
    Finding,
    FixBatchResult,
    FixResult,
    IterationRecord,
    LoopResult,
    Severity,
    VerificationResult,
)
from boop.review.risk_policy import (
    RiskPolicy,
    RiskTier,
    default_risk_policy,
    load_risk_policy,
    resolve_risk_tier,
)
from boop.review.severity import partition_by_severity, sort_by_severity

__all__ = [
    "AgentReport",
    "ApprovalAction",
    "ApprovalDecision",
    "ExitReason",
    "Finding",
    "FixBatchResult",
    "FixResult",
    "IterationRecord",
    "LoopResult",
    "RiskPolicy",
    "RiskTier",
    "Severity",
    "VerificationResult",
    "default_risk_policy",
    "load_risk_policy",
    "partition_by_severity",
    "resolve_risk_tier",
    "sort_by_severity",
]
