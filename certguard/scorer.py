"""
CertGuard Anomaly Scorer

Scores a single certificate-issuance request:
- Runs every active rule independently (no short-circuiting)
- Sums the weights of triggered rules and clamps the total to [0, 100]
- Classifies the clamped score into a risk tier
- Appends the submission to the caller's history

The scorer performs no I/O and raises nothing for inputs within the
CertificateSubmission contract.
"""

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .checks import AnomalyFinding, EvaluationContext
from .history import EvaluationHistory
from .rules import MAX_SCORE, RuleSet, create_default_ruleset
from .submission import CertificateSubmission

logger = logging.getLogger(__name__)


class RiskTier(str, Enum):
    """Risk tier derived purely from the clamped score."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IssuanceDecision(str, Enum):
    """What the issuance workflow does with a scored request."""
    ALLOW = "allow"
    CONFIRM = "confirm"
    BLOCK = "block"


@dataclass
class AnomalyScore:
    """Result of scoring one submission. Rebuilt fresh on every call."""
    submission_id: str
    risk_score: int
    risk_tier: RiskTier
    flags: List[str] = field(default_factory=list)
    findings: List[AnomalyFinding] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "risk_score": self.risk_score,
            "risk_tier": self.risk_tier.value,
            "flags": list(self.flags),
            "findings": [f.to_dict() for f in self.findings],
        }


def clamp_score(total: int) -> int:
    return min(MAX_SCORE, max(0, total))


def issuance_decision(score: AnomalyScore) -> IssuanceDecision:
    """Critical results block issuance; high results need operator confirmation."""
    if score.risk_tier == RiskTier.CRITICAL:
        return IssuanceDecision.BLOCK
    if score.risk_tier == RiskTier.HIGH:
        return IssuanceDecision.CONFIRM
    return IssuanceDecision.ALLOW


def evaluate(
    submission: CertificateSubmission,
    history: EvaluationHistory,
    ruleset: Optional[RuleSet] = None,
    context: Optional[EvaluationContext] = None
) -> AnomalyScore:
    """
    Score a submission against the history, then record it.

    Args:
        submission: The certificate-issuance request
        history: Prior submissions; the submission is appended to it
        ruleset: Rules and thresholds (default rule set if not provided)
        context: Evaluation context (evaluation time defaults to now)

    Returns:
        AnomalyScore with clamped score, tier, flags and findings
    """
    ruleset = ruleset or create_default_ruleset()
    context = context or EvaluationContext()
    now = context.now()

    flags: List[str] = []
    findings: List[AnomalyFinding] = []
    total = 0

    with history.lock:
        history.prune(now)

        for rule in ruleset.active_rules():
            detection = rule.check(submission, history, context)
            if detection is None:
                continue

            flags.append(rule.flag)
            findings.append(AnomalyFinding(
                type=rule.finding_type,
                description=detection.description,
                severity=rule.severity,
                value=detection.value
            ))
            total += rule.weight

        history.append(submission, recorded_at=now)

    risk_score = clamp_score(total)
    result = AnomalyScore(
        submission_id=submission.submission_id,
        risk_score=risk_score,
        risk_tier=RiskTier(ruleset.classify(risk_score)),
        flags=flags,
        findings=findings
    )
    logger.debug(
        "Scored submission %s: %d (%s) flags=%s",
        result.submission_id, result.risk_score, result.risk_tier.value, flags
    )
    return result


@dataclass
class ScorerStatistics:
    """Aggregate view over every result produced by one scorer."""
    total_analyzed: int
    average_risk_score: float
    fraud_detected: int
    tier_counts: Dict[str, int]
    flag_counts: Dict[str, int]
    history_size: int
    last_analysis: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_analyzed": self.total_analyzed,
            "average_risk_score": self.average_risk_score,
            "fraud_detected": self.fraud_detected,
            "tier_counts": dict(self.tier_counts),
            "flag_counts": dict(self.flag_counts),
            "history_size": self.history_size,
            "last_analysis": self.last_analysis,
        }


class AnomalyScorer:
    """
    Scorer bound to one rule set and one history.

    Keeps running statistics over the results it has produced.
    """

    def __init__(
        self,
        ruleset: Optional[RuleSet] = None,
        history: Optional[EvaluationHistory] = None
    ):
        self.ruleset = ruleset or create_default_ruleset()
        self.history = history if history is not None else EvaluationHistory()

        self._stats_lock = threading.Lock()
        self._total = 0
        self._score_sum = 0
        self._tiers: Counter = Counter()
        self._flags: Counter = Counter()
        self._last_analysis: Optional[datetime] = None

    def evaluate(
        self,
        submission: CertificateSubmission,
        context: Optional[EvaluationContext] = None
    ) -> AnomalyScore:
        context = context or EvaluationContext()
        result = evaluate(submission, self.history, self.ruleset, context)

        with self._stats_lock:
            self._total += 1
            self._score_sum += result.risk_score
            self._tiers[result.risk_tier.value] += 1
            self._flags.update(result.flags)
            self._last_analysis = context.evaluation_time

        return result

    def statistics(self) -> ScorerStatistics:
        with self._stats_lock:
            average = round(self._score_sum / self._total, 1) if self._total else 0.0
            return ScorerStatistics(
                total_analyzed=self._total,
                average_risk_score=average,
                fraud_detected=self._tiers[RiskTier.HIGH.value] + self._tiers[RiskTier.CRITICAL.value],
                tier_counts={t.value: self._tiers[t.value] for t in RiskTier},
                flag_counts=dict(self._flags),
                history_size=len(self.history),
                last_analysis=(
                    self._last_analysis.isoformat().replace("+00:00", "Z")
                    if self._last_analysis else None
                ),
            )

    def reset(self) -> None:
        """Clear history and statistics."""
        with self._stats_lock:
            self.history.clear()
            self._total = 0
            self._score_sum = 0
            self._tiers.clear()
            self._flags.clear()
            self._last_analysis = None
