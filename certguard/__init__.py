"""
CertGuard: Certificate Issuance Anomaly Scoring

Version: 1.0.0

Scores a certificate-issuance request before it is persisted and minted.
Eight independent heuristic rules each contribute a fixed weight; the sum is
clamped to [0, 100] and mapped to a risk tier:

    score >= 80  critical   (issuance blocked)
    score >= 60  high       (operator confirmation required)
    score >= 40  medium
    otherwise    low

Every scored submission is appended to a caller-owned EvaluationHistory,
which the duplicate and name-similarity rules consult on later calls.

Usage:
    from certguard import (
        AnomalyScorer,
        CertificateSubmission,
        EvaluationHistory,
        IssuanceDecision,
        RuleSet,
        issuance_decision,
    )

    scorer = AnomalyScorer(
        ruleset=RuleSet.from_dict({"weights": {"cgpa_anomaly": 5}}),
        history=EvaluationHistory(max_size=10000),
    )

    submission = CertificateSubmission.from_dict({
        "student_name": "Priya Sharma",
        "student_email": "priya.sharma@university.edu",
        "student_wallet_address": "0x8ba1f109551bD432803012645Ac136ddd64DBA72",
        "course": "Computer Science",
        "institution": "Massachusetts Institute of Technology",
        "issue_date": "2024-01-15",
        "cgpa": 8.5,
    })

    score = scorer.evaluate(submission)
    if issuance_decision(score) == IssuanceDecision.BLOCK:
        ...
"""

__version__ = "1.0.0"

# Submissions
from .submission import (
    CertificateSubmission,
    SubmissionError,
    ValidationReport,
    MAX_BATCH_ROWS,
    parse_issue_date,
    validate_submission_dict,
    validate_batch,
)

# Fingerprints
from .hashing import canonicalize, canonicalize_str, sha256_hash, submission_hash, ruleset_hash

# History
from .history import EvaluationHistory, HistoryEntry

# Checks
from .checks import (
    AnomalyFinding,
    Detection,
    EvaluationContext,
    Severity,
)

# Rules
from .rules import (
    CHECKS,
    Rule,
    RuleSet,
    TierThresholds,
    create_default_ruleset,
)

# Scorer
from .scorer import (
    AnomalyScore,
    AnomalyScorer,
    IssuanceDecision,
    RiskTier,
    ScorerStatistics,
    evaluate,
    issuance_decision,
)


__all__ = [
    # Version
    "__version__",

    # Submissions
    "CertificateSubmission",
    "SubmissionError",
    "ValidationReport",
    "MAX_BATCH_ROWS",
    "parse_issue_date",
    "validate_submission_dict",
    "validate_batch",

    # Fingerprints
    "canonicalize",
    "canonicalize_str",
    "sha256_hash",
    "submission_hash",
    "ruleset_hash",

    # History
    "EvaluationHistory",
    "HistoryEntry",

    # Checks
    "AnomalyFinding",
    "Detection",
    "EvaluationContext",
    "Severity",

    # Rules
    "CHECKS",
    "Rule",
    "RuleSet",
    "TierThresholds",
    "create_default_ruleset",

    # Scorer
    "AnomalyScore",
    "AnomalyScorer",
    "IssuanceDecision",
    "RiskTier",
    "ScorerStatistics",
    "evaluate",
    "issuance_decision",
]
