"""
CertGuard Rule Sets

A rule set is an ordered list of data-described rules (flag, finding type,
severity, weight, check) plus the tier thresholds. Tuning weights or
disabling a rule is a configuration change, not a code change.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .checks import (
    Check,
    Severity,
    check_cgpa,
    check_duplicates,
    check_email,
    check_institution,
    check_issuance_pattern,
    check_issue_time,
    check_name_similarity,
    check_wallet,
)
from .hashing import ruleset_hash


VERSION_PATTERN = re.compile(r'^[0-9]+\.[0-9]+\.[0-9]+$')

MAX_SCORE = 100


# Check registry: flag -> check function
CHECKS: Dict[str, Check] = {
    "suspicious_email": check_email,
    "suspicious_wallet": check_wallet,
    "potential_duplicate": check_duplicates,
    "unusual_issuance_pattern": check_issuance_pattern,
    "cgpa_anomaly": check_cgpa,
    "name_similarity_detected": check_name_similarity,
    "institution_inconsistency": check_institution,
    "unusual_issue_time": check_issue_time,
}


@dataclass(frozen=True)
class Rule:
    """A weighted check that contributes one flag and one finding."""
    flag: str
    finding_type: str
    severity: Severity
    weight: int
    check: Check = field(compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flag": self.flag,
            "finding_type": self.finding_type,
            "severity": self.severity.value,
            "weight": self.weight,
        }


@dataclass(frozen=True)
class TierThresholds:
    """Lower bounds (inclusive) of the medium, high and critical tiers."""
    medium: int = 40
    high: int = 60
    critical: int = 80

    def __post_init__(self):
        if not 0 < self.medium < self.high < self.critical <= MAX_SCORE:
            raise ValueError(
                f"Tier thresholds must satisfy 0 < medium < high < critical <= {MAX_SCORE}, "
                f"got {self.medium}/{self.high}/{self.critical}"
            )

    def to_dict(self) -> Dict[str, int]:
        return {"medium": self.medium, "high": self.high, "critical": self.critical}


# (flag, finding type, severity, default weight), in evaluation order
DEFAULT_RULE_TABLE = [
    ("suspicious_email", "email_analysis", Severity.MEDIUM, 15),
    ("suspicious_wallet", "wallet_analysis", Severity.HIGH, 25),
    ("potential_duplicate", "duplicate_detection", Severity.HIGH, 30),
    ("unusual_issuance_pattern", "issuance_pattern", Severity.MEDIUM, 20),
    ("cgpa_anomaly", "academic_data", Severity.LOW, 10),
    ("name_similarity_detected", "fraud_ring_detection", Severity.MEDIUM, 15),
    ("institution_inconsistency", "institution_verification", Severity.LOW, 5),
    ("unusual_issue_time", "temporal_pattern", Severity.LOW, 8),
]


@dataclass
class RuleSet:
    """
    Versioned scoring configuration.

    Rules are evaluated in list order; the order fixes the order of flags
    and findings in the result, never whether a rule runs.
    """
    rules: List[Rule]
    thresholds: TierThresholds = field(default_factory=TierThresholds)
    version: str = "1.0.0"
    disabled: List[str] = field(default_factory=list)

    _hash: Optional[str] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        self._validate()
        self._hash = None

    def _validate(self):
        if not VERSION_PATTERN.match(self.version):
            raise ValueError(f"Invalid version '{self.version}': must be semantic version")

        flags = set()
        for rule in self.rules:
            if rule.flag in flags:
                raise ValueError(f"Duplicate rule flag: {rule.flag}")
            flags.add(rule.flag)

            if rule.weight < 0:
                raise ValueError(f"Rule weight must be non-negative: {rule.flag}={rule.weight}")

        for flag in self.disabled:
            if flag not in CHECKS:
                raise ValueError(f"Unknown rule flag: {flag}")

    def active_rules(self) -> List[Rule]:
        return [r for r in self.rules if r.flag not in self.disabled]

    def weights(self) -> Dict[str, int]:
        return {r.flag: r.weight for r in self.rules}

    def classify(self, score: int) -> str:
        """Risk tier for a clamped score."""
        if score >= self.thresholds.critical:
            return "critical"
        if score >= self.thresholds.high:
            return "high"
        if score >= self.thresholds.medium:
            return "medium"
        return "low"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "version": self.version,
            "rules": [r.to_dict() for r in self.rules],
            "disabled": list(self.disabled),
            "thresholds": self.thresholds.to_dict(),
        }

    def get_hash(self) -> str:
        """Compute and cache the rule set hash."""
        if self._hash is None:
            self._hash = ruleset_hash(self.to_dict())
        return self._hash

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RuleSet':
        """
        Build a rule set from overrides on top of the default rules.

        Accepted keys: version, weights {flag: int}, disabled [flag],
        thresholds {medium, high, critical}.
        """
        weights = data.get("weights", {}) or {}
        unknown = [flag for flag in weights if flag not in CHECKS]
        if unknown:
            raise ValueError(f"Unknown rule flag(s) in weights: {unknown}")

        rules = []
        for flag, finding_type, severity, default_weight in DEFAULT_RULE_TABLE:
            weight = weights.get(flag, default_weight)
            if isinstance(weight, bool) or not isinstance(weight, int):
                raise ValueError(f"Rule weight must be an integer: {flag}={weight!r}")
            rules.append(Rule(flag, finding_type, severity, weight, CHECKS[flag]))

        try:
            thresholds = TierThresholds(**(data.get("thresholds") or {}))
        except TypeError as e:
            raise ValueError(f"Invalid thresholds: {e}")

        return cls(
            rules=rules,
            thresholds=thresholds,
            version=data.get("version", "1.0.0"),
            disabled=list(data.get("disabled", []) or []),
        )


def create_default_ruleset() -> RuleSet:
    """The eight standard rules with their default weights and tier cutoffs."""
    return RuleSet.from_dict({})
