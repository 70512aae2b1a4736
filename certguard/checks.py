"""
CertGuard Anomaly Checks

The individual heuristics behind each scoring rule. Every check receives the
submission, the (already pruned) history and the evaluation context, and
returns a Detection when it triggers or None when it does not.

Checks are total: malformed or absent data means "does not trigger", never
an exception.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .history import EvaluationHistory
from .submission import CertificateSubmission, IssueDate


class Severity(str, Enum):
    """Finding severity."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class EvaluationContext:
    """
    Context for a single evaluation.

    All time-relative checks measure against evaluation_time so that an
    evaluation can be replayed exactly.
    """
    evaluation_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return to_local(self.evaluation_time)


@dataclass(frozen=True)
class Detection:
    """Outcome of a check that triggered."""
    description: str
    value: Any = None


@dataclass(frozen=True)
class AnomalyFinding:
    """One structured explanation of why a rule triggered."""
    type: str
    description: str
    severity: Severity
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "type": self.type,
            "description": self.description,
            "severity": self.severity.value,
        }
        if self.value is not None:
            d["value"] = self.value
        return d


Check = Callable[[CertificateSubmission, EvaluationHistory, EvaluationContext], Optional[Detection]]


def to_local(value: IssueDate) -> datetime:
    """
    Aware datetime in the local timezone.

    Dates are local midnight; naive datetimes are local wall-clock time.
    Raises OverflowError or ValueError at the ends of the datetime range.
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    return value.astimezone()


def try_local(value: IssueDate) -> Optional[datetime]:
    """to_local, or None when the value cannot be expressed in local time."""
    try:
        return to_local(value)
    except (OverflowError, ValueError):
        return None


def nominal_day(value: IssueDate) -> date:
    """The calendar day as written, without any timezone conversion."""
    return value.date() if isinstance(value, datetime) else value


def calendar_day(value: IssueDate) -> Optional[date]:
    local = try_local(value)
    return local.date() if local is not None else None


# ============================================================
# Email
# ============================================================

SUSPICIOUS_EMAIL_PATTERNS = [
    re.compile(r'^test', re.IGNORECASE),
    re.compile(r'^admin', re.IGNORECASE),
    re.compile(r'^fake', re.IGNORECASE),
    re.compile(r'^demo', re.IGNORECASE),
    re.compile(r'\d{6,}@'),
    re.compile(r'(.)\1{3,}'),
]

DISPOSABLE_EMAIL_PROVIDERS = re.compile(
    r'tempmail|throwaway|mailinator|guerrillamail', re.IGNORECASE
)


def is_email_suspicious(email: str) -> bool:
    if any(p.search(email) for p in SUSPICIOUS_EMAIL_PATTERNS):
        return True
    domain = email.rsplit("@", 1)[-1]
    return bool(DISPOSABLE_EMAIL_PROVIDERS.search(domain))


def check_email(submission, history, context) -> Optional[Detection]:
    if is_email_suspicious(submission.student_email):
        return Detection("Email address matches suspicious patterns")
    return None


# ============================================================
# Wallet
# ============================================================

ZERO_ADDRESS = "0x" + "0" * 40

BLACKLISTED_WALLETS = frozenset([
    ZERO_ADDRESS,
    "0x" + "1" * 40,
])

MIN_DISTINCT_WALLET_DIGITS = 5


def wallet_digit_variety(address: str) -> int:
    """Number of distinct characters after the 0x prefix."""
    digits = address.lower()
    if digits.startswith("0x"):
        digits = digits[2:]
    return len(set(digits))


def check_wallet(submission, history, context) -> Optional[Detection]:
    address = submission.student_wallet_address.lower()
    if address in BLACKLISTED_WALLETS:
        return Detection(
            "Wallet address is a known burn or test address",
            submission.student_wallet_address
        )

    variety = wallet_digit_variety(address)
    if variety < MIN_DISTINCT_WALLET_DIGITS:
        return Detection(
            f"Wallet address has only {variety} distinct hex digits",
            submission.student_wallet_address
        )
    return None


# ============================================================
# Duplicates
# ============================================================

def check_duplicates(submission, history, context) -> Optional[Detection]:
    """
    First prior entry (oldest first) that is an exact duplicate, a same-day
    multi-course issuance for one email, or a wallet reused by another name.
    """
    candidates = {
        e.seq: e
        for e in history.entries_for_email(submission.student_email)
        + history.entries_for_wallet(submission.student_wallet_address)
    }
    current_day = calendar_day(submission.issue_date)

    for seq in sorted(candidates):
        existing = candidates[seq].submission
        same_email = existing.student_email == submission.student_email

        if (
            same_email
            and existing.course == submission.course
            and existing.institution == submission.institution
        ):
            return Detection("Exact duplicate found: Same student, course, and institution")

        if (
            same_email
            and existing.course != submission.course
            and current_day is not None
            and calendar_day(existing.issue_date) == current_day
        ):
            return Detection("Suspicious: Same email issued multiple certificates on the same day")

        if (
            existing.student_wallet_address == submission.student_wallet_address
            and existing.student_name != submission.student_name
        ):
            return Detection("Fraud indicator: Same wallet used by different students")

    return None


# ============================================================
# Issuance date
# ============================================================

MAX_CERTIFICATE_AGE_YEARS = 20
_YEAR = timedelta(days=365)


def check_issuance_pattern(submission, history, context) -> Optional[Detection]:
    now = context.now()
    issued = try_local(submission.issue_date)

    if issued is not None:
        in_future = issued > now
        age_years = (now - issued) / _YEAR
        weekday = issued.weekday()
    else:
        # Only dates at the ends of the datetime range fail to convert
        day = nominal_day(submission.issue_date)
        in_future = day > now.date()
        age_years = (now.date() - day).days / 365
        weekday = day.weekday()

    if in_future:
        return Detection("Certificate issue date is in the future")

    if age_years > MAX_CERTIFICATE_AGE_YEARS:
        return Detection(f"Certificate is unusually old: {age_years:.1f} years")

    if weekday >= 5:
        return Detection("Certificate issued on weekend (unusual for institutions)")

    return None


# ============================================================
# CGPA
# ============================================================

MAX_CGPA = 10.0


def check_cgpa(submission, history, context) -> Optional[Detection]:
    cgpa = submission.cgpa
    if cgpa is None:
        return None

    if cgpa < 0 or cgpa > MAX_CGPA:
        return Detection(f"CGPA out of valid range: {cgpa}", cgpa)
    if cgpa == MAX_CGPA:
        return Detection("Perfect CGPA (10.0) - statistically rare", cgpa)
    return None


# ============================================================
# Name similarity
# ============================================================

MIN_SHARED_NAME_TOKENS = 2


def check_name_similarity(submission, history, context) -> Optional[Detection]:
    tokens = submission.student_name.lower().split()
    if len(tokens) < MIN_SHARED_NAME_TOKENS:
        return None

    similar: List[str] = []
    for entry in history.entries_sharing_tokens(tokens, MIN_SHARED_NAME_TOKENS):
        name = entry.submission.student_name
        if name not in similar:
            similar.append(name)

    if not similar:
        return None
    return Detection(f"Similar names detected: {', '.join(similar)}", similar)


# ============================================================
# Institution
# ============================================================

PLACEHOLDER_INSTITUTION_PATTERN = re.compile(
    r'^(test|fake|demo|school of|institute of)', re.IGNORECASE
)


def check_institution(submission, history, context) -> Optional[Detection]:
    if PLACEHOLDER_INSTITUTION_PATTERN.match(submission.institution.strip()):
        return Detection("Institution name or address seems inconsistent", submission.institution)
    return None


# ============================================================
# Issue time of day
# ============================================================

UNUSUAL_HOURS = range(0, 6)


def check_issue_time(submission, history, context) -> Optional[Detection]:
    # Date-only submissions carry no time of day
    if not submission.has_issue_time:
        return None

    issued = try_local(submission.issue_date)
    if issued is not None and issued.hour in UNUSUAL_HOURS:
        return Detection(
            f"Certificate issued at unusual hour: {issued.hour}:00 ({issued.isoformat()})",
            issued.hour
        )
    return None
