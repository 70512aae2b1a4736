"""
CertGuard Certificate Submission

The immutable value object scored by the anomaly scorer, plus intake helpers
that build submissions from API payloads and batch-upload CSV rows.

The scorer itself never validates structure. Callers run
`validate_submission_dict` (or rely on `from_dict` raising) before scoring.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from .hashing import submission_hash


IssueDate = Union[date, datetime]

MAX_BATCH_ROWS = 100

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
WALLET_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')
DATE_ONLY_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

REQUIRED_FIELDS = [
    "student_name",
    "student_email",
    "student_wallet_address",
    "course",
    "issue_date",
]

# Accepted spellings -> canonical field name. Covers the dashboard form keys
# and the batch-upload CSV template headers.
FIELD_ALIASES: Dict[str, str] = {
    "id": "certificate_id",
    "certificateId": "certificate_id",
    "studentName": "student_name",
    "studentEmail": "student_email",
    "email": "student_email",
    "studentWalletAddress": "student_wallet_address",
    "walletAddress": "student_wallet_address",
    "institutionName": "institution",
    "issueDate": "issue_date",
}


class SubmissionError(ValueError):
    """Raised when a payload cannot be turned into a CertificateSubmission."""


def parse_issue_date(value: Any) -> IssueDate:
    """
    Parse an issue date.

    "YYYY-MM-DD" yields a date (no time of day). Any other ISO 8601 string
    yields a datetime; a trailing "Z" is read as UTC. date and datetime
    instances pass through unchanged.
    """
    if isinstance(value, (date, datetime)):
        return value
    if not isinstance(value, str) or not value.strip():
        raise SubmissionError(f"Invalid issue_date: {value!r}")

    text = value.strip()
    try:
        if DATE_ONLY_PATTERN.match(text):
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise SubmissionError(f"Invalid issue_date: {value!r}")


def _parse_cgpa(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise SubmissionError(f"Invalid cgpa: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise SubmissionError(f"Invalid cgpa: {value!r}")


def normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map aliased keys onto canonical field names. Canonical keys win."""
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        canonical = FIELD_ALIASES.get(key, key)
        if canonical in normalized and canonical == key:
            normalized[canonical] = value
        else:
            normalized.setdefault(canonical, value)
    return normalized


def _format_issue_date(value: IssueDate) -> str:
    return value.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class CertificateSubmission:
    """
    A certificate-issuance request as seen by the scorer.

    issue_date is either a date (no time of day) or a datetime. Naive
    datetimes are interpreted as local time.
    """
    student_name: str
    student_email: str
    student_wallet_address: str
    course: str
    institution: str
    issue_date: IssueDate
    cgpa: Optional[float] = None
    grade: Optional[str] = None
    certificate_id: Optional[str] = None

    @property
    def has_issue_time(self) -> bool:
        return isinstance(self.issue_date, datetime)

    @property
    def submission_id(self) -> str:
        """Certificate id if given, otherwise a content fingerprint."""
        if self.certificate_id:
            return self.certificate_id
        return self.fingerprint()

    def fingerprint(self) -> str:
        body = self.to_dict()
        body.pop("certificate_id", None)
        return submission_hash(body)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d = {
            "student_name": self.student_name,
            "student_email": self.student_email,
            "student_wallet_address": self.student_wallet_address,
            "course": self.course,
            "institution": self.institution,
            "issue_date": _format_issue_date(self.issue_date),
        }
        if self.cgpa is not None and math.isfinite(self.cgpa):
            d["cgpa"] = self.cgpa
        if self.grade:
            d["grade"] = self.grade
        if self.certificate_id:
            d["certificate_id"] = self.certificate_id
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CertificateSubmission':
        """Create a submission from a dictionary, accepting aliased keys."""
        data = normalize_keys(data)
        missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
        if missing:
            raise SubmissionError(f"Missing required fields: {missing}")

        return cls(
            student_name=str(data["student_name"]),
            student_email=str(data["student_email"]),
            student_wallet_address=str(data["student_wallet_address"]),
            course=str(data["course"]),
            institution=str(data.get("institution") or ""),
            issue_date=parse_issue_date(data["issue_date"]),
            cgpa=_parse_cgpa(data.get("cgpa")),
            grade=data.get("grade") or None,
            certificate_id=data.get("certificate_id") or None,
        )


@dataclass
class ValidationReport:
    """Structural validation result for one payload row."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def validate_submission_dict(data: Dict[str, Any]) -> ValidationReport:
    """
    Check a raw payload before it is turned into a submission.

    Never raises; problems are reported as errors (row must not be scored)
    or warnings (row may be scored).
    """
    report = ValidationReport()
    data = normalize_keys(data)

    for name in REQUIRED_FIELDS:
        if data.get(name) in (None, ""):
            report.errors.append(f"Missing required field: {name}")

    email = data.get("student_email")
    if email and not EMAIL_PATTERN.match(str(email)):
        report.errors.append("Invalid email format")

    wallet = data.get("student_wallet_address")
    if wallet and not WALLET_PATTERN.match(str(wallet)):
        report.errors.append("Invalid Ethereum wallet address")

    issue_date = data.get("issue_date")
    if issue_date not in (None, ""):
        try:
            parse_issue_date(issue_date)
        except SubmissionError:
            report.errors.append("Invalid date format (use YYYY-MM-DD)")

    cgpa = data.get("cgpa")
    if cgpa not in (None, ""):
        try:
            value = _parse_cgpa(cgpa)
        except SubmissionError:
            report.errors.append("Invalid CGPA value")
        else:
            if math.isnan(value) or value < 0 or value > 10:
                report.warnings.append("CGPA should be between 0 and 10")

    return report


def validate_batch(rows: Iterable[Dict[str, Any]]) -> List[ValidationReport]:
    """Validate each row and warn about emails repeated within the batch."""
    reports = []
    seen_emails = set()
    for row in rows:
        report = validate_submission_dict(row)
        email = normalize_keys(row).get("student_email")
        if email:
            if email in seen_emails:
                report.warnings.append("Duplicate email detected")
            seen_emails.add(email)
        reports.append(report)
    return reports
