from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from certguard import CertificateSubmission, SubmissionError, parse_issue_date


class SubmissionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    certificate_id: Optional[str] = Field(default=None, alias="id")
    student_name: str = Field(min_length=1)
    student_email: str = Field(min_length=1)
    student_wallet_address: str = Field(min_length=1)
    course: str = Field(min_length=1)
    institution: str = ""
    issue_date: str = Field(min_length=1)
    cgpa: Optional[float] = None
    grade: Optional[str] = None

    @field_validator("issue_date")
    @classmethod
    def _issue_date_parses(cls, v: str) -> str:
        try:
            parse_issue_date(v)
        except SubmissionError as e:
            raise ValueError(str(e))
        return v

    def to_submission(self) -> CertificateSubmission:
        return CertificateSubmission.from_dict(self.model_dump())


class BatchRequest(BaseModel):
    submissions: List[Dict[str, Any]]


class FindingOut(BaseModel):
    type: str
    description: str
    severity: str
    value: Optional[Any] = None


class AnalysisResponse(BaseModel):
    submission_id: str
    risk_score: int
    risk_tier: str
    decision: str
    flags: List[str]
    findings: List[FindingOut]


class BatchRowResult(BaseModel):
    row: int
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    result: Optional[AnalysisResponse] = None


class BatchResponse(BaseModel):
    total: int
    scored: int
    blocked: int
    results: List[BatchRowResult]
