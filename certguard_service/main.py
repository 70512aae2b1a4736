import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Request

from certguard import (
    AnomalyScore,
    AnomalyScorer,
    CertificateSubmission,
    EvaluationHistory,
    IssuanceDecision,
    RuleSet,
    __version__,
    issuance_decision,
    validate_batch,
)

from .config import (
    ANALYZE_RPM,
    BATCH_MAX_ROWS,
    ENV,
    LOG_JSON,
    LOG_LEVEL,
    history_max_age,
    history_max_size,
    is_debug,
    is_production,
    load_ruleset_overrides,
    validate_config,
)
from .logging_config import audit_log, configure_logging, set_request_id
from .models import AnalysisResponse, BatchRequest, BatchResponse, SubmissionIn
from .rate_limit import RateLimiter
from .util import utc_rfc3339

logger = logging.getLogger(__name__)

app = FastAPI(
    title="CertGuard Issuance Risk Service",
    version=__version__,
    docs_url=None if is_production() else "/docs",
)


def build_scorer() -> AnomalyScorer:
    """Scorer with the configured rule set and a process-wide history."""
    ruleset = RuleSet.from_dict(load_ruleset_overrides())
    history = EvaluationHistory(max_size=history_max_size(), max_age=history_max_age())
    return AnomalyScorer(ruleset=ruleset, history=history)


SCORER = build_scorer()
analyze_limiter = RateLimiter(ANALYZE_RPM)


@app.on_event("startup")
def _startup():
    configure_logging(level="DEBUG" if is_debug() else LOG_LEVEL, json_format=LOG_JSON)
    missing = [name for name, ok in validate_config().items() if not ok]
    if missing:
        logger.warning("Configured files not found: %s", missing)
    logger.info(
        "CertGuard service started (env=%s, ruleset=%s)",
        ENV, SCORER.ruleset.get_hash()
    )


@app.middleware("http")
async def _request_id(request: Request, call_next):
    request_id = set_request_id(request.headers.get("X-Request-ID"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _enforce_rate_limit(request: Request, endpoint: str) -> None:
    client_id = request.client.host if request.client else "unknown"
    if not analyze_limiter.allow(client_id):
        audit_log.rate_limit_exceeded(client_id, endpoint)
        raise HTTPException(429, "RATE_LIMIT")


def _score(submission: CertificateSubmission) -> Dict[str, Any]:
    score: AnomalyScore = SCORER.evaluate(submission)
    decision = issuance_decision(score)

    audit_log.fraud_analysis(
        submission_id=score.submission_id,
        student_email=submission.student_email,
        student_wallet_address=submission.student_wallet_address,
        risk_score=score.risk_score,
        risk_tier=score.risk_tier.value,
        decision=decision.value,
        flags=score.flags
    )
    if decision == IssuanceDecision.BLOCK:
        audit_log.issuance_blocked(score.submission_id, score.risk_score, score.flags)

    return {**score.to_dict(), "decision": decision.value}


@app.get("/health")
def health():
    return {
        "ok": True,
        "env": ENV,
        "time": utc_rfc3339(datetime.now(timezone.utc)),
        "history_size": len(SCORER.history),
    }


@app.post("/fraud/analyze", response_model=AnalysisResponse)
def analyze(req: SubmissionIn, request: Request):
    _enforce_rate_limit(request, "/fraud/analyze")
    return _score(req.to_submission())


@app.post("/fraud/analyze_batch", response_model=BatchResponse)
def analyze_batch(req: BatchRequest, request: Request):
    _enforce_rate_limit(request, "/fraud/analyze_batch")
    if len(req.submissions) > BATCH_MAX_ROWS:
        raise HTTPException(413, f"BATCH_TOO_LARGE: maximum {BATCH_MAX_ROWS} submissions per batch")

    results: List[Dict[str, Any]] = []
    for index, (row, report) in enumerate(zip(req.submissions, validate_batch(req.submissions)), start=1):
        entry: Dict[str, Any] = {"row": index, **report.to_dict()}
        if report.is_valid:
            entry["result"] = _score(CertificateSubmission.from_dict(row))
        results.append(entry)

    scored = [r for r in results if "result" in r]
    return {
        "total": len(results),
        "scored": len(scored),
        "blocked": sum(1 for r in scored if r["result"]["decision"] == IssuanceDecision.BLOCK.value),
        "results": results,
    }


@app.get("/fraud/statistics")
def statistics():
    return SCORER.statistics().to_dict()


@app.get("/fraud/rules")
def rules():
    ruleset = SCORER.ruleset
    return {**ruleset.to_dict(), "hash": ruleset.get_hash()}
