"""
Logging for the CertGuard service.

Every log line is one JSON object. Audit events (one per fraud analysis,
plus blocked issuances and throttled clients) go through `audit_log` on the
"certguard.audit" logger, with student emails and wallets masked.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .util import mask_sensitive, utc_rfc3339

request_id_var: ContextVar[str] = ContextVar('request_id', default='')

# Decision -> audit level for FRAUD_ANALYSIS events
DECISION_LEVELS = {
    "allow": logging.INFO,
    "confirm": logging.WARNING,
    "block": logging.ERROR,
}


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": utc_rfc3339(datetime.fromtimestamp(record.created, timezone.utc)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(getattr(record, "extra_fields", {}))
        return json.dumps(entry, default=str)


class AuditLogger:
    """Audit trail of scoring outcomes and service-level security events."""

    def __init__(self, name: str = "certguard.audit"):
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, event_type: str, message: str, **fields: Any) -> None:
        fields = {"event_type": event_type, "request_id": request_id_var.get(), **fields}
        self._logger.log(level, "%s: %s", event_type, message, extra={"extra_fields": fields})

    def fraud_analysis(
        self,
        submission_id: str,
        student_email: str,
        student_wallet_address: str,
        risk_score: int,
        risk_tier: str,
        decision: str,
        flags: List[str]
    ) -> None:
        self._emit(
            DECISION_LEVELS.get(decision, logging.INFO),
            "FRAUD_ANALYSIS",
            f"Risk score {risk_score} ({risk_tier}) -> {decision}",
            submission_id=submission_id,
            student_email=mask_sensitive(student_email),
            student_wallet_address=mask_sensitive(student_wallet_address, visible_chars=6),
            risk_score=risk_score,
            risk_tier=risk_tier,
            decision=decision,
            flags=flags,
        )

    def issuance_blocked(self, submission_id: str, risk_score: int, flags: List[str]) -> None:
        """A critical-tier result stopped the certificate from being minted."""
        self._emit(
            logging.CRITICAL,
            "ISSUANCE_BLOCKED",
            f"Issuance of {submission_id} blocked at risk score {risk_score}",
            submission_id=submission_id,
            risk_score=risk_score,
            flags=flags,
        )

    def rate_limit_exceeded(self, client_id: str, endpoint: str) -> None:
        self._emit(
            logging.WARNING,
            "RATE_LIMIT_EXCEEDED",
            f"{client_id} throttled on {endpoint}",
            client_id=client_id,
            endpoint=endpoint,
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Replace the root logger's handlers with a stdout handler (and optionally
    a file handler) using the JSON or plain-text format.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if json_format:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s')

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request id (generated when not given) to the current context."""
    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    return request_id_var.get()


audit_log = AuditLogger()
