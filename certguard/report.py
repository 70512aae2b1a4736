"""
CertGuard PDF Risk Report

Renders the results of a scoring run as a one-line-per-submission PDF, with
a tier summary on the first page.
"""

import time
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from .scorer import AnomalyScore, RiskTier, issuance_decision
from .submission import CertificateSubmission

MARGIN = 72
LINE_HEIGHT = 14


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[:width - 3] + "..."


def write_pdf_report(
    results: Sequence[Tuple[CertificateSubmission, AnomalyScore]],
    path: str,
    title: str = "Certificate Fraud Risk Report",
    generated_at: Optional[float] = None
) -> str:
    """
    Write a PDF report for scored submissions.

    Returns:
        The path written
    """
    generated_at = generated_at or time.time()
    tiers = Counter(score.risk_tier.value for _, score in results)

    c = canvas.Canvas(str(path), pagesize=letter)
    page_top = letter[1] - MARGIN
    y = page_top

    c.setFont("Times-Roman", 14)
    c.drawString(MARGIN, y, title)
    y -= 24
    c.setFont("Times-Roman", 11)
    c.drawString(MARGIN, y, f"Generated: {time.ctime(generated_at)}")
    y -= 18
    c.drawString(MARGIN, y, f"Submissions analysed: {len(results)}")
    y -= 18
    summary = ", ".join(f"{t.value}: {tiers.get(t.value, 0)}" for t in RiskTier)
    c.drawString(MARGIN, y, f"Risk tiers - {summary}")
    y -= 28

    lines: List[str] = []
    for submission, score in results:
        decision = issuance_decision(score).value
        lines.append(
            f"{score.risk_score:>3}  {score.risk_tier.value:<8}  {decision:<7}  "
            f"{_truncate(submission.student_name, 28)}  <{_truncate(submission.student_email, 32)}>"
        )
        for flag in score.flags:
            lines.append(f"        - {flag}")

    c.setFont("Courier", 9)
    for line in lines:
        if y < MARGIN:
            c.showPage()
            c.setFont("Courier", 9)
            y = page_top
        c.drawString(MARGIN, y, line)
        y -= LINE_HEIGHT

    c.showPage()
    c.save()
    return str(path)
