from fastapi.testclient import TestClient

from certguard_service import main
from certguard_service.rate_limit import RateLimiter

client = TestClient(main.app)

CLEAN = {
    "student_name": "Priya Sharma",
    "student_email": "priya.sharma@university.edu",
    "student_wallet_address": "0x8ba1f109551bD432803012645Ac136ddd64DBA72",
    "course": "Computer Science",
    "institution": "Massachusetts Institute of Technology",
    "issue_date": "2024-01-15",
    "cgpa": 8.5,
}


def analyze(payload):
    return client.post("/fraud/analyze", json=payload)


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["history_size"] == 0
    assert body["time"].endswith("Z")


def test_clean_submission_allowed():
    r = analyze(CLEAN)
    assert r.status_code == 200
    body = r.json()
    assert body["risk_score"] == 0
    assert body["risk_tier"] == "low"
    assert body["decision"] == "allow"
    assert body["flags"] == []
    assert body["submission_id"].startswith("sha256:")


def test_certificate_id_alias_used_as_submission_id():
    r = analyze({**CLEAN, "id": "CERT-2024-0001"})
    assert r.json()["submission_id"] == "CERT-2024-0001"


def test_resubmission_flagged_as_duplicate():
    analyze(CLEAN)
    body = analyze(CLEAN).json()
    assert "potential_duplicate" in body["flags"]
    finding = body["findings"][0]
    assert finding["type"] == "duplicate_detection"
    assert finding["severity"] == "high"


def test_burn_wallet_at_night_blocked():
    analyze({**CLEAN, "student_wallet_address": "0x" + "0" * 40, "student_email": "test@mailinator.com"})
    payload = {
        **CLEAN,
        "student_name": "Priya Sharma Rao",
        "student_email": "test@mailinator.com",
        "student_wallet_address": "0x" + "0" * 40,
        "issue_date": "2024-01-13T03:00:00",
        "cgpa": 10,
        "institution": "Test Institute",
    }
    body = analyze(payload).json()
    assert body["risk_score"] == 100
    assert body["risk_tier"] == "critical"
    assert body["decision"] == "block"


def test_missing_field_rejected():
    payload = dict(CLEAN)
    del payload["student_email"]
    assert analyze(payload).status_code == 422


def test_bad_issue_date_rejected():
    assert analyze({**CLEAN, "issue_date": "15/01/2024"}).status_code == 422


def test_rejected_requests_not_recorded():
    analyze({**CLEAN, "issue_date": "not a date"})
    assert client.get("/health").json()["history_size"] == 0


def test_earliest_aware_issue_date_scored():
    r = analyze({**CLEAN, "issue_date": "0001-01-01T00:00:00+14:00"})
    assert r.status_code == 200
    assert "unusual_issuance_pattern" in r.json()["flags"]
    assert client.get("/health").json()["history_size"] == 1


def test_latest_aware_issue_date_scored():
    r = analyze({**CLEAN, "issue_date": "9999-12-31T23:59:00-12:00"})
    assert r.status_code == 200
    flags = r.json()["flags"]
    assert "unusual_issuance_pattern" in flags
    assert "unusual_issue_time" not in flags
    assert client.get("/health").json()["history_size"] == 1


def test_batch_scores_valid_rows_only():
    rows = [
        CLEAN,
        {**CLEAN, "course": "Data Science"},
        {**CLEAN, "student_email": "not-an-email"},
    ]
    r = client.post("/fraud/analyze_batch", json={"submissions": rows})
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 3
    assert body["scored"] == 2
    assert body["blocked"] == 0

    first, second, third = body["results"]
    assert first["result"]["risk_score"] == 0
    assert second["warnings"] == ["Duplicate email detected"]
    assert "potential_duplicate" in second["result"]["flags"]
    assert third["is_valid"] is False
    assert third["errors"] == ["Invalid email format"]
    assert third["result"] is None


def test_batch_too_large():
    rows = [CLEAN] * (main.BATCH_MAX_ROWS + 1)
    r = client.post("/fraud/analyze_batch", json={"submissions": rows})
    assert r.status_code == 413


def test_statistics():
    analyze(CLEAN)
    analyze({**CLEAN, "student_name": "Ravi Menon", "student_email": "ravi@university.edu",
             "student_wallet_address": "0x71C7656EC7ab88b098defB751B7401B5f6d8976F", "cgpa": 10})
    stats = client.get("/fraud/statistics").json()
    assert stats["total_analyzed"] == 2
    assert stats["average_risk_score"] == 5.0
    assert stats["tier_counts"]["low"] == 2
    assert stats["flag_counts"] == {"cgpa_anomaly": 1}
    assert stats["history_size"] == 2


def test_rules():
    body = client.get("/fraud/rules").json()
    assert body["version"] == "1.0.0"
    assert len(body["rules"]) == 8
    assert body["hash"] == main.SCORER.ruleset.get_hash()


def test_request_id_echoed():
    r = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]


def test_rate_limit(monkeypatch):
    monkeypatch.setattr(main, "analyze_limiter", RateLimiter(1))
    assert analyze(CLEAN).status_code == 200
    r = analyze(CLEAN)
    assert r.status_code == 429
    assert r.json()["detail"] == "RATE_LIMIT"
