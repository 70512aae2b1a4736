import csv
import json

import pytest

from certguard.cli import load_rows, main

ROW = {
    "student_name": "Priya Sharma",
    "student_email": "priya.sharma@university.edu",
    "student_wallet_address": "0x8ba1f109551bD432803012645Ac136ddd64DBA72",
    "course": "Computer Science",
    "institution": "Massachusetts Institute of Technology",
    "issue_date": "2024-01-15",
    "cgpa": "8.5",
}

BLOCKED = {
    "student_name": "John Fake Smith",
    "student_email": "test999999@mailinator.com",
    "student_wallet_address": "0x" + "0" * 40,
    "course": "Blockchain 101",
    "institution": "Test Institute",
    "issue_date": "2024-01-13T03:00:00",
    "cgpa": "10",
}


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def write_csv(path, rows):
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0]))
        writer.writeheader()
        writer.writerows(rows)
    return str(path)


def run(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def test_load_rows_json_shapes(tmp_path):
    assert load_rows(write_json(tmp_path / "list.json", [ROW])) == [ROW]
    assert load_rows(write_json(tmp_path / "one.json", ROW)) == [ROW]
    assert load_rows(write_json(tmp_path / "wrapped.json", {"submissions": [ROW, ROW]})) == [ROW, ROW]


def test_load_rows_csv(tmp_path):
    rows = load_rows(write_csv(tmp_path / "batch.csv", [ROW]))
    assert rows == [ROW]


def test_score_clean_batch(tmp_path, capsys):
    out = tmp_path / "results.json"
    code = run(["score", "-i", write_csv(tmp_path / "batch.csv", [ROW]), "-o", str(out)])
    assert code == 0
    results = json.loads(out.read_text(encoding="utf-8"))
    assert results[0]["result"]["risk_score"] == 0
    assert results[0]["result"]["decision"] == "allow"


def test_score_exits_nonzero_when_blocked(tmp_path, capsys):
    prior = dict(BLOCKED, student_name="John Fake Doe", issue_date="2024-01-15", cgpa="")
    code = run(["score", "-i", write_json(tmp_path / "batch.json", [prior, BLOCKED])])
    assert code == 1
    output = json.loads(capsys.readouterr().out)
    assert output[1]["result"]["risk_tier"] == "critical"
    assert output[1]["result"]["decision"] == "block"


def test_score_with_ruleset(tmp_path, capsys):
    ruleset = write_json(tmp_path / "rules.json", {"disabled": ["cgpa_anomaly"]})
    rows = write_json(tmp_path / "batch.json", [dict(ROW, cgpa="10")])
    assert run(["score", "-i", rows, "-r", ruleset]) == 0
    output = json.loads(capsys.readouterr().out)
    assert output[0]["result"]["flags"] == []


def test_validate(tmp_path, capsys):
    good = write_json(tmp_path / "good.json", [ROW])
    assert run(["validate", "-i", good]) == 0

    bad = write_json(tmp_path / "bad.json", [ROW, dict(ROW, student_wallet_address="0x123")])
    assert run(["validate", "-i", bad]) == 1
    out = capsys.readouterr().out
    assert "Invalid Ethereum wallet address" in out
    assert "Duplicate email detected" in out
    assert "1/2 rows valid" in out


def test_rules(capsys):
    assert run(["rules"]) == 0
    body = json.loads(capsys.readouterr().out)
    assert body["hash"].startswith("sha256:")
    assert len(body["rules"]) == 8


def test_invalid_ruleset_exit_code(tmp_path, capsys):
    ruleset = write_json(tmp_path / "rules.json", {"weights": {"no_such_rule": 1}})
    assert run(["rules", "-r", ruleset]) == 2
    assert "Unknown rule flag" in capsys.readouterr().err


def test_missing_input_exit_code(tmp_path, capsys):
    assert run(["validate", "-i", str(tmp_path / "missing.json")]) == 2


def test_non_object_row_exit_code(tmp_path, capsys):
    batch = write_json(tmp_path / "batch.json", [ROW, "not-a-row"])
    assert run(["validate", "-i", batch]) == 2
    assert "row 2 is not an object" in capsys.readouterr().err
    assert run(["score", "-i", batch]) == 2


def test_report(tmp_path, capsys):
    pdf = tmp_path / "report.pdf"
    assert run(["report", "-i", write_json(tmp_path / "batch.json", [ROW, BLOCKED]), "-o", str(pdf)]) == 0
    assert pdf.read_bytes().startswith(b"%PDF")


def test_demo(capsys):
    assert run(["demo"]) == 0
    assert "Scenario 3" in capsys.readouterr().out


def test_no_command(capsys):
    assert run([]) == 0
