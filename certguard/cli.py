#!/usr/bin/env python3
"""
CertGuard Command Line Interface

Usage:
    certguard score --input <file> [--ruleset <file>] [--output <file>]
    certguard validate --input <file>
    certguard rules [--ruleset <file>]
    certguard report --input <file> --output <pdf> [--ruleset <file>]
    certguard demo

Input files are JSON (a list of submissions or a single object) or CSV using
the batch-upload template headers.
"""

import argparse
import csv
import json
import sys
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple


def load_json(path: str) -> Any:
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_json(data: Any, path: str):
    """Save JSON to file."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)


def load_rows(path: str) -> List[Dict[str, Any]]:
    """Load submission rows from a JSON or CSV file."""
    if path.lower().endswith(".csv"):
        with open(path, 'r', encoding='utf-8', newline='') as f:
            return [dict(row) for row in csv.DictReader(f)]

    data = load_json(path)
    if isinstance(data, dict):
        data = data.get("submissions", [data])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list or object")
    for index, row in enumerate(data, start=1):
        if not isinstance(row, dict):
            raise ValueError(f"{path}: row {index} is not an object")
    return data


def load_ruleset(path: Optional[str]):
    from certguard import RuleSet, create_default_ruleset

    if not path:
        return create_default_ruleset()
    return RuleSet.from_dict(load_json(path))


def score_rows(rows: List[Dict[str, Any]], ruleset) -> Tuple[List[Dict[str, Any]], list]:
    """
    Validate and score rows in order against one shared history.

    Returns:
        (per-row output dicts, list of (submission, score) for scored rows)
    """
    from certguard import (
        AnomalyScorer,
        CertificateSubmission,
        issuance_decision,
        validate_batch,
    )

    scorer = AnomalyScorer(ruleset=ruleset)
    output = []
    scored = []

    for index, (row, report) in enumerate(zip(rows, validate_batch(rows)), start=1):
        entry: Dict[str, Any] = {"row": index, **report.to_dict()}
        if report.is_valid:
            submission = CertificateSubmission.from_dict(row)
            score = scorer.evaluate(submission)
            entry["result"] = {**score.to_dict(), "decision": issuance_decision(score).value}
            scored.append((submission, score))
        output.append(entry)

    return output, scored


def cmd_score(args):
    """Score submissions and print results."""
    rows = load_rows(args.input)
    ruleset = load_ruleset(args.ruleset)
    output, _ = score_rows(rows, ruleset)

    if args.output:
        save_json(output, args.output)
        print(f"Results saved to: {args.output}")
    else:
        print(json.dumps(output, indent=2))

    blocked = [e for e in output if e.get("result", {}).get("decision") == "block"]
    skipped = [e for e in output if not e["is_valid"]]
    print(f"\n{len(output) - len(skipped)} scored, {len(skipped)} invalid, {len(blocked)} blocked", file=sys.stderr)
    for e in blocked:
        print(f"  ✗ row {e['row']}: {e['result']['risk_score']}/100 {e['result']['flags']}", file=sys.stderr)

    return 1 if blocked else 0


def cmd_validate(args):
    """Check submission rows without scoring them."""
    from certguard import validate_batch

    rows = load_rows(args.input)
    reports = validate_batch(rows)

    invalid = 0
    for index, report in enumerate(reports, start=1):
        if report.is_valid and not report.warnings:
            print(f"✓ row {index}")
            continue
        mark = "✓" if report.is_valid else "✗"
        print(f"{mark} row {index}")
        for error in report.errors:
            print(f"    error: {error}")
        for warning in report.warnings:
            print(f"    warning: {warning}")
        if not report.is_valid:
            invalid += 1

    print(f"\n{len(reports) - invalid}/{len(reports)} rows valid")
    return 1 if invalid else 0


def cmd_rules(args):
    """Print the effective rule set."""
    ruleset = load_ruleset(args.ruleset)
    print(json.dumps({**ruleset.to_dict(), "hash": ruleset.get_hash()}, indent=2))
    return 0


def cmd_report(args):
    """Score submissions and render a PDF report."""
    from certguard.report import write_pdf_report

    rows = load_rows(args.input)
    ruleset = load_ruleset(args.ruleset)
    _, scored = score_rows(rows, ruleset)

    write_pdf_report(scored, args.output)
    print(f"Report saved to: {args.output} ({len(scored)} submissions)")
    return 0


def cmd_demo(args):
    """Run illustrative scoring scenarios."""
    from certguard import AnomalyScorer, CertificateSubmission, issuance_decision

    print("=" * 60)
    print("CertGuard Anomaly Scoring Demonstration")
    print("=" * 60)

    scorer = AnomalyScorer()
    last_monday = date.today() - timedelta(days=date.today().weekday() + 7)
    last_saturday = last_monday - timedelta(days=2)

    scenarios = [
        ("Clean submission", CertificateSubmission(
            student_name="Priya Sharma",
            student_email="priya.sharma@university.edu",
            student_wallet_address="0x8ba1f109551bD432803012645Ac136ddd64DBA72",
            course="Computer Science",
            institution="Massachusetts Institute of Technology",
            issue_date=last_monday,
            cgpa=8.5,
        )),
        ("Disposable email, weekend, perfect CGPA", CertificateSubmission(
            student_name="Ravi Menon",
            student_email="test123456@mailinator.com",
            student_wallet_address="0x71C7656EC7ab88b098defB751B7401B5f6d8976F",
            course="Data Science",
            institution="Stanford University",
            issue_date=last_saturday,
            cgpa=10.0,
        )),
        ("Same email, same course again, at 3am, burn wallet", CertificateSubmission(
            student_name="Priya Sharma",
            student_email="priya.sharma@university.edu",
            student_wallet_address="0x0000000000000000000000000000000000000000",
            course="Computer Science",
            institution="Massachusetts Institute of Technology",
            issue_date=datetime.combine(last_saturday, datetime.min.time()).replace(hour=3),
        )),
    ]

    for i, (label, submission) in enumerate(scenarios, start=1):
        print("\n" + "-" * 60)
        print(f"Scenario {i}: {label}")
        print("-" * 60)

        score = scorer.evaluate(submission)
        print(f"Risk score: {score.risk_score}/100 ({score.risk_tier.value})")
        print(f"Decision:   {issuance_decision(score).value}")
        for finding in score.findings:
            print(f"  [{finding.severity.value}] {finding.type}: {finding.description}")

    print("\n" + "=" * 60)
    print("Demonstration complete.")
    print(json.dumps(scorer.statistics().to_dict(), indent=2))
    print("=" * 60)
    return 0


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="CertGuard certificate anomaly scoring CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  certguard demo                               Run demonstration
  certguard score -i batch.csv                 Score a batch upload
  certguard score -i batch.json -r weights.json -o results.json
  certguard validate -i batch.csv
  certguard rules -r weights.json
  certguard report -i batch.csv -o risk_report.pdf
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # score
    score_parser = subparsers.add_parser("score", help="Score submissions")
    score_parser.add_argument("-i", "--input", required=True, help="Submissions JSON or CSV file")
    score_parser.add_argument("-r", "--ruleset", help="Rule set overrides JSON file")
    score_parser.add_argument("-o", "--output", help="Output file for results")

    # validate
    validate_parser = subparsers.add_parser("validate", help="Validate submission rows")
    validate_parser.add_argument("-i", "--input", required=True, help="Submissions JSON or CSV file")

    # rules
    rules_parser = subparsers.add_parser("rules", help="Show effective rule set")
    rules_parser.add_argument("-r", "--ruleset", help="Rule set overrides JSON file")

    # report
    report_parser = subparsers.add_parser("report", help="Write PDF risk report")
    report_parser.add_argument("-i", "--input", required=True, help="Submissions JSON or CSV file")
    report_parser.add_argument("-o", "--output", required=True, help="Output PDF file")
    report_parser.add_argument("-r", "--ruleset", help="Rule set overrides JSON file")

    # demo
    subparsers.add_parser("demo", help="Run demonstration")

    args = parser.parse_args(argv)

    commands = {
        "score": cmd_score,
        "validate": cmd_validate,
        "rules": cmd_rules,
        "report": cmd_report,
        "demo": cmd_demo,
    }

    if args.command not in commands:
        parser.print_help()
        sys.exit(0)

    try:
        sys.exit(commands[args.command](args))
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
