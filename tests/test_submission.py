"""
CertGuard Submission Test Suite

Tests payload intake: key aliases, date parsing, fingerprints and the
structural validation used by the batch upload.
"""

import unittest
from dataclasses import FrozenInstanceError
from datetime import date, datetime, timezone

from certguard import (
    CertificateSubmission,
    SubmissionError,
    parse_issue_date,
    validate_batch,
    validate_submission_dict,
)


def payload(**overrides):
    data = {
        "student_name": "Priya Sharma",
        "student_email": "priya.sharma@university.edu",
        "student_wallet_address": "0x8ba1f109551bD432803012645Ac136ddd64DBA72",
        "course": "Computer Science",
        "institution": "Massachusetts Institute of Technology",
        "issue_date": "2024-01-15",
        "cgpa": "8.5",
    }
    data.update(overrides)
    return data


class TestParseIssueDate(unittest.TestCase):

    def test_date_only(self):
        self.assertEqual(parse_issue_date("2024-01-15"), date(2024, 1, 15))
        self.assertNotIsInstance(parse_issue_date("2024-01-15"), datetime)

    def test_datetime(self):
        self.assertEqual(parse_issue_date("2024-01-15T03:30:00"), datetime(2024, 1, 15, 3, 30))

    def test_utc_suffix(self):
        self.assertEqual(
            parse_issue_date("2024-01-15T03:30:00Z"),
            datetime(2024, 1, 15, 3, 30, tzinfo=timezone.utc)
        )

    def test_passthrough(self):
        d = date(2024, 1, 15)
        self.assertIs(parse_issue_date(d), d)

    def test_invalid(self):
        for value in ["", "15/01/2024", "2024-13-01", None, 20240115]:
            with self.subTest(value=value):
                with self.assertRaises(SubmissionError):
                    parse_issue_date(value)


class TestCertificateSubmission(unittest.TestCase):

    def test_from_dict(self):
        sub = CertificateSubmission.from_dict(payload())
        self.assertEqual(sub.student_name, "Priya Sharma")
        self.assertEqual(sub.issue_date, date(2024, 1, 15))
        self.assertEqual(sub.cgpa, 8.5)
        self.assertFalse(sub.has_issue_time)

    def test_aliases(self):
        sub = CertificateSubmission.from_dict({
            "id": "CERT-1",
            "studentName": "Priya Sharma",
            "studentEmail": "priya.sharma@university.edu",
            "walletAddress": "0x8ba1f109551bD432803012645Ac136ddd64DBA72",
            "course": "Computer Science",
            "institutionName": "MIT",
            "issueDate": "2024-01-15T10:00:00",
        })
        self.assertEqual(sub.certificate_id, "CERT-1")
        self.assertEqual(sub.institution, "MIT")
        self.assertTrue(sub.has_issue_time)

    def test_canonical_key_wins_over_alias(self):
        sub = CertificateSubmission.from_dict(payload(email="alias@university.edu"))
        self.assertEqual(sub.student_email, "priya.sharma@university.edu")

    def test_missing_fields(self):
        data = payload()
        del data["course"]
        with self.assertRaises(SubmissionError):
            CertificateSubmission.from_dict(data)

    def test_optional_fields(self):
        data = payload(cgpa="")
        del data["institution"]
        sub = CertificateSubmission.from_dict(data)
        self.assertIsNone(sub.cgpa)
        self.assertEqual(sub.institution, "")

    def test_invalid_cgpa(self):
        with self.assertRaises(SubmissionError):
            CertificateSubmission.from_dict(payload(cgpa="excellent"))

    def test_immutable(self):
        sub = CertificateSubmission.from_dict(payload())
        with self.assertRaises(FrozenInstanceError):
            sub.student_name = "Someone Else"

    def test_fingerprint_is_deterministic(self):
        a = CertificateSubmission.from_dict(payload())
        b = CertificateSubmission.from_dict(payload())
        self.assertEqual(a.fingerprint(), b.fingerprint())
        self.assertTrue(a.fingerprint().startswith("sha256:"))

    def test_fingerprint_ignores_certificate_id(self):
        a = CertificateSubmission.from_dict(payload())
        b = CertificateSubmission.from_dict(payload(certificate_id="CERT-9"))
        self.assertEqual(a.fingerprint(), b.fingerprint())
        self.assertEqual(b.submission_id, "CERT-9")
        self.assertEqual(a.submission_id, a.fingerprint())

    def test_fingerprint_changes_with_content(self):
        a = CertificateSubmission.from_dict(payload())
        b = CertificateSubmission.from_dict(payload(course="Data Science"))
        self.assertNotEqual(a.fingerprint(), b.fingerprint())

    def test_to_dict(self):
        d = CertificateSubmission.from_dict(payload(issue_date="2024-01-15T03:30:00Z")).to_dict()
        self.assertEqual(d["issue_date"], "2024-01-15T03:30:00Z")
        self.assertEqual(d["cgpa"], 8.5)
        self.assertNotIn("grade", d)


class TestValidation(unittest.TestCase):

    def test_valid(self):
        report = validate_submission_dict(payload())
        self.assertTrue(report.is_valid)
        self.assertEqual(report.warnings, [])

    def test_missing_required(self):
        report = validate_submission_dict(payload(student_name="", course=None))
        self.assertFalse(report.is_valid)
        self.assertIn("Missing required field: student_name", report.errors)
        self.assertIn("Missing required field: course", report.errors)

    def test_bad_email_and_wallet(self):
        report = validate_submission_dict(payload(student_email="not-an-email", student_wallet_address="0x123"))
        self.assertIn("Invalid email format", report.errors)
        self.assertIn("Invalid Ethereum wallet address", report.errors)

    def test_bad_date(self):
        report = validate_submission_dict(payload(issue_date="15/01/2024"))
        self.assertEqual(report.errors, ["Invalid date format (use YYYY-MM-DD)"])

    def test_cgpa_out_of_range_is_warning(self):
        report = validate_submission_dict(payload(cgpa="11"))
        self.assertTrue(report.is_valid)
        self.assertEqual(report.warnings, ["CGPA should be between 0 and 10"])

    def test_cgpa_not_a_number_is_error(self):
        report = validate_submission_dict(payload(cgpa="excellent"))
        self.assertEqual(report.errors, ["Invalid CGPA value"])

    def test_batch_duplicate_email(self):
        reports = validate_batch([payload(), payload(course="Data Science"), payload(student_email="x@y.edu")])
        self.assertEqual(reports[0].warnings, [])
        self.assertEqual(reports[1].warnings, ["Duplicate email detected"])
        self.assertEqual(reports[2].warnings, [])

    def test_report_to_dict(self):
        d = validate_submission_dict(payload(student_email="bad")).to_dict()
        self.assertEqual(d, {"is_valid": False, "errors": ["Invalid email format"], "warnings": []})


if __name__ == "__main__":
    unittest.main()
