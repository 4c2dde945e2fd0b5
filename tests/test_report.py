"""Tests for the plain-text audit report."""

from security.audit import AuditIssue, Level, SecurityAuditReport, ShopAuditEntry
from security.report import format_report


def _entry(shop_id="shop-a", perms="600", integrity=True):
    return ShopAuditEntry(
        shop_id=shop_id,
        file_permissions_octal=perms,
        last_modified="2025-01-01T00:00:00.000Z",
        has_production=True,
        has_staging=False,
        integrity_valid=integrity,
    )


def _report(shops=(), issues=(), recommendations=("all good",), fixed_count=0):
    return SecurityAuditReport(
        timestamp="2025-06-01T12:00:00.000Z",
        shops=tuple(shops),
        issues=tuple(issues),
        recommendations=tuple(recommendations),
        fixed_count=fixed_count,
    )


class TestFormatReport:

    def test_empty_report(self):
        text = format_report(_report())
        assert "Security Audit Report" in text
        assert "2025-06-01T12:00:00.000Z" in text
        assert "No shops configured" in text
        assert "No issues detected" in text
        assert "Issues Found" not in text
        assert "Recommendations:" in text
        assert "all good" in text

    def test_shop_table(self):
        text = format_report(_report(shops=[_entry(), _entry("shop-b", "644", integrity=False)]))
        assert "Shops Audited: 2" in text
        assert "No shops configured" not in text
        lines = text.splitlines()
        header = next(line for line in lines if "Perms" in line)
        assert "Production" in header and "Integrity" in header
        row_a = next(line for line in lines if "shop-a" in line)
        row_b = next(line for line in lines if "shop-b" in line)
        assert "600" in row_a and "valid" in row_a
        assert "644" in row_b and "UNVERIFIED" in row_b
        assert row_a.split()[3:5] == ["yes", "no"]

    def test_issues_grouped_by_level(self):
        issues = [
            AuditIssue(level=Level.INFO, message="stale", recommendation="rotate"),
            AuditIssue(level=Level.ERROR, message="no ignore entry", recommendation="add it"),
            AuditIssue(level=Level.WARNING, message="mode 644", recommendation="chmod 600", shop_id="a"),
        ]
        text = format_report(_report(issues=issues))

        assert "Issues Found: 3" in text
        assert "No issues detected" not in text
        assert text.index("Errors:") < text.index("Warnings:") < text.index("Information:")
        assert text.index("no ignore entry") < text.index("Warnings:")
        assert "→ chmod 600" in text

    def test_empty_levels_are_omitted(self):
        text = format_report(_report(issues=[AuditIssue(level=Level.WARNING, message="m", recommendation="r")]))
        assert "Warnings:" in text
        assert "Errors:" not in text
        assert "Information:" not in text

    def test_auto_fixed_issue(self):
        issue = AuditIssue(level=Level.WARNING, message="mode 644", recommendation="chmod 600", auto_fixed=True)
        text = format_report(_report(issues=[issue], fixed_count=1))
        assert "mode 644 (auto-fixed)" in text
        assert "→ chmod 600" not in text
        assert "Auto-fixed: 1 issue(s)" in text

    def test_deterministic(self):
        report = _report(
            shops=[_entry()],
            issues=[AuditIssue(level=Level.ERROR, message="m", recommendation="r")],
        )
        assert format_report(report) == format_report(report)
