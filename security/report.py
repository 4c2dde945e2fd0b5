"""
security/report.py
------------------
Plain-text rendering of a ``SecurityAuditReport``. Pure: same report in,
same text out.
"""

from __future__ import annotations

from .audit import AuditIssue, Level, SecurityAuditReport

_RULE = "━" * 64

_LEVEL_HEADINGS = (
    (Level.ERROR,   "Errors"),
    (Level.WARNING, "Warnings"),
    (Level.INFO,    "Information"),
)

_COLUMNS = ("Shop", "Perms", "Last modified", "Production", "Staging", "Integrity")


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def _table(rows: list[tuple[str, ...]]) -> list[str]:
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    lines = []
    for index, row in enumerate(rows):
        lines.append("  " + "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip())
        if index == 0:
            lines.append("  " + "  ".join("-" * width for width in widths))
    return lines


def _issue_lines(issue: AuditIssue) -> list[str]:
    fixed = " (auto-fixed)" if issue.auto_fixed else ""
    lines = [f"  - {issue.message}{fixed}"]
    if issue.recommendation and not issue.auto_fixed:
        lines.append(f"    → {issue.recommendation}")
    return lines


def format_report(report: SecurityAuditReport) -> str:
    lines = [
        "",
        _RULE,
        "  Security Audit Report",
        f"  Generated: {report.timestamp}",
        _RULE,
        "",
    ]

    if report.shops:
        lines.append(f"Shops Audited: {len(report.shops)}")
        rows = [_COLUMNS]
        for shop in report.shops:
            rows.append((
                shop.shop_id,
                shop.file_permissions_octal,
                shop.last_modified,
                _yes_no(shop.has_production),
                _yes_no(shop.has_staging),
                "valid" if shop.integrity_valid else "UNVERIFIED",
            ))
        lines += _table(rows)
    else:
        lines.append("No shops configured")
    lines.append("")

    if report.issues:
        lines.append(f"Issues Found: {len(report.issues)}")
        for level, heading in _LEVEL_HEADINGS:
            grouped = report.issues_at(level)
            if not grouped:
                continue
            lines.append(f"{heading}:")
            for issue in grouped:
                lines += _issue_lines(issue)
        if report.fixed_count:
            lines.append(f"Auto-fixed: {report.fixed_count} issue(s)")
    else:
        lines.append("No issues detected")
    lines.append("")

    if report.recommendations:
        lines.append("Recommendations:")
        lines += [f"  {rec}" for rec in report.recommendations]
    lines.append(_RULE)
    return "\n".join(lines)
