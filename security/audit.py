"""
security/audit.py
-----------------
Credential vault security audit

Scans the credentials directory for misconfiguration: permissive file or
directory modes, stale tokens, unreadable or tampered credential files,
files written before integrity metadata existed, a missing ignore-file
entry and credential files committed to git history.

Usage (programmatic):
    from security.audit import SecurityAuditor
    from security.report import format_report

    report = SecurityAuditor().run(Path("shops/credentials"), Path(".gitignore"))
    print(format_report(report))

Usage (command line):
    python main.py audit
    python main.py audit --fix --json
"""

from __future__ import annotations

import json
import logging
import os
import stat
import subprocess
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Union

from .errors import ErrorKind
from .models import PRODUCTION, STAGING, iso8601
from .paths import credential_filename
from .vault import DIR_MODE, FILE_MODE, CredentialVault

_IS_WINDOWS = sys.platform == "win32"

DEFAULT_ROTATION_AGE_DAYS = 180
GIT_HISTORY_TIMEOUT       = 5

# Any of these on a non-comment line of the ignore-file keeps credentials out of git.
IGNORE_PATTERNS = (
    "shops/credentials/",
    "shops/credentials",
    "**/credentials/",
    "credentials/",
)


# ---------------------------------------------------------------------------
# Issue levels
# ---------------------------------------------------------------------------

class Level:
    ERROR   = "error"
    WARNING = "warning"
    INFO    = "info"

LEVELS = (Level.ERROR, Level.WARNING, Level.INFO)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ShopAuditEntry:
    shop_id:                str
    file_permissions_octal: str
    last_modified:          str
    has_production:         bool
    has_staging:            bool
    integrity_valid:        bool

    def to_dict(self) -> dict:
        return {
            "shopId":               self.shop_id,
            "filePermissionsOctal": self.file_permissions_octal,
            "lastModified":         self.last_modified,
            "hasProduction":        self.has_production,
            "hasStaging":           self.has_staging,
            "integrityValid":       self.integrity_valid,
        }


@dataclass(frozen=True)
class AuditIssue:
    level:          str
    message:        str
    recommendation: str
    shop_id:        Optional[str] = None
    auto_fixed:     bool          = False

    def to_dict(self) -> dict:
        data = {
            "level":          self.level,
            "message":        self.message,
            "recommendation": self.recommendation,
        }
        if self.shop_id is not None:
            data["shopId"] = self.shop_id
        if self.auto_fixed:
            data["autoFixed"] = True
        return data


@dataclass(frozen=True)
class SecurityAuditReport:
    timestamp:       str
    shops:           tuple[ShopAuditEntry, ...] = ()
    issues:          tuple[AuditIssue, ...]     = ()
    recommendations: tuple[str, ...]            = ()
    fixed_count:     int                        = 0

    def issues_at(self, level: str) -> list[AuditIssue]:
        return [issue for issue in self.issues if issue.level == level]

    def has_errors(self) -> bool:
        return any(issue.level == Level.ERROR and not issue.auto_fixed for issue in self.issues)

    def to_dict(self) -> dict:
        """JSON shape with camelCase keys, as consumed by other tooling."""
        return {
            "timestamp":       self.timestamp,
            "shops":           [shop.to_dict() for shop in self.shops],
            "issues":          [issue.to_dict() for issue in self.issues],
            "recommendations": list(self.recommendations),
            "fixedCount":      self.fixed_count,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)



# ---------------------------------------------------------------------------
# SecurityAuditor
# ---------------------------------------------------------------------------

class SecurityAuditor:
    """
    Audits a credentials directory.

    Parameters
    ----------
    rotation_age_days : int
        Credential files older than this get a rotation reminder.
    check_git_history : bool
        Look for credential files in the project's git history.
    logger : logging.Logger | None
        Injected logger; defaults to ``multishop.security.audit``.
    clock : callable | None
        Returns the current time.
    """

    def __init__(
        self,
        rotation_age_days: int = DEFAULT_ROTATION_AGE_DAYS,
        check_git_history: bool = True,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._rotation_age = timedelta(days=rotation_age_days)
        self._check_history = check_git_history
        self._log = logger or logging.getLogger("multishop.security.audit")
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run(
        self,
        vault_root: Union[str, Path],
        ignore_file_path: Union[str, Path],
        fix: bool = False,
    ) -> SecurityAuditReport:
        vault_root = Path(vault_root).absolute()
        ignore_file_path = Path(ignore_file_path).absolute()
        now = self._clock()
        issues: list[AuditIssue] = []
        shops: list[ShopAuditEntry] = []

        if not vault_root.is_dir():
            issues.append(AuditIssue(
                level=Level.INFO,
                message="No credentials directory found",
                recommendation="Save credentials for a shop to create the credentials directory",
            ))
            return self._finish(now, shops, issues)

        vault = CredentialVault(vault_root, logger=self._log)

        self._check_directory_permissions(vault_root, issues, fix)

        listed = vault.list_shop_ids()
        if not listed.ok:
            issues.append(AuditIssue(
                level=Level.ERROR,
                message=listed.error.message,
                recommendation="Check that the credentials directory is readable by your user",
            ))
        for shop_id in listed.value or []:
            entry = self._audit_shop(vault, shop_id, now, issues, fix)
            if entry is not None:
                shops.append(entry)

        self._check_ignore_file(ignore_file_path, issues)
        if self._check_history:
            self._check_git_history(vault_root, ignore_file_path.parent, issues)

        return self._finish(now, shops, issues)

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    def _audit_shop(
        self,
        vault: CredentialVault,
        shop_id: str,
        now: datetime,
        issues: list[AuditIssue],
        fix: bool,
    ) -> Optional[ShopAuditEntry]:
        path = vault.root / credential_filename(shop_id)
        try:
            st = path.stat()
        except OSError as exc:
            issues.append(AuditIssue(
                level=Level.ERROR,
                shop_id=shop_id,
                message=f"Could not inspect credentials for shop '{shop_id}': {exc.strerror}",
                recommendation="Recreate credentials for this shop",
            ))
            return None

        mode = stat.S_IMODE(st.st_mode) & 0o777
        modified = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)

        loaded = vault.load(shop_id)
        creds = loaded.value
        if loaded.ok:
            integrity_valid = (
                creds is not None
                and creds.metadata is not None
                and creds.metadata.checksum is not None
            )
        else:
            integrity_valid = False
            issues.append(AuditIssue(
                level=Level.ERROR,
                shop_id=shop_id,
                message=loaded.error.message,
                recommendation="Recreate credentials for this shop",
            ))

        if loaded.ok and creds is not None and not integrity_valid:
            issues.append(AuditIssue(
                level=Level.WARNING,
                shop_id=shop_id,
                message=f"Credentials for shop '{shop_id}' have no integrity checksum",
                recommendation="Re-save credentials for this shop to add integrity metadata",
            ))

        if not _IS_WINDOWS and mode & ~FILE_MODE:
            fixed = fix and self._chmod(path, FILE_MODE)
            issues.append(AuditIssue(
                level=Level.WARNING,
                shop_id=shop_id,
                message=f"Credential file for shop '{shop_id}' has permissive permissions: {mode:03o}",
                recommendation=f"Run: chmod 600 {credential_filename(shop_id)}",
                auto_fixed=fixed,
            ))
            if fixed:
                mode = FILE_MODE

        if now - modified > self._rotation_age:
            issues.append(AuditIssue(
                level=Level.INFO,
                shop_id=shop_id,
                message=(
                    f"Credentials for shop '{shop_id}' were last changed more than "
                    f"{self._rotation_age.days} days ago"
                ),
                recommendation="Consider rotating the theme tokens for this shop",
            ))

        # A tampered file still parses; report which tokens it claims to hold.
        has_production = bool(creds and creds.token_for(PRODUCTION))
        has_staging = bool(creds and creds.token_for(STAGING))
        if loaded.error is not None and loaded.error.kind is not ErrorKind.INTEGRITY_VIOLATION:
            has_production = has_staging = False

        return ShopAuditEntry(
            shop_id=shop_id,
            file_permissions_octal=f"{mode:03o}",
            last_modified=iso8601(modified),
            has_production=has_production,
            has_staging=has_staging,
            integrity_valid=integrity_valid,
        )

    def _check_directory_permissions(self, vault_root: Path, issues: list[AuditIssue], fix: bool) -> None:
        if _IS_WINDOWS:
            return
        try:
            mode = stat.S_IMODE(vault_root.stat().st_mode) & 0o777
        except OSError as exc:
            self._log.warning("Could not stat credentials directory: %s", exc.strerror)
            return
        if mode & ~DIR_MODE:
            fixed = fix and self._chmod(vault_root, DIR_MODE)
            issues.append(AuditIssue(
                level=Level.WARNING,
                message=f"Credentials directory has permissive permissions: {mode:03o}",
                recommendation="Run: chmod 700 on the credentials directory",
                auto_fixed=fixed,
            ))

    def _check_ignore_file(self, ignore_file_path: Path, issues: list[AuditIssue]) -> None:
        if ignore_file_contains_pattern(ignore_file_path):
            return
        issues.append(AuditIssue(
            level=Level.ERROR,
            message=f"Credentials directory pattern not found in {ignore_file_path.name}",
            recommendation=(
                f"Add \"{IGNORE_PATTERNS[0]}\" to {ignore_file_path.name} "
                "to prevent credential leaks"
            ),
        ))

    def _check_git_history(self, vault_root: Path, project_root: Path, issues: list[AuditIssue]) -> None:
        if not (project_root / ".git").exists():
            return
        try:
            relative = vault_root.relative_to(project_root)
        except ValueError:
            self._log.debug("Credentials directory is outside the project; skipping git history check")
            return

        try:
            completed = subprocess.run(
                ["git", "log", "--all", "--full-history", "--pretty=format:%H", "--",
                 relative.as_posix()],
                cwd=project_root,
                capture_output=True,
                text=True,
                timeout=GIT_HISTORY_TIMEOUT,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            self._log.info("Skipping git history check: %s", exc)
            return
        if completed.returncode != 0:
            self._log.info("Skipping git history check: git exited with %d", completed.returncode)
            return

        if completed.stdout.strip():
            issues.append(AuditIssue(
                level=Level.WARNING,
                message="Credential files were found in git history",
                recommendation=(
                    f"Review history: git log --all --full-history -- \"{relative.as_posix()}/\" "
                    "and rotate any exposed tokens"
                ),
            ))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _chmod(self, path: Path, mode: int) -> bool:
        try:
            os.chmod(path, mode)
        except OSError as exc:
            self._log.warning("Could not fix permissions on %s: %s", path.name, exc.strerror)
            return False
        return True

    def _finish(
        self,
        now: datetime,
        shops: list[ShopAuditEntry],
        issues: list[AuditIssue],
    ) -> SecurityAuditReport:
        return SecurityAuditReport(
            timestamp=iso8601(now),
            shops=tuple(shops),
            issues=tuple(issues),
            recommendations=tuple(build_recommendations(issues)),
            fixed_count=sum(1 for issue in issues if issue.auto_fixed),
        )


def ignore_file_contains_pattern(ignore_file_path: Path) -> bool:
    try:
        content = ignore_file_path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return False
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith(("#", "!")):
            continue
        if any(pattern in line for pattern in IGNORE_PATTERNS):
            return True
    return False


def build_recommendations(issues: list[AuditIssue]) -> list[str]:
    if not issues:
        return ["No security issues detected - credentials are stored securely"]

    counts = {level: 0 for level in LEVELS}
    for issue in issues:
        counts[issue.level] = counts.get(issue.level, 0) + 1

    recommendations = [
        f"{len(issues)} issue(s) found: {counts[Level.ERROR]} error(s), "
        f"{counts[Level.WARNING]} warning(s), {counts[Level.INFO]} info"
    ]
    if counts[Level.ERROR]:
        recommendations.append("Fix error-level issues immediately")
    if counts[Level.WARNING]:
        recommendations.append("Address warning-level issues when possible")
    return recommendations
