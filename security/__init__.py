"""
security/
---------
Shop Credential Security

Stores per-shop theme tokens on disk with strict permissions and an
integrity checksum, and audits the store for misconfiguration.

Quick start:
    from security.vault  import CredentialVault
    from security.audit  import SecurityAuditor
    from security.report import format_report

Modules
-------
validation.py — shop ID / domain / theme token checks
paths.py      — shop ID → credential file path, confined to the vault root
vault.py      — load/save/get_token with 0600 files and SHA-256 checksums
audit.py      — permission, freshness, integrity and ignore-file audit
report.py     — plain-text audit report
"""

from .errors     import CredentialError, ErrorKind, Result, VaultError
from .models     import (
    ENVIRONMENTS,
    PRODUCTION,
    STAGING,
    CredentialMetadata,
    ShopCredentials,
    StoreCredential,
)
from .validation import (
    validate_domain,
    validate_shop_id,
    validate_theme_token,
    token_prefix_hint,
)
from .paths      import resolve_credential_path
from .vault      import CredentialVault, compute_checksum
from .audit      import AuditIssue, Level, SecurityAuditor, SecurityAuditReport, ShopAuditEntry
from .report     import format_report

__all__ = [
    # Results
    "CredentialError",
    "ErrorKind",
    "Result",
    "VaultError",
    # Model
    "ENVIRONMENTS",
    "PRODUCTION",
    "STAGING",
    "CredentialMetadata",
    "ShopCredentials",
    "StoreCredential",
    # Validation
    "validate_domain",
    "validate_shop_id",
    "validate_theme_token",
    "token_prefix_hint",
    "resolve_credential_path",
    # Vault
    "CredentialVault",
    "compute_checksum",
    # Audit
    "AuditIssue",
    "Level",
    "SecurityAuditor",
    "SecurityAuditReport",
    "ShopAuditEntry",
    "format_report",
]
