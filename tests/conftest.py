"""
Shared fixtures for the credential vault tests.

Every test works inside its own ``tmp_path`` project:
    <tmp>/shops/credentials/   vault root
    <tmp>/.gitignore           ignore-file (created only when a test asks)
"""

import json
import os
import sys
from pathlib import Path

import pytest

from security.vault import CredentialVault

@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def vault_root(project_root: Path) -> Path:
    return project_root / "shops" / "credentials"


@pytest.fixture
def ignore_file(project_root: Path) -> Path:
    return project_root / ".gitignore"


@pytest.fixture
def vault(vault_root: Path) -> CredentialVault:
    return CredentialVault(vault_root)


@pytest.fixture
def sample_credentials() -> dict:
    return {
        "developer": "dev",
        "shopify": {
            "stores": {
                "production": {"themeToken": "prod-token-123"},
                "staging": {"themeToken": "staging-token-456"},
            }
        },
    }


@pytest.fixture
def write_raw(vault: CredentialVault):
    """Write a credential file directly, bypassing the vault's checks."""

    def _write(shop_id: str, content, mode: int = 0o600) -> Path:
        vault.ensure_directory()
        path = vault.root / f"{shop_id}.credentials.json"
        text = content if isinstance(content, str) else json.dumps(content, indent=2)
        path.write_text(text, encoding="utf-8")
        if sys.platform != "win32":
            os.chmod(path, mode)
        return path

    return _write
