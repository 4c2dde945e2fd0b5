"""
security/vault.py
-----------------
Per-shop credential vault

Stores one JSON file per shop under the credentials directory, holding the
developer name, a theme token for each environment and an integrity
checksum. Permission bits are the only confidentiality control: the
directory is created 0700 and every file 0600 (POSIX; best-effort ACLs on
Windows).

Storage location: <project>/shops/credentials/<shop-id>.credentials.json

Usage:
    from security.vault import CredentialVault

    vault = CredentialVault(Path("shops/credentials"))
    vault.save("shop-a", credentials)
    result = vault.load("shop-a")
    if result.ok and result.value:
        print(vault.sanitize_for_display(result.value))
    token = vault.get_token("shop-a", "staging").value

Every public method returns a ``Result``; nothing raises across this
boundary.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Union

from .errors import CredentialError, ErrorKind, Result
from .models import (
    ENVIRONMENTS,
    METADATA_VERSION,
    CredentialMetadata,
    ShopCredentials,
    iso8601,
)
from .paths import CREDENTIALS_SUFFIX, resolve_credential_path
from .validation import validate_theme_token

_IS_WINDOWS = sys.platform == "win32"

DIR_MODE        = 0o700
FILE_MODE       = 0o600
CHECKSUM_LENGTH = 16

DEFAULT_CREDENTIALS_DIR = Path("shops") / "credentials"

# O_NOFOLLOW keeps a planted symlink from redirecting a write to another file.
_WRITE_FLAGS = (
    os.O_WRONLY
    | os.O_CREAT
    | os.O_TRUNC
    | getattr(os, "O_NOFOLLOW", 0)
    | getattr(os, "O_BINARY", 0)
)


def compute_checksum(credentials: ShopCredentials) -> str:
    """First 16 hex chars of SHA-256 over canonical JSON of the checksummed fields."""
    canonical = json.dumps(
        credentials.payload(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:CHECKSUM_LENGTH]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)



class CredentialVault:
    """
    Owns the credentials directory and every file in it.

    Parameters
    ----------
    root : str | Path | None
        Credentials directory. Defaults to ``shops/credentials`` under the
        current working directory.
    logger : logging.Logger | None
        Destination for warnings (permission failures, rejected identifiers).
    clock : callable | None
        Returns the current time; used for ``_metadata.created``.
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._root = Path(root).absolute() if root else self._default_path()
        self._log = logger or logging.getLogger("multishop.security.vault")
        self._clock = clock or _utc_now

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ensure_directory(self) -> Result[None]:
        """Create the credentials directory (mode 0700) if it does not exist."""
        if self._root.is_dir():
            return Result.success()
        try:
            self._root.mkdir(parents=True, mode=DIR_MODE, exist_ok=True)
        except OSError as exc:
            self._log.error("Could not create credentials directory: %s", exc.strerror)
            return Result.failure(
                ErrorKind.IO_ERROR,
                f"Failed to create credentials directory: {exc.strerror}",
            )
        self._restrict(self._root, DIR_MODE, "credentials directory")
        if _IS_WINDOWS:
            self._set_windows_acl(self._root)
        return Result.success()

    def save(
        self,
        shop_id: str,
        credentials: Union[ShopCredentials, dict],
        auth_method: Optional[str] = None,
    ) -> Result[None]:
        """Validate, checksum and write a shop's credentials, replacing any prior file."""
        resolved = resolve_credential_path(shop_id, self._root)
        if not resolved.ok:
            self._log.warning("Rejected credential save: %s", resolved.error.message)
            return Result.from_error(resolved.error)
        path = resolved.value

        checked = self._validate_for_save(shop_id, credentials, auth_method)
        if not checked.ok:
            return Result.from_error(checked.error)
        creds = checked.value

        record = ShopCredentials(
            developer=creds.developer,
            production=creds.production,
            staging=creds.staging,
            notes=creds.notes,
            metadata=CredentialMetadata(
                created=iso8601(self._clock()),
                version=METADATA_VERSION,
                checksum=compute_checksum(creds),
            ),
        )

        prepared = self.ensure_directory()
        if not prepared.ok:
            return prepared

        document = json.dumps(record.to_dict(), indent=2, ensure_ascii=False) + "\n"
        try:
            fd = os.open(path, _WRITE_FLAGS, FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
                fh.write(document)
        except OSError as exc:
            self._log.error("Could not write credentials for shop '%s': %s", shop_id, exc.strerror)
            return Result.failure(
                ErrorKind.IO_ERROR,
                f"Failed to save credentials for shop '{shop_id}': {exc.strerror}",
                shop_id=shop_id,
            )

        self._restrict(path, FILE_MODE, f"credentials for shop '{shop_id}'")

        if not path.is_file():
            return Result.failure(
                ErrorKind.WRITE_VERIFICATION_FAILED,
                f"Failed to save credentials for shop '{shop_id}': file missing after write",
                shop_id=shop_id,
            )
        self._log.info("Saved credentials for shop '%s'", shop_id)
        return Result.success()

    def load(self, shop_id: str) -> Result[Optional[ShopCredentials]]:
        """
        Read a shop's credentials.

        Succeeds with ``None`` when the shop has never been configured. On an
        integrity violation the result carries both the error and the parsed
        credentials, so a caller can still show the data while flagging it.
        """
        resolved = resolve_credential_path(shop_id, self._root)
        if not resolved.ok:
            self._log.warning("Rejected credential load: %s", resolved.error.message)
            return Result.from_error(resolved.error)
        path = resolved.value

        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Result.success(None)
        except UnicodeDecodeError:
            return self._load_failure(shop_id, ErrorKind.MALFORMED_JSON, "file is not valid UTF-8")
        except OSError as exc:
            return self._load_failure(shop_id, ErrorKind.IO_ERROR, exc.strerror or "read failed")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            return self._load_failure(
                shop_id, ErrorKind.MALFORMED_JSON, f"malformed JSON at line {exc.lineno}"
            )
        except RecursionError:
            return self._load_failure(shop_id, ErrorKind.MALFORMED_JSON, "JSON nested too deeply")
        except ValueError:
            # int() digit limit on oversized numeric literals
            return self._load_failure(shop_id, ErrorKind.MALFORMED_JSON, "JSON number out of range")

        try:
            creds = ShopCredentials.from_dict(data)
        except ValueError as exc:
            return self._load_failure(shop_id, ErrorKind.INVALID_FORMAT, f"invalid format ({exc})")

        stored = creds.metadata.checksum if creds.metadata else None
        if stored is not None and not hmac.compare_digest(stored, compute_checksum(creds)):
            self._log.warning("Integrity check failed for shop '%s'", shop_id)
            return Result(
                value=creds,
                error=CredentialError(
                    kind=ErrorKind.INTEGRITY_VIOLATION,
                    message=f"Failed to load credentials for shop '{shop_id}': integrity check failed "
                    "(file was modified outside the vault)",
                    shop_id=shop_id,
                ),
            )
        return Result.success(creds)

    def get_token(self, shop_id: str, environment: str) -> Result[Optional[str]]:
        if environment not in ENVIRONMENTS:
            return Result.failure(
                ErrorKind.INVALID_FORMAT,
                f"Unknown environment {environment!r}; expected one of {', '.join(ENVIRONMENTS)}",
                shop_id=shop_id,
            )
        loaded = self.load(shop_id)
        if not loaded.ok:
            return Result.from_error(loaded.error)
        if loaded.value is None:
            return Result.success(None)
        return Result.success(loaded.value.token_for(environment))

    @staticmethod
    def sanitize_for_display(credentials: ShopCredentials) -> ShopCredentials:
        """Masked copy for printing and logging. Never store the result."""
        return credentials.masked()

    def list_shop_ids(self) -> Result[list[str]]:
        """Shop IDs derived from ``*.credentials.json`` files, unvalidated."""
        if not self._root.is_dir():
            return Result.success([])
        try:
            shop_ids = [
                entry.name[: -len(CREDENTIALS_SUFFIX)]
                for entry in self._root.iterdir()
                if entry.name.endswith(CREDENTIALS_SUFFIX) and entry.is_file()
            ]
        except OSError as exc:
            return Result.failure(
                ErrorKind.IO_ERROR,
                f"Failed to list credentials directory: {exc.strerror}",
            )
        return Result.success(sorted(shop_ids))

    def exists(self, shop_id: str) -> Result[bool]:
        resolved = resolve_credential_path(shop_id, self._root)
        if not resolved.ok:
            return Result.from_error(resolved.error)
        return Result.success(resolved.value.is_file())

    def delete(self, shop_id: str) -> Result[bool]:
        """Remove one shop's credential file. ``False`` when there was nothing to remove."""
        resolved = resolve_credential_path(shop_id, self._root)
        if not resolved.ok:
            self._log.warning("Rejected credential delete: %s", resolved.error.message)
            return Result.from_error(resolved.error)
        try:
            resolved.value.unlink()
        except FileNotFoundError:
            return Result.success(False)
        except OSError as exc:
            return Result.failure(
                ErrorKind.IO_ERROR,
                f"Failed to delete credentials for shop '{shop_id}': {exc.strerror}",
                shop_id=shop_id,
            )
        self._log.info("Deleted credentials for shop '%s'", shop_id)
        return Result.success(True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _validate_for_save(
        self,
        shop_id: str,
        credentials: Union[ShopCredentials, dict],
        auth_method: Optional[str],
    ) -> Result[ShopCredentials]:
        if isinstance(credentials, ShopCredentials):
            fields = credentials.payload()
        elif isinstance(credentials, dict):
            # Incoming metadata is replaced on write, so it is not validated.
            fields = {key: value for key, value in credentials.items() if key != "_metadata"}
        else:
            return Result.failure(
                ErrorKind.INVALID_FORMAT,
                f"Invalid credentials for shop '{shop_id}': expected a credentials object",
                shop_id=shop_id,
            )

        try:
            credentials = ShopCredentials.from_dict(fields)
        except ValueError as exc:
            return Result.failure(
                ErrorKind.INVALID_FORMAT,
                f"Invalid credentials for shop '{shop_id}': {exc}",
                shop_id=shop_id,
            )

        for env in ENVIRONMENTS:
            token_check = validate_theme_token(credentials.store(env).theme_token, auth_method)
            if not token_check.ok:
                return Result.failure(
                    ErrorKind.INVALID_FORMAT,
                    f"Invalid credentials for shop '{shop_id}': {env} token rejected "
                    f"({token_check.error.message})",
                    shop_id=shop_id,
                )
        return Result.success(credentials)

    def _load_failure(self, shop_id: str, kind: ErrorKind, reason: str) -> Result:
        self._log.warning("Could not load credentials for shop '%s': %s", shop_id, reason)
        return Result.failure(
            kind,
            f"Failed to load credentials for shop '{shop_id}': {reason}",
            shop_id=shop_id,
        )

    def _restrict(self, path: Path, mode: int, label: str) -> bool:
        """chmod best-effort; failures are logged, never returned."""
        if _IS_WINDOWS:
            return True
        try:
            os.chmod(path, mode)
        except OSError as exc:
            self._log.warning(
                "%s: could not set mode %s on %s: %s",
                ErrorKind.PERMISSION_SET_FAILED.value, oct(mode), label, exc.strerror,
            )
            return False
        return True

    def _set_windows_acl(self, directory: Path) -> None:
        """Restrict the directory to the current user only (best-effort)."""
        username = os.environ.get("USERNAME", "")
        if not username:
            return
        try:
            subprocess.run(
                ["icacls", str(directory), "/inheritance:r",
                 "/grant:r", f"{username}:(OI)(CI)F"],
                check=True, capture_output=True,
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            self._log.warning(
                "%s: could not restrict credentials directory ACL: %s",
                ErrorKind.PERMISSION_SET_FAILED.value, exc,
            )

    @staticmethod
    def _default_path() -> Path:
        return (Path.cwd() / DEFAULT_CREDENTIALS_DIR).absolute()
