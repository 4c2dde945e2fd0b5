"""
security/paths.py
-----------------
Maps a shop identifier to its credential file under the vault root.

Two gates: the identifier must pass ``validate_shop_id`` before any path is
built, and the canonical candidate must sit strictly below the canonical
root. A symlinked credential file that points elsewhere fails the second
gate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from .errors import ErrorKind, Result, describe_shop_id
from .validation import validate_shop_id

CREDENTIALS_SUFFIX = ".credentials.json"


def credential_filename(shop_id: str) -> str:
    return f"{shop_id}{CREDENTIALS_SUFFIX}"


def _canonical(path: Path) -> Path:
    return Path(os.path.normcase(str(path.resolve(strict=False))))


def is_strictly_inside(candidate: Path, root: Path) -> bool:
    """Component-wise containment; ``creds-evil`` is not inside ``creds``."""
    candidate = _canonical(candidate)
    root = _canonical(root)
    if candidate == root:
        return False
    return root in candidate.parents


def resolve_credential_path(shop_id: object, credentials_root: Union[str, Path]) -> Result[Path]:
    validated = validate_shop_id(shop_id)
    if not validated.ok:
        return Result.failure(
            ErrorKind.INVALID_CHARACTERS,
            f"Shop ID {describe_shop_id(shop_id)} contains invalid characters - "
            "only lowercase letters, digits and hyphens are allowed",
        )

    root = Path(credentials_root).absolute()
    candidate = root / credential_filename(validated.value)

    try:
        inside = is_strictly_inside(candidate, root)
    except (OSError, RuntimeError, ValueError):
        inside = False
    if not inside:
        return Result.failure(
            ErrorKind.PATH_TRAVERSAL,
            f"Credential path for shop '{validated.value}' escapes the credentials directory",
            shop_id=validated.value,
        )
    return Result.success(candidate)
