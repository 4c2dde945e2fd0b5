"""
security/validation.py
----------------------
Syntactic checks for shop identifiers, store domains and theme tokens.

Pure functions, no I/O. Each returns a ``Result`` carrying the accepted
value, or an error whose message never echoes a token.
"""

from __future__ import annotations

import re
from typing import Optional

from .errors import ErrorKind, Result, describe_shop_id

SHOP_ID_MAX_LENGTH = 50
TOKEN_MIN_LENGTH   = 10
TOKEN_MAX_LENGTH   = 1000

# re.ASCII keeps [a-z0-9] from matching anything outside the ASCII range;
# fullmatch avoids the trailing-newline quirk of "$".
_SHOP_ID_RE = re.compile(r"[a-z0-9](?:[a-z0-9-]*[a-z0-9])?", re.ASCII)
_DOMAIN_RE  = re.compile(r"[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.myshopify\.com", re.ASCII)

AUTH_THEME_ACCESS_APP = "theme-access-app"
AUTH_MANUAL_TOKENS    = "manual-tokens"
AUTH_METHODS          = (AUTH_THEME_ACCESS_APP, AUTH_MANUAL_TOKENS)

THEME_ACCESS_PREFIX = "tkat_"
CUSTOM_APP_PREFIX   = "shpat_"


def validate_shop_id(value: object) -> Result[str]:
    """Accept lowercase letters, digits and internal hyphens, 1-50 chars."""
    if not isinstance(value, str) or not value:
        return Result.failure(ErrorKind.INVALID_SHOP_ID, "Shop ID is required")
    if len(value) > SHOP_ID_MAX_LENGTH:
        return Result.failure(
            ErrorKind.INVALID_SHOP_ID,
            f"Shop ID must be at most {SHOP_ID_MAX_LENGTH} characters",
        )
    if _SHOP_ID_RE.fullmatch(value) is None:
        return Result.failure(
            ErrorKind.INVALID_SHOP_ID,
            f"Shop ID {describe_shop_id(value)} may only contain lowercase letters, "
            "digits and internal hyphens",
        )
    return Result.success(value)


def validate_domain(value: object) -> Result[str]:
    if not isinstance(value, str) or not value:
        return Result.failure(ErrorKind.INVALID_DOMAIN, "Domain is required")
    if _DOMAIN_RE.fullmatch(value) is None:
        return Result.failure(
            ErrorKind.INVALID_DOMAIN,
            "Domain must look like <store>.myshopify.com",
        )
    return Result.success(value)


def _has_control_characters(value: str) -> bool:
    return any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value)


def validate_theme_token(value: object, auth_method: Optional[str] = None) -> Result[str]:
    """
    Check a theme token's length and character set.

    ``auth_method`` does not change the outcome: prefixes vary between
    Theme Access and custom-app tokens, so any sufficiently long token is
    accepted. See ``token_prefix_hint`` for the advisory check.
    """
    if not isinstance(value, str) or not value:
        return Result.failure(ErrorKind.INVALID_TOKEN, "Theme token is required")
    if len(value) < TOKEN_MIN_LENGTH:
        return Result.failure(
            ErrorKind.INVALID_TOKEN,
            f"Theme token must be at least {TOKEN_MIN_LENGTH} characters",
        )
    if len(value) > TOKEN_MAX_LENGTH:
        return Result.failure(
            ErrorKind.INVALID_TOKEN,
            f"Theme token must be at most {TOKEN_MAX_LENGTH} characters",
        )
    if _has_control_characters(value):
        return Result.failure(ErrorKind.INVALID_TOKEN, "Theme token contains control characters")
    if any(ch.isspace() for ch in value):
        return Result.failure(ErrorKind.INVALID_TOKEN, "Theme token contains whitespace")
    return Result.success(value)


def token_prefix_hint(token: str, auth_method: Optional[str]) -> Optional[str]:
    """Return an advisory note when a token's prefix is unusual for its auth method."""
    if auth_method == AUTH_THEME_ACCESS_APP and not token.startswith(THEME_ACCESS_PREFIX):
        return f"Theme Access app tokens usually start with '{THEME_ACCESS_PREFIX}'"
    if auth_method == AUTH_MANUAL_TOKENS and not token.startswith(
        (THEME_ACCESS_PREFIX, CUSTOM_APP_PREFIX)
    ):
        return (
            f"Tokens usually start with '{THEME_ACCESS_PREFIX}' (Theme Access) "
            f"or '{CUSTOM_APP_PREFIX}' (custom app)"
        )
    return None
