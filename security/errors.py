"""
security/errors.py
------------------
Typed failure values for the credential vault.

Every public vault, validator and resolver operation returns a ``Result``
instead of raising, so callers can branch on ``result.error.kind``.
``VaultError`` is only raised by ``Result.unwrap()``, which the CLI layer
uses when it wants exception-style control flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    # Validator results
    INVALID_SHOP_ID = "invalid_shop_id"
    INVALID_DOMAIN  = "invalid_domain"
    INVALID_TOKEN   = "invalid_token"

    # Resolver / vault results
    INVALID_CHARACTERS        = "invalid_characters"
    PATH_TRAVERSAL            = "path_traversal"
    INVALID_FORMAT            = "invalid_format"
    MALFORMED_JSON            = "malformed_json"
    INTEGRITY_VIOLATION       = "integrity_violation"
    WRITE_VERIFICATION_FAILED = "write_verification_failed"
    PERMISSION_SET_FAILED     = "permission_set_failed"
    IO_ERROR                  = "io_error"


@dataclass(frozen=True)
class CredentialError:
    kind:    ErrorKind
    message: str
    shop_id: Optional[str] = None

    def __str__(self) -> str:
        return self.message


class VaultError(Exception):
    """Raised by ``Result.unwrap()`` when the result holds an error."""

    def __init__(self, error: CredentialError):
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[CredentialError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        shop_id: Optional[str] = None,
    ) -> "Result[T]":
        return cls(error=CredentialError(kind=kind, message=message, shop_id=shop_id))

    @classmethod
    def from_error(cls, error: CredentialError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> Optional[T]:
        if self.error is not None:
            raise VaultError(self.error)
        return self.value


def describe_shop_id(shop_id: object, limit: int = 60) -> str:
    """Printable, length-capped form of an untrusted identifier for messages."""
    text = repr(shop_id)
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text
