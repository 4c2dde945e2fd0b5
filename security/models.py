"""
security/models.py
------------------
Shop credential records and their on-disk JSON shape.

On disk (UTF-8, 2-space indent):

    {
      "developer": "...",
      "shopify": {"stores": {"production": {"themeToken": "..."},
                             "staging":    {"themeToken": "..."}}},
      "notes": "...",                      # optional
      "_metadata": {"created": "...", "version": "1.0.0", "checksum": "..."}
    }
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

PRODUCTION   = "production"
STAGING      = "staging"
ENVIRONMENTS = (PRODUCTION, STAGING)

METADATA_VERSION = "1.0.0"
MASK_VISIBLE     = 8

_CHECKSUM_RE = re.compile(r"[0-9a-f]{16}")


def iso8601(moment: datetime) -> str:
    """UTC timestamp with millisecond precision and a trailing ``Z``."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_encodable(value: str) -> bool:
    """False for strings holding lone surrogates, which UTF-8 cannot represent."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


@dataclass(frozen=True)
class StoreCredential:
    theme_token: str

    def to_dict(self) -> dict:
        return {"themeToken": self.theme_token}


@dataclass(frozen=True)
class CredentialMetadata:
    created:  str
    version:  str = METADATA_VERSION
    checksum: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"created": self.created, "version": self.version}
        if self.checksum is not None:
            data["checksum"] = self.checksum
        return data

    @classmethod
    def from_dict(cls, d: object) -> "CredentialMetadata":
        if not isinstance(d, dict):
            raise ValueError("_metadata must be an object")
        created = d.get("created", "")
        version = d.get("version", "")
        checksum = d.get("checksum")
        if not isinstance(created, str) or not isinstance(version, str):
            raise ValueError("_metadata fields must be strings")
        if checksum is not None and not isinstance(checksum, str):
            raise ValueError("_metadata.checksum must be a string")
        if checksum is not None and _CHECKSUM_RE.fullmatch(checksum) is None:
            raise ValueError("_metadata.checksum must be 16 lowercase hex characters")
        return cls(created=created, version=version, checksum=checksum)


@dataclass(frozen=True)
class ShopCredentials:
    developer:  str
    production: StoreCredential
    staging:    StoreCredential
    notes:      Optional[str] = None
    metadata:   Optional[CredentialMetadata] = None

    def store(self, environment: str) -> Optional[StoreCredential]:
        if environment == PRODUCTION:
            return self.production
        if environment == STAGING:
            return self.staging
        return None

    def token_for(self, environment: str) -> Optional[str]:
        store = self.store(environment)
        if store is None or not store.theme_token:
            return None
        return store.theme_token

    def payload(self) -> dict:
        """The checksummed fields: developer, shopify and (when set) notes."""
        data = {
            "developer": self.developer,
            "shopify": {
                "stores": {
                    PRODUCTION: self.production.to_dict(),
                    STAGING:    self.staging.to_dict(),
                }
            },
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    def to_dict(self) -> dict:
        data = self.payload()
        if self.metadata is not None:
            data["_metadata"] = self.metadata.to_dict()
        return data

    def without_metadata(self) -> "ShopCredentials":
        return replace(self, metadata=None)

    def masked(self) -> "ShopCredentials":
        """Copy with every token cut to its first characters plus asterisks."""
        return replace(
            self,
            production=StoreCredential(mask_token(self.production.theme_token)),
            staging=StoreCredential(mask_token(self.staging.theme_token)),
        )

    @classmethod
    def from_dict(cls, d: object) -> "ShopCredentials":
        """Build from the on-disk shape. Raises ``ValueError`` on structural problems."""
        if not isinstance(d, dict):
            raise ValueError("credentials must be a JSON object")

        developer = d.get("developer")
        if not isinstance(developer, str) or not developer.strip():
            raise ValueError("developer must be a non-empty string")
        if not is_encodable(developer):
            raise ValueError("developer contains invalid Unicode")

        shopify = d.get("shopify")
        stores = shopify.get("stores") if isinstance(shopify, dict) else None
        if not isinstance(stores, dict):
            raise ValueError("shopify.stores is missing")

        tokens = {}
        for env in ENVIRONMENTS:
            entry = stores.get(env)
            if not isinstance(entry, dict):
                raise ValueError(f"shopify.stores.{env} is missing")
            token = entry.get("themeToken")
            if not isinstance(token, str):
                raise ValueError(f"shopify.stores.{env}.themeToken must be a string")
            if not is_encodable(token):
                raise ValueError(f"shopify.stores.{env}.themeToken contains invalid Unicode")
            tokens[env] = token

        notes = d.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise ValueError("notes must be a string")
        if notes is not None and not is_encodable(notes):
            raise ValueError("notes contains invalid Unicode")

        metadata = None
        if "_metadata" in d:
            metadata = CredentialMetadata.from_dict(d["_metadata"])

        return cls(
            developer=developer,
            production=StoreCredential(tokens[PRODUCTION]),
            staging=StoreCredential(tokens[STAGING]),
            notes=notes,
            metadata=metadata,
        )


def mask_token(token: str) -> str:
    return token[:MASK_VISIBLE] + "*" * max(0, len(token) - MASK_VISIBLE)
