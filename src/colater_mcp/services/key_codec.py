"""Brand-scoped API key format.

Key format: colater_sk_brand_{brandId}_{32 hex chars}

Handles generation, hashing, verification and parsing of bearer
credentials. Anything that does not carry the brand-key prefix is treated
as a legacy identity token and left to the identity verifier.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass

from colater_mcp.errors import CredentialMalformedError, CredentialMissingError

KEY_PREFIX = "colater_sk_brand_"
_KEY_DISPLAY_LEN = 20  # chars kept as key_prefix for identification
_SECRET_BYTES = 16  # 32 hex chars

_BRAND_ID_RE = re.compile(r"^[A-Za-z0-9-]+$")
_KEY_RE = re.compile(r"^colater_sk_brand_([A-Za-z0-9-]+)_([0-9a-f]{32})$")


@dataclass(frozen=True)
class BrandScopedKey:
    """A well-formed brand-scoped API key."""

    brand_id: str
    secret: str
    raw: str


@dataclass(frozen=True)
class LegacyToken:
    """Any other bearer token, verified as an identity token."""

    token: str


Credential = BrandScopedKey | LegacyToken


def generate_key(brand_id: str) -> str:
    """Generate a new API key for a brand.

    Args:
        brand_id: Brand the key is scoped to; letters, digits and dashes only

    Returns:
        Plaintext key. Shown once, never stored.

    Raises:
        ValueError: If brand_id contains characters the format cannot carry
    """
    if not brand_id or not _BRAND_ID_RE.match(brand_id):
        raise ValueError(f"Invalid brand id for API key: {brand_id!r}")
    return f"{KEY_PREFIX}{brand_id}_{secrets.token_hex(_SECRET_BYTES)}"


def hash_key(key: str) -> str:
    """Hash a plaintext key using SHA-256.

    Returns:
        SHA-256 hex digest
    """
    return hashlib.sha256(key.encode()).hexdigest()


def verify_key(key: str, key_hash: str) -> bool:
    """Verify a plaintext key against a stored hash in constant time."""
    return hmac.compare_digest(hash_key(key), key_hash)


def extract_brand_id(key: str) -> str | None:
    """Return the brand id embedded in a key, or None if it does not parse."""
    match = _KEY_RE.match(key or "")
    return match.group(1) if match else None


def display_prefix(key: str) -> str:
    """Non-reversible display form: first 20 chars and an ellipsis."""
    return f"{key[:_KEY_DISPLAY_LEN]}..."


def parse_credential(token: str | None) -> Credential:
    """Classify a bearer token.

    Raises:
        CredentialMissingError: Empty or missing token
        CredentialMalformedError: Token claims to be a brand key but is not one
    """
    token = (token or "").strip()
    if not token:
        raise CredentialMissingError()

    if token.startswith(KEY_PREFIX):
        match = _KEY_RE.match(token)
        if match is None:
            raise CredentialMalformedError(
                "Malformed API key",
                details={"key_prefix": display_prefix(token)},
            )
        return BrandScopedKey(brand_id=match.group(1), secret=match.group(2), raw=token)

    return LegacyToken(token=token)
