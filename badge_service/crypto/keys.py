"""Issuer key material and key discovery.

Key material comes from two hex-encoded environment secrets,
BADGE_ISSUER_PRIVATE_KEY and BADGE_ISSUER_PUBLIC_KEY (32 bytes each).
``SigningKeyMaterial.from_hex`` validates them and is the only place a
bad key is reported; signers and verifiers receive the resulting
immutable value and never see raw configuration.

``get_key_material()`` is the process-wide default: loaded lazily on
first use, memoized, and read-only afterwards, so concurrent signing
and verification calls share it without locking.

The rest of the module serves the public key to verifiers:
``get_verification_method`` names it with a URI, and
``generate_multikey_document`` renders the W3C Multikey document that
URI resolves to.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

import base58
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from badge_service.core.config import Settings, load_settings
from badge_service.core.errors import ConfigurationError, KeyValidationError
from badge_service.crypto.multibase import (
    MULTIBASE_BASE58BTC_PREFIX,
    encode_multibase,
    is_base58,
)
from badge_service.models.badge import MULTIKEY_CONTEXT, VC_V2_CONTEXT

logger = logging.getLogger(__name__)

ED25519_KEY_BYTES = 32
# Multicodec varint for ed25519-pub, prepended to keys in Multikey documents.
ED25519_MULTICODEC_PREFIX = bytes([0xED, 0x01])
KEY_ID_PREFIX = "key-"
KEY_ID_HASH_LENGTH = 8
# 34 bytes (multicodec prefix + key) encode to at most 47 base58 characters.
MAX_MULTIBASE_KEY_CHARS = 64

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def _clean_hex(value: str) -> str:
    cleaned = re.sub(r"\s", "", value)
    if cleaned.startswith(("0x", "0X")):
        cleaned = cleaned[2:]
    return cleaned.lower()


def _parse_key_hex(name: str, value: str | None) -> bytes:
    if not value:
        raise ConfigurationError(f"{name} is required (hex-encoded 32-byte Ed25519 key)")
    cleaned = _clean_hex(value)
    if not _HEX_RE.match(cleaned):
        raise ConfigurationError(f"{name} must be a hex string")
    if len(cleaned) != ED25519_KEY_BYTES * 2:
        raise ConfigurationError(
            f"{name} must be 32 bytes (64 hex characters), got {len(cleaned)} characters"
        )
    return bytes.fromhex(cleaned)


def public_key_to_hex(public_key: Ed25519PublicKey) -> str:
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return raw.hex()


def load_public_key(public_key_hex: str) -> Ed25519PublicKey:
    """Parse a hex public key; ConfigurationError when it is not one."""
    raw = _parse_key_hex("public key", public_key_hex)
    try:
        return Ed25519PublicKey.from_public_bytes(raw)
    except ValueError as exc:
        raise ConfigurationError("public key is not a valid Ed25519 key") from exc


@dataclass(frozen=True, slots=True)
class SigningKeyMaterial:
    """Issuer Ed25519 key pair. Immutable once built."""

    private_key: Ed25519PrivateKey
    public_key: Ed25519PublicKey
    public_key_hex: str

    @classmethod
    def from_hex(cls, private_key_hex: str | None, public_key_hex: str | None = None) -> SigningKeyMaterial:
        """Build key material from hex secrets.

        The public key is optional; when given it must belong to the
        private key, otherwise badges would be signed with a key nobody
        can resolve.
        """
        private_key = Ed25519PrivateKey.from_private_bytes(
            _parse_key_hex("BADGE_ISSUER_PRIVATE_KEY", private_key_hex)
        )
        derived = private_key.public_key()
        derived_hex = public_key_to_hex(derived)

        if public_key_hex:
            provided_hex = _parse_key_hex("BADGE_ISSUER_PUBLIC_KEY", public_key_hex).hex()
            if provided_hex != derived_hex:
                raise ConfigurationError(
                    "BADGE_ISSUER_PUBLIC_KEY does not match BADGE_ISSUER_PRIVATE_KEY"
                )

        return cls(private_key=private_key, public_key=derived, public_key_hex=derived_hex)

    @classmethod
    def from_settings(cls, settings: Settings) -> SigningKeyMaterial:
        """Both issuer secrets are required in the environment."""
        material = cls.from_hex(
            settings.badge_issuer_private_key, settings.badge_issuer_public_key
        )
        if not settings.badge_issuer_public_key:
            raise ConfigurationError(
                "BADGE_ISSUER_PUBLIC_KEY is required (hex-encoded 32-byte Ed25519 key)"
            )
        return material

    @classmethod
    def generate(cls) -> SigningKeyMaterial:
        private_key = Ed25519PrivateKey.generate()
        public_key = private_key.public_key()
        return cls(
            private_key=private_key,
            public_key=public_key,
            public_key_hex=public_key_to_hex(public_key),
        )

    def private_key_hex(self) -> str:
        raw = self.private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return raw.hex()

    def __repr__(self) -> str:
        return f"SigningKeyMaterial(public_key_hex={self.public_key_hex!r})"


@functools.lru_cache(maxsize=1)
def get_key_material() -> SigningKeyMaterial:
    """Default issuer key material from the environment, loaded once.

    Raises ConfigurationError on the first call when the keys are missing
    or malformed; a failed load is not cached, so fixing the environment
    and calling again works.
    """
    material = SigningKeyMaterial.from_settings(load_settings())
    logger.info(
        "badge issuer key loaded",
        extra={"verification_method": f"{KEY_ID_PREFIX}{key_hash(material.public_key_hex)}"},
    )
    return material


def key_hash(public_key_hex: str) -> str:
    """Stable short hex identifier for a public key."""
    return _clean_hex(public_key_hex)[:KEY_ID_HASH_LENGTH]


def _normalize_domain(domain: str) -> str:
    host = domain.strip()
    for scheme in ("https://", "http://"):
        if host.startswith(scheme):
            host = host[len(scheme):]
    return host.rstrip("/")


def get_verification_method(
    domains: Sequence[str], public_key_hex: str | None = None
) -> str:
    """URI naming the issuer key: https://{domain}/api/badge/keys/key-{hash}.

    Uses the first domain.  ``public_key_hex`` defaults to the configured
    issuer key.
    """
    hosts = [host for host in map(_normalize_domain, domains) if host]
    if not hosts:
        raise ConfigurationError("at least one domain is required for the verification method")
    if public_key_hex is None:
        public_key_hex = get_key_material().public_key_hex
    return f"https://{hosts[0]}/api/badge/keys/{KEY_ID_PREFIX}{key_hash(public_key_hex)}"


# ---------------------------------------------------------------------------
# Multikey documents (served at the verification method URI)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class KeyCheck:
    valid: bool
    error: str | None = None


def validate_key_id(key_id: str, public_key_hex: str) -> KeyCheck:
    if not key_id.startswith(KEY_ID_PREFIX):
        return KeyCheck(False, f'Key ID must start with "{KEY_ID_PREFIX}"')

    suffix = key_id[len(KEY_ID_PREFIX):].split("-", 1)[0].lower()
    key_hex = _clean_hex(public_key_hex)
    if len(suffix) < KEY_ID_HASH_LENGTH or not key_hex.startswith(suffix):
        return KeyCheck(False, f"Key ID {key_id!r} does not match public key prefix")
    return KeyCheck(True)


def validate_multibase_public_key(value: str) -> KeyCheck:
    if not value.startswith(MULTIBASE_BASE58BTC_PREFIX):
        return KeyCheck(False, 'Multibase key must start with "z" (base58btc)')

    encoded = value[1:]
    if len(encoded) > MAX_MULTIBASE_KEY_CHARS:
        return KeyCheck(False, "Multibase key is too long")
    if not is_base58(encoded):
        return KeyCheck(False, "Multibase key contains invalid Base58 characters")

    decoded = base58.b58decode(encoded)
    expected = len(ED25519_MULTICODEC_PREFIX) + ED25519_KEY_BYTES
    if len(decoded) != expected:
        return KeyCheck(False, f"Expected {expected} bytes, got {len(decoded)}")

    if decoded[:2] != ED25519_MULTICODEC_PREFIX:
        return KeyCheck(False, "Missing Ed25519 multicodec prefix (0xed01)")
    return KeyCheck(True)


def extract_public_key_from_multibase(value: str) -> bytes:
    check = validate_multibase_public_key(value)
    if not check.valid:
        raise KeyValidationError(check.error or "invalid multibase public key")
    return base58.b58decode(value[1:])[len(ED25519_MULTICODEC_PREFIX):]


def generate_multikey_document(
    public_key_hex: str, key_id: str, issuer_url: str
) -> dict[str, object]:
    key_hex = _clean_hex(public_key_hex)
    if len(key_hex) != ED25519_KEY_BYTES * 2 or not _HEX_RE.match(key_hex):
        raise KeyValidationError("Public key must be a 64-character hex string")

    check = validate_key_id(key_id, key_hex)
    if not check.valid:
        raise KeyValidationError(check.error or "invalid key ID")

    if not issuer_url.startswith(("http://", "https://")):
        raise KeyValidationError("Issuer URL must start with http:// or https://")

    controller = issuer_url.rstrip("/")
    return {
        "@context": [VC_V2_CONTEXT, MULTIKEY_CONTEXT],
        "id": f"{controller}/api/badge/keys/{key_id}",
        "type": "Multikey",
        "controller": controller,
        "publicKeyMultibase": encode_multibase(
            ED25519_MULTICODEC_PREFIX + bytes.fromhex(key_hex)
        ),
    }
