"""Multibase (base58btc) encoding for proof values and public keys.

Current signatures are ``"z" + base58btc(bytes)``.  Badges issued before
the switch to multibase carry a plain base64 signature; those are still
recognised so old badges keep verifying.

Decoding goes through ``classify_signature``, which resolves the format
once and returns one of three variants:

    Multibase(data)      "z"-prefixed, valid base58btc
    LegacyBase64(data)   base64 (standard or URL-safe alphabet)
    Undecodable(reason)  anything else

Nothing in this module raises on malformed input.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Any

import base58

MULTIBASE_BASE58BTC_PREFIX = "z"

# A 64-byte Ed25519 signature is at most 89 characters as "z" + base58btc
# and exactly 88 as padded base64.
MAX_SIGNATURE_CHARS = 100

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

_BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")
_BASE64_RE = re.compile(r"^[A-Za-z0-9+/_-]+={0,2}$")


@dataclass(frozen=True, slots=True)
class Multibase:
    data: bytes


@dataclass(frozen=True, slots=True)
class LegacyBase64:
    data: bytes


@dataclass(frozen=True, slots=True)
class Undecodable:
    reason: str


DecodedSignature = Multibase | LegacyBase64 | Undecodable


def encode_multibase(data: bytes) -> str:
    return MULTIBASE_BASE58BTC_PREFIX + base58.b58encode(data).decode("ascii")


def is_base58(value: str) -> bool:
    return bool(_BASE58_RE.match(value))


def classify_signature(value: Any) -> DecodedSignature:
    if not isinstance(value, str) or not value:
        return Undecodable("signature must be a non-empty string")
    # base58 decoding is quadratic in input length; bound it before decoding.
    if len(value) > MAX_SIGNATURE_CHARS:
        return Undecodable("signature too long")

    if value.startswith(MULTIBASE_BASE58BTC_PREFIX) and is_base58(value[1:]):
        return Multibase(base58.b58decode(value[1:]))

    # Only strings that cannot be base58 are treated as legacy base64;
    # a base58-looking string without the prefix is ambiguous.
    if is_base58(value):
        return Undecodable("missing multibase prefix")

    legacy = _decode_base64(value)
    if legacy is None:
        return Undecodable("neither base58btc multibase nor base64")
    return LegacyBase64(legacy)


def decode_multibase(value: Any) -> bytes | None:
    """Decoded bytes for either signature format, or None."""
    decoded = classify_signature(value)
    if isinstance(decoded, (Multibase, LegacyBase64)):
        return decoded.data
    return None


def _decode_base64(value: str) -> bytes | None:
    if not _BASE64_RE.match(value):
        return None
    stripped = value.rstrip("=")
    if len(stripped) % 4 == 1:
        return None
    padded = stripped + "=" * (-len(stripped) % 4)
    altchars = b"-_" if ("-" in value or "_" in value) else None
    try:
        return base64.b64decode(padded, altchars=altchars, validate=True)
    except (binascii.Error, ValueError):
        return None
