"""Ed25519 signing and verification of badge data.

Both sides run the same pipeline: canonicalize the data, then sign or
verify the canonical bytes.  Signatures travel as multibase strings
("z" + base58btc); legacy base64 signatures are still accepted on the
verify side.

Ed25519 is deterministic (RFC 8032): the same data and key always give
the same signature string.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from badge_service.core.errors import ConfigurationError
from badge_service.core.metrics import BADGE_VERIFICATIONS
from badge_service.crypto.canonical import canonicalize
from badge_service.crypto.keys import SigningKeyMaterial, get_key_material, load_public_key
from badge_service.crypto.multibase import (
    LegacyBase64,
    Undecodable,
    classify_signature,
    encode_multibase,
)
from badge_service.models.badge import PROOF_CRYPTOSUITE, PROOF_TYPE

logger = logging.getLogger(__name__)

ED25519_SIGNATURE_BYTES = 64


class BadgeSigner:
    """Signs canonical badge data with the issuer key."""

    def __init__(self, key_material: SigningKeyMaterial) -> None:
        self._key_material = key_material

    @property
    def public_key_hex(self) -> str:
        return self._key_material.public_key_hex

    def sign_bytes(self, message: bytes) -> bytes:
        """Raw 64-byte Ed25519 signature over ``message``."""
        return self._key_material.private_key.sign(message)

    def sign(self, data: Any) -> str:
        """Multibase proof value for the canonical form of ``data``."""
        return encode_multibase(self.sign_bytes(canonicalize(data)))


class BadgeVerifier:
    """Checks badge signatures against one issuer public key.

    ``verify`` returns a plain bool and never raises: it is fed
    attacker-controlled data from the public verification endpoint.
    """

    def __init__(self, public_key: Ed25519PublicKey) -> None:
        self._public_key = public_key

    @classmethod
    def from_hex(cls, public_key_hex: str) -> BadgeVerifier:
        return cls(load_public_key(public_key_hex))

    @classmethod
    def from_key_material(cls, key_material: SigningKeyMaterial) -> BadgeVerifier:
        return cls(key_material.public_key)

    def verify(self, data: Any, signature: Any) -> bool:
        try:
            message = canonicalize(data)
        except (TypeError, ValueError, RecursionError) as exc:
            logger.debug("badge data cannot be canonicalized: %s", exc)
            BADGE_VERIFICATIONS.labels(result="invalid").inc()
            return False
        return self.verify_bytes(message, signature)

    def verify_bytes(self, message: bytes, signature: Any) -> bool:
        decoded = classify_signature(signature)
        if isinstance(decoded, Undecodable):
            logger.debug("badge signature undecodable: %s", decoded.reason)
            BADGE_VERIFICATIONS.labels(result="undecodable").inc()
            return False

        signature_format = "legacy-base64" if isinstance(decoded, LegacyBase64) else "multibase"
        if len(decoded.data) != ED25519_SIGNATURE_BYTES:
            logger.debug(
                "badge signature has %d bytes, expected %d",
                len(decoded.data),
                ED25519_SIGNATURE_BYTES,
                extra={"signature_format": signature_format},
            )
            BADGE_VERIFICATIONS.labels(result="undecodable").inc()
            return False

        try:
            self._public_key.verify(decoded.data, message)
        except InvalidSignature:
            logger.debug(
                "badge signature rejected", extra={"signature_format": signature_format}
            )
            BADGE_VERIFICATIONS.labels(result="invalid").inc()
            return False

        BADGE_VERIFICATIONS.labels(result="valid").inc()
        return True


# ---------------------------------------------------------------------------
# Module-level helpers bound to the configured issuer key
# ---------------------------------------------------------------------------


def sign_badge_data(data: Any) -> str:
    """Sign ``data`` with the configured issuer key.

    Raises ConfigurationError when no usable key is configured.
    """
    return BadgeSigner(get_key_material()).sign(data)


def verify_badge_signature(
    data: Any, signature: Any, public_key_hex: str | None = None
) -> bool:
    """Verify ``signature`` over ``data``.

    ``public_key_hex`` is the key resolved by the caller (for example
    from the verification method URI); without it the configured issuer
    key is used.  A malformed external key is a failed verification,
    not an error.
    """
    if public_key_hex is None:
        verifier = BadgeVerifier.from_key_material(get_key_material())
    else:
        try:
            verifier = BadgeVerifier.from_hex(public_key_hex)
        except ConfigurationError as exc:
            logger.debug("rejecting verification with malformed public key: %s", exc)
            BADGE_VERIFICATIONS.labels(result="invalid").inc()
            return False
    return verifier.verify(data, signature)


def verify_badge_credential(assertion: Any, public_key_hex: str | None = None) -> bool:
    """Verify a signed assertion's first proof against its unsigned body.

    Only DataIntegrityProof with the eddsa-jcs-2022 cryptosuite is
    supported; any other proof is a failed verification.
    """
    if not isinstance(assertion, Mapping):
        return False
    proofs = assertion.get("proof")
    if not isinstance(proofs, list) or not proofs or not isinstance(proofs[0], Mapping):
        return False

    proof = proofs[0]
    if proof.get("type") != PROOF_TYPE or proof.get("cryptosuite") != PROOF_CRYPTOSUITE:
        logger.debug(
            "unsupported proof type %r / cryptosuite %r",
            proof.get("type"),
            proof.get("cryptosuite"),
        )
        BADGE_VERIFICATIONS.labels(result="invalid").inc()
        return False

    unsigned = {k: v for k, v in assertion.items() if k != "proof"}
    return verify_badge_signature(unsigned, proof.get("proofValue"), public_key_hex)
