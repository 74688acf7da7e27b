#!/usr/bin/env python3
"""Generate an Ed25519 key pair for badge signing.

RUN:  python scripts/generate_badge_keys.py [domain]

The domain defaults to the first entry of BADGE_DOMAINS.

Prints the two environment lines to paste into the deployment secrets,
plus the verification method URI and Multikey document verifiers will
resolve for the new key.  Nothing is written to disk.
"""

from __future__ import annotations

import json
import sys

from badge_service.core.config import SETTINGS
from badge_service.crypto.keys import (
    KEY_ID_PREFIX,
    SigningKeyMaterial,
    generate_multikey_document,
    get_verification_method,
    key_hash,
)
from badge_service.services.badge_config import normalize_base_url


def main() -> None:
    if len(sys.argv) > 1:
        domain = sys.argv[1]
    elif SETTINGS.badge_domains:
        domain = SETTINGS.badge_domains[0]
    else:
        sys.exit("usage: generate_badge_keys.py DOMAIN (or set BADGE_DOMAINS)")
    material = SigningKeyMaterial.generate()

    print("# Badge issuer keys (keep the private key secret)")
    print(f"BADGE_ISSUER_PRIVATE_KEY={material.private_key_hex()}")
    print(f"BADGE_ISSUER_PUBLIC_KEY={material.public_key_hex}")
    print()

    verification_method = get_verification_method(
        [domain], public_key_hex=material.public_key_hex
    )
    print(f"Verification method: {verification_method}")

    document = generate_multikey_document(
        material.public_key_hex,
        f"{KEY_ID_PREFIX}{key_hash(material.public_key_hex)}",
        normalize_base_url(domain),
    )
    print(json.dumps(document, indent=2))


if __name__ == "__main__":
    main()
