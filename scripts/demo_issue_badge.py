"""Demo: issue, validate and verify a speaker badge with a throwaway key.

Run with:
    python scripts/demo_issue_badge.py
"""

from __future__ import annotations

import copy
import json

from badge_service.core.config import SETTINGS
from badge_service.core.logging import setup_logging
from badge_service.crypto.keys import SigningKeyMaterial
from badge_service.crypto.signing import BadgeSigner, verify_badge_credential
from badge_service.models.badge import BadgeGenerationParams, ConferenceInfo
from badge_service.services.badge_config import create_badge_configuration
from badge_service.services.generator import generate_badge_credential
from badge_service.services.schema_validator import get_validation_errors

CONFERENCE = ConferenceInfo(
    id="conf-2025",
    title="Cloud Native Day Bergen 2025",
    organizer="Cloud Native Bergen",
    city="Bergen",
    country="Norway",
    start_date="2025-10-28",
    contact_email="hello@cloudnativebergen.no",
    domains=("cloudnativebergen.no",),
)


def main() -> None:
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    material = SigningKeyMaterial.generate()

    # ── Step 1: configuration for the conference domain ─────────────
    config = create_badge_configuration(
        CONFERENCE, "cloudnativebergen.no", key_material=material
    )
    print(f"1. verification method   → {config.verification_method}")

    # ── Step 2: issue a speaker badge ───────────────────────────────
    badge = generate_badge_credential(
        BadgeGenerationParams(
            speaker_id="speaker-123",
            speaker_name="Jane Doe",
            speaker_email="jane@example.com",
            speaker_slug="jane-doe",
            conference_id=CONFERENCE.id,
            conference_title=CONFERENCE.title,
            conference_year="2025",
            conference_date="October 28, 2025",
            badge_type="speaker",
            talk_id="talk-456",
            talk_title="Kubernetes at Scale",
        ),
        config,
        BadgeSigner(material),
    )
    proof_value = badge.assertion["proof"][0]["proofValue"]
    print(f"2. issued badge {badge.badge_id}  proofValue={proof_value[:16]}…")

    # ── Step 3: schema check ────────────────────────────────────────
    errors = get_validation_errors(badge.assertion)
    print(f"3. schema errors          → {errors or 'none'}")

    # ── Step 4: verify the signature ────────────────────────────────
    ok = verify_badge_credential(badge.assertion, material.public_key_hex)
    print(f"4. signature valid        → {ok}")

    # ── Step 5: tamper and verify again ─────────────────────────────
    tampered = copy.deepcopy(badge.assertion)
    tampered["credentialSubject"]["achievement"]["name"] += "!"
    ok = verify_badge_credential(tampered, material.public_key_hex)
    print(f"5. tampered badge valid   → {ok}")

    print()
    print(json.dumps(badge.assertion, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
