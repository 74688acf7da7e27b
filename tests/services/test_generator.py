from __future__ import annotations

import copy
import dataclasses
import re
from datetime import UTC, datetime

import pytest

from badge_service.core.errors import ConfigurationError
from badge_service.crypto.keys import SigningKeyMaterial, get_key_material
from badge_service.crypto.signing import BadgeSigner, verify_badge_credential
from badge_service.models.badge import BadgeConfiguration, BadgeGenerationParams
from badge_service.services.generator import (
    as_type_list,
    build_issuer_profile,
    generate_badge_credential,
)
from badge_service.services.schema_validator import validate_badge_schema
from tests.conftest import TEST_PUBLIC_KEY_HEX, make_params

FIXED_NOW = datetime(2025, 6, 15, 9, 30, 12, 345678, tzinfo=UTC)


def _generate(
    params: BadgeGenerationParams, config: BadgeConfiguration, signer: BadgeSigner
) -> dict:
    return generate_badge_credential(params, config, signer, now=FIXED_NOW).assertion


def test_document_shape(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    assertion = _generate(speaker_params, badge_config, signer)

    assert assertion["@context"] == [
        "https://www.w3.org/ns/credentials/v2",
        "https://purl.imsglobal.org/spec/ob/v3p0/context-3.0.3.json",
    ]
    assert assertion["type"] == ["VerifiableCredential", "AchievementCredential"]
    assert assertion["validFrom"] == "2025-06-15T09:30:12Z"
    assert assertion["credentialSubject"]["id"] == "mailto:jane@example.com"
    assert assertion["credentialSubject"]["type"] == ["AchievementSubject"]
    assert assertion["issuer"]["id"] == "https://cloudnativebergen.no/api/badge/issuer"
    assert assertion["issuer"]["type"] == ["Profile"]


def test_proof_is_single_entry_array(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    assertion = _generate(speaker_params, badge_config, signer)

    assert isinstance(assertion["proof"], list)
    assert len(assertion["proof"]) == 1
    proof = assertion["proof"][0]
    assert proof["type"] == "DataIntegrityProof"
    assert proof["proofPurpose"] == "assertionMethod"
    assert proof["created"] == "2025-06-15T09:30:12Z"
    assert proof["verificationMethod"] == badge_config.verification_method
    assert proof["proofValue"].startswith("z")


def test_issuer_image_is_structured_object(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    assertion = _generate(speaker_params, badge_config, signer)
    image = assertion["issuer"]["image"]
    assert isinstance(image, dict)
    assert image == {"id": "https://cloudnativebergen.no/og/base.png", "type": "Image"}


def test_achievement(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    achievement = _generate(speaker_params, badge_config, signer)["credentialSubject"][
        "achievement"
    ]
    assert achievement["type"] == ["Achievement"]
    assert "Cloud Native Day Bergen 2025" in achievement["name"]
    assert achievement["description"]
    assert "Kubernetes at Scale" in achievement["criteria"]["narrative"]
    assert achievement["image"]["type"] == "Image"
    assert achievement["creator"]["name"] == "Cloud Native Bergen"


def test_speaker_evidence(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    evidence = _generate(speaker_params, badge_config, signer)["credentialSubject"][
        "achievement"
    ]["evidence"]
    assert evidence[0]["id"] == "https://cloudnativebergen.no/speaker/jane-doe"
    assert all(item["type"] == ["Evidence"] for item in evidence)
    assert evidence[1]["name"] == "Kubernetes at Scale"


def test_organizer_badge_has_no_evidence(
    badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    params = make_params(badge_type="organizer")
    achievement = _generate(params, badge_config, signer)["credentialSubject"]["achievement"]
    assert achievement["name"].startswith("Organizer")
    assert "evidence" not in achievement


def test_scalar_type_fragments_are_normalized(
    badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    params = make_params(subject_type="AchievementSubject", achievement_type="Achievement")
    assertion = _generate(params, badge_config, signer)
    assert assertion["credentialSubject"]["type"] == ["AchievementSubject"]
    assert assertion["credentialSubject"]["achievement"]["type"] == ["Achievement"]

    config = dataclasses.replace(
        badge_config, issuer=dataclasses.replace(badge_config.issuer, type="Profile")
    )
    assert _generate(make_params(), config, signer)["issuer"]["type"] == ["Profile"]


def test_as_type_list() -> None:
    assert as_type_list("Profile") == ["Profile"]
    assert as_type_list(("Profile", "Organization")) == ["Profile", "Organization"]


def test_issuer_without_optional_fields(badge_config: BadgeConfiguration) -> None:
    issuer = dataclasses.replace(badge_config.issuer, email=None, description=None)
    profile = build_issuer_profile(issuer)
    assert set(profile) == {"id", "type", "name", "url", "image"}
    assert profile["image"] == {"id": issuer.image_url, "type": "Image"}


# ---- input checks ----


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"badge_type": "workshop"}, "badge_type"),
        ({"speaker_name": ""}, "speaker_name"),
        ({"speaker_name": "   "}, "speaker_name"),
        ({"speaker_email": ""}, "speaker_email"),
        ({"speaker_email": "jane at example.com"}, "speaker_email"),
        ({"speaker_id": ""}, "speaker_id"),
        ({"conference_id": ""}, "conference_id"),
        ({"conference_title": ""}, "conference_title"),
        ({"subject_type": ["Person"]}, "subject_type"),
        ({"achievement_type": "Badge"}, "achievement_type"),
    ],
)
def test_invalid_params_are_rejected_before_signing(
    overrides: dict[str, object],
    field: str,
    badge_config: BadgeConfiguration,
    signer: BadgeSigner,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def fail(data: object) -> str:
        raise AssertionError("invalid params must not be signed")

    monkeypatch.setattr(signer, "sign", fail)
    with pytest.raises(ConfigurationError) as exc_info:
        generate_badge_credential(make_params(**overrides), badge_config, signer)
    assert exc_info.value.field == field
    assert str(exc_info.value).startswith(f"{field}: ")


@pytest.mark.parametrize(
    ("issuer_overrides", "field"),
    [
        ({"id": "not a uri"}, "issuer.id"),
        ({"url": "cloudnativebergen.no"}, "issuer.url"),
        ({"image_url": ""}, "issuer.image_url"),
        ({"image_url": "og/base.png"}, "issuer.image_url"),
        ({"name": " "}, "issuer.name"),
        ({"type": "Organization"}, "issuer.type"),
    ],
)
def test_invalid_issuer_is_rejected(
    issuer_overrides: dict[str, object],
    field: str,
    badge_config: BadgeConfiguration,
    signer: BadgeSigner,
) -> None:
    config = dataclasses.replace(
        badge_config, issuer=dataclasses.replace(badge_config.issuer, **issuer_overrides)
    )
    with pytest.raises(ConfigurationError) as exc_info:
        generate_badge_credential(make_params(), config, signer)
    assert exc_info.value.field == field


@pytest.mark.parametrize("field", ["base_url", "verification_method"])
def test_invalid_badge_urls_are_rejected(
    field: str, badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    config = dataclasses.replace(badge_config, **{field: "not a uri"})
    with pytest.raises(ConfigurationError) as exc_info:
        generate_badge_credential(make_params(), config, signer)
    assert exc_info.value.field == field


def test_extended_type_lists_are_accepted(
    badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    params = make_params(subject_type=["AchievementSubject", "Person"])
    assertion = _generate(params, badge_config, signer)
    assert assertion["credentialSubject"]["type"] == ["AchievementSubject", "Person"]
    assert validate_badge_schema(assertion).valid is True


def test_signature_covers_document_without_proof(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    assertion = _generate(speaker_params, badge_config, signer)
    assert verify_badge_credential(assertion, TEST_PUBLIC_KEY_HEX) is True

    tampered = copy.deepcopy(assertion)
    tampered["credentialSubject"]["id"] = "mailto:mallory@example.com"
    assert verify_badge_credential(tampered, TEST_PUBLIC_KEY_HEX) is False


def test_each_issuance_is_a_new_assertion(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    first = generate_badge_credential(speaker_params, badge_config, signer, now=FIXED_NOW)
    second = generate_badge_credential(speaker_params, badge_config, signer, now=FIXED_NOW)
    assert first.badge_id != second.badge_id
    assert re.match(r"^[0-9a-f-]{36}$", first.badge_id)
    assert first.assertion["id"].endswith(first.badge_id)
    assert first.assertion["proof"][0]["proofValue"] != second.assertion["proof"][0]["proofValue"]


def test_generated_badge_passes_schema(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration, signer: BadgeSigner
) -> None:
    result = validate_badge_schema(_generate(speaker_params, badge_config, signer))
    assert result.valid is True
    assert result.errors is None


def test_default_signer_uses_configured_key(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration
) -> None:
    badge = generate_badge_credential(speaker_params, badge_config)
    assert verify_badge_credential(badge.assertion, TEST_PUBLIC_KEY_HEX) is True


def test_missing_key_emits_nothing(
    speaker_params: BadgeGenerationParams,
    badge_config: BadgeConfiguration,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("BADGE_ISSUER_PRIVATE_KEY")
    get_key_material.cache_clear()
    with pytest.raises(ConfigurationError):
        generate_badge_credential(speaker_params, badge_config)


def test_other_key_does_not_verify(
    speaker_params: BadgeGenerationParams, badge_config: BadgeConfiguration
) -> None:
    other = SigningKeyMaterial.generate()
    badge = generate_badge_credential(speaker_params, badge_config, BadgeSigner(other))
    assert verify_badge_credential(badge.assertion, TEST_PUBLIC_KEY_HEX) is False
    assert verify_badge_credential(badge.assertion, other.public_key_hex) is True
