"""Open Badges 3.0 credential generation.

generate_badge_credential assembles an AchievementCredential for one
(speaker, conference, badge type), signs the document without its
``proof`` (a proof cannot attest to itself) and appends exactly one
DataIntegrityProof.  Every call mints a new badge_id: re-issuing a
badge produces a new assertion, it never edits an old one.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from badge_service.core.errors import ConfigurationError
from badge_service.core.metrics import BADGES_ISSUED
from badge_service.crypto.keys import get_key_material
from badge_service.crypto.signing import BadgeSigner
from badge_service.models.badge import (
    OB_V3_CONTEXT,
    VC_V2_CONTEXT,
    BadgeAssertion,
    BadgeConfiguration,
    BadgeGenerationParams,
    GeneratedBadge,
    IssuerConfiguration,
    Proof,
)

logger = logging.getLogger(__name__)

CREDENTIAL_TYPES = ("VerifiableCredential", "AchievementCredential")

_ROLE_LABELS = {"speaker": "Speaker", "organizer": "Organizer"}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+$")
_HTTP_URL = TypeAdapter(HttpUrl)


def utc_now_iso(now: datetime | None = None) -> str:
    moment = now or datetime.now(UTC)
    return moment.astimezone(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def as_type_list(value: str | Sequence[str]) -> list[str]:
    """JSON-LD ``type`` values are always emitted as lists."""
    if isinstance(value, str):
        return [value]
    return list(value)


def build_issuer_profile(issuer: IssuerConfiguration) -> dict[str, Any]:
    profile: dict[str, Any] = {
        "id": issuer.id,
        "type": as_type_list(issuer.type),
        "name": issuer.name,
        "url": issuer.url,
    }
    if issuer.email:
        profile["email"] = issuer.email
    if issuer.description:
        profile["description"] = issuer.description
    profile["image"] = {"id": issuer.image_url, "type": "Image"}
    return profile


def _require_text(value: str | None, field: str) -> None:
    if not value or not value.strip():
        raise ConfigurationError("must not be blank", field=field)


def _require_http_url(value: str | None, field: str) -> None:
    _require_text(value, field)
    try:
        _HTTP_URL.validate_python(value)
    except PydanticValidationError:
        raise ConfigurationError(
            f"must be an http(s) URL, got {value!r}", field=field
        ) from None


def _require_member(value: str | Sequence[str], member: str, field: str) -> None:
    if member not in as_type_list(value):
        raise ConfigurationError(f"must include {member!r}", field=field)


def _validate_params(params: BadgeGenerationParams, config: BadgeConfiguration) -> None:
    """Reject inputs that would produce a malformed credential.

    Raises ConfigurationError naming the offending field; nothing is
    signed when a check fails.
    """
    if params.badge_type not in _ROLE_LABELS:
        raise ConfigurationError(
            f"must be one of {sorted(_ROLE_LABELS)}, got {params.badge_type!r}",
            field="badge_type",
        )
    _require_text(params.speaker_id, "speaker_id")
    _require_text(params.speaker_name, "speaker_name")
    _require_text(params.conference_id, "conference_id")
    _require_text(params.conference_title, "conference_title")
    if not _EMAIL_RE.match(params.speaker_email or ""):
        raise ConfigurationError(
            f"must be an email address, got {params.speaker_email!r}",
            field="speaker_email",
        )
    _require_member(params.subject_type, "AchievementSubject", "subject_type")
    _require_member(params.achievement_type, "Achievement", "achievement_type")

    issuer = config.issuer
    _require_http_url(config.base_url, "base_url")
    _require_http_url(issuer.id, "issuer.id")
    _require_http_url(issuer.url, "issuer.url")
    _require_http_url(issuer.image_url, "issuer.image_url")
    _require_text(issuer.name, "issuer.name")
    _require_member(issuer.type, "Profile", "issuer.type")
    _require_http_url(config.verification_method, "verification_method")


def _build_evidence(params: BadgeGenerationParams, base_url: str) -> list[dict[str, Any]]:
    evidence: list[dict[str, Any]] = []
    if params.badge_type != "speaker":
        return evidence

    if params.speaker_slug:
        evidence.append(
            {
                "id": f"{base_url}/speaker/{params.speaker_slug}",
                "type": ["Evidence"],
                "name": f"Speaker profile: {params.speaker_name}",
            }
        )
    if params.talk_id:
        evidence.append(
            {
                "id": f"{base_url}/program#{params.talk_id}",
                "type": ["Evidence"],
                "name": params.talk_title or "Conference talk",
            }
        )
    return evidence


def build_achievement(
    params: BadgeGenerationParams, config: BadgeConfiguration, issuer: dict[str, Any]
) -> dict[str, Any]:
    role = _ROLE_LABELS[params.badge_type]
    achievement_id = (
        f"{config.base_url}/api/badge/achievements/{params.conference_id}-{params.badge_type}"
    )

    if params.badge_type == "speaker":
        description = (
            f"Awarded to {params.speaker_name} for speaking at "
            f"{params.conference_title} on {params.conference_date}."
        )
        narrative = (
            f"Presented an accepted talk at {params.conference_title} "
            f"({params.conference_year})."
        )
        if params.talk_title:
            narrative = (
                f"Presented the accepted talk \"{params.talk_title}\" at "
                f"{params.conference_title} ({params.conference_year})."
            )
    else:
        description = (
            f"Awarded to {params.speaker_name} for organizing "
            f"{params.conference_title} on {params.conference_date}."
        )
        narrative = (
            f"Served on the organizing team of {params.conference_title} "
            f"({params.conference_year})."
        )

    achievement: dict[str, Any] = {
        "id": achievement_id,
        "type": as_type_list(params.achievement_type),
        "name": f"{role} at {params.conference_title}",
        "description": description,
        "criteria": {"narrative": narrative},
        "image": {
            "id": f"{achievement_id}/image",
            "type": "Image",
            "caption": f"{params.conference_title} {role} Badge",
        },
        # Achievements carry the issuer as "creator", not "issuer".
        "creator": issuer,
    }

    evidence = _build_evidence(params, config.base_url)
    if evidence:
        achievement["evidence"] = evidence
    return achievement


def build_unsigned_credential(
    params: BadgeGenerationParams,
    config: BadgeConfiguration,
    badge_id: str,
    valid_from: str,
) -> BadgeAssertion:
    issuer = build_issuer_profile(config.issuer)
    achievement = build_achievement(params, config, build_issuer_profile(config.issuer))

    return {
        "@context": [VC_V2_CONTEXT, OB_V3_CONTEXT],
        "id": f"{config.base_url}/api/badge/{badge_id}",
        "type": list(CREDENTIAL_TYPES),
        "name": achievement["name"],
        "credentialSubject": {
            "id": f"mailto:{params.speaker_email}",
            "type": as_type_list(params.subject_type),
            "achievement": achievement,
        },
        "issuer": issuer,
        "validFrom": valid_from,
    }


def generate_badge_credential(
    params: BadgeGenerationParams,
    config: BadgeConfiguration,
    signer: BadgeSigner | None = None,
    *,
    now: datetime | None = None,
) -> GeneratedBadge:
    """Build and sign one badge credential.

    Invalid params or configuration raise ConfigurationError with the
    offending ``field``.  ``signer`` defaults to the configured issuer
    key; a missing key raises ConfigurationError here, before any
    document is returned.
    """
    _validate_params(params, config)
    signer = signer or BadgeSigner(get_key_material())

    badge_id = str(uuid.uuid4())
    issued_at = utc_now_iso(now)

    assertion = build_unsigned_credential(params, config, badge_id, issued_at)
    proof = Proof(
        verification_method=config.verification_method,
        proof_value=signer.sign(assertion),
        created=issued_at,
    )
    assertion["proof"] = [proof.to_json()]

    BADGES_ISSUED.labels(badge_type=params.badge_type).inc()
    logger.info(
        "badge issued for speaker %s at conference %s",
        params.speaker_id,
        params.conference_id,
        extra={
            "badge_id": badge_id,
            "badge_type": params.badge_type,
            "credential_id": assertion["id"],
            "verification_method": config.verification_method,
        },
    )
    return GeneratedBadge(badge_id=badge_id, assertion=assertion)
