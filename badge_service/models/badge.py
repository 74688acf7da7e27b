from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

BadgeType = Literal["speaker", "organizer"]

# A badge assertion travels as the JSON document itself.
BadgeAssertion = dict[str, Any]

VC_V2_CONTEXT = "https://www.w3.org/ns/credentials/v2"
OB_V3_CONTEXT = "https://purl.imsglobal.org/spec/ob/v3p0/context-3.0.3.json"
MULTIKEY_CONTEXT = "https://w3id.org/security/multikey/v1"

PROOF_TYPE = "DataIntegrityProof"
PROOF_CRYPTOSUITE = "eddsa-jcs-2022"
PROOF_PURPOSE = "assertionMethod"


@dataclass(frozen=True, slots=True)
class ConferenceInfo:
    """The slice of conference data the badge engine needs."""

    id: str
    title: str
    organizer: str
    city: str = ""
    country: str = ""
    start_date: str | None = None
    contact_email: str | None = None
    description: str | None = None
    domains: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class IssuerConfiguration:
    """Issuer profile, mapped to the Open Badges v3 Profile."""

    id: str
    name: str
    url: str
    image_url: str
    email: str | None = None
    description: str | None = None
    type: str | Sequence[str] = "Profile"


@dataclass(frozen=True, slots=True)
class BadgeConfiguration:
    """Everything generate_badge_credential needs besides per-badge params.

    Keeps generation free of environment access: build one of these with
    badge_service.services.badge_config.create_badge_configuration.
    """

    base_url: str
    issuer: IssuerConfiguration
    verification_method: str


@dataclass(frozen=True, slots=True)
class BadgeGenerationParams:
    """Per-badge input supplied by the conference/speaker data source."""

    speaker_id: str
    speaker_name: str
    speaker_email: str
    conference_id: str
    conference_title: str
    conference_year: str
    conference_date: str
    badge_type: BadgeType
    speaker_slug: str | None = None
    talk_id: str | None = None
    talk_title: str | None = None
    # Caller-supplied fragments; scalars are normalized into lists.
    subject_type: str | Sequence[str] = "AchievementSubject"
    achievement_type: str | Sequence[str] = "Achievement"


@dataclass(frozen=True, slots=True)
class Proof:
    """One Data Integrity proof attached to an assertion."""

    verification_method: str
    proof_value: str
    created: str
    type: str = PROOF_TYPE
    cryptosuite: str = PROOF_CRYPTOSUITE
    proof_purpose: str = PROOF_PURPOSE

    def to_json(self) -> dict[str, str]:
        return {
            "type": self.type,
            "created": self.created,
            "verificationMethod": self.verification_method,
            "cryptosuite": self.cryptosuite,
            "proofPurpose": self.proof_purpose,
            "proofValue": self.proof_value,
        }


@dataclass(frozen=True, slots=True)
class GeneratedBadge:
    badge_id: str
    assertion: BadgeAssertion


@dataclass(frozen=True, slots=True)
class ValidationError:
    """One structural violation: dotted field path plus message."""

    field: str
    message: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    errors: list[ValidationError] | None = None
