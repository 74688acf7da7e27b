from __future__ import annotations

from badge_service.core.errors import ConfigurationError
from badge_service.crypto.keys import (
    SigningKeyMaterial,
    get_key_material,
    get_verification_method,
)
from badge_service.models.badge import (
    BadgeConfiguration,
    ConferenceInfo,
    IssuerConfiguration,
)

DEFAULT_CONTACT_EMAIL = "contact@cloudnativedays.no"


def normalize_base_url(domain: str) -> str:
    domain = domain.strip().rstrip("/")
    if not domain:
        raise ConfigurationError("domain is required to build badge URLs")
    return domain if domain.startswith(("http://", "https://")) else f"https://{domain}"


def create_badge_configuration(
    conference: ConferenceInfo,
    domain: str,
    key_material: SigningKeyMaterial | None = None,
) -> BadgeConfiguration:
    """Issuer profile and key URI for one conference domain.

    Isolates the environment lookup (issuer key) so that
    generate_badge_credential stays a function of its arguments.
    """
    base_url = normalize_base_url(domain)
    material = key_material or get_key_material()

    if conference.contact_email:
        email = conference.contact_email
    elif conference.domains:
        email = f"contact@{conference.domains[0]}"
    else:
        email = DEFAULT_CONTACT_EMAIL

    description = conference.description or (
        f"{conference.organizer} hosts {conference.title}, bringing together "
        f"the cloud native community in {conference.city}, {conference.country}."
    )

    issuer = IssuerConfiguration(
        id=f"{base_url}/api/badge/issuer",
        name=conference.organizer,
        url=base_url,
        email=email,
        description=description,
        image_url=f"{base_url}/og/base.png",
    )

    return BadgeConfiguration(
        base_url=base_url,
        issuer=issuer,
        verification_method=get_verification_method(
            [base_url], public_key_hex=material.public_key_hex
        ),
    )
