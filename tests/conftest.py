from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from badge_service.crypto.keys import SigningKeyMaterial, get_key_material
from badge_service.crypto.signing import BadgeSigner
from badge_service.models.badge import (
    BadgeConfiguration,
    BadgeGenerationParams,
    ConferenceInfo,
)
from badge_service.services.badge_config import create_badge_configuration

# Ensure repo root is on sys.path so `import badge_service` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Fixed seed so signatures are reproducible across runs.
TEST_PRIVATE_KEY_HEX = bytes(range(32)).hex()
TEST_KEY_MATERIAL = SigningKeyMaterial.from_hex(TEST_PRIVATE_KEY_HEX)
TEST_PUBLIC_KEY_HEX = TEST_KEY_MATERIAL.public_key_hex

TEST_DOMAIN = "cloudnativebergen.no"


@pytest.fixture(autouse=True)
def issuer_keys_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Configure issuer keys and reset the memoized key material."""
    monkeypatch.setenv("BADGE_ISSUER_PRIVATE_KEY", TEST_PRIVATE_KEY_HEX)
    monkeypatch.setenv("BADGE_ISSUER_PUBLIC_KEY", TEST_PUBLIC_KEY_HEX)
    monkeypatch.setenv("BADGE_DOMAINS", TEST_DOMAIN)
    get_key_material.cache_clear()
    yield
    get_key_material.cache_clear()


@pytest.fixture
def key_material() -> SigningKeyMaterial:
    return TEST_KEY_MATERIAL


@pytest.fixture
def signer(key_material: SigningKeyMaterial) -> BadgeSigner:
    return BadgeSigner(key_material)


@pytest.fixture
def conference() -> ConferenceInfo:
    return ConferenceInfo(
        id="test-conference-2025",
        title="Cloud Native Day Bergen 2025",
        organizer="Cloud Native Bergen",
        city="Bergen",
        country="Norway",
        start_date="2025-06-15",
        contact_email="hello@cloudnativebergen.no",
        domains=(TEST_DOMAIN,),
    )


@pytest.fixture
def badge_config(
    conference: ConferenceInfo, key_material: SigningKeyMaterial
) -> BadgeConfiguration:
    return create_badge_configuration(conference, TEST_DOMAIN, key_material=key_material)


def make_params(**overrides: object) -> BadgeGenerationParams:
    """Speaker badge params with sensible defaults."""
    values: dict[str, object] = {
        "speaker_id": "speaker-123",
        "speaker_name": "Jane Doe",
        "speaker_email": "jane@example.com",
        "speaker_slug": "jane-doe",
        "conference_id": "test-conference-2025",
        "conference_title": "Cloud Native Day Bergen 2025",
        "conference_year": "2025",
        "conference_date": "June 15, 2025",
        "badge_type": "speaker",
        "talk_id": "talk-456",
        "talk_title": "Kubernetes at Scale",
    }
    values.update(overrides)
    return BadgeGenerationParams(**values)  # type: ignore[arg-type]


@pytest.fixture
def speaker_params() -> BadgeGenerationParams:
    return make_params()
