"""Exception taxonomy for the badge engine.

Only configuration and explicit fail-fast validation raise.  Signature
verification never does: a forged or garbled badge is an ordinary
``False``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from badge_service.models.badge import ValidationError


class BadgeServiceError(Exception):
    """Base class for every error raised by badge_service."""


class ConfigurationError(BadgeServiceError):
    """Missing or malformed issuer configuration (keys, domains).

    Fatal: raised once when key material is built, and issuance must
    not continue without it.  ``field`` names the offending input when
    the error comes from issuance checks (``issuer.id``, ``badge_type``).
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)


class KeyValidationError(BadgeServiceError):
    """Malformed input to the key discovery helpers (Multikey documents, key IDs)."""


class BadgeValidationError(BadgeServiceError):
    """Raised by assert_valid_badge when an assertion fails the schema.

    Carries the full list of violations, not just the first one.
    """

    def __init__(self, errors: list[ValidationError]) -> None:
        self.errors = list(errors)
        lines = "\n".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Badge validation failed:\n{lines}")
