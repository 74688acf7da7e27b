"""Badge metrics using the Prometheus client library.

All metrics live in one inventory module.  The modules that own the
behavior import a metric and increment it at the point of action.

Everything here is a COUNTER: issuance, verification and validation
outcomes only ever accumulate.  Rates come from Prometheus, e.g.

    rate(badge_verifications_total{result="invalid"}[5m])

is the number of rejected signatures per second, which is the first
thing to look at when someone starts probing the public verification
endpoint with forged badges.
"""

from __future__ import annotations

from prometheus_client import Counter

BADGES_ISSUED = Counter(
    "badge_issued_total",
    "Badge credentials signed and emitted",
    ["badge_type"],  # "speaker" or "organizer"
)

BADGE_VERIFICATIONS = Counter(
    "badge_verifications_total",
    "Badge signature verifications by result",
    ["result"],  # "valid", "invalid" or "undecodable"
)

BADGE_SCHEMA_VALIDATIONS = Counter(
    "badge_schema_validations_total",
    "Structural schema checks of badge assertions by result",
    ["result"],  # "valid" or "invalid"
)
