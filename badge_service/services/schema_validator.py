"""Structural validation of Open Badges 3.0 AchievementCredentials.

The schema is expressed as pydantic models and every assertion is
validated in one pass: pydantic collects all violations instead of
stopping at the first, and each one comes back as a
``ValidationError(field, message)`` with a dotted field path such as
``credentialSubject.achievement.name`` or ``proof.0.proofValue``.

The rules follow the 1EdTech AchievementCredential JSON schema:

- ``@context`` has at least two entries and includes the OB 3.0 context
- ``type`` has at least two entries, ``VerifiableCredential`` first
- subject, achievement and issuer ``type`` lists include
  ``AchievementSubject``, ``Achievement`` and ``Profile``
- ``validFrom`` and at least one ``DataIntegrityProof`` (with a
  cryptosuite) are required
- ids and URLs must be URIs; timestamps must be timezone-aware
  ISO 8601 date-times

Extra properties are allowed everywhere; Open Badges documents carry
plenty of optional vocabulary this engine does not care about.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    AnyUrl,
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    TypeAdapter,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import ErrorDetails, PydanticCustomError

from badge_service.core.errors import BadgeValidationError
from badge_service.core.metrics import BADGE_SCHEMA_VALIDATIONS
from badge_service.models.badge import (
    OB_V3_CONTEXT,
    ValidationError,
    ValidationResult,
)

logger = logging.getLogger(__name__)

ROOT_FIELD = "assertion"

_AWARE_DATETIME = TypeAdapter(AwareDatetime)


def _date_time(value: str) -> str:
    try:
        _AWARE_DATETIME.validate_python(value)
    except PydanticValidationError:
        raise PydanticCustomError(
            "date_time_format", 'must match format "date-time"'
        ) from None
    return value


def _containing(member: str) -> AfterValidator:
    def check(values: list[str]) -> list[str]:
        if member not in values:
            raise PydanticCustomError(
                "contains", "must contain '{member}'", {"member": member}
            )
        return values

    return AfterValidator(check)


DateTimeString = Annotated[StrictStr, AfterValidator(_date_time)]


class _OpenModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class _ImageSchema(_OpenModel):
    id: AnyUrl
    type: Literal["Image"]


class _CriteriaSchema(_OpenModel):
    id: AnyUrl | None = None
    narrative: str | None = None


class _AchievementSchema(_OpenModel):
    id: AnyUrl
    type: Annotated[list[str], _containing("Achievement")]
    name: str
    description: str | None = None
    criteria: _CriteriaSchema
    image: _ImageSchema | None = None


class _CredentialSubjectSchema(_OpenModel):
    id: str | None = None
    type: Annotated[list[str], _containing("AchievementSubject")]
    achievement: _AchievementSchema


class _IssuerSchema(_OpenModel):
    id: AnyUrl
    type: Annotated[list[str], _containing("Profile")]
    name: str
    url: AnyUrl | None = None
    image: _ImageSchema | None = None


class _ProofSchema(_OpenModel):
    type: Literal["DataIntegrityProof"]
    created: DateTimeString
    verificationMethod: AnyUrl
    cryptosuite: str
    proofPurpose: str
    proofValue: str


class _AchievementCredentialSchema(_OpenModel):
    context: Annotated[
        list[str], Field(min_length=2), _containing(OB_V3_CONTEXT)
    ] = Field(alias="@context")
    id: AnyUrl | None = None
    type: Annotated[list[str], Field(min_length=2)]
    credentialSubject: _CredentialSubjectSchema
    issuer: _IssuerSchema
    validFrom: DateTimeString
    validUntil: DateTimeString | None = None
    proof: Annotated[list[_ProofSchema], Field(min_length=1)]

    @field_validator("type")
    @classmethod
    def _verifiable_credential_first(cls, value: list[str]) -> list[str]:
        if value[0] != "VerifiableCredential":
            raise PydanticCustomError(
                "vc_type_order",
                "first element must be 'VerifiableCredential'",
            )
        return value


def _field_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or ROOT_FIELD


def _message(error: ErrorDetails) -> str:
    kind = error["type"]
    ctx = error.get("ctx", {})
    if kind == "missing":
        return f"must have required property '{error['loc'][-1]}'"
    if kind == "list_type":
        return "must be array"
    if kind in ("model_type", "model_attributes_type", "dict_type"):
        return "must be object"
    if kind == "string_type":
        return "must be string"
    if kind == "literal_error":
        return f"must be equal to {ctx.get('expected', 'the allowed value')}"
    if kind == "too_short":
        return f"must NOT have fewer than {ctx.get('min_length')} items"
    if kind.startswith("url_"):
        return 'must match format "uri"'
    return error["msg"]


def validate_badge_schema(assertion: Any) -> ValidationResult:
    """Check an assertion's structure; returns every violation found."""
    try:
        _AchievementCredentialSchema.model_validate(assertion)
    except PydanticValidationError as exc:
        errors = [
            ValidationError(field=_field_path(err["loc"]), message=_message(err))
            for err in exc.errors(include_url=False)
        ]
        BADGE_SCHEMA_VALIDATIONS.labels(result="invalid").inc()
        logger.debug(
            "badge assertion failed schema validation",
            extra={"error_count": len(errors)},
        )
        return ValidationResult(valid=False, errors=errors)

    BADGE_SCHEMA_VALIDATIONS.labels(result="valid").inc()
    return ValidationResult(valid=True)


def assert_valid_badge(assertion: Any) -> None:
    """Fail fast: raise BadgeValidationError when the assertion is invalid."""
    result = validate_badge_schema(assertion)
    if not result.valid:
        raise BadgeValidationError(result.errors or [])


def get_validation_errors(assertion: Any) -> list[str]:
    """Human-readable ``"field: message"`` strings; empty when valid."""
    result = validate_badge_schema(assertion)
    if result.valid:
        return []
    return [f"{e.field}: {e.message}" for e in result.errors or []]
