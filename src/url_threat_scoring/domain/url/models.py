"""URL threat-scoring domain models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class TriState(str, Enum):
    """Outcome of a check that may not have run yet."""

    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    @classmethod
    def from_bool(cls, value: bool | None) -> TriState:
        if value is None:
            return cls.UNKNOWN
        return cls.TRUE if value else cls.FALSE

    def as_bool(self) -> bool | None:
        if self is TriState.UNKNOWN:
            return None
        return self is TriState.TRUE


_TRI_STATE_FIELDS = ("not_newly_registered", "safe_browsing", "resolves")

_MODEL_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class CheckSet(BaseModel):
    """Named heuristic and external signals; every field reads "passed" when true."""

    model_config = _MODEL_CONFIG

    parseable: bool = True
    valid_scheme: bool = True
    not_ip_address: bool = True
    no_user_info: bool = True
    not_shortener: bool = True
    no_suspicious_keywords: bool = True
    not_punycode: bool = True
    valid_tld: bool = True
    no_brand_squat: bool = True
    not_excessive_subdomains: bool = True
    not_suspicious_tld: bool = True
    not_typosquat: bool = True
    not_high_entropy: bool = True
    not_excessive_hyphens: bool = True
    not_newly_registered: TriState = TriState.UNKNOWN
    safe_browsing: TriState = TriState.UNKNOWN
    resolves: TriState = TriState.UNKNOWN

    @field_validator(*_TRI_STATE_FIELDS, mode="before")
    @classmethod
    def _coerce_tri_state(cls, value: Any) -> Any:
        if value is None or isinstance(value, bool):
            return TriState.from_bool(value)
        return value

    @field_serializer(*_TRI_STATE_FIELDS)
    def _serialize_tri_state(self, value: TriState) -> bool | None:
        return value.as_bool()

    def with_signal(self, field: str, value: TriState) -> CheckSet:
        """Return a copy with one tri-state field set; a known value is never reset to UNKNOWN."""

        if field not in _TRI_STATE_FIELDS:
            raise ValueError(f"{field} is not an external signal")
        current = getattr(self, field)
        if value is TriState.UNKNOWN and current is not TriState.UNKNOWN:
            return self
        return self.model_copy(update={field: value})


UNPARSEABLE_CHECKS = CheckSet(
    parseable=False,
    valid_scheme=False,
    not_ip_address=False,
    no_user_info=False,
    not_shortener=False,
    no_suspicious_keywords=False,
    not_punycode=False,
    valid_tld=False,
    no_brand_squat=False,
)


class ValidationResult(BaseModel):
    """Engine output, threaded immutably through every merge stage."""

    model_config = _MODEL_CONFIG

    url: str
    score: int = Field(ge=0, le=100)
    safe: bool
    checks: CheckSet
    message: str
    flags: list[str] = Field(default_factory=list)
    source: list[str] = Field(default_factory=lambda: ["local"])
    redirected_to: str | None = None
    redirect_checks: CheckSet | None = None
    degraded_services: list[str] = Field(default_factory=list)
    safe_browsing_error: bool = False

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        for key in ("redirectedTo", "redirectChecks"):
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload
