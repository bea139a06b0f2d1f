"""Pure merge steps folding asynchronous signals into a ValidationResult.

Every function returns a new result; flags are only ever appended, so running
fewer stages always yields a subset of the flags of running all of them.
"""

from __future__ import annotations

from typing import Iterable

from url_threat_scoring.domain.url.models import CheckSet, TriState, ValidationResult
from url_threat_scoring.orchestrator.fusion import DEFAULT_WEIGHTS, ScoringWeights, build_message, score_checks

REDIRECT_FLAG_PREFIX = "Redirect destination: "
UNRESOLVED_FLAG = "Domain does not resolve: the site does not appear to exist"
NEWLY_REGISTERED_FLAG = "Domain registered within the last 30 days, a strong phishing signal"
THREAT_LIST_FLAG = "Threat list: FLAGGED as malicious"
THREAT_LIST_UNAVAILABLE_FLAG = "Threat-list check unavailable: this result is based on local checks only"

# Applied while the threat list is configured but unreachable, so the result is never falsely clean.
THREAT_LIST_UNAVAILABLE_CEILING = 75


def _as_tri_state(value: TriState | bool | None) -> TriState:
    return value if isinstance(value, TriState) else TriState.from_bool(value)


def _append_unique(existing: list[str], new: Iterable[str]) -> list[str]:
    merged = list(existing)
    for item in new:
        if item not in merged:
            merged.append(item)
    return merged


def _rederive(
    result: ValidationResult,
    checks: CheckSet,
    *,
    flags: Iterable[str] = (),
    stages: Iterable[str] = (),
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    **updates: object,
) -> ValidationResult:
    draft = result.model_copy(update=updates)
    score, safe = score_checks(checks, weights)
    message = build_message(safe, checks)

    if draft.redirect_checks is not None:
        dest_score, dest_safe = score_checks(draft.redirect_checks, weights)
        score = min(score, dest_score)
        if safe and not dest_safe:
            message = f"{REDIRECT_FLAG_PREFIX}{build_message(dest_safe, draft.redirect_checks)}"
        safe = safe and dest_safe

    if draft.safe_browsing_error:
        score = min(score, THREAT_LIST_UNAVAILABLE_CEILING)

    return draft.model_copy(
        update={
            "checks": checks,
            "score": score,
            "safe": safe,
            "message": message,
            "flags": _append_unique(draft.flags, flags),
            "source": _append_unique(draft.source, stages),
        }
    )


def rescore(result: ValidationResult, weights: ScoringWeights = DEFAULT_WEIGHTS) -> ValidationResult:
    """Re-derive score, verdict and message from the result's own signals."""

    return _rederive(result, result.checks, weights=weights)


def apply_head_result(
    result: ValidationResult,
    resolves: TriState | bool | None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ValidationResult:
    """Merge reachability: TRUE alive, FALSE no such domain, UNKNOWN timeout or skipped."""

    value = _as_tri_state(resolves)
    checks = result.checks.with_signal("resolves", value)
    return _rederive(
        result,
        checks,
        flags=[UNRESOLVED_FLAG] if checks.resolves is TriState.FALSE else [],
        stages=["head"] if value is not TriState.UNKNOWN else [],
        weights=weights,
    )


def apply_rdap_result(
    result: ValidationResult,
    is_old: TriState | bool | None,
    *,
    failed: bool = False,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ValidationResult:
    """Merge domain age: TRUE registered long enough ago, FALSE recently registered."""

    value = _as_tri_state(is_old)
    checks = result.checks.with_signal("not_newly_registered", value)
    updates: dict[str, object] = {}
    if failed:
        updates["degraded_services"] = _append_unique(result.degraded_services, ["rdap"])
    return _rederive(
        result,
        checks,
        flags=[NEWLY_REGISTERED_FLAG] if checks.not_newly_registered is TriState.FALSE else [],
        stages=["rdap"] if value is not TriState.UNKNOWN else [],
        weights=weights,
        **updates,
    )


def apply_safe_browsing_result(
    result: ValidationResult,
    is_flagged: bool,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ValidationResult:
    checks = result.checks.with_signal("safe_browsing", TriState.FALSE if is_flagged else TriState.TRUE)
    return _rederive(
        result,
        checks,
        flags=[THREAT_LIST_FLAG] if is_flagged else [],
        stages=["safe-browsing"],
        weights=weights,
    )


def apply_safe_browsing_error(
    result: ValidationResult,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ValidationResult:
    """Mark the threat list as attempted-and-failed and cap the score accordingly."""

    return _rederive(
        result,
        result.checks,
        flags=[THREAT_LIST_UNAVAILABLE_FLAG],
        weights=weights,
        safe_browsing_error=True,
        degraded_services=_append_unique(result.degraded_services, ["safe-browsing"]),
    )


def apply_redirect_result(
    result: ValidationResult,
    destination: ValidationResult,
    final_url: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ValidationResult:
    """Merge the independent analysis of a cross-domain redirect target; the worse side wins."""

    extra_flags = [f"{REDIRECT_FLAG_PREFIX}{flag}" for flag in destination.flags if flag not in result.flags]
    return _rederive(
        result,
        result.checks,
        flags=extra_flags,
        stages=["redirect"],
        weights=weights,
        redirected_to=final_url,
        redirect_checks=destination.checks,
    )


def apply_stage_failure(result: ValidationResult, service: str) -> ValidationResult:
    """Record a stage that broke unexpectedly; signals, score and verdict are left as they were."""

    return result.model_copy(update={"degraded_services": _append_unique(result.degraded_services, [service])})
