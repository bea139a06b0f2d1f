"""Score and verdict derivation from a check set."""

from __future__ import annotations

from dataclasses import dataclass

from url_threat_scoring.domain.url.models import CheckSet, TriState


@dataclass(frozen=True)
class ScoringWeights:
    """Empirically tuned weights and ceilings; the ordering in compute_score is fixed."""

    valid_scheme: int = 10
    not_ip_address: int = 15
    no_user_info: int = 10
    not_shortener: int = 10
    no_suspicious_keywords: int = 20
    not_punycode: int = 10
    valid_tld: int = 10
    no_brand_squat: int = 15
    typosquat_ceiling: int = 79
    brand_squat_ceiling: int = 79
    hyphen_deduction: int = 8
    resolves_bonus: int = 5
    unreachable_ceiling: int = 70
    subdomain_ceiling: int = 60
    suspicious_tld_ceiling: int = 80
    high_entropy_ceiling: int = 75
    newly_registered_ceiling: int = 70
    threat_list_ceiling: int = 5
    safe_threshold: int = 80


DEFAULT_WEIGHTS = ScoringWeights()

_ADDITIVE_FIELDS = (
    "valid_scheme",
    "not_ip_address",
    "no_user_info",
    "not_shortener",
    "no_suspicious_keywords",
    "not_punycode",
    "valid_tld",
    "no_brand_squat",
)


def compute_score(checks: CheckSet, weights: ScoringWeights = DEFAULT_WEIGHTS) -> int:
    if not checks.parseable:
        return 0

    score = sum(getattr(weights, name) for name in _ADDITIVE_FIELDS if getattr(checks, name))
    # Impersonation must never reach the safe threshold, whatever else passed.
    if not checks.not_typosquat:
        score = min(score, weights.typosquat_ceiling)
    if not checks.no_brand_squat:
        score = min(score, weights.brand_squat_ceiling)
    if not checks.not_excessive_hyphens:
        score = max(score - weights.hyphen_deduction, 0)
    # Reachability goes before the structural ceilings so the bonus cannot lift a capped score.
    if checks.resolves is TriState.TRUE:
        score = min(score + weights.resolves_bonus, 100)
    elif checks.resolves is TriState.FALSE:
        score = min(score, weights.unreachable_ceiling)
    if not checks.not_excessive_subdomains:
        score = min(score, weights.subdomain_ceiling)
    if not checks.not_suspicious_tld:
        score = min(score, weights.suspicious_tld_ceiling)
    if not checks.not_high_entropy:
        score = min(score, weights.high_entropy_ceiling)
    if checks.not_newly_registered is TriState.FALSE:
        score = min(score, weights.newly_registered_ceiling)
    if checks.safe_browsing is TriState.FALSE:
        score = min(score, weights.threat_list_ceiling)
    return max(0, min(score, 100))


def has_hard_failure(checks: CheckSet) -> bool:
    return (
        not checks.no_brand_squat
        or not checks.not_typosquat
        or not checks.not_excessive_subdomains
        or not checks.not_suspicious_tld
        or checks.not_newly_registered is TriState.FALSE
        or checks.safe_browsing is TriState.FALSE
    )


def is_safe(checks: CheckSet, score: int, weights: ScoringWeights = DEFAULT_WEIGHTS) -> bool:
    # A capped score can sit exactly on the threshold, so the hard-fail checks are required too.
    return checks.parseable and score >= weights.safe_threshold and not has_hard_failure(checks)


def score_checks(checks: CheckSet, weights: ScoringWeights = DEFAULT_WEIGHTS) -> tuple[int, bool]:
    score = compute_score(checks, weights)
    return score, is_safe(checks, score, weights)


def build_message(safe: bool, checks: CheckSet) -> str:
    """Pick the single most severe explanation."""

    if not checks.parseable:
        return "That doesn't look like a URL. Is it missing the https://?"
    if checks.safe_browsing is TriState.FALSE:
        return "Threat intelligence has flagged this URL as malicious. Do not visit."
    if not checks.no_brand_squat:
        return "This URL appears to impersonate a trusted brand, a classic phishing technique."
    if not checks.not_typosquat:
        return "This domain closely resembles a known brand and is likely a typosquatting attack."
    if not checks.not_ip_address:
        return "Suspicious: real websites use domain names, not raw IP addresses."
    if not checks.not_excessive_subdomains:
        return "Suspiciously deep subdomain chain; legitimate sites rarely use this many levels."
    if not checks.no_user_info:
        return "The @ in this URL is a known trick to disguise the real destination."
    if not checks.not_shortener:
        return "URL shortener detected. We can't see where this really leads without following it."
    if not checks.not_punycode:
        return "This domain uses Punycode and may be impersonating another site with lookalike characters."
    if not checks.not_suspicious_tld:
        return "This TLD is heavily associated with phishing and malware. Proceed with extreme caution."
    if checks.not_newly_registered is TriState.FALSE:
        return "This domain was registered within the last 30 days, a major red flag for phishing."
    if not checks.not_high_entropy:
        return "This domain uses an unusual random-looking name, common in malware and scam infrastructure."
    if not checks.not_excessive_hyphens:
        return "This domain uses multiple hyphens in a single label, a pattern common in phishing URLs."
    if not checks.no_suspicious_keywords:
        return "The URL path contains patterns commonly found in phishing pages."
    if not checks.valid_tld:
        return "That TLD doesn't look right. Is the URL complete?"
    if not checks.valid_scheme:
        return "This link uses an unusual scheme rather than http or https."
    if checks.resolves is TriState.FALSE:
        return "URL looks structurally fine but the site does not appear to be reachable."
    if safe and checks.safe_browsing is TriState.TRUE:
        return "Looks clean! Passed all local checks and is not on any known threat list."
    if safe:
        return "Looks clean! No suspicious patterns detected. Stay alert with unexpected links."
    return "Several checks raised concerns. Treat this URL with caution."
