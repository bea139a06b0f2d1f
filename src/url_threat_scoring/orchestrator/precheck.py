"""Local heuristic analysis: parse a candidate and run every structural check."""

from __future__ import annotations

import re

from url_threat_scoring.core.security import parse_ip_literal
from url_threat_scoring.domain.url.extract import ParsedUrl, parse_candidate
from url_threat_scoring.domain.url.models import UNPARSEABLE_CHECKS, CheckSet, ValidationResult
from url_threat_scoring.domain.url.tables import DEFAULT_TABLES, ThreatTables
from url_threat_scoring.orchestrator.fusion import DEFAULT_WEIGHTS, ScoringWeights, build_message, score_checks
from url_threat_scoring.tools.intel.domain_intel import (
    DEFAULT_DOMAIN_POLICY,
    DomainIntelPolicy,
    check_brand_squat,
    check_typosquat,
    has_excessive_hyphens,
    has_excessive_subdomains,
    has_high_entropy,
)

APPROVED_SCHEMES = frozenset({"http", "https"})
UNPARSEABLE_FLAG = "Not a valid URL structure"

_DOTTED_QUAD = re.compile(r"^(?:\d{1,3}\.){3}\d{1,3}$")
_INTEGER_HOST = re.compile(r"^\d+$")
_HEX_HOST = re.compile(r"^0x[0-9a-f]+$", re.IGNORECASE)


def is_ip_host(hostname: str) -> bool:
    """Raw IP host in any spelling: dotted quad, [v6], bare integer, hex or legacy short forms."""

    return bool(
        _DOTTED_QUAD.match(hostname)
        or hostname.startswith("[")
        or _INTEGER_HOST.match(hostname)
        or _HEX_HOST.match(hostname)
        or parse_ip_literal(hostname) is not None
    )


def _strip_www(hostname: str) -> str:
    return hostname[4:] if hostname.startswith("www.") else hostname


def _final_label(hostname: str) -> str:
    return hostname.rsplit(".", 1)[-1] if "." in hostname else ""


def evaluate_checks(
    parsed: ParsedUrl,
    tables: ThreatTables = DEFAULT_TABLES,
    policy: DomainIntelPolicy = DEFAULT_DOMAIN_POLICY,
) -> tuple[CheckSet, list[str]]:
    """Run every local check without short-circuiting and collect flags in check order."""

    hostname = parsed.hostname.lower()
    flags: list[str] = []
    ip_host = is_ip_host(hostname)

    valid_scheme = parsed.scheme in APPROVED_SCHEMES
    if not valid_scheme:
        flags.append(f"Unusual scheme: {parsed.scheme}:")

    if ip_host:
        flags.append("Raw IP address: legitimate sites use domain names")

    if parsed.has_user_info:
        flags.append("Credentials in URL: classic trick to spoof the real destination")

    bare_host = _strip_www(hostname)
    is_shortener = bare_host in tables.shorteners
    if is_shortener:
        flags.append(f"URL shortener ({bare_host}) hides the real destination")

    # Path and query only; hostnames such as secure-login-checker.example.com are legitimate.
    path_and_query = parsed.path_and_query
    has_suspicious_keywords = any(pattern.search(path_and_query) for pattern in tables.suspicious_path_patterns)
    if has_suspicious_keywords:
        flags.append("Phishing-specific keyword pattern in URL path")

    has_punycode = any(label.startswith("xn--") for label in hostname.split("."))
    if has_punycode:
        flags.append("Punycode domain: may use lookalike characters to impersonate a real site")

    tld = _final_label(hostname)
    valid_tld = len(tld) >= 2
    if not valid_tld:
        flags.append("Invalid or missing TLD")

    no_brand_squat = check_brand_squat(hostname, tables)
    if not no_brand_squat:
        flags.append("Domain appears to impersonate a well-known brand")

    excessive_subdomains = has_excessive_subdomains(hostname, policy)
    if excessive_subdomains:
        flags.append("Unusually deep subdomain structure, a common phishing technique")

    suspicious_tld = tld in tables.high_risk_tlds
    if suspicious_tld:
        flags.append(f"High-risk TLD (.{tld}): disproportionately associated with phishing and malware")

    not_typosquat = check_typosquat(hostname, tables, policy)
    if not not_typosquat:
        flags.append("Domain closely resembles a known brand, likely a typosquatting attack")

    high_entropy = has_high_entropy(hostname, policy)
    if high_entropy:
        flags.append(
            "Hostname uses a random-looking character pattern associated with malware and scam infrastructure"
        )

    excessive_hyphens = has_excessive_hyphens(hostname, policy)
    if excessive_hyphens:
        flags.append("Hostname label contains 3+ hyphens, a common phishing domain pattern")

    checks = CheckSet(
        parseable=True,
        valid_scheme=valid_scheme,
        not_ip_address=not ip_host,
        no_user_info=not parsed.has_user_info,
        not_shortener=not is_shortener,
        no_suspicious_keywords=not has_suspicious_keywords,
        not_punycode=not has_punycode,
        valid_tld=valid_tld,
        no_brand_squat=no_brand_squat,
        not_excessive_subdomains=not excessive_subdomains,
        not_suspicious_tld=not suspicious_tld,
        not_typosquat=not_typosquat,
        not_high_entropy=not high_entropy,
        not_excessive_hyphens=not excessive_hyphens,
    )
    return checks, flags


def unparseable_result(raw: str) -> ValidationResult:
    return ValidationResult(
        url=(raw or "").strip(),
        score=0,
        safe=False,
        checks=UNPARSEABLE_CHECKS,
        message=build_message(False, UNPARSEABLE_CHECKS),
        flags=[UNPARSEABLE_FLAG],
    )


def analyze(
    raw_input: str,
    tables: ThreatTables = DEFAULT_TABLES,
    *,
    policy: DomainIntelPolicy = DEFAULT_DOMAIN_POLICY,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ValidationResult:
    """Score a candidate string with local checks only. Performs no I/O and never raises."""

    parsed = parse_candidate(raw_input)
    if parsed is None:
        return unparseable_result(raw_input)

    checks, flags = evaluate_checks(parsed, tables, policy)
    score, safe = score_checks(checks, weights)
    return ValidationResult(
        url=parsed.href,
        score=score,
        safe=safe,
        checks=checks,
        message=build_message(safe, checks),
        flags=flags,
    )
