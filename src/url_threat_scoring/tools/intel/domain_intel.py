"""Domain-level impersonation and DGA heuristics."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import math

from url_threat_scoring.domain.url.extract import registered_domain
from url_threat_scoring.domain.url.tables import DEFAULT_TABLES, ThreatTables

_LOOKALIKES = str.maketrans({"1": "l", "0": "o", "3": "e", "5": "s", "4": "a", "8": "b", "6": "g", "7": "t", "-": None})


@dataclass(frozen=True)
class DomainIntelPolicy:
    typosquat_min_brand_length: int = 4
    edit_distance_min_brand_length: int = 6
    edit_distance_max_length_delta: int = 2
    entropy_min_label_length: int = 12
    entropy_threshold: float = 3.8
    hyphen_limit: int = 3
    subdomain_label_limit: int = 5


DEFAULT_DOMAIN_POLICY = DomainIntelPolicy()


def _levenshtein(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        curr = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            curr.append(min(curr[j - 1] + 1, prev[j] + 1, prev[j - 1] + cost))
        prev = curr
    return prev[-1]


def normalize_label(label: str) -> str:
    """Undo common digit look-alikes and drop hyphens: ``paypa1`` -> ``paypal``."""

    return label.lower().translate(_LOOKALIKES)


def shannon_entropy(value: str) -> float:
    if not value:
        return 0.0
    total = len(value)
    return -sum((count / total) * math.log2(count / total) for count in Counter(value).values())


def _is_compound_variant(registered: str, brand: str, tables: ThreatTables) -> bool:
    prefix = f"{brand}."
    return registered.startswith(prefix) and registered[len(prefix) :] in tables.compound_suffixes


def impersonated_brand(hostname: str, tables: ThreatTables = DEFAULT_TABLES) -> str | None:
    """Return the brand a hostname names as a whole label on a foreign registrable domain."""

    host = hostname.lower()
    registered = registered_domain(host, tables.compound_suffixes)
    for brand, canonical, pattern in tables.brand_patterns:
        if not pattern.search(host):
            continue
        if registered == canonical:
            continue
        # Only explicitly recognised compound suffixes count as the brand's own
        # regional site; paypal.edu.tk is still a squat.
        if _is_compound_variant(registered, brand, tables):
            continue
        return brand
    return None


def check_brand_squat(hostname: str, tables: ThreatTables = DEFAULT_TABLES) -> bool:
    return impersonated_brand(hostname, tables) is None


def typosquat_target(
    hostname: str,
    tables: ThreatTables = DEFAULT_TABLES,
    policy: DomainIntelPolicy = DEFAULT_DOMAIN_POLICY,
) -> str | None:
    """Return the brand the registrable label imitates via look-alikes or a single edit."""

    registered = registered_domain(hostname.lower(), tables.compound_suffixes)
    label = registered.split(".")[0]
    normalized = normalize_label(label)
    for brand, canonical in tables.brands:
        if registered == canonical or _is_compound_variant(registered, brand, tables):
            continue
        if len(brand) < policy.typosquat_min_brand_length:
            continue
        if normalized == brand:
            return brand
        if (
            len(brand) >= policy.edit_distance_min_brand_length
            and abs(len(normalized) - len(brand)) <= policy.edit_distance_max_length_delta
            and _levenshtein(normalized, brand) <= 1
        ):
            return brand
    return None


def check_typosquat(
    hostname: str,
    tables: ThreatTables = DEFAULT_TABLES,
    policy: DomainIntelPolicy = DEFAULT_DOMAIN_POLICY,
) -> bool:
    return typosquat_target(hostname, tables, policy) is None


def has_high_entropy(hostname: str, policy: DomainIntelPolicy = DEFAULT_DOMAIN_POLICY) -> bool:
    labels = hostname.lower().split(".")[:-1]
    return any(
        len(label) >= policy.entropy_min_label_length and shannon_entropy(label) > policy.entropy_threshold
        for label in labels
    )


def has_excessive_hyphens(hostname: str, policy: DomainIntelPolicy = DEFAULT_DOMAIN_POLICY) -> bool:
    return any(label.count("-") >= policy.hyphen_limit for label in hostname.split("."))


def has_excessive_subdomains(hostname: str, policy: DomainIntelPolicy = DEFAULT_DOMAIN_POLICY) -> bool:
    return len(hostname.split(".")) >= policy.subdomain_label_limit
