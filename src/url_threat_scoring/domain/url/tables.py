"""Static lookup tables consumed by the local analyzer."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Any

import yaml

from url_threat_scoring.core.errors import ConfigError

URL_SHORTENERS = (
    "bit.ly",
    "tinyurl.com",
    "t.co",
    "goo.gl",
    "ow.ly",
    "is.gd",
    "buff.ly",
    "adf.ly",
    "tiny.cc",
    "rb.gy",
    "cutt.ly",
    "shorturl.at",
    "bit.do",
    "short.link",
    "lnkd.in",
    "fb.me",
    "su.pr",
    "ift.tt",
    "dlvr.it",
    "smarturl.it",
    "t.ly",
    "v.gd",
    "clck.ru",
    "qr.ae",
    "chilp.it",
    "bc.vc",
    "x.co",
    "snip.ly",
    "po.st",
    "bl.ink",
    "short.io",
    "rebrand.ly",
    "switchy.io",
    "soo.gd",
    "mcaf.ee",
)

KNOWN_BRANDS = {
    # Finance / payment
    "paypal": "paypal.com",
    "amazon": "amazon.com",
    "ebay": "ebay.com",
    "chase": "chase.com",
    "wellsfargo": "wellsfargo.com",
    "bankofamerica": "bankofamerica.com",
    "coinbase": "coinbase.com",
    "binance": "binance.com",
    "citibank": "citibank.com",
    "amex": "americanexpress.com",
    "americanexpress": "americanexpress.com",
    "venmo": "venmo.com",
    "robinhood": "robinhood.com",
    "schwab": "schwab.com",
    "fidelity": "fidelity.com",
    "hsbc": "hsbc.com",
    "stripe": "stripe.com",
    # Tech
    "apple": "apple.com",
    "microsoft": "microsoft.com",
    "google": "google.com",
    "facebook": "facebook.com",
    "instagram": "instagram.com",
    "twitter": "twitter.com",
    "linkedin": "linkedin.com",
    "yahoo": "yahoo.com",
    "whatsapp": "whatsapp.com",
    "netflix": "netflix.com",
    "dropbox": "dropbox.com",
    "adobe": "adobe.com",
    "steam": "steampowered.com",
    "github": "github.com",
    "discord": "discord.com",
    "tiktok": "tiktok.com",
    "reddit": "reddit.com",
    "spotify": "spotify.com",
    "zoom": "zoom.us",
    "twitch": "twitch.tv",
    "shopify": "shopify.com",
    # Retail / logistics
    "walmart": "walmart.com",
    "target": "target.com",
    "etsy": "etsy.com",
    "airbnb": "airbnb.com",
    "uber": "uber.com",
    "lyft": "lyft.com",
    "doordash": "doordash.com",
    "fedex": "fedex.com",
    "ups": "ups.com",
    "dhl": "dhl.com",
    "usps": "usps.com",
    # Security vendors
    "norton": "norton.com",
    "mcafee": "mcafee.com",
    # Government
    "irs": "irs.gov",
}

# Specific phrase combinations; single words like "login" would hit bank.com/login.
SUSPICIOUS_PATH_PATTERNS = (
    r"verify[-_]?account",
    r"confirm[-_]?identity",
    r"update[-_]?(?:your[-_]?)?payment",
    r"account[-_]?(?:has[-_]?been[-_]?)?suspend",
    r"security[-_]?alert[-_]?(?:click|verify|confirm)",
    r"(?:click|tap)[-_]?here[-_]?(?:to[-_]?)?(?:verify|confirm|unlock)",
    r"recover[-_]?(?:your[-_]?)?account",
    r"secure[-_]?login",
    r"login[-_]?confirm",
    r"unlock[-_]?(?:your[-_]?)?account",
    r"limited[-_]?access",
    r"unusual[-_]?(?:sign[-_]?in|activity)",
)

HIGH_RISK_TLDS = (
    # Former Freenom TLDs
    "tk",
    "ml",
    "ga",
    "cf",
    "gq",
    "xyz",
    "top",
    "icu",
    "click",
    "surf",
    "cyou",
    "cfd",
    "sbs",
    "dad",
)

COMPOUND_SUFFIXES = (
    # United Kingdom
    "co.uk", "org.uk", "me.uk", "net.uk", "gov.uk", "ac.uk", "ltd.uk", "plc.uk",
    # Australia
    "com.au", "net.au", "org.au", "edu.au", "gov.au", "asn.au", "id.au",
    # Japan
    "co.jp", "or.jp", "ne.jp", "ac.jp", "go.jp", "gr.jp",
    # New Zealand
    "co.nz", "net.nz", "org.nz", "govt.nz", "ac.nz",
    # South Africa
    "co.za", "org.za", "net.za", "gov.za", "ac.za",
    # India
    "co.in", "net.in", "org.in", "gov.in", "ac.in",
    # South Korea
    "co.kr", "or.kr", "ne.kr", "ac.kr", "go.kr",
    # Latin America
    "com.br", "net.br", "org.br", "gov.br", "edu.br",
    "com.ar", "net.ar", "org.ar", "gov.ar",
    "com.mx", "org.mx", "net.mx", "gob.mx",
    "com.co", "net.co", "org.co",
    "com.pe", "net.pe", "org.pe",
    "com.ve", "net.ve", "org.ve",
    # Middle East / Africa
    "co.il", "net.il", "org.il", "ac.il",
    "co.ke", "or.ke", "ac.ke",
    "com.gh", "org.gh",
    "com.ng", "org.ng", "net.ng",
    "co.tz", "or.tz", "ac.tz",
    "com.eg", "org.eg", "net.eg",
    # Asia / Europe
    "com.tr", "com.sg", "com.hk", "com.tw", "com.ph", "com.my", "com.pk",
    "com.cn", "net.cn", "org.cn", "co.id", "com.vn", "net.vn",
    "com.ua", "net.ua", "org.ua", "com.bd", "net.bd",
)

_LABEL = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$")
_BRAND = re.compile(r"^[a-z0-9]+$")


@dataclass(frozen=True)
class ThreatTables:
    """Immutable curated tables; build once at startup and share across requests."""

    shorteners: frozenset[str]
    brands: tuple[tuple[str, str], ...]
    suspicious_path_patterns: tuple[re.Pattern[str], ...]
    high_risk_tlds: frozenset[str]
    compound_suffixes: frozenset[str]
    _brand_patterns: tuple[tuple[str, str, re.Pattern[str]], ...] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        _validate(self)
        compiled = tuple(
            (brand, canonical, re.compile(rf"(?:^|[.-]){re.escape(brand)}(?:[.-]|$)"))
            for brand, canonical in self.brands
        )
        object.__setattr__(self, "_brand_patterns", compiled)

    @property
    def brand_patterns(self) -> tuple[tuple[str, str, re.Pattern[str]], ...]:
        return self._brand_patterns


def _validate(tables: ThreatTables) -> None:
    for host in tables.shorteners:
        if "." not in host or host != host.lower():
            raise ConfigError(f"shortener entry must be a lowercase hostname: {host!r}")
    seen: set[str] = set()
    for brand, canonical in tables.brands:
        if not _BRAND.match(brand):
            raise ConfigError(f"brand names must be lowercase alphanumerics: {brand!r}")
        if brand in seen:
            raise ConfigError(f"duplicate brand entry: {brand!r}")
        seen.add(brand)
        if "." not in canonical or not all(_LABEL.match(part) for part in canonical.split(".")):
            raise ConfigError(f"canonical domain for {brand!r} is not a hostname: {canonical!r}")
    for tld in tables.high_risk_tlds:
        if not _LABEL.match(tld):
            raise ConfigError(f"high-risk TLD must be a single label: {tld!r}")
    for suffix in tables.compound_suffixes:
        parts = suffix.split(".")
        if len(parts) != 2 or not all(_LABEL.match(part) for part in parts):
            raise ConfigError(f"compound suffix must have exactly two labels: {suffix!r}")


def build_tables(
    *,
    shorteners: tuple[str, ...] | list[str] = URL_SHORTENERS,
    brands: dict[str, str] | None = None,
    suspicious_path_patterns: tuple[str, ...] | list[str] = SUSPICIOUS_PATH_PATTERNS,
    high_risk_tlds: tuple[str, ...] | list[str] = HIGH_RISK_TLDS,
    compound_suffixes: tuple[str, ...] | list[str] = COMPOUND_SUFFIXES,
) -> ThreatTables:
    patterns: list[re.Pattern[str]] = []
    for raw in suspicious_path_patterns:
        try:
            patterns.append(re.compile(raw, re.IGNORECASE))
        except re.error as exc:
            raise ConfigError(f"invalid suspicious path pattern {raw!r}: {exc}") from exc
    return ThreatTables(
        shorteners=frozenset(item.strip().lower() for item in shorteners),
        brands=tuple((brands if brands is not None else KNOWN_BRANDS).items()),
        suspicious_path_patterns=tuple(patterns),
        high_risk_tlds=frozenset(item.strip().lower().lstrip(".") for item in high_risk_tlds),
        compound_suffixes=frozenset(item.strip().lower() for item in compound_suffixes),
    )


def _string_list(payload: dict[str, Any], key: str) -> list[str]:
    raw = payload.get(key, [])
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise ConfigError(f"tables file: {key} must be a list of strings")
    return raw


def load_tables(path: str | Path | None = None) -> ThreatTables:
    """Build the default tables, extended by an optional YAML file."""

    if path is None:
        return build_tables()
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"tables file not found: {p}")
    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"tables file is not valid YAML: {p}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"tables file must contain a mapping: {p}")

    extra_brands = payload.get("brands", {})
    if not isinstance(extra_brands, dict):
        raise ConfigError("tables file: brands must map brand name to canonical domain")
    brands = dict(KNOWN_BRANDS)
    brands.update({str(k).strip().lower(): str(v).strip().lower() for k, v in extra_brands.items()})

    return build_tables(
        shorteners=[*URL_SHORTENERS, *_string_list(payload, "shorteners")],
        brands=brands,
        suspicious_path_patterns=[*SUSPICIOUS_PATH_PATTERNS, *_string_list(payload, "suspicious_path_patterns")],
        high_risk_tlds=[*HIGH_RISK_TLDS, *_string_list(payload, "high_risk_tlds")],
        compound_suffixes=[*COMPOUND_SUFFIXES, *_string_list(payload, "compound_suffixes")],
    )


DEFAULT_TABLES = build_tables()
