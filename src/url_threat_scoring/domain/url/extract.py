"""Candidate URL parsing, canonicalization and registrable-domain extraction."""

from __future__ import annotations

from dataclasses import dataclass
import ipaddress
import re
from typing import Collection
from urllib.parse import quote, urlsplit

import idna

from url_threat_scoring.domain.url.tables import COMPOUND_SUFFIXES

DEFAULT_SCHEME = "https"

_EXPLICIT_SCHEME = re.compile(r"^[a-z][a-z0-9+\-.]*://", re.IGNORECASE)
_HOSTNAME = re.compile(r"^[a-z0-9_-]+(?:\.[a-z0-9_-]+)*$")
_SPECIAL_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})
_DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21, "ws": 80, "wss": 443}
_STRIPPED_CHARS = str.maketrans("", "", "\t\n\r")
_PATH_SAFE = "/%:@!$&'()*+,;=~"
_QUERY_SAFE = _PATH_SAFE + "?"


@dataclass(frozen=True)
class ParsedUrl:
    href: str
    scheme: str
    username: str
    password: str
    hostname: str
    port: int | None
    path: str
    query: str
    fragment: str

    @property
    def path_and_query(self) -> str:
        return self.path + (f"?{self.query}" if self.query else "")

    @property
    def has_user_info(self) -> bool:
        return bool(self.username or self.password)


def _normalize_hostname(raw: str) -> str | None:
    host = raw.strip().rstrip(".")
    if not host:
        return None
    if not host.isascii():
        try:
            host = idna.encode(host, uts46=True).decode("ascii")
        except UnicodeError:
            return None
    host = host.lower()
    if len(host) > 253 or not _HOSTNAME.match(host):
        return None
    if any(len(label) > 63 for label in host.split(".")):
        return None
    return host


def _bracketed_ipv6(raw: str) -> str | None:
    try:
        address = ipaddress.IPv6Address(raw.split("%", 1)[0])
    except ValueError:
        return None
    return f"[{address.compressed}]"


def parse_candidate(raw: str) -> ParsedUrl | None:
    """Parse user input into URL components; return None when it is not a URL.

    Bare domains get ``https://`` prepended. An explicit ``scheme://`` is kept
    as typed so a non-web scheme can be flagged rather than coerced.
    """

    text = (raw or "").strip().translate(_STRIPPED_CHARS)
    if not text:
        return None
    candidate = text if _EXPLICIT_SCHEME.match(text) else f"{DEFAULT_SCHEME}://{text}"
    scheme_end = candidate.index("://")
    scheme = candidate[:scheme_end].lower()
    if scheme in _SPECIAL_SCHEMES:
        # Browsers treat backslashes as path separators for web schemes.
        candidate = candidate[: scheme_end + 3] + candidate[scheme_end + 3 :].replace("\\", "/")

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError:
        return None

    userinfo, _, hostinfo = parts.netloc.rpartition("@")
    if hostinfo.startswith("["):
        hostname = _bracketed_ipv6(parts.hostname or "")
    else:
        hostname = _normalize_hostname(parts.hostname or "")
    if hostname is None:
        return None

    username, _, password = userinfo.partition(":")
    netloc = hostname
    if userinfo:
        netloc = f"{userinfo}@{netloc}"
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"
    path = quote(parts.path or "/", safe=_PATH_SAFE)
    query = quote(parts.query, safe=_QUERY_SAFE)
    fragment = quote(parts.fragment, safe=_QUERY_SAFE)
    href = f"{scheme}://{netloc}{path}"
    if query:
        href += f"?{query}"
    if fragment:
        href += f"#{fragment}"

    return ParsedUrl(
        href=href,
        scheme=scheme,
        username=username,
        password=password,
        hostname=hostname,
        port=port,
        path=path,
        query=query,
        fragment=fragment,
    )


def registered_domain(hostname: str, compound_suffixes: Collection[str] = COMPOUND_SUFFIXES) -> str:
    """Return the eTLD+1, treating ``co.uk``-style suffixes as a single public suffix."""

    host = (hostname or "").lower().rstrip(".")
    parts = host.split(".")
    if len(parts) >= 3 and ".".join(parts[-2:]) in compound_suffixes:
        return ".".join(parts[-3:])
    if len(parts) >= 2:
        return ".".join(parts[-2:])
    return host


def url_hostname(url: str) -> str:
    parsed = parse_candidate(url)
    return parsed.hostname if parsed else ""
