"""SSRF guard shared by every outbound request the engine issues."""

from __future__ import annotations

import ipaddress

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_INTERNAL_HOSTNAMES = frozenset(
    {
        "localhost",
        "localhost.localdomain",
        "ip6-localhost",
        "ip6-loopback",
        "metadata",
        "metadata.google.internal",
    }
)
_INTERNAL_SUFFIXES = (
    ".localhost",
    ".localdomain",
    ".local",
    ".internal",
    ".intranet",
    ".lan",
    ".home",
    ".home.arpa",
    ".corp",
    ".private",
    ".test",
    ".invalid",
    ".example",
)


def _parse_ipv4_part(part: str) -> int | None:
    try:
        if part[:2].lower() == "0x":
            return int(part[2:], 16) if len(part) > 2 else 0
        if len(part) > 1 and part.startswith("0"):
            return int(part, 8)
        return int(part, 10) if part.isdigit() else None
    except ValueError:
        return None


def _parse_loose_ipv4(host: str) -> ipaddress.IPv4Address | None:
    """Parse the legacy inet_aton forms: ``127.1``, ``2130706433``, ``0x7f000001``, ``0177.0.0.1``."""

    parts = host.split(".")
    if len(parts) > 1 and parts[-1] == "":
        parts.pop()
    if not parts or len(parts) > 4:
        return None
    numbers: list[int] = []
    for part in parts:
        if not part:
            return None
        value = _parse_ipv4_part(part)
        if value is None:
            return None
        numbers.append(value)
    if any(item > 255 for item in numbers[:-1]):
        return None
    if numbers[-1] >= 256 ** (5 - len(numbers)):
        return None
    packed = numbers[-1]
    for index, item in enumerate(numbers[:-1]):
        packed += item * 256 ** (3 - index)
    return ipaddress.IPv4Address(packed)


def parse_ip_literal(host: str) -> IPAddress | None:
    """Return the address a hostname literally spells, or None for a DNS name."""

    value = (host or "").strip().lower()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    if not value:
        return None
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        pass
    return _parse_loose_ipv4(value)


def is_private_or_local_ip(value: str | IPAddress) -> bool:
    if isinstance(value, str):
        try:
            ip: IPAddress = ipaddress.ip_address(value.split("%", 1)[0])
        except ValueError:
            return False
    else:
        ip = value
    if isinstance(ip, ipaddress.IPv6Address):
        embedded = ip.ipv4_mapped or ip.sixtofour
        if embedded is not None:
            return is_private_or_local_ip(embedded)
    return (
        not ip.is_global
        or ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def is_internal_hostname(host: str) -> bool:
    name = (host or "").strip().lower().rstrip(".")
    if not name:
        return True
    if name in _INTERNAL_HOSTNAMES:
        return True
    # Single-label names only resolve through local search domains.
    if "." not in name:
        return True
    return name.endswith(_INTERNAL_SUFFIXES)


def check_host_literal(host: str, *, allow_private: bool = False) -> str | None:
    """Return a block reason for a hostname without touching the network, else None."""

    if not host:
        return "missing_host"
    if allow_private:
        return None
    literal = parse_ip_literal(host)
    if literal is not None:
        return "private_network_blocked" if is_private_or_local_ip(literal) else None
    if is_internal_hostname(host):
        return "internal_hostname_blocked"
    return None
